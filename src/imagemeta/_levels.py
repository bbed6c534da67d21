"""Resolution levels of a multi-resolution (pyramidal) image.

A pyramid stores the same image at several resolutions.  Each
`ResolutionLevel` records a downsample factor (1.0 = full resolution) and the
size of the raster available at that factor.  Readers typically know either
the factor or the raster size of each level, but rarely both exactly;
`ResolutionLevelBuilder` fills in whichever is missing.

Examples
--------
>>> from imagemeta import ResolutionLevelBuilder
>>> levels = (
...     ResolutionLevelBuilder(4096, 3072)
...     .add_full_resolution_level()
...     .add_level_by_size(1024, 768)
...     .add_level_by_downsample(16)
...     .build()
... )
>>> [str(level) for level in levels]
['Level: 4096x3072 (1)', 'Level: 1024x768 (4)', 'Level: 256x192 (16)']
"""

from __future__ import annotations

import math
from functools import total_ordering
from typing import TYPE_CHECKING, Annotated

from annotated_types import Ge, Gt
from pydantic import Field

from imagemeta._base import _FrozenModel
from imagemeta._diagnostics import emit

if TYPE_CHECKING:
    from collections.abc import Iterable

    from typing_extensions import Self

    from imagemeta._diagnostics import DiagnosticSink

__all__ = ["ResolutionLevel", "ResolutionLevelBuilder", "estimate_downsample"]

# relative difference between x & y downsamples above which we complain
DOWNSAMPLE_TOLERANCE = 0.001


@total_ordering
class ResolutionLevel(_FrozenModel):
    """Downsample factor and raster size of one pyramid level.

    Levels compare (and sort) by the exact values of
    `(downsample, width, height)`.  Use `ResolutionLevelBuilder` to create
    them.
    """

    downsample: Annotated[float, Gt(0)] = Field(
        description="Downsample relative to full resolution (1.0 = full resolution)",
    )
    width: Annotated[int, Ge(0)] = Field(
        description="Width of the raster at this level, in pixels"
    )
    height: Annotated[int, Ge(0)] = Field(
        description="Height of the raster at this level, in pixels"
    )

    def _key(self) -> tuple[float, int, int]:
        return (self.downsample, self.width, self.height)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, ResolutionLevel):
            return NotImplemented
        return self._key() < other._key()

    def __str__(self) -> str:
        return f"Level: {self.width}x{self.height} ({_format_number(self.downsample)})"


def _format_number(value: float, max_decimals: int = 5) -> str:
    text = f"{value:.{max_decimals}f}".rstrip("0").rstrip(".")
    return text or "0"


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def estimate_downsample(
    full_width: int,
    full_height: int,
    level_width: int,
    level_height: int,
    level: int = -1,
    *,
    diagnostics: DiagnosticSink | None = None,
) -> float:
    """Estimate the downsample factor of a level from its dimensions.

    The x and y downsamples are computed independently, then reconciled:

    1. If the power of two closest to their mean reproduces both level
       dimensions within 2 pixels, it is used (2^n is by far the most common
       pyramid layout).
    2. Otherwise each axis is snapped to the nearest integer downsample if
       that reproduces the level dimension within 1 pixel.
    3. If the two axes then agree, their common value is used; if either
       equals the closest power of two, that is used.
    4. Otherwise the mean of the two is returned, and a diagnostic is emitted
       if they differ by more than a relative tolerance of 0.001.

    Parameters
    ----------
    full_width, full_height : int
        Dimensions of the full-resolution image.
    level_width, level_height : int
        Dimensions of the pyramid level of interest.
    level : int, optional
        Index of the level.  Only used for diagnostics: when negative (the
        default), no diagnostic is emitted.
    diagnostics : DiagnosticSink | None, optional
        Receives a diagnostic if the x and y downsamples disagree.  Defaults to
        issuing an `ImageMetadataWarning`.

    Returns
    -------
    float
        The estimated downsample.

    Raises
    ------
    ValueError
        If either level dimension is not positive.

    Examples
    --------
    >>> estimate_downsample(4096, 4096, 1024, 1024)
    4.0
    >>> estimate_downsample(1000, 1000, 333, 333)
    3.0
    """
    if level_width <= 0 or level_height <= 0:
        raise ValueError(
            f"Level dimensions must be > 0, got {level_width}x{level_height}"
        )
    downsample_x = full_width / level_width
    downsample_y = full_height / level_height

    average = (downsample_x + downsample_y) / 2
    closest_pow2 = 2.0 ** _round_half_up(math.log2(average))
    if (
        abs(full_height / closest_pow2 - level_height) < 2
        and abs(full_width / closest_pow2 - level_width) < 2
    ):
        return closest_pow2

    # probably aiming at integer (but not power-of-two) downsampling
    rounded_x = _round_half_up(downsample_x)
    if rounded_x > 0 and abs(full_width / rounded_x - level_width) <= 1:
        downsample_x = float(rounded_x)
    rounded_y = _round_half_up(downsample_y)
    if rounded_y > 0 and abs(full_height / rounded_y - level_height) <= 1:
        downsample_y = float(rounded_y)

    if downsample_x == downsample_y:
        return downsample_x
    if closest_pow2 in (downsample_x, downsample_y):
        return closest_pow2

    downsample = (downsample_x + downsample_y) / 2
    if level >= 0 and not math.isclose(
        downsample_x, downsample_y, rel_tol=DOWNSAMPLE_TOLERANCE
    ):
        emit(
            diagnostics,
            "estimate_downsample",
            f"Calculated downsample values differ for x & y for level {level}: "
            f"x={downsample_x} and y={downsample_y} - will use value {downsample}",
            level=level,
            downsample_x=downsample_x,
            downsample_y=downsample_y,
            downsample=downsample,
        )
    return downsample


class ResolutionLevelBuilder:
    """Builder for the resolution levels of one image pyramid.

    Levels are returned by `build()` in the order they were added.  They are
    neither sorted nor deduplicated: it is up to the caller to add them in a
    sensible order (normally highest resolution first).

    Parameters
    ----------
    full_width, full_height : int
        Dimensions of the full-resolution image.  Levels added by downsample
        or by size are computed relative to these.
    diagnostics : DiagnosticSink | None, optional
        Receives diagnostics from downsample estimation (see
        `estimate_downsample`).
    """

    def __init__(
        self,
        full_width: int,
        full_height: int,
        *,
        diagnostics: DiagnosticSink | None = None,
    ) -> None:
        self._full_width = full_width
        self._full_height = full_height
        self._diagnostics = diagnostics
        self._levels: list[ResolutionLevel] = []

    def __len__(self) -> int:
        return len(self._levels)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}: {len(self._levels)} levels>"

    def add_level_by_downsample(self, downsample: float) -> Self:
        """Add a level, computing its size by dividing the full size by `downsample`.

        Dimensions are truncated to whole pixels.
        """
        width = int(self._full_width / downsample)
        height = int(self._full_height / downsample)
        return self.add_level(downsample, width, height)

    def add_full_resolution_level(self) -> Self:
        """Add the full-resolution image as a level.

        This is not mandatory: a pyramid may legitimately lack its
        full-resolution level (e.g. a low-resolution overlay of a larger image).
        """
        return self.add_level(1.0, self._full_width, self._full_height)

    def add_level(self, downsample: float, width: int, height: int) -> Self:
        """Add a level with an explicitly known downsample and size.

        This avoids any rounding that would be involved in computing one from
        the other.
        """
        self._levels.append(
            ResolutionLevel(downsample=downsample, width=width, height=height)
        )
        return self

    def add_level_by_size(self, width: int, height: int) -> Self:
        """Add a level from its size, estimating the downsample.

        See `estimate_downsample` for how the factor is derived.
        """
        downsample = estimate_downsample(
            self._full_width,
            self._full_height,
            width,
            height,
            len(self._levels),
            diagnostics=self._diagnostics,
        )
        return self.add_level(downsample, width, height)

    def add_resolution_level(self, level: ResolutionLevel) -> Self:
        """Add an existing level unchanged."""
        self._levels.append(level)
        return self

    def add_resolution_levels(self, levels: Iterable[ResolutionLevel]) -> Self:
        """Add existing levels unchanged, in iteration order."""
        for level in levels:
            self.add_resolution_level(level)
        return self

    def build(self) -> tuple[ResolutionLevel, ...]:
        """Return the levels added so far, in insertion order."""
        return tuple(self._levels)
