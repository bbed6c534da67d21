"""Immutable metadata describing a (possibly pyramidal) image.

`ImageMetadata` instances are created with an `ImageMetadataBuilder` and never
change afterwards.  To adjust metadata (e.g. to correct an erroneous pixel
size), build a new instance from the old one:

>>> from imagemeta import ImageMetadataBuilder
>>> original = (
...     ImageMetadataBuilder("my_reader", "/data/slide.svs", 4096, 4096)
...     .levels_from_downsamples(1, 4, 16)
...     .build()
... )
>>> corrected = (
...     ImageMetadataBuilder.from_metadata("my_reader", original)
...     .pixel_size_microns(0.25, 0.25)
...     .build()
... )
>>> corrected.pixel_size_calibrated(), original.pixel_size_calibrated()
(True, False)
>>> corrected.is_compatible_metadata(original)
True
"""

from __future__ import annotations

import uuid
from functools import cached_property
from typing import TYPE_CHECKING, Annotated, Any

import numpy as np
from annotated_types import Ge, Gt, MinLen
from pydantic import Field, model_validator

from imagemeta._base import _FrozenModel
from imagemeta._calibration import PixelCalibration, PixelCalibrationBuilder, TimeUnit
from imagemeta._channels import ChannelType, ImageChannel
from imagemeta._config import default_tile_size
from imagemeta._diagnostics import emit
from imagemeta._levels import ResolutionLevel, ResolutionLevelBuilder

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from typing_extensions import Self

    from imagemeta._diagnostics import DiagnosticSink

__all__ = ["ImageMetadata", "ImageMetadataBuilder"]

PositiveInt = Annotated[int, Gt(0)]
NonNegativeInt = Annotated[int, Ge(0)]


def _check_index(index: int, size: int, what: str) -> None:
    if not 0 <= index < size:
        raise IndexError(f"{what} index {index} out of range [0, {size})")


class ImageMetadata(_FrozenModel):
    """Dimensions, pyramid levels, channels and calibration of an image.

    Two kinds of comparison are supported:

    - `==` is strict: every field, including calibration, magnification and
      channels, must be equal.
    - `is_compatible_metadata` is lenient: it only checks that two instances
      describe the same pixels (same path, bit-depth and dimensions).
    """

    path: str = Field(
        description="Unique identifier of the image (e.g. a file path or URI)",
    )
    name: str | None = Field(default=None, description="Display name")
    server_class_name: str = Field(
        description="Identifies the reader that produced this metadata",
    )
    args: tuple[str, ...] = Field(
        default=(),
        description="Arguments needed to recreate the reader, stored verbatim",
    )
    width: NonNegativeInt = Field(
        description="Full-resolution image width, in pixels",
    )
    height: NonNegativeInt = Field(
        description="Full-resolution image height, in pixels",
    )
    size_z: PositiveInt = Field(default=1, description="Number of z-slices")
    size_t: PositiveInt = Field(default=1, description="Number of time points")
    channel_type: ChannelType = Field(
        default=ChannelType.DEFAULT,
        description="How channel values should be interpreted",
    )
    channels: tuple[ImageChannel, ...] = Field(
        default=(),
        description="Image channels, in order; their number is `size_c`",
    )
    is_rgb: bool = Field(
        default=False, description="Whether pixels are stored in (A)RGB form"
    )
    bit_depth: PositiveInt = Field(default=8, description="Bits per sample")
    levels: Annotated[tuple[ResolutionLevel, ...], MinLen(1)] = Field(
        description="Resolution levels, conventionally highest resolution first",
    )
    calibration: PixelCalibration = Field(
        default_factory=PixelCalibration,
        description="Physical pixel size and time calibration",
    )
    magnification: float | None = Field(
        default=None,
        description="Objective magnification of the full-resolution image, if known",
    )
    preferred_tile_width: NonNegativeInt = Field(
        description="Preferred width of pixel requests, in pixels",
    )
    preferred_tile_height: NonNegativeInt = Field(
        description="Preferred height of pixel requests, in pixels",
    )

    @model_validator(mode="after")
    def _validate_identity(self) -> Self:
        if self.width <= 0 and self.height <= 0:
            raise ValueError("Invalid metadata - width & height must be > 0")
        if not self.path.strip():
            raise ValueError("Invalid metadata - path must be set (and not be blank)")
        return self

    # ---------------------------------------------------------------------------
    # Levels
    # ---------------------------------------------------------------------------

    def n_levels(self) -> int:
        """Number of resolution levels (1 for a non-pyramidal image)."""
        return len(self.levels)

    def get_level(self, level: int) -> ResolutionLevel:
        _check_index(level, len(self.levels), "Resolution level")
        return self.levels[level]

    def get_downsample_for_level(self, level: int) -> float:
        """Return the downsample factor of resolution level `level`.

        Raises
        ------
        IndexError
            If `level` is not a valid level index.
        """
        return self.get_level(level).downsample

    @cached_property
    def _downsamples(self) -> tuple[float, ...]:
        # frozen fields only, so recomputing under a race gives the same tuple
        return tuple(level.downsample for level in self.levels)

    def get_preferred_downsamples_array(self) -> np.ndarray:
        """Return the downsample of every level as a new float64 array.

        Modifying the returned array has no effect on this metadata.
        """
        return np.array(self._downsamples, dtype=np.float64)

    # ---------------------------------------------------------------------------
    # Channels
    # ---------------------------------------------------------------------------

    @property
    def size_c(self) -> int:
        """Number of channels."""
        return len(self.channels)

    def get_channel(self, channel: int) -> ImageChannel:
        _check_index(channel, len(self.channels), "Channel")
        return self.channels[channel]

    def get_arguments(self) -> list[str]:
        """Return the reader arguments (empty if none were recorded)."""
        return list(self.args)

    # ---------------------------------------------------------------------------
    # Calibration pass-throughs
    # ---------------------------------------------------------------------------

    def pixel_size_calibrated(self) -> bool:
        return self.calibration.has_pixel_size()

    def z_spacing_calibrated(self) -> bool:
        return self.calibration.has_z_spacing()

    @property
    def pixel_width_microns(self) -> float | None:
        return self.calibration.pixel_width_microns

    @property
    def pixel_height_microns(self) -> float | None:
        return self.calibration.pixel_height_microns

    @property
    def averaged_pixel_size_microns(self) -> float | None:
        return self.calibration.average_pixel_size()

    @property
    def z_spacing_microns(self) -> float | None:
        return self.calibration.z_spacing_microns

    @property
    def time_unit(self) -> TimeUnit:
        return self.calibration.time_unit

    def timepoint(self, index: int) -> float | None:
        """Time of timepoint `index` in `time_unit`, or None if unknown."""
        return self.calibration.timepoint(index)

    # ---------------------------------------------------------------------------
    # Comparison & copying
    # ---------------------------------------------------------------------------

    def duplicate(self) -> ImageMetadata:
        """Return an independent copy, equal to this instance.

        Every sequence is an immutable tuple and the calibration is itself
        immutable, so the copy can never be affected by this instance (or vice
        versa).
        """
        return self.model_copy()

    def is_compatible_metadata(
        self, other: ImageMetadata, *, diagnostics: DiagnosticSink | None = None
    ) -> bool:
        """Return True if `other` describes the same pixels as this metadata.

        Path, bit-depth and the z/t/channel dimensions must match; pixel sizes,
        magnification and channel names or colors may differ.  Each mismatch is
        reported to `diagnostics` (by default, as an `ImageMetadataWarning`).
        """
        source = "is_compatible_metadata"
        if self.path != other.path:
            emit(
                diagnostics,
                source,
                f"Metadata paths are not compatible: \n{self.path}\n{other.path}",
                field="path",
                values=(self.path, other.path),
            )
            return False
        if self.bit_depth != other.bit_depth:
            emit(
                diagnostics,
                source,
                "Metadata bit-depths are not compatible: "
                f"{self.bit_depth} vs {other.bit_depth}",
                field="bit_depth",
                values=(self.bit_depth, other.bit_depth),
            )
            return False
        dims = (self.size_t, self.size_c, self.size_z)
        other_dims = (other.size_t, other.size_c, other.size_z)
        if dims != other_dims:
            emit(
                diagnostics,
                source,
                "Metadata image dimensions are not the same! "
                f"(t, c, z) = {dims} vs {other_dims}",
                field="dimensions",
                values=(dims, other_dims),
            )
            return False
        return True

    def __str__(self) -> str:
        parts = [
            f'"path": "{self.path}"',
            f'"name": "{self.name}"',
            f'"width": {self.width}',
            f'"height": {self.height}',
            f'"resolutions": {self.n_levels()}',
            f'"sizeC": {self.size_c}',
        ]
        if self.size_z != 1:
            parts.append(f'"sizeZ": {self.size_z}')
        if self.size_t != 1:
            parts.append(f'"sizeT": {self.size_t}')
            parts.append(f'"timeUnit": "{self.time_unit}"')
        if self.pixel_size_calibrated():
            parts.append(f'"pixelWidthMicrons": {self.pixel_width_microns}')
            parts.append(f'"pixelHeightMicrons": {self.pixel_height_microns}')
        return "{ " + ", ".join(parts) + " }"


def _server_class_name(server_class: type | str) -> str:
    if isinstance(server_class, str):
        return server_class
    return f"{server_class.__module__}.{server_class.__qualname__}"


class ImageMetadataBuilder:
    """Builder for a single `ImageMetadata` instance.

    All setters return the builder, so calls can be chained.  A builder can
    only be built once; to create further metadata, start a new builder (use
    `from_metadata` to start from an existing instance).

    Parameters
    ----------
    server_class : type | str
        The reader class that produces this metadata (stored as its qualified
        name), or a string tag identifying it.
    path : str | None
        Unique identifier of the image.  If None, a random UUID is used.
    width, height : int, optional
        Full-resolution image dimensions.  Must be set (here or with the
        `width`/`height` setters) before calling `build()`.

    Examples
    --------
    >>> builder = ImageMetadataBuilder("my_reader", "/data/image.tif", 200, 150)
    >>> metadata = builder.bit_depth(16).build()
    >>> metadata.n_levels(), metadata.preferred_tile_width, metadata.preferred_tile_height
    (1, 200, 150)
    >>> builder.build()
    Traceback (most recent call last):
        ...
    RuntimeError: ImageMetadataBuilder.build() can only be called once
    """

    def __init__(
        self,
        server_class: type | str,
        path: str | None,
        width: int = 0,
        height: int = 0,
    ) -> None:
        self._fields: dict[str, Any] = {
            "server_class_name": _server_class_name(server_class),
            "path": path,
            "width": width,
            "height": height,
        }
        self._calibration = PixelCalibrationBuilder()
        self._built = False

    @classmethod
    def from_metadata(
        cls, server_class: type | str, metadata: ImageMetadata
    ) -> ImageMetadataBuilder:
        """Start from a copy of `metadata`, overriding fields with the setters.

        The new metadata is attributed to `server_class`; the original instance
        is never modified.
        """
        builder = cls(server_class, metadata.path)
        fields = {
            name: getattr(metadata, name)
            for name in ImageMetadata.model_fields
            if name != "calibration"
        }
        fields["server_class_name"] = builder._fields["server_class_name"]
        builder._fields = fields
        builder._calibration = PixelCalibrationBuilder(metadata.calibration)
        return builder

    def __repr__(self) -> str:
        return (
            f"<{self.__class__.__name__}: {self._fields.get('path')!r} "
            f"({self._fields.get('width')}x{self._fields.get('height')})>"
        )

    def _set(self, **fields: Any) -> Self:
        self._fields.update(fields)
        return self

    def width(self, width: int) -> Self:
        return self._set(width=width)

    def height(self, height: int) -> Self:
        return self._set(height=height)

    def path(self, path: str) -> Self:
        return self._set(path=path)

    def name(self, name: str | None) -> Self:
        return self._set(name=name)

    def args(self, *args: str) -> Self:
        """Record string arguments needed to recreate the reader."""
        return self._set(args=tuple(args))

    def channel_type(self, channel_type: ChannelType) -> Self:
        return self._set(channel_type=channel_type)

    def rgb(self, is_rgb: bool) -> Self:
        """Specify whether pixels are stored in (A)RGB form."""
        return self._set(is_rgb=is_rgb)

    def bit_depth(self, bit_depth: int) -> Self:
        return self._set(bit_depth=bit_depth)

    def size_z(self, size_z: int) -> Self:
        return self._set(size_z=size_z)

    def size_t(self, size_t: int) -> Self:
        return self._set(size_t=size_t)

    def levels(self, levels: Iterable[ResolutionLevel]) -> Self:
        """Specify the resolution levels, normally highest resolution first.

        The first level does not have to match `width` x `height`: `width` and
        `height` give the size at which the image should be interpreted,
        whereas the levels describe the rasters that are actually available.
        """
        return self._set(levels=tuple(levels))

    def levels_from_downsamples(self, *downsamples: float) -> Self:
        """Specify resolution levels by downsample, computing their sizes.

        Sizes are computed from the width and height set at the time of the
        call.
        """
        level_builder = ResolutionLevelBuilder(
            self._fields["width"], self._fields["height"]
        )
        for downsample in downsamples:
            level_builder.add_level_by_downsample(downsample)
        return self.levels(level_builder.build())

    def pixel_size_microns(
        self, pixel_width: float | None, pixel_height: float | None
    ) -> Self:
        self._calibration.pixel_size_microns(pixel_width, pixel_height)
        return self

    def z_spacing_microns(self, z_spacing: float | None) -> Self:
        self._calibration.z_spacing_microns(z_spacing)
        return self

    def timepoints(self, time_unit: TimeUnit | str, *timepoints: float) -> Self:
        """Specify the time unit and the time of each time point."""
        self._calibration.timepoints(time_unit, *timepoints)
        return self

    def magnification(self, magnification: float | None) -> Self:
        """Specify the magnification of the full-resolution image (None = unknown)."""
        return self._set(magnification=magnification)

    def preferred_tile_size(self, tile_width: int, tile_height: int) -> Self:
        return self._set(
            preferred_tile_width=tile_width, preferred_tile_height=tile_height
        )

    def channels(self, channels: Sequence[ImageChannel]) -> Self:
        return self._set(channels=tuple(channels))

    def build(self) -> ImageMetadata:
        """Validate the accumulated values and return a new `ImageMetadata`.

        Missing values are filled in: a random UUID path, a single
        full-resolution level, and a preferred tile size (the full image for a
        single-level image, otherwise at most `default_tile_size()`).

        Raises
        ------
        ValueError
            If width and height are both <= 0, or the path is blank.
        RuntimeError
            If the builder has already been built.
        """
        if self._built:
            raise RuntimeError(f"{self.__class__.__name__}.build() can only be called once")

        fields = dict(self._fields)
        fields["calibration"] = self._calibration.build()

        # we need a unique path, somehow
        if fields["path"] is None:
            fields["path"] = str(uuid.uuid4())

        width, height = fields["width"], fields["height"]
        if width <= 0 and height <= 0:
            raise ValueError("Invalid metadata - width & height must be > 0")
        if not fields["path"].strip():
            raise ValueError("Invalid metadata - path must be set (and not be blank)")

        if fields.get("levels") is None:
            fields["levels"] = (
                ResolutionLevelBuilder(width, height).add_full_resolution_level().build()
            )

        n_levels = len(fields["levels"])
        if fields.get("preferred_tile_width", 0) <= 0:
            fields["preferred_tile_width"] = (
                width if n_levels == 1 else min(width, default_tile_size())
            )
        if fields.get("preferred_tile_height", 0) <= 0:
            fields["preferred_tile_height"] = (
                height if n_levels == 1 else min(height, default_tile_size())
            )

        metadata = ImageMetadata.model_validate(fields)
        self._built = True
        return metadata
