"""Physical pixel calibration.

`PixelCalibration` is stored and forwarded by `ImageMetadata` without
interpretation; it only needs to be immutable so that it can be shared
between metadata instances.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated

from annotated_types import Gt
from pydantic import Field
from typing_extensions import Self

from imagemeta._base import _FrozenModel

__all__ = ["PixelCalibration", "PixelCalibrationBuilder", "TimeUnit"]

PositiveFloat = Annotated[float, Gt(0)]


class TimeUnit(str, Enum):
    """Unit in which the timepoints of a time series are expressed."""

    NANOSECONDS = "nanoseconds"
    MICROSECONDS = "microseconds"
    MILLISECONDS = "milliseconds"
    SECONDS = "seconds"
    MINUTES = "minutes"
    HOURS = "hours"
    DAYS = "days"

    def __str__(self) -> str:
        return self.value


class PixelCalibration(_FrozenModel):
    """Pixel size, z-spacing and time axis calibration for an image.

    Any spatial value may be `None`, meaning "unknown".  Sizes that are known
    must be strictly positive.
    """

    pixel_width_microns: PositiveFloat | None = Field(
        default=None,
        description="Width of a full-resolution pixel, in microns",
    )
    pixel_height_microns: PositiveFloat | None = Field(
        default=None,
        description="Height of a full-resolution pixel, in microns",
    )
    z_spacing_microns: PositiveFloat | None = Field(
        default=None,
        description="Spacing between consecutive z-slices, in microns",
    )
    time_unit: TimeUnit = Field(
        default=TimeUnit.SECONDS,
        description="Unit of the values in `timepoints`",
    )
    timepoints: tuple[float, ...] = Field(
        default=(),
        description="Time of each time point, expressed in `time_unit`",
    )

    def has_pixel_size(self) -> bool:
        """Return True if both pixel width and height are known."""
        return (
            self.pixel_width_microns is not None
            and self.pixel_height_microns is not None
        )

    def has_z_spacing(self) -> bool:
        return self.z_spacing_microns is not None

    def average_pixel_size(self) -> float | None:
        """Mean of pixel width and height, or None if either is unknown."""
        if not self.has_pixel_size():
            return None
        return (self.pixel_width_microns + self.pixel_height_microns) / 2  # type: ignore[operator]

    def n_timepoints(self) -> int:
        return len(self.timepoints)

    def timepoint(self, index: int) -> float | None:
        """Return the time of timepoint `index`, or None if it was not recorded."""
        if 0 <= index < len(self.timepoints):
            return self.timepoints[index]
        return None


class PixelCalibrationBuilder:
    """Accumulates calibration values, then produces a `PixelCalibration`.

    Parameters
    ----------
    calibration : PixelCalibration | None, optional
        Existing calibration whose values are used as a starting point.
    """

    def __init__(self, calibration: PixelCalibration | None = None) -> None:
        seed = calibration if calibration is not None else PixelCalibration()
        self._values = seed.model_dump(by_alias=False)

    def __repr__(self) -> str:
        set_values = {k: v for k, v in self._values.items() if v not in (None, ())}
        return f"<{self.__class__.__name__}: {set_values}>"

    def pixel_size_microns(
        self, pixel_width: float | None, pixel_height: float | None
    ) -> Self:
        """Set pixel width and height in microns (None clears a value)."""
        self._values["pixel_width_microns"] = pixel_width
        self._values["pixel_height_microns"] = pixel_height
        return self

    def z_spacing_microns(self, z_spacing: float | None) -> Self:
        """Set the z-spacing in microns (None clears it)."""
        self._values["z_spacing_microns"] = z_spacing
        return self

    def timepoints(self, time_unit: TimeUnit | str, *timepoints: float) -> Self:
        """Set the time unit and the time of each time point."""
        self._values["time_unit"] = TimeUnit(time_unit)
        self._values["timepoints"] = tuple(timepoints)
        return self

    def build(self) -> PixelCalibration:
        """Return a `PixelCalibration` holding the current values.

        Raises
        ------
        pydantic.ValidationError
            If a size is zero or negative.
        """
        return PixelCalibration.model_validate(self._values)
