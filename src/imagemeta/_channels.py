from __future__ import annotations

from enum import Enum
from typing import Annotated

from annotated_types import Ge, Le
from pydantic import Field

from imagemeta._base import _FrozenModel

__all__ = [
    "ChannelType",
    "ImageChannel",
    "default_channel_list",
    "default_rgb_channels",
]


class ChannelType(Enum):
    """How the values of an image's channels should be interpreted.

    Most images use `DEFAULT`; the other types support images whose channels
    are classifier outputs rather than raw intensities.
    """

    DEFAULT = "DEFAULT"
    """Raw intensity values (the usual case)."""
    FEATURE = "FEATURE"
    """Each channel is a feature for a pixel classifier."""
    PROBABILITY = "PROBABILITY"
    """Each channel is a class probability; one true class per pixel."""
    MULTICLASS_PROBABILITY = "MULTICLASS_PROBABILITY"
    """Each channel is a class probability; pixels may belong to many classes."""
    CLASSIFICATION = "CLASSIFICATION"
    """Each channel is a classification, e.g. a labelled image."""

    def __str__(self) -> str:
        return _CHANNEL_TYPE_LABELS[self]


_CHANNEL_TYPE_LABELS = {
    ChannelType.DEFAULT: "Channel",
    ChannelType.FEATURE: "Feature",
    ChannelType.PROBABILITY: "Probability",
    ChannelType.MULTICLASS_PROBABILITY: "Multiclass probability",
    ChannelType.CLASSIFICATION: "Classification",
}


class ImageChannel(_FrozenModel):
    """Name and display color of a single image channel."""

    name: str = Field(description="Channel name, e.g. 'DAPI' or 'Red'")
    color: Annotated[int, Ge(0), Le(0xFFFFFF)] | None = Field(
        default=None,
        description="Display color packed as 0xRRGGBB, if known",
    )

    @classmethod
    def from_rgb(cls, name: str, red: int, green: int, blue: int) -> ImageChannel:
        """Create a channel with a color given as 8-bit components."""
        for component in (red, green, blue):
            if not 0 <= component <= 255:
                raise ValueError(f"Color components must be in [0, 255], got {component}")
        return cls(name=name, color=(red << 16) | (green << 8) | blue)

    @property
    def rgb(self) -> tuple[int, int, int] | None:
        if self.color is None:
            return None
        return (self.color >> 16) & 0xFF, (self.color >> 8) & 0xFF, self.color & 0xFF


def default_rgb_channels() -> tuple[ImageChannel, ImageChannel, ImageChannel]:
    """Return the channels of a standard RGB image."""
    return (
        ImageChannel.from_rgb("Red", 255, 0, 0),
        ImageChannel.from_rgb("Green", 0, 255, 0),
        ImageChannel.from_rgb("Blue", 0, 0, 255),
    )


def default_channel_list(n_channels: int) -> tuple[ImageChannel, ...]:
    """Return `n_channels` generically-named channels ("Channel 1", ...)."""
    if n_channels < 0:
        raise ValueError(f"Number of channels must be >= 0, got {n_channels}")
    return tuple(ImageChannel(name=f"Channel {i + 1}") for i in range(n_channels))
