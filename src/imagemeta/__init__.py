"""Immutable metadata for large, multi-resolution images.

`imagemeta` describes an image's dimensions, resolution levels (pyramid),
channels and physical calibration, so that pixel readers can be queried
without re-deriving geometric facts each time.

## Quick Start

```python
from imagemeta import ImageMetadataBuilder, ResolutionLevelBuilder

levels = (
    ResolutionLevelBuilder(40000, 30000)
    .add_full_resolution_level()
    .add_level_by_size(10000, 7500)
    .add_level_by_size(2500, 1875)
    .build()
)
metadata = (
    ImageMetadataBuilder("my_reader", "/data/slide.svs", 40000, 30000)
    .levels(levels)
    .pixel_size_microns(0.25, 0.25)
    .build()
)
print(metadata.get_preferred_downsamples_array())  # [ 1.  4. 16.]
```
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("imagemeta")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "uninstalled"

from imagemeta._calibration import PixelCalibration, PixelCalibrationBuilder, TimeUnit
from imagemeta._channels import (
    ChannelType,
    ImageChannel,
    default_channel_list,
    default_rgb_channels,
)
from imagemeta._config import DEFAULT_TILE_SIZE, default_tile_size
from imagemeta._diagnostics import (
    Diagnostic,
    DiagnosticCollector,
    DiagnosticSink,
    ImageMetadataWarning,
    warn_sink,
)
from imagemeta._levels import ResolutionLevel, ResolutionLevelBuilder, estimate_downsample
from imagemeta._metadata import ImageMetadata, ImageMetadataBuilder

__all__ = [
    "DEFAULT_TILE_SIZE",
    "ChannelType",
    "Diagnostic",
    "DiagnosticCollector",
    "DiagnosticSink",
    "ImageChannel",
    "ImageMetadata",
    "ImageMetadataBuilder",
    "ImageMetadataWarning",
    "PixelCalibration",
    "PixelCalibrationBuilder",
    "ResolutionLevel",
    "ResolutionLevelBuilder",
    "TimeUnit",
    "__version__",
    "default_channel_list",
    "default_rgb_channels",
    "default_tile_size",
    "estimate_downsample",
    "warn_sink",
]
