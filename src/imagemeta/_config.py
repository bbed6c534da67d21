"""Environment-variable configuration.

set IMAGEMETA_DEFAULT_TILE_SIZE=<int> to change the tile edge used when a
multi-resolution image is built without an explicit preferred tile size.
"""

from __future__ import annotations

import os

__all__ = ["DEFAULT_TILE_SIZE", "TILE_SIZE_ENV_VAR", "default_tile_size"]

DEFAULT_TILE_SIZE = 256
TILE_SIZE_ENV_VAR = "IMAGEMETA_DEFAULT_TILE_SIZE"


def default_tile_size() -> int:
    """Return the default tile edge length, in pixels.

    Raises
    ------
    ValueError
        If `IMAGEMETA_DEFAULT_TILE_SIZE` is set to something other than a
        positive integer.
    """
    value = os.getenv(TILE_SIZE_ENV_VAR)
    if not value:
        return DEFAULT_TILE_SIZE
    try:
        size = int(value)
    except ValueError:
        raise ValueError(
            f"{TILE_SIZE_ENV_VAR} must be a positive integer, got {value!r}"
        ) from None
    if size <= 0:
        raise ValueError(f"{TILE_SIZE_ENV_VAR} must be a positive integer, got {size}")
    return size
