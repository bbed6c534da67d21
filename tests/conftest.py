from __future__ import annotations

import pytest


@pytest.fixture(autouse=True)
def _clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Make sure configuration from the calling shell does not leak into tests."""
    monkeypatch.delenv("IMAGEMETA_DEFAULT_TILE_SIZE", raising=False)
    monkeypatch.delenv("IMAGEMETA_SILENCE_DIAGNOSTICS", raising=False)
