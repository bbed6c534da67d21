"""Tests for diagnostic sinks and environment configuration."""

from __future__ import annotations

import pytest

from imagemeta import (
    DEFAULT_TILE_SIZE,
    Diagnostic,
    DiagnosticCollector,
    ImageMetadataWarning,
    default_tile_size,
    estimate_downsample,
    warn_sink,
)
from imagemeta._diagnostics import emit


def test_warn_sink() -> None:
    with pytest.warns(ImageMetadataWarning, match="something odd"):
        warn_sink(Diagnostic("test", "something odd", {}))


def test_warn_sink_silenced(monkeypatch: pytest.MonkeyPatch, recwarn) -> None:
    monkeypatch.setenv("IMAGEMETA_SILENCE_DIAGNOSTICS", "1")
    warn_sink(Diagnostic("test", "something odd", {}))
    assert not recwarn.list


def test_emit_uses_given_sink() -> None:
    received: list[Diagnostic] = []
    diagnostic = emit(received.append, "test", "message", answer=42)
    assert received == [diagnostic]
    assert diagnostic.details == {"answer": 42}


def test_emit_defaults_to_warning() -> None:
    with pytest.warns(ImageMetadataWarning, match="message"):
        emit(None, "test", "message")


def test_any_callable_is_a_sink() -> None:
    messages: list[str] = []
    estimate_downsample(
        1000, 2000, 100, 150, 2, diagnostics=lambda d: messages.append(d.message)
    )
    assert len(messages) == 1
    assert messages[0].startswith("Calculated downsample values differ")


def test_collector() -> None:
    collector = DiagnosticCollector()
    emit(collector, "a", "first")
    emit(collector, "b", "second")
    emit(collector, "a", "third")
    assert len(collector) == 3
    assert collector.sources() == ["a", "b", "a"]
    assert [d.message for d in collector.from_source("a")] == ["first", "third"]
    assert [d.message for d in collector] == ["first", "second", "third"]
    assert repr(collector) == "<DiagnosticCollector: 3 events>"
    collector.clear()
    assert not collector


def test_default_tile_size(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("IMAGEMETA_DEFAULT_TILE_SIZE", raising=False)
    assert default_tile_size() == DEFAULT_TILE_SIZE == 256
    monkeypatch.setenv("IMAGEMETA_DEFAULT_TILE_SIZE", "1024")
    assert default_tile_size() == 1024


@pytest.mark.parametrize("value", ["abc", "0", "-256", "1.5"])
def test_invalid_default_tile_size(monkeypatch: pytest.MonkeyPatch, value: str) -> None:
    monkeypatch.setenv("IMAGEMETA_DEFAULT_TILE_SIZE", value)
    with pytest.raises(ValueError, match="IMAGEMETA_DEFAULT_TILE_SIZE"):
        default_tile_size()
