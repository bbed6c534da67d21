"""Tests for resolution levels and downsample estimation."""

from __future__ import annotations

import math

import pytest
from pydantic import ValidationError

from imagemeta import (
    DiagnosticCollector,
    ImageMetadataWarning,
    ResolutionLevel,
    ResolutionLevelBuilder,
    estimate_downsample,
)


@pytest.mark.parametrize(
    ("full", "level", "expected"),
    [
        ((4096, 4096), (1024, 1024), 4.0),
        ((4096, 4096), (4096, 4096), 1.0),
        # odd sizes: power of two within 2 pixels of both dimensions
        ((40001, 30001), (10000, 7500), 4.0),
        ((40001, 30001), (2501, 1876), 16.0),
        # near-integer, non power-of-two downsampling
        ((1000, 1000), (333, 333), 3.0),
        ((3000, 1500), (1000, 500), 3.0),
    ],
)
def test_estimate_downsample(
    full: tuple[int, int], level: tuple[int, int], expected: float
) -> None:
    collector = DiagnosticCollector()
    result = estimate_downsample(*full, *level, 1, diagnostics=collector)
    assert result == expected
    assert not collector


def test_estimate_downsample_divergent_axes_warns() -> None:
    collector = DiagnosticCollector()
    result = estimate_downsample(1000, 2000, 100, 150, 3, diagnostics=collector)

    assert math.isclose(result, (10 + 2000 / 150) / 2)
    assert len(collector) == 1
    event = collector.events[0]
    assert event.source == "estimate_downsample"
    assert "level 3" in event.message
    assert event.details["level"] == 3
    assert event.details["downsample_x"] == 10.0
    assert math.isclose(event.details["downsample_y"], 2000 / 150)
    assert event.details["downsample"] == result


def test_estimate_downsample_default_sink_warns() -> None:
    with pytest.warns(ImageMetadataWarning, match="differ for x & y for level 0") as record:
        result = estimate_downsample(1000, 2000, 100, 150, 0)
    assert math.isclose(result, 35 / 3)
    assert record[0].filename == __file__


def test_estimate_downsample_negative_level_is_silent() -> None:
    collector = DiagnosticCollector()
    result = estimate_downsample(1000, 2000, 100, 150, diagnostics=collector)
    assert math.isclose(result, 35 / 3)
    assert not collector


def test_estimate_downsample_small_difference_is_silent() -> None:
    # x & y differ by less than 0.1%: averaged without complaint
    collector = DiagnosticCollector()
    result = estimate_downsample(100000, 100050, 33000, 33000, 1, diagnostics=collector)
    assert math.isclose(result, (100000 / 33000 + 100050 / 33000) / 2)
    assert not collector


def test_estimate_downsample_snaps_to_power_of_two_axis() -> None:
    # y alone snaps to 8, which is also the closest power of two
    collector = DiagnosticCollector()
    result = estimate_downsample(1000, 800, 110, 100, 1, diagnostics=collector)
    assert result == 8.0
    assert not collector


@pytest.mark.parametrize("size", [(0, 10), (10, 0), (-5, 10)])
def test_estimate_downsample_rejects_empty_levels(size: tuple[int, int]) -> None:
    with pytest.raises(ValueError, match="must be > 0"):
        estimate_downsample(100, 100, *size)


def test_builder_add_level_by_downsample_truncates() -> None:
    levels = (
        ResolutionLevelBuilder(1001, 999)
        .add_level_by_downsample(1)
        .add_level_by_downsample(2)
        .add_level_by_downsample(3.5)
        .build()
    )
    assert [(lv.downsample, lv.width, lv.height) for lv in levels] == [
        (1.0, 1001, 999),
        (2.0, 500, 499),
        (3.5, 286, 285),
    ]


def test_builder_keeps_insertion_order_and_duplicates() -> None:
    extra = ResolutionLevel(downsample=2.0, width=50, height=50)
    builder = (
        ResolutionLevelBuilder(100, 100)
        .add_level_by_downsample(4)
        .add_full_resolution_level()
        .add_level(2.0, 50, 50)
        .add_resolution_level(extra)
    )
    assert len(builder) == 4
    levels = builder.build()
    assert [lv.downsample for lv in levels] == [4.0, 1.0, 2.0, 2.0]
    assert levels[2] == levels[3]
    assert levels[3] is extra


def test_builder_add_level_by_size_passes_index_for_diagnostics() -> None:
    collector = DiagnosticCollector()
    levels = (
        ResolutionLevelBuilder(1000, 2000, diagnostics=collector)
        .add_full_resolution_level()
        .add_level_by_size(500, 1000)
        .add_level_by_size(100, 150)
        .build()
    )
    assert [lv.downsample for lv in levels][:2] == [1.0, 2.0]
    assert math.isclose(levels[2].downsample, 35 / 3)
    assert len(collector) == 1
    assert collector.events[0].details["level"] == 2


def test_builder_add_level_by_downsample_keeps_zero_sized_level() -> None:
    levels = (
        ResolutionLevelBuilder(1000, 3)
        .add_level_by_downsample(1)
        .add_level_by_downsample(4)
        .build()
    )
    assert levels[1] == ResolutionLevel(downsample=4.0, width=250, height=0)


def test_builder_add_resolution_levels() -> None:
    existing = ResolutionLevelBuilder(100, 100).add_level(1, 100, 100).add_level(2, 50, 50)
    builder = (
        ResolutionLevelBuilder(100, 100)
        .add_resolution_levels(existing.build())
        .add_resolution_levels(iter([ResolutionLevel(downsample=4, width=25, height=25)]))
    )
    assert [lv.downsample for lv in builder.build()] == [1.0, 2.0, 4.0]


def test_builder_warning_points_at_caller() -> None:
    builder = ResolutionLevelBuilder(1000, 2000).add_full_resolution_level()
    with pytest.warns(ImageMetadataWarning) as record:
        builder.add_level_by_size(100, 150)
    assert record[0].filename == __file__


def test_builder_explicit_level_is_not_estimated() -> None:
    (level,) = ResolutionLevelBuilder(1000, 1000).add_level(3.1, 333, 333).build()
    assert level.downsample == 3.1


def test_builder_build_returns_snapshot() -> None:
    builder = ResolutionLevelBuilder(100, 100).add_full_resolution_level()
    first = builder.build()
    builder.add_level_by_downsample(2)
    assert len(first) == 1
    assert len(builder.build()) == 2


def test_builder_repr() -> None:
    builder = ResolutionLevelBuilder(100, 100).add_full_resolution_level()
    assert repr(builder) == "<ResolutionLevelBuilder: 1 levels>"


def test_resolution_level_is_frozen() -> None:
    level = ResolutionLevel(downsample=1.0, width=10, height=10)
    with pytest.raises(ValidationError):
        level.width = 20  # type: ignore[misc]


@pytest.mark.parametrize(
    "kwargs",
    [
        {"downsample": 0, "width": 10, "height": 10},
        {"downsample": 1, "width": -1, "height": 10},
        {"downsample": 1, "width": 10, "height": -1},
    ],
)
def test_resolution_level_validation(kwargs: dict) -> None:
    with pytest.raises(ValidationError):
        ResolutionLevel(**kwargs)


def test_resolution_level_equality_and_ordering() -> None:
    a = ResolutionLevel(downsample=1.0, width=100, height=100)
    b = ResolutionLevel(downsample=1.0, width=100, height=100)
    c = ResolutionLevel(downsample=2.0, width=50, height=50)
    # close, but not exactly the same downsample
    d = ResolutionLevel(downsample=1.0000001, width=100, height=100)

    assert a == b
    assert hash(a) == hash(b)
    assert a != d
    assert a < d < c
    assert c >= a
    assert sorted([c, d, a]) == [a, d, c]
    assert len({a, b, c, d}) == 3


@pytest.mark.parametrize(
    ("downsample", "text"),
    [(1, "Level: 64x32 (1)"), (2.5, "Level: 64x32 (2.5)"), (1 / 3, "Level: 64x32 (0.33333)")],
)
def test_resolution_level_str(downsample: float, text: str) -> None:
    level = ResolutionLevel(downsample=downsample, width=64, height=32)
    assert str(level) == text
