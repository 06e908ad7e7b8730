import json

import pytest

from elasticache_sizing.capacity_planner import CapacityPlanner
from elasticache_sizing.interface import Measurement
from elasticache_sizing.interface import NoFitError


def test_plan_matches_used_and_peak(small_catalog):
    planner = CapacityPlanner(small_catalog, max_load_percent=80)
    result = planner.plan(
        Measurement(address="r1:6379", used_bytes=750_000_000, peak_bytes=900_000_000)
    )

    assert result.used_based.instance_type == "A"
    assert result.peak_based.instance_type == "B"
    assert result.used_ratio == pytest.approx(75.0)
    assert result.peak_ratio == pytest.approx(45.0)


def test_plan_zero_usage_takes_smallest(small_catalog):
    planner = CapacityPlanner(small_catalog, max_load_percent=80)
    result = planner.plan(Measurement(address="r1:6379", used_bytes=0, peak_bytes=0))
    assert result.used_based.instance_type == "A"
    assert result.used_ratio == 0


def test_plan_all_keeps_input_order(small_catalog, measurements):
    planner = CapacityPlanner(small_catalog, max_load_percent=80)
    rows = planner.plan_all(reversed(measurements))

    assert [r.measurement.address for r in rows] == [
        "10.0.0.2:6379",
        "10.0.0.1:6379",
    ]
    assert [r.used_based.instance_type for r in rows] == ["B", "A"]
    assert [r.peak_based.instance_type for r in rows] == ["B", "A"]


def test_plan_all_fails_whole_batch(small_catalog):
    planner = CapacityPlanner(small_catalog, max_load_percent=80)
    batch = [
        Measurement(address="ok-1:6379", used_bytes=1, peak_bytes=1),
        Measurement(address="too-big:6379", used_bytes=1, peak_bytes=2 * 10**9),
        Measurement(address="ok-2:6379", used_bytes=1, peak_bytes=1),
    ]

    with pytest.raises(NoFitError) as exc_info:
        planner.plan_all(batch)

    err = exc_info.value
    assert err.address == "too-big:6379"
    assert err.metric == "peak"
    assert err.required_bytes == 2 * 10**9
    assert "too-big:6379" in str(err)
    assert "1.9 GiB of peak memory" in str(err)


def test_no_fit_names_used_metric(small_catalog):
    planner = CapacityPlanner(small_catalog, max_load_percent=50)
    with pytest.raises(NoFitError) as exc_info:
        planner.plan(
            Measurement(address="r1:6379", used_bytes=10**10, peak_bytes=10**10)
        )
    assert exc_info.value.metric == "used"
    assert isinstance(exc_info.value.__cause__, NoFitError)


def test_max_load_range(small_catalog):
    for bad in (0, 101):
        with pytest.raises(ValueError):
            CapacityPlanner(small_catalog, max_load_percent=bad)


def test_report_totals(small_catalog, measurements):
    planner = CapacityPlanner(small_catalog, max_load_percent=80)
    report = planner.report(
        measurements, region="US East (N. Virginia)", reserved_memory_percent=25
    )

    assert report.max_load_percent == 80
    assert report.reserved_memory_percent == 25
    # used: A + B, peak: A + B
    expected = (0.10 + 0.15) * 24 * 31
    assert report.used_based_total == pytest.approx(expected)
    assert report.peak_based_total == pytest.approx(expected)

    dumped = json.loads(report.model_dump_json())
    assert dumped["used_based_total"] == pytest.approx(expected)
    assert dumped["rows"][0]["used_based"]["price_per_month"] == pytest.approx(
        0.10 * 24 * 31
    )


def test_empty_report_totals(small_catalog):
    report = CapacityPlanner(small_catalog).report(
        [], region="", reserved_memory_percent=25
    )
    assert report.rows == []
    assert report.used_based_total == 0
    assert report.peak_based_total == 0
