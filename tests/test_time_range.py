import pytest

from tileboard.models import Dashboard, RangeMode, RangeSelector
from tileboard.time_range import (
    DAY_MS,
    HOUR_MS,
    custom_range,
    preset_range,
    range_query_params,
    read_range,
)

NOW = 1_700_000_000_000


@pytest.mark.parametrize(
    "preset, duration",
    [("6h", 6 * HOUR_MS), ("12h", 12 * HOUR_MS), ("24h", 24 * HOUR_MS), ("7d", 7 * DAY_MS), ("30d", 30 * DAY_MS)],
)
def test_preset_range_ends_now(preset, duration):
    r = preset_range(preset, now=NOW)
    assert r.mode == RangeMode.PRESET
    assert r.preset == preset
    assert (r.from_ts_ms, r.to_ts_ms) == (NOW - duration, NOW)


def test_unknown_preset():
    with pytest.raises(ValueError):
        preset_range("90d", now=NOW)


def test_custom_range_requires_to_after_from():
    assert custom_range(1, 2).mode == RangeMode.CUSTOM
    with pytest.raises(ValueError, match="Ensure 'to' is after 'from'"):
        custom_range(5, 5)


def test_range_query_params():
    d = Dashboard(id="d1", name="Main", range=RangeSelector(mode="custom", fromTsMs=10, toTsMs=20))
    assert range_query_params(d) == {"from_ts_ms": 10, "to_ts_ms": 20}
    assert range_query_params(Dashboard(id="d2", name="Empty")) == {}
    assert range_query_params(None) == {}


def test_inverted_stored_range_is_ignored():
    d = Dashboard(id="d1", name="Main", range=RangeSelector(mode="custom", fromTsMs=20, toTsMs=10))
    assert read_range(d) is None
