"""
Dashboard time range: presets, custom ranges and the query parameters widgets
derive from them.
"""

import time
from typing import Dict, Optional

from tileboard.models import Dashboard, RangeMode, RangeSelector

HOUR_MS = 60 * 60 * 1000
DAY_MS = 24 * HOUR_MS

PRESETS: Dict[str, int] = {
    "6h": 6 * HOUR_MS,
    "12h": 12 * HOUR_MS,
    "24h": 24 * HOUR_MS,
    "7d": 7 * DAY_MS,
    "30d": 30 * DAY_MS,
}


def now_ms() -> int:
    return int(time.time() * 1000)


def preset_to_ms(preset: str) -> Optional[int]:
    return PRESETS.get(preset)


def preset_range(preset: str, now: Optional[int] = None) -> RangeSelector:
    """Range ending now and spanning the preset's duration."""
    duration = preset_to_ms(preset)
    if duration is None:
        raise ValueError(f"Unknown range preset: {preset}")
    now = now_ms() if now is None else now
    return RangeSelector(mode=RangeMode.PRESET, preset=preset, from_ts_ms=now - duration, to_ts_ms=now)


def custom_range(from_ts_ms: int, to_ts_ms: int) -> RangeSelector:
    if not to_ts_ms > from_ts_ms:
        raise ValueError("Invalid custom range. Ensure 'to' is after 'from'.")
    return RangeSelector(mode=RangeMode.CUSTOM, preset=None, from_ts_ms=from_ts_ms, to_ts_ms=to_ts_ms)


def read_range(dashboard: Optional[Dashboard]) -> Optional[RangeSelector]:
    """The dashboard's range if it is usable, else None."""
    if dashboard is None or dashboard.range is None:
        return None
    r = dashboard.range
    if not r.to_ts_ms > r.from_ts_ms:
        return None
    return r


def range_query_params(dashboard: Optional[Dashboard]) -> Dict[str, int]:
    r = read_range(dashboard)
    if r is None:
        return {}
    return {"from_ts_ms": r.from_ts_ms, "to_ts_ms": r.to_ts_ms}
