"""
数据控制器：基于 TinyDB 的样本存储。
组件从这里读取每个 key 的最新样本，以及折线图使用的降采样序列。
"""

import logging
import os
import time
from pathlib import Path
from typing import Any

from tinydb import Query, TinyDB

logger = logging.getLogger(__name__)

_DATA_DIR = Path(os.getenv("TILE_BOARD_ROOT", ".")) / "data"


def downsample(points: list[list[float]], max_points: int) -> list[list[float]]:
    """Keep at most ``max_points`` evenly spaced points, always including the last one."""
    if max_points <= 0 or len(points) <= max_points:
        return points
    step = len(points) / max_points
    picked = [points[int(i * step)] for i in range(max_points - 1)]
    picked.append(points[-1])
    return picked


class DataController:
    """TinyDB 数据操作封装。"""

    def __init__(self, db_path: str | Path | None = None):
        if db_path is None:
            db_path = _DATA_DIR / "samples.json"
        db_path = Path(db_path)
        db_path.parent.mkdir(parents=True, exist_ok=True)

        self.db = TinyDB(str(db_path), indent=2, ensure_ascii=False)
        self.latest_table = self.db.table("latest")
        self.history_table = self.db.table("history")
        logger.info(f"TinyDB 数据库已打开: {db_path}")

    # ── 写入 ──────────────────────────────────────────

    def add_sample(self, key: str, value: Any, ts_ms: int | None = None) -> dict:
        """Record a sample: replaces the latest value and appends to history."""
        if ts_ms is None:
            ts_ms = int(time.time() * 1000)
        record = {"key": key, "value": value, "ts_ms": ts_ms}

        Sample = Query()
        self.latest_table.upsert(record, Sample.key == key)
        self.history_table.insert(dict(record))
        logger.debug(f"[{key}] sample stored: {value}")
        return record

    # ── 查询 ──────────────────────────────────────────

    def get_latest(self, key: str) -> dict | None:
        Sample = Query()
        results = self.latest_table.search(Sample.key == key)
        return results[0] if results else None

    def get_series(
        self,
        key: str,
        from_ts_ms: int | None = None,
        to_ts_ms: int | None = None,
        max_points: int = 400,
    ) -> list[list[float]]:
        """``[ts_ms, value]`` pairs in ascending time order."""
        Sample = Query()
        cond = Sample.key == key
        if from_ts_ms is not None:
            cond &= Sample.ts_ms >= from_ts_ms
        if to_ts_ms is not None:
            cond &= Sample.ts_ms <= to_ts_ms

        records = self.history_table.search(cond)
        records.sort(key=lambda r: r.get("ts_ms", 0))
        points = [[r["ts_ms"], r["value"]] for r in records]
        return downsample(points, max_points)

    # ── 管理 ──────────────────────────────────────────

    def clear_key(self, key: str):
        Sample = Query()
        self.latest_table.remove(Sample.key == key)
        self.history_table.remove(Sample.key == key)

    def close(self):
        self.db.close()
