"""
FastAPI 路由：仪表盘文档读写与组件样本数据接口。
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Body, HTTPException
from pydantic import BaseModel

from tileboard.document_store import InvalidDocument, validate_document

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")

# 这些全局引用会在 main.py 中注入
_document_store = None
_data_controller = None


def init_api(document_store, data_controller):
    """注入全局依赖（由 main.py 调用）。"""
    global _document_store, _data_controller
    _document_store = document_store
    _data_controller = data_controller


class CreateDashboardRequest(BaseModel):
    name: Optional[str] = "New"


class SampleIn(BaseModel):
    key: str
    value: Any
    ts_ms: Optional[int] = None


# ── Dashboards document ───────────────────────────────

@router.get("/dashboards-document")
async def get_document() -> dict[str, Any]:
    try:
        return _document_store.read_state()
    except (OSError, ValueError) as e:
        logger.error(f"Reading dashboards document failed: {e}")
        raise HTTPException(500, "read_failed")


@router.put("/dashboards-document")
async def put_document(state: Any = Body(None)) -> dict:
    """Replace the whole document. The client always sends the complete state."""
    try:
        validate_document(state)
    except InvalidDocument:
        raise HTTPException(400, "invalid_payload")

    try:
        _document_store.write_state(state)
    except OSError as e:
        logger.error(f"Writing dashboards document failed: {e}")
        raise HTTPException(500, "write_failed")
    return {"ok": True}


@router.post("/dashboards-document")
async def create_dashboard(body: Optional[CreateDashboardRequest] = None) -> dict:
    name = body.name if body else "New"
    try:
        dashboard_id = _document_store.create_dashboard(name)
    except (OSError, ValueError) as e:
        logger.error(f"Creating dashboard failed: {e}")
        raise HTTPException(500, "create_failed")
    return {"id": dashboard_id}


# ── Samples ───────────────────────────────────────────

@router.post("/samples")
async def add_sample(sample: SampleIn) -> dict:
    return _data_controller.add_sample(sample.key, sample.value, sample.ts_ms)


@router.get("/latest")
async def get_latest(key: str = "value") -> dict[str, Any]:
    latest = _data_controller.get_latest(key)
    if latest is None:
        return {"key": key, "value": None}
    return latest


@router.get("/series")
async def get_series(
    key: str = "value",
    from_ts_ms: Optional[int] = None,
    to_ts_ms: Optional[int] = None,
    max_points: int = 400,
) -> dict[str, Any]:
    points = _data_controller.get_series(key, from_ts_ms, to_ts_ms, max_points)
    return {"key": key, "points": points}
