"""
配置加载器：将 YAML 配置文件解析为 Pydantic 模型。

Grid geometry, breakpoint tables, server and client settings all live in one
``board.yaml``; anything not specified falls back to the defaults below.
"""

import logging
import os
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field

from tileboard.models import OverlayBreakpoint, Padding, PaddingBreakpoint

logger = logging.getLogger(__name__)


# ── 网格配置 ──────────────────────────────────────────

class GridConfig(BaseModel):
    cell: int = Field(default=80, ge=1, description="Pixels per grid cell")
    cols: int = Field(default=40, ge=1, description="Nominal canvas columns")
    cell_inset: int = 4

    # Fallback overlay dimensions when no breakpoint matches
    overlay_cols: int = 40
    overlay_rows: int = 12
    overlay_breakpoints: Optional[List[OverlayBreakpoint]] = None

    padding: Padding = Field(default_factory=lambda: Padding(left=12, right=12, top=12, bottom=12))
    padding_breakpoints: Optional[List[PaddingBreakpoint]] = None


# ── 服务配置 ──────────────────────────────────────────

class ServerConfig(BaseModel):
    host: str = "127.0.0.1"
    port: int = 3000
    data_dir: str = "data"
    allow_origins: List[str] = Field(default_factory=lambda: ["http://localhost:3000", "http://localhost:5173"])


class ClientConfig(BaseModel):
    base_url: str = "http://127.0.0.1:3000"
    timeout: float = 10.0
    viewport_width: int = 1920


# ── 顶层配置 ──────────────────────────────────────────

class AppConfig(BaseModel):
    grid: GridConfig = Field(default_factory=GridConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    client: ClientConfig = Field(default_factory=ClientConfig)


# ── Loading ───────────────────────────────────────────

_CONFIG_SEARCH_PATHS = [
    "config/board.yaml",
    "board.yaml",
]


def find_config_root() -> Path:
    """Find the board config file."""
    base = Path(os.getenv("TILE_BOARD_ROOT", "."))
    for p in _CONFIG_SEARCH_PATHS:
        path = base / p
        if path.exists():
            return path
    # Nothing found: load_config falls back to defaults
    return base / _CONFIG_SEARCH_PATHS[0]


def load_config(path: Optional[str | Path] = None) -> AppConfig:
    """
    Load and validate the board configuration from YAML.
    """
    if path is None:
        path = find_config_root()
    path = Path(path)

    if not path.is_file():
        logger.info(f"配置文件不存在，使用默认配置: {path}")
        return AppConfig()

    with open(path, "r", encoding="utf-8") as fp:
        raw = yaml.safe_load(fp) or {}

    return AppConfig.model_validate(raw)
