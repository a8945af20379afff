"""
Document store: the dashboards document as a single JSON file.

Writes go to a temporary file first and are then renamed over the target, so
a reader only ever sees the previous or the next complete document.
"""

import json
import logging
import os
import secrets
from pathlib import Path
from typing import Any, Dict

logger = logging.getLogger(__name__)

# Default paths
DATA_DIR = Path(os.getenv("TILE_BOARD_ROOT", ".")) / "data"
DOCUMENT_FILE = "dashboards.json"
MAX_NAME_LENGTH = 40


def initial_document() -> Dict[str, Any]:
    return {
        "version": 1,
        "activeId": "d1",
        "dashboards": [{"id": "d1", "name": "Main", "items": []}],
    }


def new_id(prefix: str) -> str:
    return prefix + secrets.token_hex(6)


class InvalidDocument(ValueError):
    """Payload is not a dashboards document."""


def validate_document(state: Any) -> Dict[str, Any]:
    if not isinstance(state, dict) or not isinstance(state.get("dashboards"), list):
        raise InvalidDocument("invalid_payload")
    return state


class DocumentStore:
    """Reads and atomically replaces ``dashboards.json``."""

    def __init__(self, data_dir: str | Path = DATA_DIR):
        self.data_dir = Path(data_dir)
        self.document_file = self.data_dir / DOCUMENT_FILE

    def ensure_document(self):
        self.data_dir.mkdir(parents=True, exist_ok=True)
        if not self.document_file.exists():
            logger.info(f"Creating initial dashboards document: {self.document_file}")
            self.write_state(initial_document())

    def read_state(self) -> Dict[str, Any]:
        self.ensure_document()
        with open(self.document_file, "r", encoding="utf-8") as f:
            return json.load(f)

    def write_state(self, state: Dict[str, Any]):
        self.data_dir.mkdir(parents=True, exist_ok=True)
        tmp = self.document_file.with_name(self.document_file.name + ".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(state, f, indent=2, ensure_ascii=False)
        os.replace(tmp, self.document_file)

    def create_dashboard(self, name: Any = "New") -> str:
        """Append an empty dashboard, make it active and return its id."""
        state = self.read_state()
        dashboard_id = new_id("d")
        name = str(name or "New")[:MAX_NAME_LENGTH]

        state.setdefault("dashboards", []).append({"id": dashboard_id, "name": name, "items": []})
        state["activeId"] = dashboard_id

        self.write_state(state)
        logger.info(f"[{dashboard_id}] dashboard created: {name}")
        return dashboard_id
