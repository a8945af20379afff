"""
Persistence gateway: HTTP client for the dashboards document.

Every write is a full-document replacement; the server either stores all of
it or nothing.
"""

import logging
from typing import Optional

import httpx

from tileboard.errors import PersistenceFailure
from tileboard.models import DashboardsDocument

logger = logging.getLogger(__name__)

DOCUMENT_PATH = "/api/dashboards-document"


class PersistenceGateway:
    def __init__(self, client: httpx.AsyncClient):
        self._client = client

    @classmethod
    def from_url(cls, base_url: str, timeout: float = 10.0) -> "PersistenceGateway":
        return cls(httpx.AsyncClient(base_url=base_url, timeout=timeout))

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client

    async def _request(self, method: str, json: Optional[dict] = None) -> httpx.Response:
        try:
            response = await self._client.request(method, DOCUMENT_PATH, json=json)
        except httpx.HTTPError as e:
            logger.error(f"{method} {DOCUMENT_PATH} failed: {e}")
            raise PersistenceFailure(f"{method} {DOCUMENT_PATH} failed: {e}") from e

        if response.is_error:
            logger.error(f"{method} {DOCUMENT_PATH} -> {response.status_code}")
            raise PersistenceFailure(f"{method} {DOCUMENT_PATH} failed", status_code=response.status_code)
        return response

    async def fetch_state(self) -> DashboardsDocument:
        response = await self._request("GET")
        try:
            return DashboardsDocument.model_validate(response.json())
        except ValueError as e:
            # JSONDecodeError and pydantic.ValidationError
            logger.error(f"GET {DOCUMENT_PATH} returned an invalid document: {e}")
            raise PersistenceFailure(f"GET {DOCUMENT_PATH} returned an invalid document", response.status_code) from e

    async def commit_state(self, next_document: DashboardsDocument) -> None:
        await self._request("PUT", json=next_document.to_wire())

    async def create_dashboard(self, name: str = "New") -> str:
        response = await self._request("POST", json={"name": name})
        try:
            return str(response.json()["id"])
        except (ValueError, KeyError, TypeError) as e:
            logger.error(f"POST {DOCUMENT_PATH} returned no dashboard id: {e}")
            raise PersistenceFailure(f"POST {DOCUMENT_PATH} returned no dashboard id", response.status_code) from e

    async def aclose(self):
        await self._client.aclose()
