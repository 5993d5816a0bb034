"""
sources/comexstat.py — ComexStat ``/general`` query adapter.

Issues a single POST per query, validates the success envelope and decodes
rows into ``UpstreamRow``. Transport and business failures are logged with
the originating operation and re-raised as typed errors:

    success=false in envelope       → UpstreamRejected    (503)
    HTTP error status               → UpstreamHttpError   (upstream status)
    no response (network / timeout) → UpstreamUnreachable (503)

Calls are single-shot; nothing is retried here.

Usage:
    source = ComexStatSource()
    rows = await source.query(query, operation="summary")
"""

from __future__ import annotations

from typing import Any

import httpx
from pydantic import ValidationError

from comexdata_api.errors import (
    ComexDataError,
    UpstreamHttpError,
    UpstreamRejected,
    UpstreamUnreachable,
)
from comexdata_api.utils.logging import get_logger
from comexdata_shared.config import settings
from comexdata_shared.models.comexstat import UpstreamQuery, UpstreamRow

log = get_logger(__name__)

GENERAL_PATH = "/general"
DEFAULT_FAILURE_MESSAGE = "ComexStat API request failed."
UNREACHABLE_MESSAGE = "Unable to reach ComexStat API."


def _error_message(response: httpx.Response) -> str:
    """Upstream message from an error response: plain text or JSON ``message``."""
    try:
        body = response.json()
    except ValueError:
        return response.text or DEFAULT_FAILURE_MESSAGE
    if isinstance(body, str):
        return body or DEFAULT_FAILURE_MESSAGE
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return DEFAULT_FAILURE_MESSAGE


class ComexStatSource:
    """Thin async client for the ComexStat general query endpoint."""

    name = "ComexStat"

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        base_url: str | None = None,
        timeout: float | None = None,
        language: str | None = None,
        verify: bool | None = None,
    ) -> None:
        self._client = client
        self._base_url = (base_url or settings.comexstat_base_url).rstrip("/")
        self._timeout = timeout if timeout is not None else settings.comexstat_timeout
        self._language = language or settings.comexstat_language
        self._verify = verify if verify is not None else settings.comexstat_verify_tls
        self._log = log.bind(source_name=self.name)

    def build_client(self) -> httpx.AsyncClient:
        """A client configured for this source; the caller owns its lifecycle."""
        return httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            verify=self._verify,
            headers={"Content-Type": "application/json"},
        )

    async def _post(self, body: dict[str, Any]) -> httpx.Response:
        params = {"language": self._language}
        if self._client is not None:
            return await self._client.post(
                f"{self._base_url}{GENERAL_PATH}", json=body, params=params,
                timeout=self._timeout,
            )
        async with self.build_client() as client:
            return await client.post(GENERAL_PATH, json=body, params=params)

    async def query(self, query: UpstreamQuery, *, operation: str) -> list[UpstreamRow]:
        """
        Run one ``/general`` query and return its decoded rows.

        Args:
            query:     Request parameters.
            operation: Name of the engine operation issuing the call (for logs).

        Raises:
            UpstreamRejected, UpstreamHttpError, UpstreamUnreachable.
        """
        body = query.to_body()
        query_log = self._log.bind(operation=operation, flow=query.flow.value)
        query_log.debug("upstream_request", body=body)

        try:
            response = await self._post(body)
            response.raise_for_status()
            rows = self._decode(response)
        except ComexDataError as exc:
            query_log.error("upstream_request_failed", error=exc.message, exc_info=True)
            raise
        except httpx.HTTPStatusError as exc:
            query_log.error(
                "upstream_request_failed",
                status=exc.response.status_code,
                error=str(exc),
                exc_info=True,
            )
            raise UpstreamHttpError(
                _error_message(exc.response), exc.response.status_code
            ) from exc
        except httpx.RequestError as exc:
            query_log.error("upstream_request_failed", error=str(exc), exc_info=True)
            raise UpstreamUnreachable(UNREACHABLE_MESSAGE) from exc

        query_log.debug("upstream_response", rows=len(rows))
        return rows

    @staticmethod
    def _decode(response: httpx.Response) -> list[UpstreamRow]:
        try:
            envelope = response.json()
        except ValueError as exc:
            raise UpstreamRejected(DEFAULT_FAILURE_MESSAGE) from exc

        if not isinstance(envelope, dict) or not envelope.get("success"):
            message = envelope.get("message") if isinstance(envelope, dict) else None
            raise UpstreamRejected(message or DEFAULT_FAILURE_MESSAGE)

        data = envelope.get("data") or {}
        if not isinstance(data, dict):
            raise UpstreamRejected(DEFAULT_FAILURE_MESSAGE)
        items = data.get("list") or []
        if not isinstance(items, list):
            raise UpstreamRejected(DEFAULT_FAILURE_MESSAGE)
        try:
            return [UpstreamRow.model_validate(item) for item in items]
        except ValidationError as exc:
            raise UpstreamRejected(DEFAULT_FAILURE_MESSAGE) from exc
