"""
tests/conftest.py — Shared pytest fixtures for the comexdata test suite.

Provides:
  envelope()        — builds a ComexStat ``/general`` response body
  mock_general()    — routes ``POST /general`` through a body-aware responder
  mock_http         — respx router faking every httpx request
  cache             — fresh in-memory TTLCache
  make_service      — ComexStatService factory with a fixed clock
"""

from __future__ import annotations

import json
from collections.abc import Callable
from datetime import date
from typing import Any

import httpx
import pytest
import respx

from comexdata_api.services.comexstat_service import ComexStatService
from comexdata_api.sources.comexstat import ComexStatSource
from comexdata_api.utils.cache import TTLCache

BASE_URL = "https://comexstat.test"
# Effective reference month is 2024-03; previous month 2024-02.
TODAY = date(2024, 5, 15)
REGION_FILTER = [{"filter": "state", "values": [23]}]

Responder = Callable[[dict[str, Any]], "list[dict[str, Any]] | httpx.Response"]


def envelope(
    rows: list[dict[str, Any]] | None = None,
    *,
    success: bool = True,
    message: str | None = None,
) -> dict[str, Any]:
    return {"success": success, "message": message, "data": {"list": rows or []}}


def mock_general(router: respx.MockRouter, responder: Responder) -> respx.Route:
    """Route POST /general; responder gets the decoded JSON body."""

    def _side_effect(request: httpx.Request) -> httpx.Response:
        result = responder(json.loads(request.content))
        if isinstance(result, httpx.Response):
            return result
        return httpx.Response(200, json=envelope(result))

    return router.post(host="comexstat.test", path="/general").mock(side_effect=_side_effect)


def by_flow(
    exports: list[dict[str, Any]] | None = None,
    imports: list[dict[str, Any]] | None = None,
) -> Responder:
    """Responder returning export or import rows depending on the request flow."""

    def _respond(body: dict[str, Any]) -> list[dict[str, Any]]:
        return (exports if body["flow"] == "export" else imports) or []

    return _respond


def bodies(route: respx.Route) -> list[dict[str, Any]]:
    return [json.loads(call.request.content) for call in route.calls]


@pytest.fixture
def mock_http():
    """
    Activate the respx mock router for all httpx requests.

    Usage in tests:
        def test_something(mock_http):
            mock_general(mock_http, by_flow(exports=[...]))
    """
    with respx.mock(assert_all_called=False) as router:
        yield router


@pytest.fixture
def cache() -> TTLCache:
    return TTLCache()


@pytest.fixture
def source() -> ComexStatSource:
    return ComexStatSource(base_url=BASE_URL, timeout=60.0, language="pt", verify=True)


@pytest.fixture
def make_service(source: ComexStatSource, cache: TTLCache):
    def _make(*, cache_backend: Any = cache, today: date = TODAY) -> ComexStatService:
        return ComexStatService(
            source,
            cache_backend,
            region_id=23,
            region_name="Ceará",
            clock=lambda: today,
        )

    return _make


@pytest.fixture
def service(make_service) -> ComexStatService:
    return make_service()
