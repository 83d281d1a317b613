"""
Shared fixtures: settings, a recording fake CMS and a TestClient.

The fake CMS is an ``httpx.MockTransport`` handler. Tests register canned
responses per (method, path) and inspect ``cms.calls`` afterwards.
"""

import json
from typing import Any, Callable, Dict, List, Tuple, Union

import httpx
import pytest
from fastapi.testclient import TestClient

from tribute_gateway.config import Settings
from tribute_gateway.main import create_app

CMS_BASE_URL = "http://cms.test/api"
CMS_PREFIX = "/api"

Handler = Callable[[httpx.Request], httpx.Response]


class FakeCms:
    """Records every outbound request and answers from registered routes."""

    def __init__(self) -> None:
        self.calls: List[httpx.Request] = []
        self.routes: Dict[Tuple[str, str], Union[httpx.Response, Handler]] = {}

    def on(self, method: str, path: str, status_code: int = 200, json_body: Any = None) -> None:
        self.routes[(method.upper(), path)] = httpx.Response(status_code, json=json_body)

    def on_call(self, method: str, path: str, handler: Handler) -> None:
        self.routes[(method.upper(), path)] = handler

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        path = request.url.path
        if path.startswith(CMS_PREFIX):
            path = path[len(CMS_PREFIX):]

        route = self.routes.get((request.method, path))
        if route is None:
            return httpx.Response(
                404,
                json={"data": None, "error": {"status": 404, "name": "NotFoundError", "message": "Not Found"}},
            )
        if callable(route):
            return route(request)
        return route

    @property
    def last(self) -> httpx.Request:
        return self.calls[-1]

    def last_json(self) -> Any:
        return json.loads(self.last.content)


@pytest.fixture
def settings() -> Settings:
    return Settings(CMS_API_URL=CMS_BASE_URL, ENVIRONMENT="test", ALLOWED_ORIGINS="http://site.test")


@pytest.fixture
def cms() -> FakeCms:
    return FakeCms()


@pytest.fixture
def app(settings, cms):
    return create_app(settings, transport=httpx.MockTransport(cms.handler))


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def cms_user() -> Dict[str, Any]:
    return {
        "id": 7,
        "username": "jane_doe",
        "email": "jane@tributestream.com",
        "provider": "local",
        "confirmed": True,
        "blocked": False,
    }


@pytest.fixture
def auth_response(cms_user) -> Dict[str, Any]:
    return {"jwt": "cms-token-abc", "user": cms_user}
