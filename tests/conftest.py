import json
from typing import Any, Dict, List, Optional

import httpx
import pytest
from starlette.requests import Request

from cauth.delegation import Delegator
from cauth.engine import RuleEngine


class FakeAuthBackend:
    """
    Stand-in for an external authorization endpoint.
    
    Records every payload it receives. responses maps endpoint host to
    (status, body); body may be a dict (sent as JSON) or raw bytes.
    """

    def __init__(self, status: int = 200, body: Any = None, responses: Optional[Dict[str, tuple]] = None):
        self.status = status
        self.body = {} if body is None else body
        self.responses = responses or {}
        self.calls: List[Dict[str, Any]] = []
        self.error: Optional[Exception] = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append({
            "method": request.method,
            "url": str(request.url),
            "host": request.url.host,
            "payload": json.loads(request.content),
        })
        if self.error is not None:
            raise self.error
        status, body = self.responses.get(request.url.host, (self.status, self.body))
        if isinstance(body, bytes):
            return httpx.Response(status, content=body)
        return httpx.Response(status, json=body)


@pytest.fixture
def backend():
    return FakeAuthBackend()


@pytest.fixture
def delegator(backend):
    client = httpx.AsyncClient(transport=httpx.MockTransport(backend))
    return Delegator(client, timeout=2.0)


@pytest.fixture
def make_engine(delegator):
    def _make(rules, case_sensitive=True):
        return RuleEngine(rules, delegator, case_sensitive=case_sensitive)
    return _make


@pytest.fixture
def make_request():
    """Build a starlette Request without a running server."""
    def _make(
        path: str = "/",
        method: str = "GET",
        headers: Optional[Dict[str, str]] = None,
        query: str = "",
    ) -> Request:
        raw_headers = [(b"host", b"testserver")]
        for name, value in (headers or {}).items():
            raw_headers.append((name.lower().encode("latin-1"), value.encode("latin-1")))
        scope = {
            "type": "http",
            "http_version": "1.1",
            "method": method,
            "scheme": "http",
            "path": path,
            "raw_path": path.encode(),
            "root_path": "",
            "query_string": query.encode(),
            "headers": raw_headers,
            "server": ("testserver", 80),
            "client": ("127.0.0.1", 50000),
        }
        return Request(scope)
    return _make
