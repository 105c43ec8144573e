"""
Tests for the Delegator against a fake authorization backend.
"""

import httpx
import pytest

from cauth.config import CAuthConfig
from cauth.delegation import Delegator, create_http_client
from cauth.models import AuthorizationRequest, Rule

ENDPOINT = "http://auth.local/check"


def _rule(**kwargs):
    return Rule(path="/admin", endpoint=ENDPOINT, **kwargs)


class TestDelegate:
    """Tests for Delegator.delegate."""

    @pytest.mark.asyncio
    async def test_success_returns_headers(self, delegator, backend):
        backend.body = {"X-User": "alice"}
        auth_request = AuthorizationRequest(headers={"Authorization": "Bearer xyz"}, queries={"lang": "en"})

        result = await delegator.delegate(_rule(), auth_request)

        assert result.ok is True
        assert result.status_code == 200
        assert result.headers == {"X-User": "alice"}

    @pytest.mark.asyncio
    async def test_posts_json_payload(self, delegator, backend):
        auth_request = AuthorizationRequest(headers={"Authorization": "Bearer xyz"})

        await delegator.delegate(_rule(), auth_request)

        assert len(backend.calls) == 1
        call = backend.calls[0]
        assert call["method"] == "POST"
        assert call["url"] == ENDPOINT
        assert call["payload"] == {"headers": {"Authorization": "Bearer xyz"}, "queries": {}}

    @pytest.mark.asyncio
    async def test_non_200_preserves_status(self, delegator, backend):
        backend.status = 403

        result = await delegator.delegate(_rule(), AuthorizationRequest())

        assert result.ok is False
        assert result.status_code == 403

    @pytest.mark.asyncio
    async def test_undecodable_body_is_failure(self, delegator, backend):
        backend.body = b"not json"

        result = await delegator.delegate(_rule(), AuthorizationRequest())

        assert result.ok is False
        assert result.status_code == 200
        assert "decode" in result.error

    @pytest.mark.asyncio
    async def test_empty_body_is_failure(self, delegator, backend):
        backend.body = b""

        result = await delegator.delegate(_rule(), AuthorizationRequest())

        assert result.ok is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [
        ["X-User", "alice"],
        {"X-User": 1},
        {"X-User": {"nested": "value"}},
        {"X-User": "alice\r\nX-Admin: true"},
    ])
    async def test_invalid_header_mapping_is_failure(self, delegator, backend, body):
        backend.body = body

        result = await delegator.delegate(_rule(), AuthorizationRequest())

        assert result.ok is False
        assert result.headers == {}

    @pytest.mark.asyncio
    async def test_connect_error(self, delegator, backend):
        backend.error = httpx.ConnectError("connection refused")

        result = await delegator.delegate(_rule(), AuthorizationRequest())

        assert result.ok is False
        assert result.status_code == 0
        assert "Failed to connect" in result.error

    @pytest.mark.asyncio
    async def test_timeout(self, delegator, backend):
        backend.error = httpx.ReadTimeout("too slow")

        result = await delegator.delegate(_rule(), AuthorizationRequest())

        assert result.ok is False
        assert result.status_code == 0
        assert "timed out" in result.error

    @pytest.mark.asyncio
    async def test_missing_endpoint(self, delegator, backend):
        result = await delegator.delegate(Rule(path="/admin"), AuthorizationRequest())

        assert result.ok is False
        assert result.status_code == 0
        assert backend.calls == []


class TestCreateHttpClient:
    """Tests for the pooled client factory."""

    @pytest.mark.asyncio
    async def test_client_uses_configured_timeout(self):
        client = create_http_client(CAuthConfig(delegation_timeout=1.5))
        try:
            assert client.timeout.read == 1.5
            assert client.headers["User-Agent"] == "cauth-gate"
        finally:
            await client.aclose()

    @pytest.mark.asyncio
    async def test_delegator_closes_client(self):
        delegator = Delegator(create_http_client())
        await delegator.aclose()
        assert delegator.client.is_closed
