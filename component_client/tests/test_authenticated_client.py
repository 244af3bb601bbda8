"""
Tests for the authenticated request layer.
"""

import json

import httpx
import pytest

from component_client.http import (
    COMPONENT_ID_HEADER,
    CSRF_HEADER,
    AuthenticatedClient,
)
from component_client.session import CSRF_COOKIE_NAME, SessionContext
from shared.errors import HostResponseError, HostUnreachableError, NetworkError, ValidationError

BASE_URL = "http://host.test"


def make_client(handler, session=None):
    return AuthenticatedClient(BASE_URL, session, transport=httpx.MockTransport(handler))


@pytest.fixture
def session():
    return SessionContext.from_cookie_header(
        f"{CSRF_COOKIE_NAME}=csrf-abc",
        preloaded_config={"componentId": "comp-1"},
    )


class TestHeaders:
    """Test cases for identity and request-forgery headers."""

    @pytest.mark.asyncio
    async def test_get_has_identity_but_no_csrf_header(self, session):
        """Test read requests never carry the forgery token."""
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={})

        async with make_client(handler, session) as client:
            await client.send("GET", "/nifi-api/processors/comp-1")

        assert seen[0].headers[COMPONENT_ID_HEADER] == "comp-1"
        assert seen[0].headers["Accept"] == "application/json"
        assert CSRF_HEADER not in seen[0].headers

    @pytest.mark.asyncio
    @pytest.mark.parametrize("method", ["POST", "PUT", "PATCH", "DELETE"])
    async def test_mutating_requests_carry_csrf_header(self, session, method):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={})

        async with make_client(handler, session) as client:
            await client.send(method, "/nifi-api/processors/comp-1", {"a": 1})

        assert seen[0].headers[CSRF_HEADER] == "csrf-abc"
        assert seen[0].headers[COMPONENT_ID_HEADER] == "comp-1"

    @pytest.mark.asyncio
    async def test_no_cookie_means_no_csrf_header(self):
        """Test the token is never fabricated."""
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={})

        async with make_client(handler, SessionContext()) as client:
            await client.send("PUT", "/nifi-api/processors/x", {"a": 1})

        assert CSRF_HEADER not in seen[0].headers
        assert seen[0].headers[COMPONENT_ID_HEADER] == ""

    @pytest.mark.asyncio
    async def test_body_is_json_encoded(self, session):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={})

        async with make_client(handler, session) as client:
            await client.send("PUT", "/x", {"component": {"id": "comp-1"}})

        assert seen[0].headers["Content-Type"] == "application/json"
        assert json.loads(seen[0].content) == {"component": {"id": "comp-1"}}


class TestErrors:
    """Test cases for failure translation."""

    @pytest.mark.asyncio
    async def test_non_2xx_raises_host_response_error(self, session):
        def handler(request):
            return httpx.Response(403, text="Unable to view the component.")

        async with make_client(handler, session) as client:
            with pytest.raises(HostResponseError) as exc_info:
                await client.send("GET", "/x")

        assert exc_info.value.status_code == 403
        assert exc_info.value.body == "Unable to view the component."
        assert exc_info.value.message == "Unable to view the component."
        assert isinstance(exc_info.value, NetworkError)

    @pytest.mark.asyncio
    async def test_connection_failure_raises_unreachable(self, session):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with make_client(handler, session) as client:
            with pytest.raises(HostUnreachableError) as exc_info:
                await client.send("GET", "/x")

        assert exc_info.value.status_code is None

    @pytest.mark.asyncio
    async def test_timeout_raises_unreachable(self, session):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        async with make_client(handler, session) as client:
            with pytest.raises(HostUnreachableError):
                await client.send("GET", "/x")

    @pytest.mark.asyncio
    async def test_send_json_rejects_invalid_json(self, session):
        def handler(request):
            return httpx.Response(200, text="<html>login</html>")

        async with make_client(handler, session) as client:
            with pytest.raises(ValidationError):
                await client.send_json("GET", "/x")

    @pytest.mark.asyncio
    async def test_send_json_rejects_non_object(self, session):
        def handler(request):
            return httpx.Response(200, json=[1, 2, 3])

        async with make_client(handler, session) as client:
            with pytest.raises(ValidationError):
                await client.send_json("GET", "/x")

    @pytest.mark.asyncio
    async def test_send_json_empty_body(self, session):
        def handler(request):
            return httpx.Response(200)

        async with make_client(handler, session) as client:
            assert await client.send_json("GET", "/x") == {}
