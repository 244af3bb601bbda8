"""
Authenticated request layer for the host REST API.

Every request carries the component identity header. Mutating requests
also carry the request-forgery token when the session has one. Failures
are translated into the shared error taxonomy so callers can tell a host
that refused the request from a host that could not be reached.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Optional

import httpx

from shared.errors import HostResponseError, HostUnreachableError, ValidationError
from shared.logging import get_logger

from .session import SessionContext

COMPONENT_ID_HEADER = "X-Component-Id"
CSRF_HEADER = "Request-Token"
MUTATING_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})


class AuthenticatedClient:
    """Thin wrapper around ``httpx.AsyncClient`` that authenticates requests."""

    def __init__(
        self,
        base_url: str,
        session: Optional[SessionContext] = None,
        *,
        connect_timeout: float = 5.0,
        read_timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.session = session or SessionContext()
        self.logger = get_logger("client.http")
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(read_timeout, connect=connect_timeout),
            transport=transport,
        )

    async def __aenter__(self) -> "AuthenticatedClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    def build_headers(self, method: str) -> Dict[str, str]:
        """Headers added to a request with the given verb."""
        headers = {
            "Accept": "application/json",
            COMPONENT_ID_HEADER: self.session.component_id(),
        }
        if method.upper() in MUTATING_METHODS:
            token = self.session.csrf_token()
            if token:
                headers[CSRF_HEADER] = token
        return headers

    async def send(
        self,
        method: str,
        path: str,
        body: Optional[Any] = None,
        *,
        params: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        """Send a request and return the response if its status is 2xx.

        Raises ``HostResponseError`` for any other status and
        ``HostUnreachableError`` when no response was received.
        """
        method = method.upper()
        headers = self.build_headers(method)
        content = None
        if body is not None:
            content = json.dumps(body)
            headers["Content-Type"] = "application/json"

        try:
            response = await self._client.request(
                method, path, content=content, headers=headers, params=params
            )
        except httpx.TimeoutException as exc:
            self.logger.warning("Host request timed out", method=method, path=path, error=str(exc))
            raise HostUnreachableError(
                f"Request to host timed out: {method} {path}",
                details={"error": str(exc)},
            ) from exc
        except httpx.TransportError as exc:
            self.logger.warning("Host unreachable", method=method, path=path, error=str(exc))
            raise HostUnreachableError(
                f"Host unreachable: {method} {path}",
                details={"error": str(exc)},
            ) from exc

        if not response.is_success:
            self.logger.info(
                "Host rejected request",
                method=method,
                path=path,
                status_code=response.status_code,
            )
            raise HostResponseError(response.status_code, response.text)

        return response

    async def send_json(
        self,
        method: str,
        path: str,
        body: Optional[Any] = None,
        *,
        params: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """Like ``send`` but decode the body as a JSON object."""
        response = await self.send(method, path, body, params=params)
        if not response.content:
            return {}
        try:
            payload = response.json()
        except ValueError as exc:
            raise ValidationError(
                f"Host returned invalid JSON for {method.upper()} {path}",
                details={"error": str(exc)},
            ) from exc
        if not isinstance(payload, dict):
            raise ValidationError(
                f"Host returned a non-object JSON body for {method.upper()} {path}"
            )
        return payload
