"""
Component lookup against the host runtime.
"""

import uuid
from typing import Any, Dict, Mapping, Optional

import httpx

from component_client.models import COMPONENT_FAMILIES, ComponentKind
from shared.config import BaseConfig
from shared.errors import (
    ComponentNotFoundError,
    ConfiguratorException,
    NetworkError,
    ValidationError,
)
from shared.logging import get_logger

from ..models import ComponentInfoResponse

# Looked up in order; processors are by far the common case.
LOOKUP_ORDER = (ComponentKind.PROCESSOR, ComponentKind.CONFIGURATION_SERVICE)

FORWARDED_HEADERS = ("authorization", "cookie")

# Processor properties that reference the issuer configuration service.
ISSUER_SERVICE_PROPERTIES = ("jwt.issuer.config.service", "rest.gateway.jwt.config.service")

ALLOW_PRIVATE_ADDRESSES_PROPERTY = "jwks.allow.private.network.addresses"


class HostComponentReader:
    """Reads component kinds and properties from the host's REST API."""

    def __init__(
        self,
        host_api_url: str,
        *,
        connect_timeout: float = 5.0,
        read_timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.host_api_url = host_api_url.rstrip("/")
        self.timeout = httpx.Timeout(read_timeout, connect=connect_timeout)
        self.transport = transport
        self.logger = get_logger("validation.host")

    @classmethod
    def from_config(cls, config: BaseConfig, **kwargs) -> "HostComponentReader":
        return cls(
            config.host_api_url,
            connect_timeout=config.host_connect_timeout,
            read_timeout=config.host_read_timeout,
            **kwargs,
        )

    async def get_component_info(
        self,
        component_id: str,
        headers: Optional[Mapping[str, str]] = None,
    ) -> ComponentInfoResponse:
        """Return the kind and implementation class of ``component_id``.

        ``headers`` from the incoming request are forwarded so the host
        applies the caller's own authorization.
        """
        _check_component_id(component_id)
        forwarded = _forwarded_headers(headers)

        async with self._client() as client:
            for kind in LOOKUP_ORDER:
                entity = await self._fetch(client, f"{COMPONENT_FAMILIES[kind].api_path}/{component_id}", forwarded)
                if entity is None:
                    continue

                component = entity.get("component")
                component_class = component.get("type") if isinstance(component, dict) else None
                self.logger.debug(
                    "Component found",
                    component_id=component_id,
                    kind=kind.value,
                    component_class=component_class,
                )
                return ComponentInfoResponse(
                    type=kind.host_type,
                    component_class=component_class if isinstance(component_class, str) else "",
                )

        raise ComponentNotFoundError(component_id)

    async def get_properties(
        self,
        kind: ComponentKind,
        component_id: str,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Dict[str, Any]:
        """Current property map of one processor or controller service."""
        _check_component_id(component_id)
        family = COMPONENT_FAMILIES[kind]

        async with self._client() as client:
            entity = await self._fetch(client, f"{family.api_path}/{component_id}", _forwarded_headers(headers))
        if entity is None:
            raise ComponentNotFoundError(component_id)

        node: Any = entity
        for segment in family.property_path:
            node = node.get(segment) if isinstance(node, dict) else None
        return node if isinstance(node, dict) else {}

    async def allows_private_addresses(
        self,
        processor_id: str,
        headers: Optional[Mapping[str, str]] = None,
    ) -> bool:
        """Whether a processor's issuer configuration permits internal JWKS hosts.

        The setting is read from the controller service the processor
        references, or from the processor itself when it references none.
        Anything that prevents reading it counts as not permitted.
        """
        try:
            properties = await self.get_properties(ComponentKind.PROCESSOR, processor_id, headers)
            for key in ISSUER_SERVICE_PROPERTIES:
                service_id = properties.get(key)
                if isinstance(service_id, str) and service_id.strip():
                    properties = await self.get_properties(
                        ComponentKind.CONFIGURATION_SERVICE,
                        service_id.strip(),
                        headers,
                    )
                    break
        except ConfiguratorException as exc:
            self.logger.warning(
                "Could not read private address setting",
                processor_id=processor_id,
                error=exc.message,
            )
            return False

        value = properties.get(ALLOW_PRIVATE_ADDRESSES_PROPERTY)
        return isinstance(value, str) and value.lower() == "true"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.host_api_url,
            timeout=self.timeout,
            transport=self.transport,
        )

    async def _fetch(
        self,
        client: httpx.AsyncClient,
        path: str,
        headers: Dict[str, str],
    ) -> Optional[dict]:
        try:
            response = await client.get(path, headers=headers)
        except httpx.HTTPError as exc:
            self.logger.warning("Host unreachable", path=path, error=str(exc))
            raise NetworkError(f"Unable to reach host: {exc}", details={"path": path}) from exc

        if response.status_code == 404:
            return None
        if response.status_code != 200:
            raise NetworkError(
                f"Host returned status {response.status_code}",
                status_code=response.status_code,
                body=response.text,
                details={"path": path},
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise NetworkError("Host returned invalid JSON", details={"path": path}) from exc
        return payload if isinstance(payload, dict) else {}


def _check_component_id(component_id: str) -> None:
    try:
        uuid.UUID(component_id)
    except (TypeError, ValueError) as exc:
        raise ValidationError(
            "Invalid component ID format",
            details={"component_id": component_id},
        ) from exc


def _forwarded_headers(headers: Optional[Mapping[str, str]]) -> Dict[str, str]:
    forwarded: Dict[str, str] = {"Accept": "application/json"}
    for name, value in (headers or {}).items():
        if name.lower() in FORWARDED_HEADERS:
            forwarded[name] = value
    return forwarded
