"""
Configuration property store.

Reads a component's properties together with the host's revision and
writes changes back with optimistic concurrency: every write re-reads the
current revision, merges the changes into the full property set and lets
the host decide whether the revision is still current. A stale revision
surfaces as ``ConflictError``; retrying is left to the caller so that
concurrent edits are never silently overwritten.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, Sequence

from shared.config import BaseConfig
from shared.errors import ConflictError, HostResponseError
from shared.logging import get_logger, set_component_context

from .cache import ComponentDescriptorCache
from .http import AuthenticatedClient
from .models import ComponentDescriptor, RevisionedConfiguration
from .resolver import ComponentTypeResolver
from .session import SessionContext


class ConfigurationPropertyStore:
    """Reads and writes component properties through the host REST API."""

    def __init__(self, client: AuthenticatedClient, resolver: ComponentTypeResolver) -> None:
        self.client = client
        self.resolver = resolver
        self.logger = get_logger("client.properties")

    async def read(self, component_id: str) -> RevisionedConfiguration:
        """Fetch the current properties and revision of a component."""
        set_component_context(component_id)
        descriptor = await self.resolver.resolve(component_id)
        payload = await self.client.send_json("GET", descriptor.resource_path)
        return parse_configuration(component_id, descriptor, payload)

    async def write(
        self,
        component_id: str,
        changes: Mapping[str, Optional[str]],
    ) -> RevisionedConfiguration:
        """Merge ``changes`` into the component's properties.

        A ``None`` value removes the property. The revision sent to the host
        is always the one obtained by this call's own read.
        """
        current = await self.read(component_id)
        descriptor = await self.resolver.resolve(component_id)

        merged: Dict[str, Optional[str]] = dict(current.properties)
        merged.update(changes)

        revision: Dict[str, Any] = {"version": current.revision}
        if current.client_id:
            revision["clientId"] = current.client_id

        body = {
            "revision": revision,
            "component": {"id": component_id},
        }
        _assign_path(body, descriptor.property_path, merged)

        self.logger.info(
            "Updating component properties",
            component_id=component_id,
            revision=current.revision,
            changed=sorted(changes),
        )

        try:
            payload = await self.client.send_json("PUT", descriptor.resource_path, body)
        except HostResponseError as exc:
            if exc.status_code == 409:
                self.logger.warning(
                    "Revision conflict on update",
                    component_id=component_id,
                    revision=current.revision,
                )
                raise ConflictError(exc.message, status_code=409, body=exc.body) from exc
            raise

        updated = parse_configuration(component_id, descriptor, payload)
        if not updated.properties and _lookup(payload, descriptor.property_path) is None:
            remaining = {key: value for key, value in merged.items() if value is not None}
            return RevisionedConfiguration(
                component_id=component_id,
                revision=updated.revision,
                properties=remaining,
                client_id=updated.client_id,
            )
        return updated


def parse_configuration(
    component_id: str,
    descriptor: ComponentDescriptor,
    payload: Mapping[str, Any],
) -> RevisionedConfiguration:
    """Extract revision and properties from a host entity.

    A missing segment on the property path yields no properties rather than
    an error; ``null`` values are dropped.
    """
    revision = payload.get("revision")
    version = 0
    client_id = None
    if isinstance(revision, Mapping):
        raw_version = revision.get("version")
        if isinstance(raw_version, int) and not isinstance(raw_version, bool):
            version = raw_version
        if isinstance(revision.get("clientId"), str):
            client_id = revision["clientId"]

    raw_properties = _lookup(payload, descriptor.property_path)
    properties: Dict[str, str] = {}
    if isinstance(raw_properties, Mapping):
        for key, value in raw_properties.items():
            if value is not None:
                properties[str(key)] = value if isinstance(value, str) else str(value)

    return RevisionedConfiguration(
        component_id=component_id,
        revision=version,
        properties=properties,
        client_id=client_id,
    )


def _lookup(payload: Mapping[str, Any], path: Sequence[str]) -> Any:
    node: Any = payload
    for segment in path:
        if not isinstance(node, Mapping):
            return None
        node = node.get(segment)
        if node is None:
            return None
    return node


def _assign_path(body: Dict[str, Any], path: Sequence[str], value: Any) -> None:
    node = body
    for segment in path[:-1]:
        node = node.setdefault(segment, {})
    node[path[-1]] = value


def create_property_store(
    config: BaseConfig,
    session: Optional[SessionContext] = None,
    *,
    cache: Optional[ComponentDescriptorCache] = None,
    client: Optional[AuthenticatedClient] = None,
) -> ConfigurationPropertyStore:
    """Wire a store, its resolver and its client from configuration."""
    if client is None:
        client = AuthenticatedClient(
            config.host_api_url,
            session,
            connect_timeout=config.host_connect_timeout,
            read_timeout=config.host_read_timeout,
        )
    resolver = ComponentTypeResolver(client, cache, info_path=config.component_info_path)
    return ConfigurationPropertyStore(client, resolver)
