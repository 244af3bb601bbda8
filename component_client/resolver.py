"""
Component type detection.

Asks the host what kind of component an id refers to and derives where its
REST resource lives. Results are cached for the life of the cache object,
so each distinct id costs exactly one detection call.
"""

from __future__ import annotations

from typing import Optional

from shared.errors import ValidationError
from shared.logging import get_logger

from .cache import ComponentDescriptorCache
from .http import AuthenticatedClient
from .models import ComponentDescriptor, ComponentKind

DEFAULT_INFO_PATH = "/nifi-api/processors/jwt/component-info"


class ComponentTypeResolver:
    """Resolves component ids to descriptors, memoized through a cache."""

    def __init__(
        self,
        client: AuthenticatedClient,
        cache: Optional[ComponentDescriptorCache] = None,
        info_path: str = DEFAULT_INFO_PATH,
    ) -> None:
        self.client = client
        self.cache = cache if cache is not None else ComponentDescriptorCache()
        self.info_path = info_path
        self.logger = get_logger("client.resolver")

    async def resolve(self, component_id: str) -> ComponentDescriptor:
        """Return the descriptor for ``component_id``.

        Raises ``ValidationError`` for an empty id or an unintelligible
        answer, and ``NetworkError`` when the host cannot be asked.
        """
        if not component_id or not component_id.strip():
            raise ValidationError("Component id must not be empty")

        cached = self.cache.get(component_id)
        if cached is not None:
            return cached

        payload = await self.client.send_json("GET", self.info_path, params={"id": component_id})

        host_type = payload.get("type")
        kind = ComponentKind.from_host_type(host_type) if isinstance(host_type, str) else None
        if kind is None:
            raise ValidationError(
                f"Unknown component type for {component_id}: {host_type!r}",
                details={"component_id": component_id, "type": host_type},
            )

        component_class = payload.get("componentClass")
        descriptor = ComponentDescriptor.for_kind(
            component_id,
            kind,
            component_class if isinstance(component_class, str) else "",
        )
        self.cache.put(descriptor)

        self.logger.debug(
            "Component type resolved",
            component_id=component_id,
            kind=kind.value,
            resource_family=descriptor.resource_family,
        )
        return descriptor

    def reset_cache(self) -> None:
        self.cache.reset()
