"""
In-memory cache of resolved component descriptors.
"""

from typing import Dict, Optional

from shared.logging import get_logger

from .models import ComponentDescriptor


class ComponentDescriptorCache:
    """Maps component ids to their resolved descriptors.

    Entries are never mutated after insertion, so concurrent coroutines can
    share one instance without a lock; racing resolutions of the same id
    simply store equal descriptors.
    """

    def __init__(self):
        self._entries: Dict[str, ComponentDescriptor] = {}
        self.logger = get_logger("client.cache")

    def get(self, component_id: str) -> Optional[ComponentDescriptor]:
        return self._entries.get(component_id)

    def put(self, descriptor: ComponentDescriptor) -> ComponentDescriptor:
        self._entries[descriptor.id] = descriptor
        return descriptor

    def reset(self) -> None:
        """Drop every cached descriptor."""
        count = len(self._entries)
        self._entries.clear()
        self.logger.debug("Component descriptor cache cleared", entries=count)

    def __contains__(self, component_id: object) -> bool:
        return component_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)
