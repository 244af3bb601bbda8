"""
Data model for component configuration.

The two component kinds differ only in where the host keeps their REST
resource and how deep the properties are nested, so both live in a lookup
table instead of a class hierarchy.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple


class ComponentKind(str, Enum):
    """Kinds of configurable component hosted by the runtime."""

    PROCESSOR = "PROCESSOR"
    CONFIGURATION_SERVICE = "CONFIGURATION_SERVICE"

    @classmethod
    def from_host_type(cls, host_type: str) -> Optional["ComponentKind"]:
        """Map the host's type name to a kind; ``None`` for anything unknown."""
        return HOST_TYPE_NAMES.get(host_type)

    @property
    def host_type(self) -> str:
        """Name the host uses for this kind."""
        return "CONTROLLER_SERVICE" if self is ComponentKind.CONFIGURATION_SERVICE else self.value


HOST_TYPE_NAMES: Dict[str, ComponentKind] = {
    "PROCESSOR": ComponentKind.PROCESSOR,
    "CONTROLLER_SERVICE": ComponentKind.CONFIGURATION_SERVICE,
}


@dataclass(frozen=True)
class ResourceFamily:
    """REST location and property nesting of one component kind."""

    api_path: str
    property_path: Tuple[str, ...]


# Processors wrap their properties in an extra "config" object.
COMPONENT_FAMILIES: Dict[ComponentKind, ResourceFamily] = {
    ComponentKind.PROCESSOR: ResourceFamily(
        api_path="/nifi-api/processors",
        property_path=("component", "config", "properties"),
    ),
    ComponentKind.CONFIGURATION_SERVICE: ResourceFamily(
        api_path="/nifi-api/controller-services",
        property_path=("component", "properties"),
    ),
}


@dataclass(frozen=True)
class ComponentDescriptor:
    """Resolved REST shape of a component. Immutable once cached."""

    id: str
    kind: ComponentKind
    resource_family: str
    property_path: Tuple[str, ...]
    component_class: str = ""

    @classmethod
    def for_kind(cls, component_id: str, kind: ComponentKind, component_class: str = "") -> "ComponentDescriptor":
        family = COMPONENT_FAMILIES[kind]
        return cls(
            id=component_id,
            kind=kind,
            resource_family=family.api_path,
            property_path=family.property_path,
            component_class=component_class,
        )

    @property
    def resource_path(self) -> str:
        return f"{self.resource_family}/{self.id}"


@dataclass(frozen=True)
class RevisionedConfiguration:
    """Properties of a component together with the host's revision."""

    component_id: str
    revision: int
    properties: Dict[str, str] = field(default_factory=dict)
    client_id: Optional[str] = None
