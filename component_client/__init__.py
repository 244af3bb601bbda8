"""
Component Configuration Resolver.

Client-side library that configures a component hosted by the
orchestration runtime:

- resolver: detects whether an id names a processor or a configuration
  service and where its REST resource lives (memoized via cache).
- http: authenticated request layer (identity header, request-forgery token).
- properties: revision-checked read-modify-write of component properties.
- session: caller-side identity, page location and cookies.

Nothing in this package retries on its own; callers own retry policy.
"""

from .cache import ComponentDescriptorCache
from .http import AuthenticatedClient
from .models import (
    COMPONENT_FAMILIES,
    ComponentDescriptor,
    ComponentKind,
    ResourceFamily,
    RevisionedConfiguration,
)
from .properties import ConfigurationPropertyStore, create_property_store
from .resolver import ComponentTypeResolver
from .session import SessionContext

__all__ = [
    "AuthenticatedClient",
    "COMPONENT_FAMILIES",
    "ComponentDescriptor",
    "ComponentDescriptorCache",
    "ComponentKind",
    "ComponentTypeResolver",
    "ConfigurationPropertyStore",
    "ResourceFamily",
    "RevisionedConfiguration",
    "SessionContext",
    "create_property_store",
]
