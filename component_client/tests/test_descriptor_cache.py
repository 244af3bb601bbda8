"""
Tests for the component descriptor cache and the resource family table.
"""

import dataclasses

import pytest

from component_client.cache import ComponentDescriptorCache
from component_client.models import (
    COMPONENT_FAMILIES,
    ComponentDescriptor,
    ComponentKind,
)


class TestComponentDescriptorCache:
    """Test cases for ComponentDescriptorCache."""

    @pytest.fixture
    def cache(self):
        return ComponentDescriptorCache()

    @pytest.fixture
    def descriptor(self):
        return ComponentDescriptor.for_kind("proc-1", ComponentKind.PROCESSOR, "example.Processor")

    def test_get_missing_returns_none(self, cache):
        """Test lookup of an unknown id."""
        assert cache.get("unknown") is None
        assert "unknown" not in cache
        assert len(cache) == 0

    def test_put_then_get(self, cache, descriptor):
        """Test stored descriptors are returned unchanged."""
        assert cache.put(descriptor) is descriptor
        assert cache.get("proc-1") is descriptor
        assert "proc-1" in cache
        assert len(cache) == 1

    def test_reset_clears_entries(self, cache, descriptor):
        """Test explicit invalidation."""
        cache.put(descriptor)
        cache.reset()
        assert cache.get("proc-1") is None
        assert len(cache) == 0

    def test_instances_are_independent(self, descriptor):
        """Test there is no process-wide cache."""
        first = ComponentDescriptorCache()
        second = ComponentDescriptorCache()
        first.put(descriptor)
        assert "proc-1" not in second

    def test_descriptors_are_immutable(self, descriptor):
        """Test cached descriptors cannot be modified."""
        with pytest.raises(dataclasses.FrozenInstanceError):
            descriptor.resource_family = "/elsewhere"


class TestResourceFamilies:
    """Test cases for the kind lookup table."""

    def test_processor_family(self):
        descriptor = ComponentDescriptor.for_kind("abc", ComponentKind.PROCESSOR)
        assert descriptor.resource_family == "/nifi-api/processors"
        assert descriptor.property_path == ("component", "config", "properties")
        assert descriptor.resource_path == "/nifi-api/processors/abc"

    def test_configuration_service_family(self):
        descriptor = ComponentDescriptor.for_kind("abc", ComponentKind.CONFIGURATION_SERVICE)
        assert descriptor.resource_family == "/nifi-api/controller-services"
        assert descriptor.property_path == ("component", "properties")
        assert descriptor.resource_path == "/nifi-api/controller-services/abc"

    def test_every_kind_has_a_family(self):
        assert set(COMPONENT_FAMILIES) == set(ComponentKind)

    @pytest.mark.parametrize("host_type,expected", [
        ("PROCESSOR", ComponentKind.PROCESSOR),
        ("CONTROLLER_SERVICE", ComponentKind.CONFIGURATION_SERVICE),
        ("REPORTING_TASK", None),
        ("processor", None),
    ])
    def test_from_host_type(self, host_type, expected):
        assert ComponentKind.from_host_type(host_type) is expected

    def test_host_type_round_trip(self):
        for kind in ComponentKind:
            assert ComponentKind.from_host_type(kind.host_type) is kind
