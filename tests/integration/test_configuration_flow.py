"""
Integration tests for the complete validate-then-configure flow.

The component client talks to the validation service in-process (ASGI)
for type detection and to an in-memory host for component resources.
"""

import json

import httpx
import pytest

from component_client.http import AuthenticatedClient
from component_client.models import ComponentKind
from component_client.properties import create_property_store
from component_client.session import CSRF_COOKIE_NAME, SessionContext
from service_validation.app.host.component_reader import HostComponentReader
from service_validation.app.jwks.validator import JwksValidator
from service_validation.app.main import ValidationService
from shared.config import get_config
from shared.errors import ConflictError, HostResponseError
from shared.test_helpers import FakeHost, RoutingTransport, TestDataFactory

PREFIX = "/nifi-api/processors/jwt"


class TestConfigurationFlow:
    """Integration tests for validation followed by a property update."""

    @pytest.fixture
    def base(self, tmp_path):
        conf = tmp_path / "conf"
        conf.mkdir()
        return conf

    @pytest.fixture
    def fake_host(self):
        return FakeHost()

    @pytest.fixture
    def service(self, base, fake_host):
        config = get_config("validation", 8020, jwks_allowed_base_path=str(base))
        reader = HostComponentReader("http://host.test", transport=fake_host.transport())
        return ValidationService(config, validator=JwksValidator(base), component_reader=reader)

    def make_store(self, service, fake_host, component_id):
        transport = RoutingTransport(
            [(PREFIX + "/", httpx.ASGITransport(app=service.app))],
            default=fake_host.transport(),
        )
        session = SessionContext.from_cookie_header(
            f"{CSRF_COOKIE_NAME}=csrf-token",
            page_url=f"https://host.test/nifi-jwt-ui/?id={component_id}",
        )
        client = AuthenticatedClient("http://host.test", session, transport=transport)
        return create_property_store(service.config, session, client=client)

    @pytest.mark.asyncio
    async def test_validate_content_then_update_processor(self, service, fake_host):
        """Test a valid JWKS is validated and then saved with the host's revision."""
        component_id = fake_host.add_processor(properties={"issuer.1.name": "keycloak"}, version=5)
        store = self.make_store(service, fake_host, component_id)
        content = TestDataFactory.create_jwks_content(1)

        async with store.client:
            verdict = await store.client.send_json(
                "POST", f"{PREFIX}/validate-jwks-content", {"jwksContent": content}
            )
            assert verdict["valid"] is True
            assert verdict["keyCount"] == 1

            updated = await store.write(component_id, {"issuer.1.jwks-content": content})

        assert updated.revision == 6
        assert updated.properties["issuer.1.jwks-content"] == content
        assert updated.properties["issuer.1.name"] == "keycloak"

        put = fake_host.calls("PUT", f"/nifi-api/processors/{component_id}")
        assert len(put) == 1
        assert json.loads(put[0].content)["revision"]["version"] == 5
        assert put[0].headers["Request-Token"] == "csrf-token"
        assert put[0].headers["X-Component-Id"] == component_id

    @pytest.mark.asyncio
    async def test_update_configuration_service(self, service, fake_host):
        component_id = fake_host.add_controller_service(properties={"a": "0"}, version=2)
        store = self.make_store(service, fake_host, component_id)

        async with store.client:
            await store.write(component_id, {"a": "1"})
            config = await store.read(component_id)

        assert config.properties == {"a": "1"}
        assert config.revision == 3
        assert store.resolver.cache.get(component_id).kind is ComponentKind.CONFIGURATION_SERVICE

    @pytest.mark.asyncio
    async def test_rejected_file_is_never_saved(self, service, fake_host):
        """Test a traversal attempt is answered with a verdict and no write happens."""
        component_id = fake_host.add_processor()
        store = self.make_store(service, fake_host, component_id)

        async with store.client:
            with pytest.raises(HostResponseError) as exc_info:
                await store.client.send_json(
                    "POST", f"{PREFIX}/validate-jwks-file", {"jwksFilePath": "../../etc/passwd"}
                )

        assert exc_info.value.status_code == 400
        verdict = json.loads(exc_info.value.body)
        assert verdict["valid"] is False
        assert "within allowed directory" in verdict["error"]
        assert fake_host.calls("PUT") == []

    @pytest.mark.asyncio
    async def test_invalid_scheme_verdict(self, service, fake_host):
        store = self.make_store(service, fake_host, "")

        async with store.client:
            with pytest.raises(HostResponseError) as exc_info:
                await store.client.send_json("POST", f"{PREFIX}/validate-jwks-url", {"jwksUrl": "ftp://x/jwks"})

        verdict = json.loads(exc_info.value.body)
        assert verdict["valid"] is False
        assert "invalid scheme" in verdict["error"].lower()

    @pytest.mark.asyncio
    async def test_concurrent_edit_conflicts(self, service, fake_host):
        component_id = fake_host.add_processor(version=1)
        original_handle = fake_host.handle

        def racing_handle(request):
            if request.method == "PUT":
                fake_host.components[component_id]["version"] += 1
            return original_handle(request)

        fake_host.handle = racing_handle
        store = self.make_store(service, fake_host, component_id)

        async with store.client:
            with pytest.raises(ConflictError):
                await store.write(component_id, {"a": "1"})

        assert len(fake_host.calls("PUT")) == 1
