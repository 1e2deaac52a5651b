"""
Tests for ProviderRegistry - registration, connection lifecycle and lookup.

Connectors are in-memory coroutines; the registry never touches a network.
"""

import pytest
from unittest.mock import AsyncMock

from conftest import FakeProvider, make_ai_descriptor

from device_insights.ai.providers.base import ErrorKind
from device_insights.orchestration.errors import (
    DuplicateProviderError,
    InvalidDescriptorError,
    ProviderNotFoundError,
)
from device_insights.orchestration.models import (
    ConnectionState,
    ConnectorResult,
    ProviderDescriptor,
    ProviderKind,
)
from device_insights.orchestration.registry import ProviderRegistry


class TestRegistration:
    """Tests for register/deregister/get."""

    def test_register_and_get(self):
        """Test a registered descriptor can be fetched by name."""
        registry = ProviderRegistry()
        descriptor = make_ai_descriptor("openai", FakeProvider())

        registry.register(descriptor)

        assert registry.get("openai") is descriptor
        assert "openai" in registry
        assert descriptor.connection_state == ConnectionState.DISCONNECTED

    def test_get_unknown_raises(self):
        """Test unknown names raise ProviderNotFoundError."""
        registry = ProviderRegistry()

        with pytest.raises(ProviderNotFoundError) as exc_info:
            registry.get("missing")

        assert exc_info.value.name == "missing"
        assert registry.find("missing") is None

    def test_register_twice_is_idempotent(self):
        """Test registering the same descriptor twice equals registering it once."""
        registry = ProviderRegistry()
        descriptor = make_ai_descriptor("openai", FakeProvider())

        registry.register(descriptor)
        before = registry.describe()
        registry.register(descriptor)

        assert len(registry) == 1
        assert registry.names() == ["openai"]
        assert registry.describe() == before

    def test_upsert_keeps_registration_position(self):
        """Test replacing a name keeps its original place in the order."""
        registry = ProviderRegistry()
        registry.register(make_ai_descriptor("a", FakeProvider()))
        registry.register(make_ai_descriptor("b", FakeProvider()))

        replacement = make_ai_descriptor("a", FakeProvider("new"))
        registry.register(replacement)

        assert registry.names() == ["a", "b"]
        assert registry.get("a") is replacement

    def test_strict_mode_rejects_duplicates(self):
        """Test overwrite=False raises DuplicateProviderError."""
        registry = ProviderRegistry()
        registry.register(make_ai_descriptor("a", FakeProvider()))

        with pytest.raises(DuplicateProviderError):
            registry.register(make_ai_descriptor("a", FakeProvider()), overwrite=False)

    def test_strict_mode_accepts_new_names(self):
        """Test overwrite=False still registers unseen names."""
        registry = ProviderRegistry()
        registry.register(make_ai_descriptor("a", FakeProvider()), overwrite=False)

        assert registry.names() == ["a"]

    @pytest.mark.parametrize("name", ["", "   "])
    def test_blank_name_rejected(self, name):
        """Test descriptors need a non-blank name."""
        registry = ProviderRegistry()

        with pytest.raises(InvalidDescriptorError):
            registry.register(make_ai_descriptor(name, FakeProvider()))

    def test_ai_provider_without_handler_rejected(self):
        """Test an AI provider with nothing to call is malformed."""
        registry = ProviderRegistry()
        descriptor = ProviderDescriptor(name="broken", kind=ProviderKind.AI_PROVIDER)

        with pytest.raises(InvalidDescriptorError):
            registry.register(descriptor)

    def test_unknown_kind_rejected(self):
        """Test kind must be a ProviderKind."""
        registry = ProviderRegistry()
        descriptor = ProviderDescriptor(name="odd", kind="plugin", handler=FakeProvider())

        with pytest.raises(InvalidDescriptorError):
            registry.register(descriptor)

    def test_deregister(self):
        """Test deregister removes the descriptor."""
        registry = ProviderRegistry()
        registry.register(make_ai_descriptor("a", FakeProvider()))

        removed = registry.deregister("a")

        assert removed.name == "a"
        assert "a" not in registry
        with pytest.raises(ProviderNotFoundError):
            registry.deregister("a")


class TestConnection:
    """Tests for connect/disconnect state transitions."""

    @pytest.mark.asyncio
    async def test_connect_without_connector(self):
        """Test a descriptor with no connector connects immediately."""
        registry = ProviderRegistry()
        registry.register(make_ai_descriptor("a", FakeProvider()))

        state = await registry.connect("a")

        assert state == ConnectionState.CONNECTED
        assert registry.get("a").is_connected

    @pytest.mark.asyncio
    async def test_connect_is_idempotent(self):
        """Test connecting a CONNECTED provider does not rerun the connector."""
        connector = AsyncMock(return_value=ConnectorResult.ok())
        registry = ProviderRegistry()
        registry.register(make_ai_descriptor("a", FakeProvider(), connector=connector))

        await registry.connect("a")
        await registry.connect("a")

        assert connector.await_count == 1

    @pytest.mark.asyncio
    async def test_failed_connector_marks_failed(self):
        """Test a fail result leaves the provider FAILED with last_error."""
        connector = AsyncMock(return_value=ConnectorResult.fail(ErrorKind.AUTH_ERROR, "no key"))
        registry = ProviderRegistry()
        registry.register(make_ai_descriptor("a", FakeProvider(), connector=connector))

        state = await registry.connect("a")

        descriptor = registry.get("a")
        assert state == ConnectionState.FAILED
        assert "AuthError" in descriptor.last_error
        assert descriptor.last_error_at is not None

    @pytest.mark.asyncio
    async def test_raising_connector_is_recorded(self):
        """Test a connector exception is recorded, not propagated."""
        connector = AsyncMock(side_effect=RuntimeError("boom"))
        registry = ProviderRegistry()
        registry.register(make_ai_descriptor("a", FakeProvider(), connector=connector))

        state = await registry.connect("a")

        assert state == ConnectionState.FAILED
        assert "boom" in registry.get("a").last_error

    @pytest.mark.asyncio
    async def test_failed_provider_can_reconnect(self):
        """Test a FAILED provider is retried on the next connect."""
        connector = AsyncMock(side_effect=[
            ConnectorResult.fail(ErrorKind.TRANSPORT_ERROR, "down"),
            ConnectorResult.ok(),
        ])
        registry = ProviderRegistry()
        registry.register(make_ai_descriptor("a", FakeProvider(), connector=connector))

        assert await registry.connect("a") == ConnectionState.FAILED
        assert await registry.connect("a") == ConnectionState.CONNECTED

    @pytest.mark.asyncio
    async def test_connect_unknown_raises(self):
        """Test connecting an unregistered name raises."""
        registry = ProviderRegistry()

        with pytest.raises(ProviderNotFoundError):
            await registry.connect("ghost")

    @pytest.mark.asyncio
    async def test_disconnect_all(self):
        """Test disconnect_all sets every provider DISCONNECTED."""
        registry = ProviderRegistry()
        for name in ("a", "b"):
            registry.register(make_ai_descriptor(name, FakeProvider()))
            await registry.connect(name)

        await registry.disconnect_all()

        assert all(
            registry.get(name).connection_state == ConnectionState.DISCONNECTED
            for name in ("a", "b")
        )


class TestLookup:
    """Tests for capability lookup and status output."""

    @pytest.mark.asyncio
    async def test_list_by_capability_only_connected_in_order(self):
        """Test only CONNECTED providers with the capability are listed, in registration order."""
        registry = ProviderRegistry()
        registry.register(make_ai_descriptor("x", FakeProvider()))
        registry.register(make_ai_descriptor("offline", FakeProvider()))
        registry.register(make_ai_descriptor("y", FakeProvider()))
        registry.register(make_ai_descriptor("vision", FakeProvider(), capabilities=("vision",)))
        for name in ("y", "x", "vision"):
            await registry.connect(name)

        names = [d.name for d in registry.list_by_capability("text-generation")]

        assert names == ["x", "y"]

    @pytest.mark.asyncio
    async def test_list_by_capability_filters_kind(self):
        """Test the kind filter excludes data sources."""
        registry = ProviderRegistry()
        registry.register(make_ai_descriptor("ai", FakeProvider(), capabilities=("battery-monitor",)))
        registry.register(ProviderDescriptor(
            name="battery",
            kind=ProviderKind.DATA_SOURCE,
            capabilities={"battery-monitor"},
        ))
        await registry.connect("ai")
        await registry.connect("battery")

        found = registry.list_by_capability("battery-monitor", ProviderKind.DATA_SOURCE)

        assert [d.name for d in found] == ["battery"]

    def test_describe_omits_auth(self):
        """Test status rows and repr never contain the credential."""
        registry = ProviderRegistry()
        descriptor = make_ai_descriptor("openai", FakeProvider())
        registry.register(descriptor)

        rows = registry.describe()

        assert "auth" not in rows[0]
        assert "secret-openai" not in str(rows)
        assert "secret-openai" not in repr(descriptor)

    def test_record_error_sanitizes(self):
        """Test recorded errors have API keys redacted."""
        registry = ProviderRegistry()
        registry.register(make_ai_descriptor("openai", FakeProvider()))

        registry.record_error("openai", "401 invalid key sk-abcdefghijklmnopqrstuvwxyz")

        assert "sk-abcdefghij" not in registry.get("openai").last_error

    def test_mark_used(self):
        """Test mark_used stamps last_used."""
        registry = ProviderRegistry()
        registry.register(make_ai_descriptor("openai", FakeProvider()))

        registry.mark_used("openai")

        assert registry.get("openai").last_used is not None
