"""
Provider Registry - named backend connections and their lifecycle.

Holds every AI provider and data source the orchestrator knows about,
keyed by name, in registration order. The registry never talks to a
network itself: connect() runs the connector function the descriptor was
registered with and records the outcome.

Lifecycle:
    register()   -> DISCONNECTED
    connect()    -> CONNECTING -> CONNECTED | FAILED
    disconnect() -> DISCONNECTED
    deregister() -> gone
"""

import logging
from typing import Dict, List, Optional

from device_insights.ai.providers.base import sanitize_error
from device_insights.orchestration.errors import (
    DuplicateProviderError,
    InvalidDescriptorError,
    ProviderNotFoundError,
)
from device_insights.orchestration.models import (
    ConnectionState,
    ProviderDescriptor,
    ProviderKind,
    utc_now,
)

logger = logging.getLogger("device_insights.orchestration.registry")


class ProviderRegistry:
    """
    Central registry for provider and data-source connections.

    Responsibilities:
    - Registration with upsert (or strict) semantics
    - Connection state transitions
    - Lookup by name or capability
    - Health metadata (last_used, last_error)
    """

    def __init__(self):
        self._providers: Dict[str, ProviderDescriptor] = {}

    def __contains__(self, name: str) -> bool:
        return name in self._providers

    def __len__(self) -> int:
        return len(self._providers)

    def names(self) -> List[str]:
        return list(self._providers)

    def register(self, descriptor: ProviderDescriptor, *, overwrite: bool = True) -> None:
        """
        Add or replace a descriptor by name.

        Replacing keeps the original registration position, so re-registering
        the same descriptor leaves the registry exactly as it was.

        Raises:
            InvalidDescriptorError: If the descriptor is malformed
            DuplicateProviderError: If the name exists and overwrite is False
        """
        self._validate(descriptor)

        if descriptor.name in self._providers and not overwrite:
            raise DuplicateProviderError(descriptor.name)

        replaced = descriptor.name in self._providers
        self._providers[descriptor.name] = descriptor
        logger.info(
            f"{'Replaced' if replaced else 'Registered'} {descriptor.kind.value} "
            f"'{descriptor.name}' capabilities={sorted(descriptor.capabilities)}"
        )

    def deregister(self, name: str) -> ProviderDescriptor:
        descriptor = self.get(name)
        del self._providers[name]
        logger.info(f"Deregistered '{name}'")
        return descriptor

    def get(self, name: str) -> ProviderDescriptor:
        """
        Raises:
            ProviderNotFoundError: If no provider has that name
        """
        try:
            return self._providers[name]
        except KeyError:
            raise ProviderNotFoundError(name) from None

    def find(self, name: str) -> Optional[ProviderDescriptor]:
        return self._providers.get(name)

    async def connect(self, name: str) -> ConnectionState:
        """
        Connect a provider by running its connector.

        Idempotent for an already CONNECTED provider. A connector that fails,
        or raises, leaves the provider FAILED with last_error set.
        """
        descriptor = self.get(name)
        if descriptor.is_connected:
            return descriptor.connection_state

        descriptor.connection_state = ConnectionState.CONNECTING

        if descriptor.connector is None:
            descriptor.connection_state = ConnectionState.CONNECTED
        else:
            try:
                result = await descriptor.connector(descriptor)
            except Exception as e:
                self.record_error(name, f"Connector raised: {e}")
                descriptor.connection_state = ConnectionState.FAILED
            else:
                if result.is_ok:
                    descriptor.connection_state = ConnectionState.CONNECTED
                else:
                    self.record_error(name, f"{result.error_kind.value}: {result.message}")
                    descriptor.connection_state = ConnectionState.FAILED

        if descriptor.is_connected:
            logger.info(f"Connected {descriptor.kind.value} '{name}'")
        else:
            logger.warning(f"Failed to connect '{name}': {descriptor.last_error}")
        return descriptor.connection_state

    async def disconnect(self, name: str) -> None:
        descriptor = self.get(name)
        descriptor.connection_state = ConnectionState.DISCONNECTED
        logger.info(f"Disconnected '{name}'")

    async def disconnect_all(self) -> None:
        for name in list(self._providers):
            await self.disconnect(name)

    def list_by_capability(
        self,
        capability: str,
        kind: Optional[ProviderKind] = None,
    ) -> List[ProviderDescriptor]:
        """All CONNECTED descriptors exposing a capability, in registration order."""
        return [
            descriptor for descriptor in self._providers.values()
            if descriptor.is_connected
            and capability in descriptor.capabilities
            and (kind is None or descriptor.kind is kind)
        ]

    def list_by_kind(self, kind: ProviderKind) -> List[ProviderDescriptor]:
        return [d for d in self._providers.values() if d.kind is kind]

    def mark_used(self, name: str) -> None:
        descriptor = self.find(name)
        if descriptor:
            descriptor.last_used = utc_now()

    def record_error(self, name: str, message: str) -> None:
        descriptor = self.find(name)
        if descriptor:
            descriptor.last_error = sanitize_error(message)
            descriptor.last_error_at = utc_now()

    def describe(self) -> List[dict]:
        """Status rows for every provider, auth omitted."""
        return [descriptor.to_dict() for descriptor in self._providers.values()]

    def _validate(self, descriptor: ProviderDescriptor) -> None:
        if not isinstance(descriptor, ProviderDescriptor):
            raise InvalidDescriptorError("Expected a ProviderDescriptor")
        if not isinstance(descriptor.name, str) or not descriptor.name.strip():
            raise InvalidDescriptorError("Descriptor name must be a non-empty string")
        if not isinstance(descriptor.kind, ProviderKind):
            raise InvalidDescriptorError(
                f"Descriptor '{descriptor.name}' has unknown kind: {descriptor.kind!r}",
                {"provider": descriptor.name},
            )
        if descriptor.kind is ProviderKind.AI_PROVIDER and descriptor.handler is None:
            raise InvalidDescriptorError(
                f"AI provider '{descriptor.name}' needs a handler",
                {"provider": descriptor.name},
            )
