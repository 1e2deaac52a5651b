"""
Connectors - bridge concrete backends into the provider registry.

An AI provider class knows how to talk to its SDK; the registry only knows
descriptors with a connector (connect check) and a handler (call function)
that return ConnectorResult values. This module builds those functions.

Usage:
    registry = ProviderRegistry()
    for descriptor in descriptors_from_settings(settings, monitor=ai_monitor):
        registry.register(descriptor)
"""

import asyncio
import logging
import uuid
from typing import Any, Callable, Iterable, List, Optional

from device_insights.ai.providers import (
    AIProvider,
    AnthropicProvider,
    AzureOpenAIProvider,
    ErrorKind,
    GeminiProvider,
    OpenAIProvider,
)
from device_insights.ai.providers.base import mask_endpoint
from device_insights.collectors.system_state import (
    collect_battery,
    collect_network,
    gather_snapshot,
)
from device_insights.orchestration.models import (
    TEXT_GENERATION,
    Connector,
    ConnectorResult,
    DispatchPayload,
    Handler,
    ProviderDescriptor,
    ProviderKind,
)

logger = logging.getLogger("device_insights.orchestration.connectors")

SYSTEM_MONITOR = "system-monitor"
BATTERY_MONITOR = "battery-monitor"
NETWORK_MONITOR = "network-monitor"


# ---------------------------------------------------------------------------
# AI PROVIDERS
# ---------------------------------------------------------------------------

def ai_provider_handler(provider: AIProvider, monitor=None) -> Handler:
    """Call function for the dispatcher: DispatchPayload -> ConnectorResult."""

    async def handle(payload: DispatchPayload) -> ConnectorResult:
        response = await provider.generate(
            payload.prompt,
            system_prompt=payload.system_prompt,
            max_tokens=payload.max_tokens,
        )

        if monitor:
            monitor.track_response(
                request_id=payload.request_id or str(uuid.uuid4())[:8],
                provider=provider.provider_type.value,
                model=response.model,
                content=response.content,
                prompt_tokens=response.usage.prompt_tokens,
                completion_tokens=response.usage.completion_tokens,
                latency_ms=response.latency_ms,
                success=response.success,
                error=response.error,
                metadata={"kind": payload.kind.value},
            )

        if not response.success:
            return ConnectorResult.fail(
                response.error_kind or ErrorKind.TRANSPORT_ERROR,
                response.error or "",
            )
        return ConnectorResult.ok(response.content, raw=response)

    return handle


def ai_provider_connector(provider: AIProvider) -> Connector:
    """Connect check: a provider is connectable once it has credentials."""

    async def connect(descriptor: ProviderDescriptor) -> ConnectorResult:
        if provider.is_configured():
            return ConnectorResult.ok()
        return ConnectorResult.fail(
            ErrorKind.AUTH_ERROR,
            f"{descriptor.name} credentials are not configured",
        )

    return connect


def ai_provider_descriptor(
    name: str,
    provider: AIProvider,
    endpoint: str = "",
    monitor=None,
    capabilities: Iterable[str] = (TEXT_GENERATION,),
) -> ProviderDescriptor:
    return ProviderDescriptor(
        name=name,
        kind=ProviderKind.AI_PROVIDER,
        endpoint=endpoint,
        auth=getattr(provider, "api_key", None),
        capabilities=frozenset(capabilities),
        connector=ai_provider_connector(provider),
        handler=ai_provider_handler(provider, monitor),
    )


# ---------------------------------------------------------------------------
# DATA SOURCES
# ---------------------------------------------------------------------------

def data_source_descriptor(
    name: str,
    collector: Callable[[], Any],
    capabilities: Iterable[str],
    endpoint: Optional[str] = None,
) -> ProviderDescriptor:
    """
    Wrap a blocking collector as a data source.

    The collector runs in a worker thread so psutil's sampling intervals do
    not stall the event loop.
    """

    async def handle() -> Any:
        return await asyncio.to_thread(collector)

    return ProviderDescriptor(
        name=name,
        kind=ProviderKind.DATA_SOURCE,
        endpoint=endpoint or f"local://{name}",
        capabilities=frozenset(capabilities),
        handler=handle,
    )


def default_data_sources(top_n: int = 5) -> List[ProviderDescriptor]:
    return [
        data_source_descriptor(
            SYSTEM_MONITOR,
            lambda: gather_snapshot(top_n),
            ("device-info", "memory", "storage", "cpu", "processes"),
        ),
        data_source_descriptor(BATTERY_MONITOR, collect_battery, (BATTERY_MONITOR,)),
        data_source_descriptor(NETWORK_MONITOR, collect_network, (NETWORK_MONITOR,)),
    ]


# ---------------------------------------------------------------------------
# DEFAULTS FROM SETTINGS
# ---------------------------------------------------------------------------

def descriptors_from_settings(settings, monitor=None) -> List[ProviderDescriptor]:
    """
    Descriptors for every provider that has credentials, then the local
    data sources.

    Order: azure-openai, openai, anthropic, gemini. That order is the
    registry's default failover order when callers state no preference.
    """
    descriptors: List[ProviderDescriptor] = []

    if settings.AZURE_OPENAI_API_KEY and settings.AZURE_OPENAI_ENDPOINT:
        provider = AzureOpenAIProvider(
            endpoint=settings.AZURE_OPENAI_ENDPOINT,
            api_key=settings.AZURE_OPENAI_API_KEY,
            deployment=settings.AZURE_OPENAI_DEPLOYMENT,
            api_version=settings.AZURE_OPENAI_API_VERSION,
        )
        descriptors.append(ai_provider_descriptor(
            "azure-openai", provider, mask_endpoint(provider.endpoint), monitor,
        ))

    if settings.OPENAI_API_KEY:
        provider = OpenAIProvider(model=settings.OPENAI_MODEL, api_key=settings.OPENAI_API_KEY)
        descriptors.append(ai_provider_descriptor(
            "openai", provider, "https://api.openai.com/v1", monitor,
        ))

    if settings.ANTHROPIC_API_KEY:
        provider = AnthropicProvider(model=settings.ANTHROPIC_MODEL, api_key=settings.ANTHROPIC_API_KEY)
        descriptors.append(ai_provider_descriptor(
            "anthropic", provider, "https://api.anthropic.com", monitor,
        ))

    if settings.GEMINI_API_KEY:
        provider = GeminiProvider(model=settings.GEMINI_MODEL, api_key=settings.GEMINI_API_KEY)
        descriptors.append(ai_provider_descriptor(
            "gemini", provider, "https://generativelanguage.googleapis.com", monitor,
        ))

    if not descriptors:
        logger.warning("No AI provider credentials configured - responses will use templates")

    descriptors.extend(default_data_sources(settings.PROCESS_TOP_N))
    return descriptors
