"""
Test configuration and fixtures for pytest.

This module provides shared fixtures used across all tests:
- Fake clocks (wall clock for the cache, monotonic for the dispatcher)
- In-memory fake AI providers with scripted outcomes
- A sample device snapshot
- A facade wired entirely to fakes (no network, no psutil)
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List

import pytest

from device_insights.ai.monitoring import AIMonitor
from device_insights.ai.providers.base import ErrorKind
from device_insights.core.config import Settings
from device_insights.orchestration.cache import SnapshotCache
from device_insights.orchestration.dispatcher import FailoverDispatcher
from device_insights.orchestration.facade import OrchestrationFacade
from device_insights.orchestration.models import (
    TEXT_GENERATION,
    ConnectorResult,
    DispatchPayload,
    ProviderDescriptor,
    ProviderKind,
    RequestKind,
)
from device_insights.orchestration.registry import ProviderRegistry


# ---------------------------------------------------------------------------
# CLOCKS
# ---------------------------------------------------------------------------

class FakeClock:
    """Wall clock that only moves when told to."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += timedelta(milliseconds=ms)


class FakeMonotonic:
    def __init__(self):
        self.value = 0.0

    def __call__(self) -> float:
        return self.value


class RecordingSleep:
    """Stand-in for asyncio.sleep that records every requested delay."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


# ---------------------------------------------------------------------------
# FAKE PROVIDERS
# ---------------------------------------------------------------------------

class FakeProvider:
    """
    Scripted AI provider handler.

    Each outcome is consumed per call; the last one repeats. An outcome is:
    - a str: success with that text
    - an ErrorKind: failed ConnectorResult of that kind
    - "hang": never returns (exercises the timeout)
    - an Exception instance: raised
    """

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes) or ["OK"]
        self.calls: List[DispatchPayload] = []

    async def __call__(self, payload: DispatchPayload) -> ConnectorResult:
        self.calls.append(payload)
        index = min(len(self.calls) - 1, len(self.outcomes) - 1)
        outcome = self.outcomes[index]

        if outcome == "hang":
            await asyncio.sleep(3600)
        if isinstance(outcome, ErrorKind):
            return ConnectorResult.fail(outcome, f"{outcome.value} from fake")
        if isinstance(outcome, BaseException):
            raise outcome
        return ConnectorResult.ok(outcome)

    @property
    def call_count(self) -> int:
        return len(self.calls)


def make_ai_descriptor(name: str, handler, capabilities=(TEXT_GENERATION,), connector=None) -> ProviderDescriptor:
    return ProviderDescriptor(
        name=name,
        kind=ProviderKind.AI_PROVIDER,
        endpoint=f"https://{name}.example.com",
        auth=f"secret-{name}",
        capabilities=frozenset(capabilities),
        connector=connector,
        handler=handler,
    )


async def connected_registry(**providers) -> ProviderRegistry:
    """Registry with every given provider registered and connected, in order."""
    registry = ProviderRegistry()
    for name, handler in providers.items():
        registry.register(make_ai_descriptor(name, handler))
        await registry.connect(name)
    return registry


# ---------------------------------------------------------------------------
# FIXTURES
# ---------------------------------------------------------------------------

@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def monitor() -> AIMonitor:
    """A private monitor so tests never share aggregates."""
    return AIMonitor()


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        OPENAI_API_KEY="",
        ANTHROPIC_API_KEY="",
        GEMINI_API_KEY="",
        AZURE_OPENAI_API_KEY="",
        AZURE_OPENAI_ENDPOINT="",
        DISPATCH_TIMEOUT_MS=1000,
        DISPATCH_RETRY_ATTEMPTS=1,
        DISPATCH_BACKOFF_BASE_MS=0,
        DEFAULT_PREFERRED_PROVIDERS=[],
    )


@pytest.fixture
def sample_fields() -> Dict[str, Any]:
    return {
        "platform": "Linux",
        "memory": {
            "total": 16 * 1024 ** 3,
            "used": 8 * 1024 ** 3,
            "available": 8 * 1024 ** 3,
            "used_percentage": 50.0,
        },
        "storage": {
            "mount_point": "/",
            "total": 512 * 1024 ** 3,
            "used": 256 * 1024 ** 3,
            "available": 256 * 1024 ** 3,
            "used_percentage": 50.0,
        },
        "battery": {"level": 42, "charging": False, "power_plugged": False, "seconds_left": 5400},
        "power": {"source": "battery", "plugged_in": False, "seconds_left": 5400},
        "cpu": {"cores": 8, "usage": 12.5, "load_average": [0.5, 0.4, 0.3]},
        "network": {"connected": True, "interfaces": ["wlan0"], "bytes_sent": 1000, "bytes_recv": 2000},
        "processes": [
            {"pid": 101, "name": "python", "cpu_percent": 9.0, "memory_percent": 2.5},
        ],
    }


@pytest.fixture
def snapshot_provider(sample_fields):
    """Counting snapshot collector returning the sample fields."""

    class Collector:
        def __init__(self):
            self.calls = 0
            self.error = None

        def __call__(self):
            self.calls += 1
            if self.error:
                raise self.error
            return sample_fields

    return Collector()


@pytest.fixture
def payload() -> DispatchPayload:
    return DispatchPayload(kind=RequestKind.QUERY, prompt="How much battery do I have?")


@pytest.fixture
def make_facade(clock, sleep, monitor, test_settings, snapshot_provider):
    """Build a facade over fake providers: make_facade(A=FakeProvider(...), ...)."""

    async def build(**providers) -> OrchestrationFacade:
        registry = ProviderRegistry()
        for name, handler in providers.items():
            registry.register(make_ai_descriptor(name, handler))
        facade = OrchestrationFacade(
            registry=registry,
            cache=SnapshotCache(clock=clock, monitor=monitor),
            dispatcher=FailoverDispatcher(registry, monitor=monitor, sleep=sleep),
            snapshot_provider=snapshot_provider,
            config=test_settings,
            monitor=monitor,
        )
        await facade.init()
        return facade

    return build
