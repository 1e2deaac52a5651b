"""
Orchestration data model.

Everything the registry, cache, dispatcher and facade pass between each
other lives here so the modules only depend on plain data, never on each
other's internals.

ProviderDescriptor is the one mutable record: its connection state and
last_used / last_error fields change as the registry connects it and the
dispatcher uses it. Snapshots, payloads, requests and results are frozen.
"""

import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Dict, FrozenSet, List, Mapping, Optional, Tuple

from device_insights.ai.providers.base import ErrorKind

DEFAULT_SOURCE = "default"
TEXT_GENERATION = "text-generation"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ProviderKind(str, Enum):
    """What a registered connection is for."""
    AI_PROVIDER = "ai-provider"
    DATA_SOURCE = "data-source"


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    FAILED = "failed"


class RequestKind(str, Enum):
    """Which facade operation produced a dispatch."""
    INSIGHTS = "insights"
    BATTERY = "battery"
    PERFORMANCE = "performance"
    QUERY = "query"


# ---------------------------------------------------------------------------
# PROVIDER CALL RESULTS
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ProviderReply:
    """What a backend produced: the text plus whatever it returned raw."""
    text: str
    raw: Any = None


@dataclass(frozen=True)
class ConnectorResult:
    """
    Explicit success-or-failure value returned by connectors and handlers.

    Usage:
        return ConnectorResult.ok("Battery is healthy.")
        return ConnectorResult.fail(ErrorKind.RATE_LIMITED, "429 from upstream")
    """
    reply: Optional[ProviderReply] = None
    error_kind: Optional[ErrorKind] = None
    message: str = ""

    @classmethod
    def ok(cls, text: str = "", raw: Any = None) -> "ConnectorResult":
        return cls(reply=ProviderReply(text=text, raw=raw))

    @classmethod
    def fail(cls, kind: ErrorKind, message: str = "") -> "ConnectorResult":
        return cls(error_kind=kind, message=message or kind.value)

    @property
    def is_ok(self) -> bool:
        return self.error_kind is None


Connector = Callable[["ProviderDescriptor"], Awaitable[ConnectorResult]]
Handler = Callable[..., Awaitable[Any]]


# ---------------------------------------------------------------------------
# PROVIDER DESCRIPTOR
# ---------------------------------------------------------------------------

@dataclass
class ProviderDescriptor:
    """
    A registered backend connection.

    Attributes:
        name: Unique identifier
        kind: AI provider or data source
        endpoint: Opaque connection target (URL, local:// handle)
        auth: Credential reference; excluded from repr and status output
        capabilities: Declared capability strings ("text-generation", "battery-monitor")
        connector: Optional async check run by registry.connect()
        handler: The call function. AI providers take a DispatchPayload and
            return a ConnectorResult; data sources take nothing and return a
            snapshot-shaped mapping.
        connection_state: Current lifecycle state
        last_used: When the dispatcher last got a successful answer
        last_error: Most recent failure message
        last_error_at: When that failure happened
    """
    name: str
    kind: ProviderKind
    endpoint: str = ""
    auth: Any = field(default=None, repr=False)
    capabilities: FrozenSet[str] = frozenset()
    connector: Optional[Connector] = field(default=None, repr=False, compare=False)
    handler: Optional[Handler] = field(default=None, repr=False, compare=False)
    connection_state: ConnectionState = ConnectionState.DISCONNECTED
    last_used: Optional[datetime] = None
    last_error: Optional[str] = None
    last_error_at: Optional[datetime] = None

    def __post_init__(self):
        self.capabilities = frozenset(self.capabilities)

    @property
    def is_connected(self) -> bool:
        return self.connection_state is ConnectionState.CONNECTED

    def to_dict(self) -> Dict[str, Any]:
        """Status view. Never includes auth."""
        return {
            "name": self.name,
            "kind": self.kind.value,
            "endpoint": self.endpoint,
            "capabilities": sorted(self.capabilities),
            "connection_state": self.connection_state.value,
            "last_used": self.last_used.isoformat() if self.last_used else None,
            "last_error": self.last_error,
            "last_error_at": self.last_error_at.isoformat() if self.last_error_at else None,
        }


# ---------------------------------------------------------------------------
# SNAPSHOTS
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Snapshot:
    """
    Immutable, timestamped collection of device metrics.

    fields maps metric groups (memory, storage, battery, cpu, network,
    processes) to their values. Staleness is judged from collected_at;
    a snapshot served after a failed refresh is a copy with stale=True.
    """
    fields: Mapping[str, Any]
    collected_at: datetime
    source_name: str = DEFAULT_SOURCE
    stale: bool = False

    def __post_init__(self):
        if not isinstance(self.fields, MappingProxyType):
            object.__setattr__(self, "fields", MappingProxyType(copy.deepcopy(dict(self.fields))))

    @classmethod
    def from_mapping(
        cls,
        data: Mapping[str, Any],
        source_name: str,
        collected_at: Optional[datetime] = None,
    ) -> "Snapshot":
        return cls(fields=data, collected_at=collected_at or utc_now(), source_name=source_name)

    def age_ms(self, now: datetime) -> float:
        return (now - self.collected_at).total_seconds() * 1000

    def is_fresh(self, now: datetime, freshness_ms: float) -> bool:
        return self.age_ms(now) < freshness_ms

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fields": copy.deepcopy(dict(self.fields)),
            "collected_at": self.collected_at.isoformat(),
            "source_name": self.source_name,
            "stale": self.stale,
        }


@dataclass(frozen=True)
class CacheEntry:
    snapshot: Snapshot
    expires_at: datetime


# ---------------------------------------------------------------------------
# DISPATCH
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DispatchPayload:
    """
    What gets sent to an AI provider.

    prompt is the fully composed backend prompt; user_prompt is the caller's
    own question (free-text queries only); fields are the snapshot values
    the prompt was built from. request_id ties provider logs to the dispatch.
    """
    kind: RequestKind
    prompt: str
    system_prompt: Optional[str] = None
    user_prompt: Optional[str] = None
    fields: Mapping[str, Any] = field(default_factory=dict)
    max_tokens: int = 500
    request_id: Optional[str] = None


@dataclass(frozen=True)
class DispatchRequest:
    payload: DispatchPayload
    preferred_providers: Tuple[str, ...] = ()
    capability: str = TEXT_GENERATION
    timeout_ms: int = 30000
    retry_attempts: int = 1

    def __post_init__(self):
        object.__setattr__(self, "preferred_providers", tuple(self.preferred_providers))
        if self.timeout_ms <= 0:
            raise ValueError("timeout_ms must be positive")
        if self.retry_attempts < 1:
            raise ValueError("retry_attempts must be at least 1")


@dataclass(frozen=True)
class AttemptRecord:
    """One provider call made during a dispatch."""
    provider_name: str
    attempt: int
    latency_ms: float
    error_kind: Optional[ErrorKind] = None
    message: str = ""

    @property
    def succeeded(self) -> bool:
        return self.error_kind is None

    @property
    def outcome(self) -> str:
        return "success" if self.error_kind is None else self.error_kind.value

    def to_dict(self) -> Dict[str, Any]:
        return {
            "provider_name": self.provider_name,
            "attempt": self.attempt,
            "outcome": self.outcome,
            "latency_ms": round(self.latency_ms, 2),
            "message": self.message,
        }


@dataclass(frozen=True)
class DispatchResult:
    success: bool
    provider_used: Optional[str] = None
    content: Optional[str] = None
    attempts: Tuple[AttemptRecord, ...] = ()

    @property
    def providers_tried(self) -> List[str]:
        seen: List[str] = []
        for record in self.attempts:
            if record.provider_name not in seen:
                seen.append(record.provider_name)
        return seen

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "provider_used": self.provider_used,
            "content": self.content,
            "attempts": [record.to_dict() for record in self.attempts],
        }
