"""
Failover Dispatcher - tries AI providers in order until one answers.

Dispatch Logic:
==============

    preferred_providers = ["A", "B"]

    A  attempt 1 ──Timeout──► backoff ──► attempt 2 ──Timeout──┐
                                                                │
    B  attempt 1 ──success──► DispatchResult(provider_used="B") ◄┘

- Candidates are the preferred names that are registered, CONNECTED AI
  providers. If none qualify, the registry's capability ordering is used.
- Each candidate gets up to retry_attempts calls, each bounded by timeout_ms.
- AuthError skips straight to the next candidate.
- Every call lands in the attempt log. Nothing is ever made up: if every
  candidate fails the result is success=False and the caller decides what
  to show.

Attempts are strictly sequential, never parallel.
"""

import asyncio
import logging
import time
import uuid
from typing import Awaitable, Callable, List, Optional, Tuple

from device_insights.ai.providers.base import ErrorKind, sanitize_error
from device_insights.orchestration.errors import ProviderCallError
from device_insights.orchestration.models import (
    AttemptRecord,
    ConnectorResult,
    DispatchRequest,
    DispatchResult,
    ProviderDescriptor,
    ProviderKind,
)
from device_insights.orchestration.registry import ProviderRegistry

logger = logging.getLogger("device_insights.orchestration.dispatcher")


class FailoverDispatcher:
    """
    Sequential failover across registered AI providers.

    Usage:
        dispatcher = FailoverDispatcher(registry, monitor=ai_monitor)
        result = await dispatcher.dispatch(DispatchRequest(payload, ["openai", "anthropic"]))
        if result.success:
            print(result.provider_used, result.content)
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        *,
        monitor=None,
        backoff_base_ms: float = 250,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._registry = registry
        self._monitor = monitor
        self._backoff_base_ms = backoff_base_ms
        self._sleep = sleep
        self._clock = clock

    def resolve_candidates(self, request: DispatchRequest) -> List[ProviderDescriptor]:
        """Candidate order for a request, before any call is made."""
        candidates: List[ProviderDescriptor] = []
        seen = set()
        for name in request.preferred_providers:
            if name in seen:
                continue
            seen.add(name)
            descriptor = self._registry.find(name)
            if (
                descriptor is not None
                and descriptor.is_connected
                and descriptor.kind is ProviderKind.AI_PROVIDER
            ):
                candidates.append(descriptor)

        if not candidates:
            if request.preferred_providers:
                logger.info(
                    f"No preferred provider available from {list(request.preferred_providers)}, "
                    f"using default order"
                )
            candidates = self._registry.list_by_capability(
                request.capability, ProviderKind.AI_PROVIDER
            )
        return candidates

    def backoff_ms(self, attempt: int) -> float:
        """Delay before retry number `attempt` (1 for the first retry)."""
        return self._backoff_base_ms * (2 ** (attempt - 1))

    async def dispatch(
        self,
        request: DispatchRequest,
        request_id: Optional[str] = None,
    ) -> DispatchResult:
        """
        Run the failover loop for one request.

        Never raises for provider failures. asyncio.CancelledError from the
        caller propagates.
        """
        request_id = request_id or request.payload.request_id or str(uuid.uuid4())[:8]
        candidates = self.resolve_candidates(request)
        attempts: List[AttemptRecord] = []

        if not candidates:
            logger.warning(f"[{request_id}] No connected provider offers '{request.capability}'")
            return self._finish(request_id, DispatchResult(success=False))

        for descriptor in candidates:
            for attempt in range(1, request.retry_attempts + 1):
                if attempt > 1:
                    await self._sleep(self.backoff_ms(attempt - 1) / 1000)

                record, text = await self._attempt(descriptor, attempt, request)
                attempts.append(record)
                self._track_attempt(request_id, record)

                if record.succeeded:
                    self._registry.mark_used(descriptor.name)
                    return self._finish(request_id, DispatchResult(
                        success=True,
                        provider_used=descriptor.name,
                        content=text,
                        attempts=tuple(attempts),
                    ))

                self._registry.record_error(
                    descriptor.name, f"{record.error_kind.value}: {record.message}"
                )
                if not record.error_kind.retryable:
                    break

        logger.warning(f"[{request_id}] All {len(candidates)} candidate(s) failed")
        return self._finish(request_id, DispatchResult(success=False, attempts=tuple(attempts)))

    async def _attempt(
        self,
        descriptor: ProviderDescriptor,
        attempt: int,
        request: DispatchRequest,
    ) -> Tuple[AttemptRecord, Optional[str]]:
        started = self._clock()
        text: Optional[str] = None
        kind: Optional[ErrorKind] = None
        message = ""

        try:
            result = await asyncio.wait_for(
                descriptor.handler(request.payload),
                timeout=request.timeout_ms / 1000,
            )
        except asyncio.TimeoutError:
            kind = ErrorKind.TIMEOUT
            message = f"No response within {request.timeout_ms}ms"
        except ProviderCallError as e:
            kind = e.kind
            message = e.message
        except Exception as e:
            kind = ErrorKind.TRANSPORT_ERROR
            message = f"{type(e).__name__}: {e}"
        else:
            kind, message, text = self._interpret(result)

        latency_ms = (self._clock() - started) * 1000
        record = AttemptRecord(
            provider_name=descriptor.name,
            attempt=attempt,
            latency_ms=latency_ms,
            error_kind=kind,
            message=sanitize_error(message) if message else "",
        )
        return record, text

    @staticmethod
    def _interpret(result) -> Tuple[Optional[ErrorKind], str, Optional[str]]:
        """Turn a handler's return value into (error_kind, message, text)."""
        if not isinstance(result, ConnectorResult):
            return ErrorKind.INVALID_RESPONSE, f"Unexpected handler result: {type(result).__name__}", None
        if not result.is_ok:
            return result.error_kind, result.message, None

        text = result.reply.text if result.reply else None
        if not isinstance(text, str) or not text.strip():
            return ErrorKind.INVALID_RESPONSE, "Empty response text", None
        return None, "", text

    def _track_attempt(self, request_id: str, record: AttemptRecord) -> None:
        if record.succeeded:
            logger.info(
                f"[{request_id}] {record.provider_name} attempt {record.attempt} "
                f"succeeded in {record.latency_ms:.0f}ms"
            )
        else:
            logger.warning(
                f"[{request_id}] {record.provider_name} attempt {record.attempt} "
                f"failed with {record.outcome}: {record.message}"
            )
        if self._monitor:
            self._monitor.track_attempt(
                request_id=request_id,
                provider=record.provider_name,
                attempt=record.attempt,
                outcome=record.outcome,
                latency_ms=record.latency_ms,
                message=record.message,
            )

    def _finish(self, request_id: str, result: DispatchResult) -> DispatchResult:
        if self._monitor:
            self._monitor.track_dispatch(
                request_id=request_id,
                success=result.success,
                provider_used=result.provider_used,
                providers_tried=result.providers_tried,
                attempts=len(result.attempts),
            )
        return result
