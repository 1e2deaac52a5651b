"""
Orchestration errors.

Registry and configuration problems are raised straight to the caller.
Provider failures during dispatch are NOT raised from the facade; they end
up in the attempt log as an ErrorKind. ProviderCallError exists so a
handler can raise with a precise kind instead of returning a failed
ConnectorResult.
"""

from typing import Any, Dict, Optional

from device_insights.ai.providers.base import ErrorKind


class OrchestrationError(Exception):
    """Base exception for all orchestration errors."""

    code = "OrchestrationError"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.code,
            "message": self.message,
            "details": self.details,
        }


class ProviderNotFoundError(OrchestrationError):
    """Raised when a provider name is not in the registry."""

    code = "ProviderNotFoundError"

    def __init__(self, name: str):
        super().__init__(f"Provider '{name}' is not registered", {"provider": name})
        self.name = name


class DuplicateProviderError(OrchestrationError):
    """Raised when registering an existing name with overwrite disabled."""

    code = "DuplicateProviderError"

    def __init__(self, name: str):
        super().__init__(f"Provider '{name}' is already registered", {"provider": name})
        self.name = name


class InvalidDescriptorError(OrchestrationError):
    """Raised when a provider descriptor is malformed."""

    code = "InvalidDescriptorError"


class EmptyPromptError(OrchestrationError):
    """Raised when a free-text query is empty or blank."""

    code = "EmptyPromptError"

    def __init__(self, message: str = "Please provide a valid prompt question"):
        super().__init__(message)


class CollectionError(OrchestrationError):
    """Raised when a snapshot cannot be collected and nothing is cached."""

    code = "CollectionError"

    def __init__(self, source_name: str, cause: Optional[BaseException] = None):
        reason = f": {cause}" if cause else ""
        super().__init__(
            f"Failed to collect snapshot from '{source_name}'{reason}",
            {"source": source_name},
        )
        self.source_name = source_name
        self.cause = cause


class ProviderCallError(OrchestrationError):
    """Raised by a provider handler to report a classified failure."""

    code = "ProviderCallError"

    def __init__(self, kind: ErrorKind, message: str = ""):
        super().__init__(message or kind.value, {"kind": kind.value})
        self.kind = kind
