"""
Exception hierarchy for the Node host bridge.

Provides:
- A base exception carrying an error code, category and details
- One class per failure kind of an invocation (startup, transport, remote, decoding)
- Retry eligibility derived from the category, so callers never branch on exception types
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCategory(Enum):
    """Error categories for classification."""
    RETRYABLE = "retryable"
    FATAL = "fatal"
    VALIDATION = "validation"
    TIMEOUT = "timeout"


class NodeBridgeError(Exception):
    """Base exception for all nodebridge errors."""

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        category: ErrorCategory = ErrorCategory.FATAL,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.details = details or {}

    @property
    def retryable(self) -> bool:
        """True when a relaunch of the worker may make the same call succeed."""
        return self.category is ErrorCategory.RETRYABLE

    def clone(self) -> NodeBridgeError:
        """Fresh instance of the same error, without traceback or cause."""
        clone = self.__class__.__new__(self.__class__)
        Exception.__init__(clone, *self.args)
        clone.__dict__.update(self.__dict__)
        clone.details = dict(self.details)
        return clone

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.code,
            "message": self.message,
            "category": self.category.value,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


class StartupTimeoutError(NodeBridgeError):
    """Worker did not report readiness in time."""

    def __init__(self, timeout_seconds: float, generation: int | None = None):
        super().__init__(
            f"Node host did not report a listening port within {timeout_seconds}s",
            code="STARTUP_TIMEOUT",
            category=ErrorCategory.TIMEOUT,
            details={"timeout_seconds": timeout_seconds, "generation": generation},
        )


class WorkerUnavailableError(NodeBridgeError):
    """Transport failures persisted after relaunching the worker."""

    def __init__(self, message: str, attempts: int, cause: NodeBridgeError | None = None):
        details: dict[str, Any] = {"attempts": attempts}
        if cause is not None:
            details["cause"] = cause.code
        super().__init__(message, code="WORKER_UNAVAILABLE", category=ErrorCategory.FATAL, details=details)


class RemoteInvocationError(NodeBridgeError):
    """The worker answered with a non-success status."""

    def __init__(self, status_code: int, body: str):
        super().__init__(
            f"Call to Node module failed with error: {body}",
            code="REMOTE_INVOCATION_FAILED",
            category=ErrorCategory.FATAL,
            details={"status_code": status_code, "body": body[:2000]},
        )
        self.status_code = status_code
        self.body = body


class TypeMismatchError(NodeBridgeError):
    """The response cannot be converted to the type the caller asked for."""

    def __init__(self, content_type: str, expected: Any, reason: str | None = None):
        expected_name = getattr(expected, "__qualname__", None) or repr(expected)
        message = f"Node module responded with {content_type}, which cannot be converted to {expected_name}"
        if reason:
            message += f": {reason}"
        super().__init__(
            message,
            code="TYPE_MISMATCH",
            category=ErrorCategory.VALIDATION,
            details={"content_type": content_type, "expected": expected_name},
        )


class UnexpectedContentTypeError(NodeBridgeError):
    """The response content type is none of text, JSON or binary."""

    def __init__(self, content_type: str):
        super().__init__(
            f"Unexpected response content type: {content_type or '<missing>'}",
            code="UNEXPECTED_CONTENT_TYPE",
            category=ErrorCategory.FATAL,
            details={"content_type": content_type},
        )


class DisposedError(NodeBridgeError):
    """Operation attempted after the bridge was disposed."""

    def __init__(self, operation: str = "invoke"):
        super().__init__(
            f"Cannot {operation}: the Node host bridge has been disposed",
            code="DISPOSED",
            category=ErrorCategory.FATAL,
            details={"operation": operation},
        )


class WorkerTransportError(NodeBridgeError):
    """Connection to the worker failed (refused, reset, closed mid-response)."""

    def __init__(self, message: str, port: int | None = None, generation: int | None = None):
        super().__init__(
            message,
            code="WORKER_TRANSPORT",
            category=ErrorCategory.RETRYABLE,
            details={"port": port, "generation": generation},
        )


class WorkerExitedError(NodeBridgeError):
    """The worker process exited before it became ready."""

    def __init__(self, exit_code: int | None, generation: int | None = None):
        super().__init__(
            f"Node host process exited with code {exit_code} before reporting a listening port",
            code="WORKER_EXITED",
            category=ErrorCategory.RETRYABLE,
            details={"exit_code": exit_code, "generation": generation},
        )


class StaleGenerationError(NodeBridgeError):
    """A call referenced a worker generation that has since been replaced."""

    def __init__(self, generation: int, current: int | None):
        super().__init__(
            f"Node host generation {generation} was replaced (current: {current})",
            code="STALE_GENERATION",
            category=ErrorCategory.RETRYABLE,
            details={"generation": generation, "current": current},
        )


class InvocationTimeoutError(NodeBridgeError):
    """The worker accepted the request but did not answer in time."""

    def __init__(self, module_name: str, timeout_seconds: float | None):
        super().__init__(
            f"Call to Node module '{module_name}' timed out after {timeout_seconds}s",
            code="INVOCATION_TIMEOUT",
            category=ErrorCategory.TIMEOUT,
            details={"module_name": module_name, "timeout_seconds": timeout_seconds},
        )


class RequestEncodingError(NodeBridgeError):
    """Invocation arguments are not JSON encodable."""

    def __init__(self, module_name: str, reason: str):
        super().__init__(
            f"Cannot encode arguments for Node module '{module_name}': {reason}",
            code="REQUEST_ENCODING",
            category=ErrorCategory.VALIDATION,
            details={"module_name": module_name},
        )
