"""Utility functions for nodebridge."""

from nodebridge.utils.exceptions import (
    DisposedError,
    ErrorCategory,
    InvocationTimeoutError,
    NodeBridgeError,
    RemoteInvocationError,
    RequestEncodingError,
    StaleGenerationError,
    StartupTimeoutError,
    TypeMismatchError,
    UnexpectedContentTypeError,
    WorkerExitedError,
    WorkerTransportError,
    WorkerUnavailableError,
)

__all__ = [
    "DisposedError",
    "ErrorCategory",
    "InvocationTimeoutError",
    "NodeBridgeError",
    "RemoteInvocationError",
    "RequestEncodingError",
    "StaleGenerationError",
    "StartupTimeoutError",
    "TypeMismatchError",
    "UnexpectedContentTypeError",
    "WorkerExitedError",
    "WorkerTransportError",
    "WorkerUnavailableError",
]
