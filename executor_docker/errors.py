"""
Exceptions for the Docker build executor.

Every failure raised by the executor derives from ExecutorError so callers
can catch the whole family, while the subclasses let them tell apart:

- bad input (ImageResolutionError, InvalidBuildIdentifierError)
- the runtime rejecting or failing a call (RuntimeCallError and subtypes)
- the executor declining to call the runtime at all (CircuitOpenError)
"""

from __future__ import annotations


class ExecutorError(Exception):
    """Base exception for executor errors."""


class ImageResolutionError(ExecutorError, ValueError):
    """Raised when an image reference cannot be parsed."""

    def __init__(self, reference: str, reason: str):
        self.reference = reference
        self.reason = reason
        super().__init__(f"Invalid image reference {reference!r}: {reason}")


class InvalidBuildIdentifierError(ExecutorError, ValueError):
    """Raised when a build id or name prefix is unsafe to embed in names or filters."""

    def __init__(self, value: str, field: str = "build_id"):
        self.value = value
        self.field = field
        super().__init__(f"Invalid {field}: {value!r}")


class RuntimeCallError(ExecutorError):
    """Raised when a container runtime call fails."""

    def __init__(
        self,
        message: str,
        operation: str,
        *,
        status_code: int | None = None,
        response_body: str | None = None,
    ):
        super().__init__(message)
        self.operation = operation
        self.status_code = status_code
        self.response_body = response_body


class RuntimeTimeoutError(RuntimeCallError):
    """Raised when a runtime call exceeds the breaker's call timeout."""

    def __init__(self, operation: str, timeout: float):
        super().__init__(
            f"{operation} timed out after {timeout:.1f}s",
            operation,
        )
        self.timeout = timeout


class ContainerNotFoundError(RuntimeCallError):
    """Raised when the runtime reports a missing container or image (404)."""


class RuntimeConflictError(RuntimeCallError):
    """Raised when the runtime reports a conflict (409), e.g. a duplicate name."""


class CircuitOpenError(ExecutorError):
    """Raised when the circuit breaker is open and the call was not attempted."""

    def __init__(self, circuit_name: str, reset_after: float):
        self.circuit_name = circuit_name
        self.reset_after = reset_after
        super().__init__(
            f"Circuit '{circuit_name}' is open, " f"will attempt reset in {reset_after:.1f}s"
        )


__all__ = [
    "CircuitOpenError",
    "ContainerNotFoundError",
    "ExecutorError",
    "ImageResolutionError",
    "InvalidBuildIdentifierError",
    "RuntimeCallError",
    "RuntimeConflictError",
    "RuntimeTimeoutError",
]
