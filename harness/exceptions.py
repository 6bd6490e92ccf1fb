"""Custom exception hierarchy for the CFP contract harness.

The hierarchy mirrors how a failure is allowed to travel through a run:

    - ProbeError and its subclasses fail a single step and nothing else.
    - MissingResourceIdError fails the step that captured or dereferenced
      an identifier that was never produced.
    - BootstrapError aborts the whole run before any scenario executes.
    - Teardown never raises; its failures are logged and dropped.

Each exception carries a context dictionary so the reporter and the JSON
log handler can show what was sent and what came back.
"""

from datetime import UTC, datetime
from typing import Any


class HarnessError(Exception):
    """Base exception for all harness errors.

    Attributes:
        message: Human-readable error description.
        context: Optional dictionary with additional debugging information.
        timestamp: UTC timestamp when the exception was raised.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        self.message = message
        self.context = context or {}
        self.timestamp = datetime.now(UTC)
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format exception message with context for logging."""
        base = f"[{self.timestamp.isoformat()}] {self.message}"
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{base} | Context: {context_str}"
        return base


class ProbeError(HarnessError):
    """Base for failures of a single HTTP probe.

    Attributes:
        method: HTTP method of the failed request.
        path: Request path relative to the base URL.
    """

    def __init__(self, method: str, path: str, message: str, context: dict[str, Any]) -> None:
        super().__init__(message=message, context={"method": method, "path": path, **context})
        self.method = method
        self.path = path


class ProbeTransportError(ProbeError):
    """Raised when a request gets no HTTP response (network error or timeout)."""

    def __init__(self, method: str, path: str, reason: str) -> None:
        super().__init__(
            method,
            path,
            message=f"{method} {path} failed before a response arrived: {reason}",
            context={"reason": reason},
        )
        self.reason = reason


class MalformedRequestError(ProbeError):
    """Raised when a request cannot be built, e.g. an id that is not URL-safe.

    Ids come from earlier responses, so this is the service's fault and
    fails the step that would have sent the request.
    """

    def __init__(self, method: str, path: str, reason: str) -> None:
        super().__init__(
            method,
            path,
            message=f"{method} {path!r} could not be sent: {reason}",
            context={"reason": reason},
        )
        self.reason = reason


class StatusMismatchError(ProbeError):
    """Raised when the response status differs from the declared one."""

    def __init__(self, method: str, path: str, expected: int, actual: int, body: Any = None) -> None:
        super().__init__(
            method,
            path,
            message=f"{method} {path} returned HTTP {actual}, expected {expected}",
            context={"expected_status": expected, "actual_status": actual, "body": body},
        )
        self.expected = expected
        self.actual = actual
        self.body = body


class ShapeMismatchError(ProbeError):
    """Raised when the response body does not contain the declared shape.

    Attributes:
        mismatches: One entry per missing or differing path in the body.
    """

    def __init__(self, method: str, path: str, mismatches: list[str]) -> None:
        super().__init__(
            method,
            path,
            message=f"{method} {path} body does not match the expected shape: "
            + "; ".join(mismatches),
            context={"mismatches": mismatches},
        )
        self.mismatches = mismatches


class MissingResourceIdError(HarnessError):
    """Raised when a resource identifier is absent where one is required.

    Covers both a creation response without an ``_id`` and a dependent step
    asking for a role whose creation never succeeded.
    """

    def __init__(self, role: str, scope: str, reason: str) -> None:
        super().__init__(
            message=f"No '{role}' id in scope '{scope}': {reason}",
            context={"role": role, "scope": scope, "reason": reason},
        )
        self.role = role
        self.scope = scope


class MissingSessionCookieError(HarnessError):
    """Raised when sign-in succeeds but the response carries no Set-Cookie."""

    def __init__(self, email: str) -> None:
        super().__init__(
            message=f"Sign-in for '{email}' returned no session cookie",
            context={"email": email},
        )
        self.email = email


class BootstrapError(HarnessError):
    """Raised when no account could be both created and signed in.

    This is a run-aborting error: no scenario can produce a meaningful
    result without a session.
    """

    def __init__(self, reason: str, email: str | None = None) -> None:
        super().__init__(
            message=f"Credential bootstrap failed: {reason}",
            context={"reason": reason, "email": email},
        )
        self.reason = reason
        self.email = email


class LoggingInitializationError(HarnessError):
    """Raised when the logging system fails to initialize.

    This is a startup-blocking error - the harness does not run
    without a functioning logging infrastructure.
    """

    def __init__(self, log_dir: str, reason: str) -> None:
        super().__init__(
            message=f"Failed to initialize logging at '{log_dir}': {reason}",
            context={"log_dir": log_dir, "reason": reason},
        )
