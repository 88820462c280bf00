"""
Error taxonomy for VibeControl.

Tool-level errors (PathViolation, NotFound, ExecutionFailure, approval
errors) are caught by the tool registry and fed back to the model as
structured results. ProviderError is recovered by the fallback chain.
ConfigurationError is fatal and surfaced immediately.
"""


class VibeControlError(Exception):
    """Base class for all VibeControl errors."""
    pass


class PathViolation(VibeControlError):
    """Raised when a path is absolute, contains '..', or escapes the workspace root."""
    pass


class NotFound(VibeControlError):
    """Raised when a resolved path does not exist. Not a security event."""
    pass


class ApprovalError(VibeControlError):
    """Base class for approval-flow violations."""
    pass


class InvalidOrExpiredRequest(ApprovalError):
    """Raised when granting an unknown, already granted, or stale request id."""

    def __init__(self, message: str = "Invalid or expired approval request") -> None:
        super().__init__(message)


class PermissionDenied(ApprovalError):
    """
    Raised when an approval token cannot authorize an execution.

    reason is one of "invalid" (unknown or already used), "expired"
    or "mismatch" (command differs from the approved one).
    """

    def __init__(self, message: str, reason: str = "invalid") -> None:
        super().__init__(f"PERMISSION DENIED: {message}")
        self.reason = reason


class ExecutionFailure(VibeControlError):
    """Raised on non-zero exit, timeout or output overflow. Carries partial output."""

    def __init__(
        self,
        message: str,
        output: str = "",
        stderr: str = "",
        exit_code: int | None = None,
        timed_out: bool = False,
    ) -> None:
        super().__init__(message)
        self.output = output
        self.stderr = stderr
        self.exit_code = exit_code
        self.timed_out = timed_out


class ProviderError(VibeControlError):
    """Error from a single LLM vendor call."""

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code


class ConfigurationError(VibeControlError):
    """Raised when no LLM provider is configured."""
    pass
