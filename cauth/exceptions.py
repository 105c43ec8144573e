"""
CAuth Exceptions
================
Error types raised while loading rules and while talking to authorization endpoints.
"""

from typing import Optional, Any


class CAuthError(Exception):
    """Base exception for all cauth errors."""
    pass


class ConfigurationError(CAuthError):
    """Raised when a rule block is malformed or incomplete. Fatal at startup."""
    def __init__(self, message: str, line: Optional[int] = None, source: Optional[str] = None):
        self.message = message
        self.line = line
        self.source = source
        location = ""
        if source:
            location = f"{source}:{line}: " if line else f"{source}: "
        elif line:
            location = f"line {line}: "
        super().__init__(f"{location}{message}")

    @classmethod
    def from_validation_error(cls, exc, line: Optional[int] = None, source: Optional[str] = None, prefix: str = ""):
        """Wrap the first error of a pydantic ValidationError."""
        error = exc.errors()[0]
        location = ".".join(str(part) for part in error.get("loc", ()))
        message = error.get("msg", str(exc))
        if location:
            message = f"{location}: {message}"
        return cls(f"{prefix}{message}", line=line, source=source)


class DelegationError(CAuthError):
    """Base exception for failures of the external authorization call."""
    def __init__(self, message: str, endpoint: str = "", status_code: int = 0, details: Any = None):
        self.message = message
        self.endpoint = endpoint
        self.status_code = status_code
        self.details = details
        super().__init__(f"[{endpoint}] {message} (Status: {status_code})")


class DelegationTransportError(DelegationError):
    """Raised when the endpoint is unreachable or the URL is unusable."""
    pass


class DelegationTimeoutError(DelegationTransportError):
    """Raised specifically on timeouts."""
    pass


class DelegationResponseError(DelegationError):
    """Raised when the endpoint answers with a non-200 status or an undecodable body."""
    pass
