"""
Error types raised while authenticating against Evernote.

Session validation and the token exchanges surface the AuthError variants
below; callers branch on the class, never on ad hoc attributes.
"""

from typing import Optional


class ConfigurationError(Exception):
    """Raised when required settings (consumer key/secret) are missing or invalid."""


class CallbackError(Exception):
    """Raised when the local OAuth callback does not deliver a verifier."""


class AuthError(Exception):
    """Base class for failures while obtaining or validating an access token."""


class NoStoredToken(AuthError):
    """No access token has been persisted yet."""

    def __init__(self, message: str = "No stored tokens found"):
        super().__init__(message)


class RateLimited(AuthError):
    """The service asked us to wait `duration` seconds before calling again."""

    def __init__(self, duration: int):
        super().__init__(f"Rate limit reached, retry in {duration} seconds")
        self.duration = duration


class TransportError(AuthError):
    """Network or provider-side HTTP failure, with the status code when known."""

    def __init__(self, message: str, code: Optional[int] = None):
        super().__init__(message)
        self.code = code


class ValidationFailed(AuthError):
    """The service rejected the token (expired, revoked or otherwise invalid)."""

    def __init__(self, message: str, code: Optional[int] = None, parameter: Optional[str] = None):
        super().__init__(message)
        self.code = code
        self.parameter = parameter


def describe_error(error: BaseException) -> str:
    """Render an error for the log: code and parameter when present, else its attribute keys."""
    code = getattr(error, "errorCode", None)
    if code is None:
        code = getattr(error, "code", None)
    if code is not None:
        parameter = getattr(error, "parameter", None)
        return f"{type(error).__name__} error: {code}, {parameter}"
    message = str(error)
    if message:
        return f"{type(error).__name__}: {message}"
    return f"{type(error).__name__} error: {list(vars(error).keys())}"
