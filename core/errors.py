"""
core/errors.py -- Public error taxonomy for Chirpy.

These are the only error kinds that cross the service boundary. api/main.py
maps each one to exactly one HTTP status and one fixed error code:

  ValidationFailure      -> 400 bad_request
  AuthenticationFailure  -> 401 unauthorized (always the same message)
  PersistenceFailure     -> 500 internal_error
  ConfigurationFailure   -> fatal at startup, never reaches a request

Richer internal variants (why a token was rejected, why a login failed) live
in auth/errors.py. They are logged, then re-raised as one of the kinds below
with `raise ... from exc`. The exception handlers never serialize __cause__,
so the internal variant cannot leak into a response body.
"""


class ChirpyError(Exception):
    """Base class for all service errors."""


class ValidationFailure(ChirpyError):
    """Malformed request content. Client error."""


class AuthenticationFailure(ChirpyError):
    """Bad credentials or a bad/expired/revoked/unknown token.

    The message is fixed: callers must not be able to tell the
    underlying causes apart.
    """

    def __init__(self, message: str = "Unauthorized.") -> None:
        super().__init__(message)


class PersistenceFailure(ChirpyError):
    """Storage unavailable or a constraint was violated. Internal error."""


class ConfigurationFailure(ChirpyError):
    """Missing or invalid configuration at startup. Fatal."""
