"""Error taxonomy for tube-relay."""

from tube_relay.errors.relay_errors import (
    AuthenticationFailure,
    NotFound,
    PersistenceFailure,
    RelayError,
    UpstreamFailure,
    ValidationFailure,
)

__all__ = [
    "AuthenticationFailure",
    "NotFound",
    "PersistenceFailure",
    "RelayError",
    "UpstreamFailure",
    "ValidationFailure",
]
