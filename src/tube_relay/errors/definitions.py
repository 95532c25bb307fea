"""Pre-defined error instances shared across the relay."""

from __future__ import annotations

from tube_relay.errors.relay_errors import (
    AuthenticationFailure,
    NotFound,
    RelayError,
    ValidationFailure,
)

# -- Engine ----------------------------------------------------------------

ErrEngineNotReady = RelayError("relay engine not initialized", status_code=503, code="not-ready")

# -- Signature -------------------------------------------------------------

ErrSignatureMissing = AuthenticationFailure("X-Hub-Signature header is missing")
ErrSignatureMalformed = AuthenticationFailure("X-Hub-Signature header is malformed")
ErrSignatureAlgorithm = AuthenticationFailure("X-Hub-Signature uses an unsupported algorithm")
ErrSignatureLength = AuthenticationFailure("X-Hub-Signature digest has the wrong length")
ErrSignatureMismatch = AuthenticationFailure("X-Hub-Signature does not match the request body")

# -- Protocol --------------------------------------------------------------

ErrInvalidTopic = ValidationFailure("hub.topic does not name a channel")
ErrInvalidFeed = ValidationFailure("notification body is not a valid feed")
ErrMissingScopeIdentity = ValidationFailure("'identity' scope is required")

# -- Not Found -------------------------------------------------------------

ErrSubscriptionNotFound = NotFound("subscription not found")
ErrAccountNotFound = NotFound("reddit account not found")
ErrFormNotFound = NotFound("no pending form for this state")
