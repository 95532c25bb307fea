"""Notification signature verification.

The hub signs every notification body with the subscription's shared
secret and sends ``X-Hub-Signature: sha1=<40 hex chars>``. The body is only
parsed once the signature checks out.
"""

from __future__ import annotations

import hashlib
import hmac
import string
from typing import TYPE_CHECKING

from tube_relay.errors.definitions import (
    ErrSignatureAlgorithm,
    ErrSignatureLength,
    ErrSignatureMalformed,
    ErrSignatureMismatch,
    ErrSignatureMissing,
)
from tube_relay.websub.feed import parse_feed

if TYPE_CHECKING:
    from tube_relay.websub.feed import Feed

SIGNATURE_HEADER = "X-Hub-Signature"
SIGNATURE_ALGORITHM = "sha1"
DIGEST_HEX_LENGTH = hashlib.sha1().digest_size * 2  # 40


def compute_signature(secret: str, body: bytes) -> str:
    """Return the hex HMAC-SHA1 of *body* under *secret*."""
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha1).hexdigest()


def verify_signature(secret: str, body: bytes, header: str | None) -> None:
    """Check an ``X-Hub-Signature`` header value against *body*.

    Raises:
        AuthenticationFailure: If the header is missing, malformed, names
            another algorithm, has the wrong digest length or does not match.
    """
    if not header:
        raise ErrSignatureMissing

    algorithm, sep, digest = header.strip().partition("=")
    if not sep or not algorithm or not digest:
        raise ErrSignatureMalformed
    if algorithm.lower() != SIGNATURE_ALGORITHM:
        raise ErrSignatureAlgorithm
    if len(digest) != DIGEST_HEX_LENGTH:
        raise ErrSignatureLength
    if not all(c in string.hexdigits for c in digest):
        raise ErrSignatureMalformed

    expected = compute_signature(secret, body)
    if not hmac.compare_digest(expected, digest.lower()):
        raise ErrSignatureMismatch


def verify_notification(secret: str, body: bytes, header: str | None) -> Feed:
    """Authenticate a notification and only then parse it.

    Raises:
        AuthenticationFailure: On any signature problem.
        ValidationFailure: If the authenticated body is not a valid feed.
    """
    verify_signature(secret, body, header)
    return parse_feed(body)
