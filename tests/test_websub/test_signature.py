"""Tests for notification signature verification."""

from __future__ import annotations

import pytest

from tube_relay.errors import AuthenticationFailure, ValidationFailure
from tube_relay.errors import definitions as defs
from tube_relay.websub.signature import (
    DIGEST_HEX_LENGTH,
    compute_signature,
    verify_notification,
    verify_signature,
)

SECRET = "shared-secret"
BODY = b"<feed>hello</feed>"


def _header(secret: str = SECRET, body: bytes = BODY) -> str:
    return f"sha1={compute_signature(secret, body)}"


class TestComputeSignature:
    def test_hex_length(self) -> None:
        assert len(compute_signature(SECRET, BODY)) == DIGEST_HEX_LENGTH == 40

    def test_known_vector(self) -> None:
        # RFC 2202 test case 2
        digest = compute_signature("Jefe", b"what do ya want for nothing?")
        assert digest == "effcdf6ae5eb2fa2d27416d5f184df9c259a7c79"


class TestVerifySignature:
    @pytest.mark.parametrize(
        ("secret", "body"),
        [
            ("s", b""),
            (SECRET, BODY),
            ("ünïcode-secret", "ünïcode body".encode()),
            ("x" * 200, bytes(range(256))),
        ],
    )
    def test_valid_signature_accepted(self, secret: str, body: bytes) -> None:
        verify_signature(secret, body, _header(secret, body))

    def test_uppercase_digest_accepted(self) -> None:
        verify_signature(SECRET, BODY, f"sha1={compute_signature(SECRET, BODY).upper()}")

    def test_every_single_character_mutation_rejected(self) -> None:
        digest = compute_signature(SECRET, BODY)
        for i, ch in enumerate(digest):
            replacement = "0" if ch != "0" else "1"
            mutated = digest[:i] + replacement + digest[i + 1 :]
            with pytest.raises(AuthenticationFailure):
                verify_signature(SECRET, BODY, f"sha1={mutated}")

    def test_wrong_secret_rejected(self) -> None:
        with pytest.raises(AuthenticationFailure) as exc_info:
            verify_signature(SECRET, BODY, _header("other-secret"))
        assert exc_info.value is defs.ErrSignatureMismatch

    @pytest.mark.parametrize("header", [None, ""])
    def test_missing_header(self, header: str | None) -> None:
        with pytest.raises(AuthenticationFailure) as exc_info:
            verify_signature(SECRET, BODY, header)
        assert exc_info.value is defs.ErrSignatureMissing

    @pytest.mark.parametrize("header", ["sha1", "sha1=", "=abc", "garbage"])
    def test_malformed_header(self, header: str) -> None:
        with pytest.raises(AuthenticationFailure) as exc_info:
            verify_signature(SECRET, BODY, header)
        assert exc_info.value is defs.ErrSignatureMalformed

    def test_other_algorithm_rejected(self) -> None:
        with pytest.raises(AuthenticationFailure) as exc_info:
            verify_signature(SECRET, BODY, f"sha256={compute_signature(SECRET, BODY)}")
        assert exc_info.value is defs.ErrSignatureAlgorithm

    @pytest.mark.parametrize("digest", ["abc", "a" * 39, "a" * 41, "a" * 64])
    def test_wrong_length_rejected(self, digest: str) -> None:
        with pytest.raises(AuthenticationFailure) as exc_info:
            verify_signature(SECRET, BODY, f"sha1={digest}")
        assert exc_info.value is defs.ErrSignatureLength

    def test_non_hex_digest_rejected(self) -> None:
        with pytest.raises(AuthenticationFailure) as exc_info:
            verify_signature(SECRET, BODY, "sha1=" + "z" * 40)
        assert exc_info.value is defs.ErrSignatureMalformed

    def test_non_ascii_digest_rejected(self) -> None:
        with pytest.raises(AuthenticationFailure):
            verify_signature(SECRET, BODY, "sha1=" + "é" * 40)


class TestVerifyNotification:
    def test_returns_parsed_feed(self, feed_xml) -> None:
        body = feed_xml(video_id="abc123def45")
        feed = verify_notification(SECRET, body, _header(SECRET, body))
        assert feed.entry is not None
        assert feed.entry.video_id == "abc123def45"

    def test_unsigned_garbage_is_not_parsed(self) -> None:
        # A bad signature wins over a bad body
        with pytest.raises(AuthenticationFailure):
            verify_notification(SECRET, b"not xml at all", "sha1=" + "0" * 40)

    def test_signed_garbage_is_a_validation_failure(self) -> None:
        body = b"not xml at all"
        with pytest.raises(ValidationFailure):
            verify_notification(SECRET, body, _header(SECRET, body))
