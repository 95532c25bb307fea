"""Shared helpers for repositories."""

from __future__ import annotations

from tube_relay.errors.relay_errors import PersistenceFailure


def expect_one(rowcount: int | None, operation: str) -> None:
    """Raise ``PersistenceFailure`` unless exactly one row was affected."""
    if rowcount != 1:
        raise PersistenceFailure(f"{operation} affected {rowcount} rows, expected 1")
