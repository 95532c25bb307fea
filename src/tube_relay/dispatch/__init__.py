"""Cross-posting: fan-out dispatch and pin rotation."""

from __future__ import annotations

from tube_relay.dispatch.dispatcher import CrossPostDispatcher, DispatchReport
from tube_relay.dispatch.pinning import PinRotation

__all__ = ["CrossPostDispatcher", "DispatchReport", "PinRotation"]
