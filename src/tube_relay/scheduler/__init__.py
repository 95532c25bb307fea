"""Resubscription scheduler.

Keeps every hub subscription alive by re-sending the subscribe request
shortly before its lease lapses.
"""

from __future__ import annotations

from tube_relay.scheduler.resubscriber import (
    ResubscriptionScheduler,
    ScheduleCommand,
    delay_until_expiry,
    renewal_delay,
)

__all__ = [
    "ResubscriptionScheduler",
    "ScheduleCommand",
    "delay_until_expiry",
    "renewal_delay",
]
