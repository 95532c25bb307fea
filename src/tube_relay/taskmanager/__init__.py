"""Periodic background jobs.

- lapsed-subscription resubscribe sweep
- entity counts for the Prometheus gauges
"""

from __future__ import annotations

from tube_relay.taskmanager.manager import CronJob, TaskManager

__all__ = ["CronJob", "TaskManager"]
