"""Metrics collector — Prometheus counters, gauges, histograms.

- ``relay_stats_total`` gauge-vec (subscriptions, accounts, submissions)
- ``relay_notifications_total`` counter-vec by outcome
- ``relay_submissions_total`` counter-vec by outcome
- ``relay_resubscriptions_total`` counter-vec by outcome
- ``relay_pin_rotations_total`` counter-vec by outcome
- ``relay_token_refresh_total``
- ``relay_scheduled_timers`` gauge
- ``relay_dispatch_histogram``
- ``relay_cron_histogram`` / ``relay_cron_last_execution_gauge``
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import TYPE_CHECKING

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram

if TYPE_CHECKING:
    from collections.abc import Iterator


_PREFIX = "relay"

_STAT_LABELS = ("entity",)
_OUTCOME_LABELS = ("outcome",)


class MetricsCollector:
    """Low-level Prometheus collector that owns the registry.

    Use :class:`RelayMetrics` for the high-level tracking interface.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self._registry = registry or CollectorRegistry()

    @property
    def registry(self) -> CollectorRegistry:
        """Return the underlying Prometheus registry."""
        return self._registry

    def gauge(self, name: str, doc: str, labels: tuple[str, ...] = ()) -> Gauge:
        """Register and return a Gauge."""
        return Gauge(name, doc, labels, registry=self._registry)

    def histogram(self, name: str, doc: str, labels: tuple[str, ...] = ()) -> Histogram:
        """Register and return a Histogram."""
        return Histogram(name, doc, labels, registry=self._registry)

    def counter(self, name: str, doc: str, labels: tuple[str, ...] = ()) -> Counter:
        """Register and return a Counter."""
        return Counter(name, doc, labels, registry=self._registry)


class RelayMetrics:
    """High-level relay metrics."""

    def __init__(self, collector: MetricsCollector | None = None) -> None:
        self._collector = collector or MetricsCollector()

        self._stats = self._collector.gauge(
            f"{_PREFIX}_stats_total",
            "Entity counts in the relay datastore",
            _STAT_LABELS,
        )
        self._notifications = self._collector.counter(
            f"{_PREFIX}_notifications",
            "Hub notifications received, by outcome",
            _OUTCOME_LABELS,
        )
        self._submissions = self._collector.counter(
            f"{_PREFIX}_submissions",
            "Reddit submission attempts, by outcome",
            _OUTCOME_LABELS,
        )
        self._resubscriptions = self._collector.counter(
            f"{_PREFIX}_resubscriptions",
            "Scheduled lease renewals, by outcome",
            _OUTCOME_LABELS,
        )
        self._pin_rotations = self._collector.counter(
            f"{_PREFIX}_pin_rotations",
            "Pin rotations after a moderated post, by outcome",
            _OUTCOME_LABELS,
        )
        self._token_refresh = self._collector.counter(
            f"{_PREFIX}_token_refresh",
            "OAuth access token refreshes",
        )
        self._scheduled = self._collector.gauge(
            f"{_PREFIX}_scheduled_timers",
            "Renewal timers currently armed",
        )
        self._dispatch = self._collector.histogram(
            f"{_PREFIX}_dispatch_histogram",
            "Duration of notification fan-out",
        )
        self._cron_histogram = self._collector.histogram(
            f"{_PREFIX}_cron_histogram",
            "Duration of cron job executions",
            ("job_name",),
        )
        self._cron_last = self._collector.gauge(
            f"{_PREFIX}_cron_last_execution_gauge",
            "Timestamp of last cron execution",
            ("job_name",),
        )

    @property
    def registry(self) -> CollectorRegistry:
        """Return the underlying Prometheus registry."""
        return self._collector.registry

    # -- Stat setters --

    def set_subscription_count(self, count: int) -> None:
        self._stats.labels(entity="subscriptions").set(count)

    def set_account_count(self, count: int) -> None:
        self._stats.labels(entity="accounts").set(count)

    def set_submission_count(self, count: int) -> None:
        self._stats.labels(entity="submissions").set(count)

    def set_scheduled_timers(self, count: int) -> None:
        self._scheduled.set(count)

    # -- Event counters --

    def record_notification(self, outcome: str) -> None:
        """Count a notification as ``dispatched``, ``filtered`` or ``rejected``."""
        self._notifications.labels(outcome=outcome).inc()

    def record_submission(self, outcome: str) -> None:
        """Count a submission attempt as ``created``, ``skipped`` or ``failed``."""
        self._submissions.labels(outcome=outcome).inc()

    def record_resubscription(self, *, ok: bool) -> None:
        self._resubscriptions.labels(outcome="ok" if ok else "failed").inc()

    def record_pin_rotation(self, outcome: str) -> None:
        """Count a rotation as ``rotated``, ``unchanged`` or ``failed``."""
        self._pin_rotations.labels(outcome=outcome).inc()

    def record_token_refresh(self) -> None:
        self._token_refresh.inc()

    # -- Operation trackers (context managers) --

    @contextmanager
    def track_dispatch(self) -> Iterator[None]:
        """Track the duration of one notification fan-out."""
        start = time.monotonic()
        try:
            yield
        finally:
            self._dispatch.observe(time.monotonic() - start)

    @contextmanager
    def track_cron(self, job_name: str) -> Iterator[None]:
        """Track the duration of a cron job and record last execution time."""
        start = time.monotonic()
        try:
            yield
        finally:
            self._cron_histogram.labels(job_name=job_name).observe(time.monotonic() - start)
            self._cron_last.labels(job_name=job_name).set(time.time())
