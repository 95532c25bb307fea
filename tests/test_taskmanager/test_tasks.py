"""Tests for the cron job handlers."""

from __future__ import annotations

import time
from types import SimpleNamespace

from tube_relay.errors import UpstreamFailure
from tube_relay.metrics.collector import RelayMetrics
from tube_relay.taskmanager.tasks import task_calculate_metrics, task_resubscribe_lapsed


class FakeSubscriptions:
    def __init__(self, lapsed: list[str]) -> None:
        self.lapsed = lapsed
        self.asked_at: int | None = None

    async def list_lapsed(self, now: int):
        self.asked_at = now
        return [SimpleNamespace(id=sub_id) for sub_id in self.lapsed]

    async def count(self) -> int:
        return 3


class FakeProtocol:
    def __init__(self, failing: set[str]) -> None:
        self.failing = failing
        self.renewed: list[str] = []

    async def resubscribe(self, subscription_id: str) -> None:
        self.renewed.append(subscription_id)
        if subscription_id in self.failing:
            msg = "hub said no"
            raise UpstreamFailure(msg)


class FakeCounter:
    def __init__(self, n: int) -> None:
        self.n = n

    async def count(self) -> int:
        return self.n


def _engine(lapsed: list[str], failing: set[str] | None = None) -> SimpleNamespace:
    return SimpleNamespace(
        subscriptions=FakeSubscriptions(lapsed),
        protocol=FakeProtocol(failing or set()),
        accounts=FakeCounter(2),
        submissions=FakeCounter(7),
    )


class TestResubscribeLapsed:
    async def test_nothing_lapsed(self) -> None:
        engine = _engine([])
        assert await task_resubscribe_lapsed(engine) == 0
        assert engine.protocol.renewed == []

    async def test_renews_each_lapsed(self) -> None:
        engine = _engine(["a", "b"])
        before = int(time.time())
        assert await task_resubscribe_lapsed(engine) == 2
        assert engine.protocol.renewed == ["a", "b"]
        assert engine.subscriptions.asked_at >= before

    async def test_failure_does_not_stop_sweep(self) -> None:
        engine = _engine(["a", "b", "c"], failing={"b"})
        assert await task_resubscribe_lapsed(engine) == 2
        assert engine.protocol.renewed == ["a", "b", "c"]


async def test_calculate_metrics() -> None:
    metrics = RelayMetrics()
    await task_calculate_metrics(_engine([]), metrics)

    def stat(entity: str) -> float | None:
        return metrics.registry.get_sample_value("relay_stats_total", {"entity": entity})

    assert stat("subscriptions") == 3
    assert stat("accounts") == 2
    assert stat("submissions") == 7
