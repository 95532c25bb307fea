"""Cron job handlers.

- ``resubscribe_lapsed``: renew subscriptions whose lease already ran out.
  This is the recovery path for renewals the scheduler could not complete.
- ``calculate_metrics``: entity counts for the Prometheus gauges.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from tube_relay.errors.relay_errors import RelayError

if TYPE_CHECKING:
    from tube_relay.engine.client import RelayEngine
    from tube_relay.metrics.collector import RelayMetrics

logger = logging.getLogger(__name__)


async def task_resubscribe_lapsed(engine: RelayEngine) -> int:
    """Re-issue the subscribe request for every lapsed subscription.

    Returns the number of requests the hub accepted.
    """
    lapsed = await engine.subscriptions.list_lapsed(int(time.time()))
    if not lapsed:
        return 0
    logger.info("Resubscribing %d lapsed subscriptions", len(lapsed))
    renewed = 0
    for subscription in lapsed:
        try:
            await engine.protocol.resubscribe(subscription.id)
        except RelayError:
            logger.exception("Resubscribe sweep failed for %s", subscription.id)
            continue
        renewed += 1
    return renewed


async def task_calculate_metrics(engine: RelayEngine, metrics: RelayMetrics) -> None:
    """Count entities and push them to the stats gauge."""
    metrics.set_subscription_count(await engine.subscriptions.count())
    metrics.set_account_count(await engine.accounts.count())
    metrics.set_submission_count(await engine.submissions.count())
