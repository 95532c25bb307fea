"""Cross-post dispatcher — fans one upload out to every linked subreddit.

Fan-out is account-major, subreddit-minor. A failure is contained to the
smallest unit it affects: a refresh failure skips one account and a submit
failure skips one (account, subreddit) pair. A pin rotation failure after a
successful submit is logged and counted, and the pair still counts as created.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from tube_relay.engine.models.submission import Submission
from tube_relay.errors.relay_errors import RelayError

if TYPE_CHECKING:
    from collections.abc import Callable

    from tube_relay.dispatch.pinning import PinRotation
    from tube_relay.engine.models.account import RedditAccount
    from tube_relay.engine.models.subreddit import Subreddit
    from tube_relay.engine.models.subscription import Subscription
    from tube_relay.engine.repository.submissions import SubmissionRepository
    from tube_relay.engine.repository.subreddits import SubredditRepository
    from tube_relay.engine.repository.subscriptions import SubscriptionRepository
    from tube_relay.metrics.collector import RelayMetrics
    from tube_relay.reddit.client import RedditClient
    from tube_relay.reddit.credentials import CredentialRefresher
    from tube_relay.reddit.models import OAuthToken
    from tube_relay.websub.feed import Entry

logger = logging.getLogger(__name__)


@dataclass
class DispatchReport:
    """Outcome of one fan-out, as ``(account, subreddit)`` name pairs."""

    created: list[tuple[str, str]] = field(default_factory=list)
    skipped: list[tuple[str, str]] = field(default_factory=list)
    failed: list[tuple[str, str]] = field(default_factory=list)


class CrossPostDispatcher:
    """Posts an upload to Reddit on behalf of every linked account."""

    def __init__(
        self,
        *,
        subscriptions: SubscriptionRepository,
        subreddits: SubredditRepository,
        submissions: SubmissionRepository,
        credentials: CredentialRefresher,
        reddit: RedditClient,
        pins: PinRotation,
        metrics: RelayMetrics | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._subscriptions = subscriptions
        self._subreddits = subreddits
        self._submissions = submissions
        self._credentials = credentials
        self._reddit = reddit
        self._pins = pins
        self._metrics = metrics
        self._clock = clock

    async def dispatch(self, subscription: Subscription, entry: Entry) -> DispatchReport:
        """Relay *entry* to all accounts linked to *subscription*."""
        report = DispatchReport()
        accounts = await self._subscriptions.list_accounts(subscription.id)
        if not accounts:
            logger.info("No accounts linked to subscription %s", subscription.id)
            return report

        for account in accounts:
            try:
                token = await self._credentials.ensure_fresh(account)
                subreddits = await self._subreddits.list_for_account(account.id)
            except RelayError:
                logger.exception("Skipping u/%s: could not prepare account", account.username)
                report.failed.append((account.username, "*"))
                self._record("failed")
                continue

            for subreddit in subreddits:
                pair = (account.username, subreddit.name)
                try:
                    created = await self._post(subscription, entry, account, token, subreddit)
                except RelayError:
                    logger.exception(
                        "Relaying %s to r/%s as u/%s failed",
                        entry.video_id,
                        subreddit.name,
                        account.username,
                    )
                    report.failed.append(pair)
                    self._record("failed")
                    continue
                if created:
                    report.created.append(pair)
                    self._record("created")
                else:
                    report.skipped.append(pair)
                    self._record("skipped")
        return report

    async def _post(
        self,
        subscription: Subscription,
        entry: Entry,
        account: RedditAccount,
        token: OAuthToken,
        subreddit: Subreddit,
    ) -> bool:
        if await self._submissions.exists(subreddit.id, entry.video_id):
            logger.warning("%s already posted to r/%s, skipping", entry.video_id, subreddit.name)
            return False

        result = await self._reddit.submit_link(
            token,
            subreddit=subreddit.name,
            title=subreddit.compose_title(entry.title),
            url=entry.link.href,
            flair_id=subreddit.flair_id,
        )
        await self._submissions.create(
            Submission(
                id=result.name,
                video_id=entry.video_id,
                stickied=False,
                reddit_account_id=account.id,
                subreddit_id=subreddit.id,
                created_at=int(self._clock()),
            ),
            subscription_id=subscription.id,
        )
        logger.info("Posted %s to r/%s as %s", entry.video_id, subreddit.name, result.name)

        if account.moderate_submissions:
            await self._rotate_pin(token, subreddit)
        return True

    async def _rotate_pin(self, token: OAuthToken, subreddit: Subreddit) -> None:
        try:
            rotated = await self._pins.rotate(token, subreddit)
        except RelayError:
            logger.exception("Pin rotation in r/%s failed", subreddit.name)
            outcome = "failed"
        else:
            outcome = "rotated" if rotated else "unchanged"
        if self._metrics:
            self._metrics.record_pin_rotation(outcome)

    def _record(self, outcome: str) -> None:
        if self._metrics:
            self._metrics.record_submission(outcome)
