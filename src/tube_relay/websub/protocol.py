"""Subscription protocol handler — the hub subscribe/verify/notify workflow.

Transitions handled here:

- outbound subscribe request (new subscription or renewal)
- subscribe verification for a pending subscription (creates the record)
- subscribe verification for a known subscription (moves the expiry)
- unsubscribe verification (deletes by channel id)
- signed content notification (verify, gate, dispatch)

Every subscribe verification that leaves a lease re-arms the scheduler for
``lease - safety_buffer`` seconds.
"""

from __future__ import annotations

import enum
import logging
import time
import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING

from tube_relay.engine.models.form import FormKind
from tube_relay.engine.models.subscription import Subscription
from tube_relay.errors.definitions import ErrFormNotFound, ErrSubscriptionNotFound
from tube_relay.errors.relay_errors import RelayError, UpstreamFailure, ValidationFailure
from tube_relay.websub.feed import should_relay
from tube_relay.websub.hub import extract_channel_id
from tube_relay.websub.signature import verify_notification

if TYPE_CHECKING:
    from collections.abc import Callable

    from tube_relay.dispatch.dispatcher import CrossPostDispatcher, DispatchReport
    from tube_relay.engine.repository.forms import FormRepository
    from tube_relay.engine.repository.subscriptions import SubscriptionRepository
    from tube_relay.metrics.collector import RelayMetrics
    from tube_relay.scheduler.resubscriber import ResubscriptionScheduler
    from tube_relay.websub.hub import HubClient

logger = logging.getLogger(__name__)


class VerificationMode(enum.StrEnum):
    """``hub.mode`` values of a verification request."""

    SUBSCRIBE = "subscribe"
    UNSUBSCRIBE = "unsubscribe"


@dataclass(frozen=True)
class SubscriptionRequest:
    """Result of an accepted outbound subscribe request."""

    subscription_id: str
    channel_id: str
    callback_url: str


class SubscriptionProtocolHandler:
    """Drives the hub protocol for every subscription."""

    def __init__(
        self,
        *,
        hub: HubClient,
        subscriptions: SubscriptionRepository,
        forms: FormRepository,
        scheduler: ResubscriptionScheduler,
        dispatcher: CrossPostDispatcher,
        callback_path: str = "/google/subscription",
        metrics: RelayMetrics | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._hub = hub
        self._subscriptions = subscriptions
        self._forms = forms
        self._scheduler = scheduler
        self._dispatcher = dispatcher
        self._callback_path = "/" + callback_path.strip("/")
        self._metrics = metrics
        self._clock = clock

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------

    async def request_subscription(
        self,
        *,
        topic_url: str,
        hmac_secret: str,
        callback_url: str,
        post_shorts: bool = False,
    ) -> SubscriptionRequest:
        """Store a pending subscription and ask the hub to subscribe.

        Raises:
            ValidationFailure: If an input is empty or the topic has no channel id.
            UpstreamFailure: If the hub rejects the request.
        """
        topic_url = topic_url.strip()
        hmac_secret = hmac_secret.strip()
        callback_base = callback_url.strip().rstrip("/")
        if not topic_url:
            raise ValidationFailure("topic_url must not be empty")
        if not hmac_secret:
            raise ValidationFailure("hmac_secret must not be empty")
        if not callback_base:
            raise ValidationFailure("callback_url must not be empty")
        channel_id = extract_channel_id(topic_url)

        subscription_id = str(uuid.uuid4())
        callback = f"{callback_base}{self._callback_path}/{subscription_id}"
        await self._forms.save(
            subscription_id,
            FormKind.YOUTUBE,
            {
                "topic_url": topic_url,
                "channel_id": channel_id,
                "hmac_secret": hmac_secret,
                "post_shorts": post_shorts,
                "callback_url": callback,
            },
            created_at=int(self._clock()),
        )
        await self._hub.subscribe(callback, channel_id, hmac_secret)
        logger.info("Requested subscription %s for channel %s", subscription_id, channel_id)
        return SubscriptionRequest(subscription_id, channel_id, callback)

    async def resubscribe(self, subscription_id: str) -> None:
        """Renew a known subscription with the hub.

        Failures are raised to the caller and not retried here.

        Raises:
            NotFound: If the subscription no longer exists.
            UpstreamFailure: If the hub rejects the request.
        """
        subscription = await self._subscriptions.get_by_id(subscription_id)
        if subscription is None:
            raise ErrSubscriptionNotFound
        await self._hub.subscribe(
            subscription.callback_url,
            subscription.channel_id,
            subscription.hmac_secret,
        )
        logger.info("Resubscribe requested for %s (%s)", subscription_id, subscription.channel_id)

    # ------------------------------------------------------------------
    # Verification
    # ------------------------------------------------------------------

    async def handle_verification(
        self,
        subscription_id: str,
        *,
        mode: str,
        topic: str,
        challenge: str,
        lease_seconds: int | None = None,
    ) -> str:
        """Process a verification request and return the challenge to echo.

        Bookkeeping failures after the request has been accepted are logged
        and the challenge is still echoed, so the hub does not keep retrying.

        Raises:
            ValidationFailure: If the mode, topic or lease is invalid.
            NotFound: If a subscribe names neither a known nor a pending
                subscription. A lookup that fails is logged and the
                challenge echoed instead.
        """
        try:
            verification_mode = VerificationMode(mode)
        except ValueError:
            raise ValidationFailure(f"unsupported hub.mode {mode!r}") from None
        if lease_seconds is not None and lease_seconds < 0:
            raise ValidationFailure("hub.lease_seconds must not be negative")
        channel_id = extract_channel_id(topic)

        if verification_mode is VerificationMode.UNSUBSCRIBE:
            try:
                removed = await self._subscriptions.delete_by_channel_id(channel_id)
            except RelayError:
                logger.exception("Could not delete subscriptions for channel %s", channel_id)
            else:
                logger.info("Unsubscribed channel %s (%d removed)", channel_id, removed)
            return challenge

        try:
            existing = await self._subscriptions.get_by_id(subscription_id)
            form = None
            if existing is None:
                form = await self._forms.get(subscription_id, FormKind.YOUTUBE)
        except RelayError:
            logger.exception("Could not look up subscription %s", subscription_id)
            return challenge

        if existing is not None:
            await self._renew(existing, lease_seconds)
            return challenge
        if form is None:
            raise ErrFormNotFound
        try:
            await self._create(subscription_id, form.form_data, lease_seconds)
        except RelayError:
            logger.exception("Could not record subscription %s", subscription_id)
        return challenge

    async def _renew(self, subscription: Subscription, lease_seconds: int | None) -> None:
        expires = self._expiry(lease_seconds)
        try:
            await self._subscriptions.update_expiry(subscription.id, expires)
        except RelayError:
            logger.exception("Could not update expiry of %s", subscription.id)
            return
        logger.info("Subscription %s renewed until %s", subscription.id, expires)
        if lease_seconds is not None:
            self._scheduler.schedule_renewal(subscription.id, lease_seconds)

    async def _create(
        self,
        subscription_id: str,
        form: dict[str, object],
        lease_seconds: int | None,
    ) -> None:
        channel_id = str(form["channel_id"])
        try:
            channel_name = await self._hub.fetch_channel_name(channel_id)
        except UpstreamFailure:
            logger.warning("Channel name lookup failed for %s, using the id", channel_id)
            channel_name = channel_id

        await self._subscriptions.create(
            Subscription(
                id=subscription_id,
                channel_id=channel_id,
                channel_name=channel_name,
                hmac_secret=str(form["hmac_secret"]),
                callback_url=str(form["callback_url"]),
                expires=self._expiry(lease_seconds),
                post_shorts=bool(form.get("post_shorts", False)),
            )
        )
        await self._forms.delete(subscription_id)
        logger.info(
            "Subscription %s created for %s (%s)", subscription_id, channel_name, channel_id
        )
        if lease_seconds is not None:
            self._scheduler.schedule_renewal(subscription_id, lease_seconds)

    def _expiry(self, lease_seconds: int | None) -> int | None:
        if lease_seconds is None:
            return None
        return int(self._clock()) + lease_seconds

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    async def receive_notification(
        self,
        subscription_id: str,
        body: bytes,
        signature: str | None,
    ) -> DispatchReport | None:
        """Authenticate, filter and dispatch a content notification.

        Returns:
            The fan-out report, or ``None`` when the notification was
            filtered out (deleted video, metadata edit, unwanted Short).

        Raises:
            NotFound: If the subscription is unknown.
            AuthenticationFailure: If the signature does not verify.
            ValidationFailure: If the authenticated body is not a valid feed.
        """
        subscription = await self._subscriptions.get_by_id(subscription_id)
        if subscription is None:
            self._record("rejected")
            raise ErrSubscriptionNotFound
        try:
            feed = verify_notification(subscription.hmac_secret, body, signature)
        except RelayError:
            self._record("rejected")
            raise

        entry = feed.entry
        if entry is None:
            logger.info("Ignoring notification without an entry for %s", subscription_id)
            self._record("filtered")
            return None
        if not should_relay(entry, post_shorts=subscription.post_shorts):
            self._record("filtered")
            return None

        logger.info("New video %s on %s", entry.video_id, subscription.channel_name)
        if self._metrics:
            with self._metrics.track_dispatch():
                report = await self._dispatcher.dispatch(subscription, entry)
        else:
            report = await self._dispatcher.dispatch(subscription, entry)
        self._record("dispatched")
        return report

    def _record(self, outcome: str) -> None:
        if self._metrics:
            self._metrics.record_notification(outcome)
