"""RelayEngine — central engine owning every relay service."""

from __future__ import annotations

import logging
from functools import partial
from typing import TYPE_CHECKING

import httpx

from tube_relay.datastore.client import Datastore
from tube_relay.datastore.migrations import run_auto_migrate
from tube_relay.dispatch.dispatcher import CrossPostDispatcher
from tube_relay.dispatch.pinning import PinRotation
from tube_relay.engine.repository import (
    AccountRepository,
    FormRepository,
    SubmissionRepository,
    SubredditRepository,
    SubscriptionRepository,
)
from tube_relay.metrics.collector import RelayMetrics
from tube_relay.reddit.authorization import RedditAuthorization
from tube_relay.reddit.client import RedditClient
from tube_relay.reddit.credentials import CredentialRefresher
from tube_relay.scheduler.resubscriber import ResubscriptionScheduler
from tube_relay.taskmanager.manager import CronJob, TaskManager
from tube_relay.taskmanager.tasks import task_calculate_metrics, task_resubscribe_lapsed
from tube_relay.websub.hub import HubClient
from tube_relay.websub.protocol import SubscriptionProtocolHandler

if TYPE_CHECKING:
    from tube_relay.config.settings import AppConfig

logger = logging.getLogger(__name__)

_ERR_NOT_INITIALIZED = "Engine not initialized. Call initialize() first."


class RelayEngine:
    """Owns the datastore, the shared HTTP client and the relay services.

    One ``httpx.AsyncClient`` is created here and handed to every component
    that calls out. A client passed in by the caller is used as-is and left
    open on close.
    """

    def __init__(self, config: AppConfig, *, http_client: httpx.AsyncClient | None = None) -> None:
        self._config = config
        self._initialized = False
        self._external_http = http_client

        self._datastore: Datastore | None = None
        self._http: httpx.AsyncClient | None = None
        self._metrics: RelayMetrics | None = None

        self._subscriptions: SubscriptionRepository | None = None
        self._accounts: AccountRepository | None = None
        self._subreddits: SubredditRepository | None = None
        self._submissions: SubmissionRepository | None = None
        self._forms: FormRepository | None = None

        self._hub: HubClient | None = None
        self._reddit: RedditClient | None = None
        self._authorization: RedditAuthorization | None = None
        self._credentials: CredentialRefresher | None = None
        self._dispatcher: CrossPostDispatcher | None = None
        self._scheduler: ResubscriptionScheduler | None = None
        self._protocol: SubscriptionProtocolHandler | None = None
        self._task_manager: TaskManager | None = None

    async def initialize(self) -> None:
        """Open storage, wire the services and start background work.

        Raises:
            RuntimeError: If already initialized.
        """
        if self._initialized:
            msg = "Engine already initialized"
            raise RuntimeError(msg)

        config = self._config
        self._datastore = Datastore(config.db)
        await self._datastore.open()
        await run_auto_migrate(self._datastore.engine)

        self._http = self._external_http or httpx.AsyncClient(
            timeout=config.hub.request_timeout,
            follow_redirects=True,
        )
        if config.metrics.enabled:
            self._metrics = RelayMetrics()

        self._subscriptions = SubscriptionRepository(self._datastore)
        self._accounts = AccountRepository(self._datastore)
        self._subreddits = SubredditRepository(self._datastore)
        self._submissions = SubmissionRepository(self._datastore)
        self._forms = FormRepository(self._datastore)

        self._hub = HubClient(config.hub, self._http)
        self._reddit = RedditClient(config.reddit, self._http)
        self._authorization = RedditAuthorization(
            config.reddit,
            reddit=self._reddit,
            accounts=self._accounts,
            forms=self._forms,
        )
        self._credentials = CredentialRefresher(
            self._accounts,
            self._reddit,
            metrics=self._metrics,
        )
        self._dispatcher = CrossPostDispatcher(
            subscriptions=self._subscriptions,
            subreddits=self._subreddits,
            submissions=self._submissions,
            credentials=self._credentials,
            reddit=self._reddit,
            pins=PinRotation(self._submissions, self._reddit),
            metrics=self._metrics,
        )
        self._scheduler = ResubscriptionScheduler(
            self._renew,
            safety_buffer=config.scheduler.safety_buffer_seconds,
            min_delay=config.scheduler.min_delay_seconds,
            queue_size=config.scheduler.queue_size,
            metrics=self._metrics,
        )
        self._protocol = SubscriptionProtocolHandler(
            hub=self._hub,
            subscriptions=self._subscriptions,
            forms=self._forms,
            scheduler=self._scheduler,
            dispatcher=self._dispatcher,
            callback_path=config.hub.callback_path,
            metrics=self._metrics,
        )

        await self._scheduler.start()
        self._scheduler.prime(await self._subscriptions.list_with_expiry())

        if config.task.enabled:
            self._task_manager = TaskManager(metrics=self._metrics)
            self._task_manager.register(
                "resubscribe_lapsed",
                CronJob(
                    handler=partial(task_resubscribe_lapsed, self),
                    period=config.task.resubscribe_sweep_period,
                    run_at_start=True,
                ),
            )
            if self._metrics is not None:
                self._task_manager.register(
                    "calculate_metrics",
                    CronJob(
                        handler=partial(task_calculate_metrics, self, self._metrics),
                        period=config.task.metrics_period,
                    ),
                )
            await self._task_manager.start()

        self._initialized = True
        logger.info("Relay engine initialized")

    async def close(self) -> None:
        """Stop background work and release connections. Idempotent."""
        if not self._initialized:
            return

        if self._task_manager is not None:
            await self._task_manager.stop()
            self._task_manager = None
        if self._scheduler is not None:
            await self._scheduler.stop()
            self._scheduler = None

        self._protocol = None
        self._dispatcher = None
        self._credentials = None
        self._authorization = None
        self._hub = None
        self._reddit = None
        self._metrics = None

        if self._http is not None:
            if self._external_http is None:
                await self._http.aclose()
            self._http = None

        if self._datastore is not None:
            await self._datastore.close()
            self._datastore = None

        self._initialized = False
        logger.info("Relay engine closed")

    async def _renew(self, subscription_id: str) -> None:
        """Scheduler action: renew one subscription with the hub."""
        await self.protocol.resubscribe(subscription_id)

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def config(self) -> AppConfig:
        return self._config

    @property
    def datastore(self) -> Datastore:
        if self._datastore is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._datastore

    @property
    def subscriptions(self) -> SubscriptionRepository:
        if self._subscriptions is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._subscriptions

    @property
    def accounts(self) -> AccountRepository:
        if self._accounts is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._accounts

    @property
    def subreddits(self) -> SubredditRepository:
        if self._subreddits is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._subreddits

    @property
    def submissions(self) -> SubmissionRepository:
        if self._submissions is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._submissions

    @property
    def forms(self) -> FormRepository:
        if self._forms is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._forms

    @property
    def reddit(self) -> RedditClient:
        if self._reddit is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._reddit

    @property
    def authorization(self) -> RedditAuthorization:
        if self._authorization is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._authorization

    @property
    def scheduler(self) -> ResubscriptionScheduler:
        if self._scheduler is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._scheduler

    @property
    def protocol(self) -> SubscriptionProtocolHandler:
        if self._protocol is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._protocol

    @property
    def metrics(self) -> RelayMetrics | None:
        """Relay metrics, or None when metrics are disabled."""
        return self._metrics

    @property
    def task_manager(self) -> TaskManager | None:
        """Task manager, or None when cron jobs are disabled."""
        return self._task_manager

    async def health_check(self) -> dict[str, str]:
        """Report the status of each component (``ok``, ``error``, ``not_initialized``)."""
        if not self._initialized:
            return {"engine": "not_initialized", "datastore": "unknown", "scheduler": "unknown"}
        return {
            "engine": "ok",
            "datastore": "ok" if self._datastore and self._datastore.is_open else "error",
            "scheduler": "ok" if self._scheduler and self._scheduler.is_running else "error",
        }
