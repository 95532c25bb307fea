"""Relay data models (SQLAlchemy ORM).

Import :data:`ALL_MODELS` for table creation.
"""

from tube_relay.engine.models.account import RedditAccount
from tube_relay.engine.models.base import Base
from tube_relay.engine.models.form import FormKind, PendingForm
from tube_relay.engine.models.links import (
    reddit_account_subreddits,
    subscription_reddit_accounts,
    subscription_submissions,
)
from tube_relay.engine.models.submission import Submission
from tube_relay.engine.models.subreddit import Subreddit
from tube_relay.engine.models.subscription import Subscription

ALL_MODELS: list[type[Base]] = [
    Subscription,
    RedditAccount,
    Subreddit,
    Submission,
    PendingForm,
]

__all__ = [
    "ALL_MODELS",
    "Base",
    "FormKind",
    "PendingForm",
    "RedditAccount",
    "Submission",
    "Subreddit",
    "Subscription",
    "reddit_account_subreddits",
    "subscription_reddit_accounts",
    "subscription_submissions",
]
