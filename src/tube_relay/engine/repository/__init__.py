"""Repositories over the relay datastore."""

from tube_relay.engine.repository.accounts import AccountRepository
from tube_relay.engine.repository.forms import FormRepository
from tube_relay.engine.repository.submissions import SubmissionRepository
from tube_relay.engine.repository.subreddits import SubredditRepository
from tube_relay.engine.repository.subscriptions import SubscriptionRepository

__all__ = [
    "AccountRepository",
    "FormRepository",
    "SubmissionRepository",
    "SubredditRepository",
    "SubscriptionRepository",
]
