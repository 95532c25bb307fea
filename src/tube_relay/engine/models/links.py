"""Many-to-many link tables.

- ``subscription_reddit_accounts`` — which accounts receive a channel's uploads
- ``reddit_account_subreddits`` — which subreddits an account posts into
- ``subscription_submissions`` — which subscription produced a submission
"""

from __future__ import annotations

from sqlalchemy import Column, ForeignKey, Integer, String, Table

from tube_relay.engine.models.base import Base

subscription_reddit_accounts = Table(
    "subscription_reddit_accounts",
    Base.metadata,
    Column(
        "subscription_id",
        String(64),
        ForeignKey("subscriptions.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "reddit_account_id",
        Integer,
        ForeignKey("reddit_accounts.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)

reddit_account_subreddits = Table(
    "reddit_account_subreddits",
    Base.metadata,
    Column(
        "reddit_account_id",
        Integer,
        ForeignKey("reddit_accounts.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "subreddit_id",
        Integer,
        ForeignKey("subreddits.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)

subscription_submissions = Table(
    "subscription_submissions",
    Base.metadata,
    Column(
        "subscription_id",
        String(64),
        ForeignKey("subscriptions.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "submission_id",
        String(64),
        ForeignKey("submissions.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)
