"""Tests for the repositories against an in-memory SQLite datastore."""

from __future__ import annotations

import pytest

from tube_relay.engine.models import (
    FormKind,
    RedditAccount,
    Submission,
    Subreddit,
    Subscription,
    subscription_submissions,
)
from tube_relay.errors import PersistenceFailure


def _subscription(sub_id: str, *, channel_id: str = "UC1", expires: int | None = None, **kw):
    return Subscription(
        id=sub_id,
        channel_id=channel_id,
        channel_name=kw.pop("channel_name", sub_id),
        hmac_secret="k",
        callback_url=f"https://relay.test/google/subscription/{sub_id}",
        expires=expires,
        **kw,
    )


def _account(name: str = "bot") -> RedditAccount:
    return RedditAccount(
        username=name,
        client_id="id",
        client_secret="secret",
        oauth_token={"access_token": "a"},
        expires_at=100,
    )


class TestSubscriptionRepository:
    async def test_create_and_get(self, subscription_repo) -> None:
        await subscription_repo.create(_subscription("s1", expires=500, post_shorts=True))
        sub = await subscription_repo.get_by_id("s1")
        assert sub.channel_id == "UC1"
        assert sub.expires == 500
        assert sub.post_shorts is True
        assert await subscription_repo.get_by_id("missing") is None

    async def test_update_expiry(self, subscription_repo) -> None:
        await subscription_repo.create(_subscription("s1", expires=1))
        await subscription_repo.update_expiry("s1", 99)
        assert (await subscription_repo.get_by_id("s1")).expires == 99

    async def test_update_expiry_missing(self, subscription_repo) -> None:
        with pytest.raises(PersistenceFailure):
            await subscription_repo.update_expiry("missing", 1)

    async def test_duplicate_id(self, subscription_repo) -> None:
        await subscription_repo.create(_subscription("s1"))
        with pytest.raises(PersistenceFailure):
            await subscription_repo.create(_subscription("s1"))

    async def test_delete_by_channel(self, subscription_repo) -> None:
        await subscription_repo.create(_subscription("s1"))
        await subscription_repo.create(_subscription("s2"))
        await subscription_repo.create(_subscription("s3", channel_id="UC2"))
        assert await subscription_repo.delete_by_channel_id("UC1") == 2
        assert await subscription_repo.delete_by_channel_id("UC1") == 0
        assert await subscription_repo.count() == 1

    async def test_list_with_expiry_and_lapsed(self, subscription_repo) -> None:
        await subscription_repo.create(_subscription("none"))
        await subscription_repo.create(_subscription("past", expires=50))
        await subscription_repo.create(_subscription("future", expires=150))
        with_expiry = {s.id for s in await subscription_repo.list_with_expiry()}
        assert with_expiry == {"past", "future"}
        assert [s.id for s in await subscription_repo.list_lapsed(100)] == ["past"]

    async def test_list_all_sorted_by_name(self, subscription_repo) -> None:
        await subscription_repo.create(_subscription("s1", channel_name="Zed"))
        await subscription_repo.create(_subscription("s2", channel_name="Alpha"))
        assert [s.id for s in await subscription_repo.list_all()] == ["s2", "s1"]

    async def test_account_links(self, subscription_repo, account_repo) -> None:
        await subscription_repo.create(_subscription("s1"))
        a = await account_repo.create(_account("a"))
        b = await account_repo.create(_account("b"))
        assert await subscription_repo.link_account("s1", b.id) is True
        assert await subscription_repo.link_account("s1", a.id) is True
        assert await subscription_repo.link_account("s1", a.id) is False
        assert [x.username for x in await subscription_repo.list_accounts("s1")] == ["a", "b"]

    async def test_link_cascades_on_delete(self, subscription_repo, account_repo) -> None:
        await subscription_repo.create(_subscription("s1"))
        account = await account_repo.create(_account())
        await subscription_repo.link_account("s1", account.id)
        await subscription_repo.delete_by_channel_id("UC1")
        await subscription_repo.create(_subscription("s1"))
        assert await subscription_repo.list_accounts("s1") == []


class TestAccountRepository:
    async def test_create_assigns_id(self, account_repo) -> None:
        account = await account_repo.create(_account())
        assert account.id is not None
        assert account.moderate_submissions is False
        assert await account_repo.count() == 1

    async def test_update_credential(self, account_repo) -> None:
        account = await account_repo.create(_account())
        await account_repo.update_credential(account.id, {"access_token": "b"}, 200)
        stored = await account_repo.get_by_id(account.id)
        assert stored.oauth_token == {"access_token": "b"}
        assert stored.expires_at == 200

    async def test_set_moderation(self, account_repo) -> None:
        account = await account_repo.create(_account())
        await account_repo.set_moderation(account.id, enabled=True)
        assert (await account_repo.get_by_id(account.id)).moderate_submissions is True

    async def test_missing_account(self, account_repo) -> None:
        with pytest.raises(PersistenceFailure):
            await account_repo.set_moderation(42, enabled=True)
        with pytest.raises(PersistenceFailure):
            await account_repo.update_credential(42, {}, 0)


class TestSubredditRepository:
    async def test_get_or_create_is_lazy(self, subreddit_repo) -> None:
        first = await subreddit_repo.get_or_create("videos", title_prefix="[yt] ")
        again = await subreddit_repo.get_or_create("videos", title_prefix="ignored")
        assert again.id == first.id
        assert again.title_prefix == "[yt] "

    def test_compose_title(self) -> None:
        assert Subreddit(name="v").compose_title("T") == "T"
        assert Subreddit(name="v", title_prefix="<", title_suffix=">").compose_title("T") == "<T>"

    async def test_account_links(self, subreddit_repo, account_repo) -> None:
        account = await account_repo.create(_account())
        one = await subreddit_repo.get_or_create("one")
        two = await subreddit_repo.get_or_create("two")
        assert await subreddit_repo.link_account(account.id, two.id) is True
        assert await subreddit_repo.link_account(account.id, one.id) is True
        assert await subreddit_repo.link_account(account.id, one.id) is False
        names = [s.name for s in await subreddit_repo.list_for_account(account.id)]
        assert names == ["one", "two"]


class TestSubmissionRepository:
    @pytest.fixture
    async def targets(self, account_repo, subreddit_repo, subscription_repo):
        account = await account_repo.create(_account())
        subreddit = await subreddit_repo.get_or_create("videos")
        await subscription_repo.create(_subscription("s1"))
        return account, subreddit

    def _submission(self, targets, sub_id: str, created_at: int, video_id: str = "V"):
        account, subreddit = targets
        return Submission(
            id=sub_id,
            video_id=video_id,
            stickied=False,
            reddit_account_id=account.id,
            subreddit_id=subreddit.id,
            created_at=created_at,
        )

    async def test_exists(self, submission_repo, targets) -> None:
        _, subreddit = targets
        assert await submission_repo.exists(subreddit.id, "V") is False
        await submission_repo.create(self._submission(targets, "t3_1", 1))
        assert await submission_repo.exists(subreddit.id, "V") is True
        assert await submission_repo.exists(subreddit.id, "other") is False

    async def test_list_orders_by_creation(self, submission_repo, targets) -> None:
        _, subreddit = targets
        await submission_repo.create(self._submission(targets, "t3_b", 2, "B"))
        await submission_repo.create(self._submission(targets, "t3_c", 3, "C"))
        await submission_repo.create(self._submission(targets, "t3_a", 1, "A"))
        ids = [s.id for s in await submission_repo.list_for_subreddit(subreddit.id)]
        assert ids == ["t3_a", "t3_b", "t3_c"]

    async def test_set_stickied(self, submission_repo, targets) -> None:
        _, subreddit = targets
        await submission_repo.create(self._submission(targets, "t3_1", 1))
        await submission_repo.set_stickied("t3_1", stickied=True)
        [stored] = await submission_repo.list_for_subreddit(subreddit.id)
        assert stored.stickied is True
        with pytest.raises(PersistenceFailure):
            await submission_repo.set_stickied("t3_missing", stickied=True)

    async def test_links_to_subscription(self, submission_repo, targets, datastore) -> None:
        from sqlalchemy import select

        await submission_repo.create(self._submission(targets, "t3_1", 1), subscription_id="s1")
        async with datastore.session() as session:
            rows = (await session.execute(select(subscription_submissions))).all()
        assert [(r.subscription_id, r.submission_id) for r in rows] == [("s1", "t3_1")]


class TestFormRepository:
    async def test_save_get_delete(self, form_repo) -> None:
        await form_repo.save("f1", FormKind.YOUTUBE, {"a": 1}, created_at=5)
        form = await form_repo.get("f1", FormKind.YOUTUBE)
        assert form.form_data == {"a": 1}
        assert form.created_at == 5
        assert await form_repo.delete("f1") is True
        assert await form_repo.delete("f1") is False
        assert await form_repo.get("f1", FormKind.YOUTUBE) is None

    async def test_kind_must_match(self, form_repo) -> None:
        await form_repo.save("f1", FormKind.REDDIT, {}, created_at=0)
        assert await form_repo.get("f1", FormKind.YOUTUBE) is None
