"""End-to-end tests for the HTTP surface.

The app runs with its real engine on an in-memory datastore; the hub,
YouTube and Reddit are answered by one httpx mock transport.
"""

from __future__ import annotations

import json
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest
from fastapi.testclient import TestClient

from tube_relay.api.app import create_app
from tube_relay.websub.signature import compute_signature

CHANNEL_ID = "UCBR8-60-B28hp2BmDPdntcQ"
TOPIC = f"https://www.youtube.com/xml/feeds/videos.xml?channel_id={CHANNEL_ID}"
SECRET = "s3cret"


class FakeUpstream:
    """Answers hub, YouTube and Reddit requests and records what it saw."""

    def __init__(self) -> None:
        self.hub_requests: list[dict[str, list[str]]] = []
        self.submits: list[dict[str, list[str]]] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        host = request.url.host
        path = request.url.path
        if host == "pubsubhubbub.appspot.com":
            self.hub_requests.append(parse_qs(request.content.decode()))
            return httpx.Response(202)
        if host == "www.youtube.com":
            return httpx.Response(
                200,
                content=b'<feed xmlns="http://www.w3.org/2005/Atom"><title>Chan</title></feed>',
            )
        if host == "www.reddit.test" and path == "/api/v1/access_token":
            return httpx.Response(
                200,
                json={
                    "access_token": "access-1",
                    "token_type": "bearer",
                    "expires_in": 3600,
                    "scope": "identity submit",
                    "refresh_token": "refresh-1",
                },
            )
        if host == "oauth.reddit.test" and path == "/api/v1/me":
            return httpx.Response(200, json={"name": "relaybot"})
        if host == "oauth.reddit.test" and path == "/api/submit":
            self.submits.append(parse_qs(request.content.decode()))
            return httpx.Response(
                200,
                json={
                    "json": {
                        "errors": [],
                        "data": {"id": "abc", "name": "t3_abc", "url": "https://redd.it/abc"},
                    }
                },
            )
        return httpx.Response(404)


@pytest.fixture
def upstream():
    return FakeUpstream()


@pytest.fixture
def client(app_config, upstream):
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(upstream))
    app = create_app(config=app_config, http_client=http_client)
    with TestClient(app) as test_client:
        yield test_client


def _subscribe(client: TestClient) -> str:
    resp = client.post(
        "/forms/subscribe",
        json={"topic_url": TOPIC, "hmac_secret": SECRET, "callback_url": "https://relay.test"},
    )
    assert resp.status_code == 202
    return resp.json()["subscription_id"]


def _verify(client: TestClient, subscription_id: str, **params: str) -> httpx.Response:
    query = {
        "hub.mode": "subscribe",
        "hub.topic": TOPIC,
        "hub.challenge": "challenge-123",
        "hub.lease_seconds": "432000",
        **params,
    }
    return client.get(f"/google/subscription/{subscription_id}", params=query)


def _notify(client: TestClient, subscription_id: str, body: bytes, *, secret: str = SECRET):
    return client.post(
        f"/google/subscription/{subscription_id}",
        content=body,
        headers={
            "Content-Type": "application/atom+xml",
            "X-Hub-Signature": f"sha1={compute_signature(secret, body)}",
        },
    )


def _authorize(client: TestClient) -> int:
    resp = client.post(
        "/forms/reddit",
        json={"duration": "permanent", "scopes": "identity,submit"},
        follow_redirects=False,
    )
    assert resp.status_code == 303
    state = parse_qs(urlsplit(resp.headers["location"]).query)["state"][0]
    resp = client.get("/reddit/callback", params={"code": "code-1", "state": state})
    assert resp.status_code == 201
    return resp.json()["id"]


# ---------------------------------------------------------------------------
# Base routes
# ---------------------------------------------------------------------------


class TestBase:
    def test_health(self, client) -> None:
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {
            "status": "ok",
            "engine": "ok",
            "datastore": "ok",
            "scheduler": "ok",
        }

    def test_metrics(self, client) -> None:
        resp = client.get("/metrics")
        assert resp.status_code == 200
        assert "relay_scheduled_timers" in resp.text

    def test_openapi_title(self, client) -> None:
        assert client.get("/openapi.json").json()["info"]["title"] == "tube-relay"

    def test_engine_not_started(self, app_config) -> None:
        app = create_app(config=app_config)
        plain = TestClient(app)
        assert plain.get("/health").json() == {"status": "starting"}
        resp = plain.get("/subscriptions")
        assert resp.status_code == 503
        assert resp.json()["code"] == "not-ready"


# ---------------------------------------------------------------------------
# Hub protocol
# ---------------------------------------------------------------------------


class TestSubscriptionFlow:
    def test_subscribe_sends_hub_request(self, client, upstream) -> None:
        subscription_id = _subscribe(client)
        (request,) = upstream.hub_requests
        assert request["hub.mode"] == ["subscribe"]
        assert request["hub.topic"] == [TOPIC]
        assert request["hub.secret"] == [SECRET]
        assert request["hub.callback"] == [
            f"https://relay.test/google/subscription/{subscription_id}"
        ]

    def test_subscribe_rejects_topic_without_channel(self, client) -> None:
        resp = client.post(
            "/forms/subscribe",
            json={
                "topic_url": "https://www.youtube.com/xml/feeds/videos.xml",
                "hmac_secret": SECRET,
                "callback_url": "https://relay.test",
            },
        )
        assert resp.status_code == 400
        assert resp.json()["code"] == "validation-failure"

    def test_verification_echoes_and_creates(self, client) -> None:
        subscription_id = _subscribe(client)
        resp = _verify(client, subscription_id)
        assert resp.status_code == 200
        assert resp.text == "challenge-123"

        (subscription,) = client.get("/subscriptions").json()
        assert subscription["id"] == subscription_id
        assert subscription["channel_id"] == CHANNEL_ID
        assert subscription["channel_name"] == "Chan"
        assert subscription["expires"] is not None

    def test_verification_unknown_subscription(self, client) -> None:
        assert _verify(client, "never-requested").status_code == 404

    def test_verification_missing_challenge(self, client) -> None:
        resp = client.get(
            "/google/subscription/abc",
            params={"hub.mode": "subscribe", "hub.topic": TOPIC},
        )
        assert resp.status_code == 400
        assert "hub.challenge" in resp.json()["message"]

    def test_verification_bad_mode(self, client) -> None:
        subscription_id = _subscribe(client)
        assert _verify(client, subscription_id, **{"hub.mode": "denied"}).status_code == 400

    def test_unsubscribe_removes_channel(self, client) -> None:
        subscription_id = _subscribe(client)
        _verify(client, subscription_id)
        resp = _verify(client, subscription_id, **{"hub.mode": "unsubscribe"})
        assert resp.text == "challenge-123"
        assert client.get("/subscriptions").json() == []

    def test_manual_resubscribe(self, client, upstream) -> None:
        subscription_id = _subscribe(client)
        _verify(client, subscription_id)
        resp = client.post(f"/subscriptions/{subscription_id}/resubscribe")
        assert resp.status_code == 202
        assert len(upstream.hub_requests) == 2

    def test_resubscribe_unknown(self, client) -> None:
        assert client.post("/subscriptions/nope/resubscribe").status_code == 404


class TestNotifications:
    def test_bad_signature(self, client, feed_xml) -> None:
        subscription_id = _subscribe(client)
        _verify(client, subscription_id)
        resp = _notify(client, subscription_id, feed_xml(), secret="wrong")
        assert resp.status_code == 403
        assert resp.json()["code"] == "authentication-failure"

    def test_missing_signature(self, client, feed_xml) -> None:
        subscription_id = _subscribe(client)
        _verify(client, subscription_id)
        resp = client.post(f"/google/subscription/{subscription_id}", content=feed_xml())
        assert resp.status_code == 403

    def test_unknown_subscription(self, client, feed_xml) -> None:
        assert _notify(client, "missing", feed_xml()).status_code == 404

    def test_metadata_edit_is_filtered(self, client, feed_xml) -> None:
        subscription_id = _subscribe(client)
        _verify(client, subscription_id)
        body = feed_xml(updated="2024-03-10T08:00:00+00:00")
        resp = _notify(client, subscription_id, body)
        assert resp.status_code == 200
        assert resp.json() == {"relayed": False, "created": 0, "skipped": 0, "failed": 0}

    def test_relay_to_linked_subreddit(self, client, upstream, feed_xml) -> None:
        subscription_id = _subscribe(client)
        _verify(client, subscription_id)
        account_id = _authorize(client)
        resp = client.post(f"/accounts/{account_id}/subreddits", json={"name": "r/videos"})
        assert resp.status_code == 201
        resp = client.post(f"/subscriptions/{subscription_id}/accounts/{account_id}")
        assert resp.status_code == 201

        resp = _notify(client, subscription_id, feed_xml(title="Big news"))
        assert resp.json() == {"relayed": True, "created": 1, "skipped": 0, "failed": 0}
        (submit,) = upstream.submits
        assert submit["sr"] == ["videos"]
        assert submit["title"] == ["Big news"]

        # Second delivery of the same video is deduplicated
        resp = _notify(client, subscription_id, feed_xml(title="Big news"))
        assert resp.json() == {"relayed": True, "created": 0, "skipped": 1, "failed": 0}
        assert len(upstream.submits) == 1

        metrics = client.get("/metrics").text
        assert 'relay_submissions_total{outcome="created"} 1.0' in metrics
        assert 'relay_notifications_total{outcome="dispatched"} 2.0' in metrics


# ---------------------------------------------------------------------------
# Reddit accounts
# ---------------------------------------------------------------------------


class TestAccounts:
    def test_authorize_redirect(self, client) -> None:
        resp = client.post("/forms/reddit", json={}, follow_redirects=False)
        assert resp.status_code == 303
        location = urlsplit(resp.headers["location"])
        assert location.netloc == "www.reddit.test"
        query = parse_qs(location.query)
        assert query["client_id"] == ["app-id"]
        assert query["duration"] == ["permanent"]
        assert query["scope"] == ["identity submit"]

    def test_authorize_invalid_scope(self, client) -> None:
        resp = client.post("/forms/reddit", json={"scopes": "identity,teleport"})
        assert resp.status_code == 400

    def test_callback_creates_account(self, client) -> None:
        account_id = _authorize(client)
        (account,) = client.get("/accounts").json()
        assert account["id"] == account_id
        assert account["username"] == "relaybot"
        assert account["moderate_submissions"] is False
        assert account["scopes"] == ["identity", "submit"]
        assert "oauth_token" not in account

    def test_callback_declined(self, client) -> None:
        resp = client.get("/reddit/callback", params={"error": "access_denied"})
        assert resp.status_code == 400
        assert "declined" in resp.json()["message"]

    def test_callback_unknown_state(self, client) -> None:
        resp = client.get(
            "/reddit/callback",
            params={"code": "c", "state": "7b0c6f65-8d4f-4f8e-9a3c-3f0f3b7b5a10"},
        )
        assert resp.status_code == 404

    def test_toggle_moderation(self, client) -> None:
        account_id = _authorize(client)
        resp = client.patch(f"/accounts/{account_id}", json={"moderate_submissions": True})
        assert resp.status_code == 200
        assert resp.json()["moderate_submissions"] is True
        assert client.get("/accounts").json()[0]["moderate_submissions"] is True

    def test_unknown_account(self, client) -> None:
        assert client.get("/accounts/99/subreddits").status_code == 404
        resp = client.patch("/accounts/99", json={"moderate_submissions": True})
        assert resp.status_code == 404

    def test_link_subreddit_twice(self, client) -> None:
        account_id = _authorize(client)
        body = {"name": "videos", "title_prefix": "[New]", "flair_id": "f1"}
        first = client.post(f"/accounts/{account_id}/subreddits", json=body)
        second = client.post(f"/accounts/{account_id}/subreddits", json=body)
        assert first.status_code == 201
        assert first.json() == {"linked": True}
        assert second.status_code == 200
        assert second.json() == {"linked": False}
        (subreddit,) = client.get(f"/accounts/{account_id}/subreddits").json()
        assert subreddit["name"] == "videos"
        assert subreddit["title_prefix"] == "[New]"

    def test_link_subscription_unknown(self, client) -> None:
        account_id = _authorize(client)
        assert client.post(f"/subscriptions/nope/accounts/{account_id}").status_code == 404


def test_error_body_shape(client) -> None:
    resp = client.post("/subscriptions/nope/resubscribe")
    assert json.loads(resp.text) == {"code": "not-found", "message": "subscription not found"}
