import json

import pytest
from conftest import SERVICE_HEADERS, subscribe

from tazk.domain.push import service as push_service
from tazk.domain.push.schemas import PushNotificationRequest
from tazk.domain.push.service import build_payload, send_push_notification
from tazk.models import PushSubscription


def push(client, headers=SERVICE_HEADERS, **body):
    return client.post("/functions/send-push-notification", json=body, headers=headers)


def test_payload_defaults():
    payload = build_payload(PushNotificationRequest(user_id="u1", title="Hello"))
    assert payload["title"] == "Hello"
    assert payload["body"] == ""
    assert payload["tag"] == "default"
    assert payload["data"] == {"url": "/"}
    assert payload["icon"] == payload["badge"]


def test_payload_merges_extra_data():
    payload = build_payload(
        PushNotificationRequest(user_id="u1", title="Hi", url="/?task=1", tag="t", data={"task_id": "1"})
    )
    assert payload["data"] == {"url": "/?task=1", "task_id": "1"}
    assert payload["tag"] == "t"


def test_user_ids_win_over_user_id():
    request = PushNotificationRequest(user_id="a", user_ids=["b", "c", "b"], title="x")
    assert request.target_user_ids() == ["b", "c"]
    assert PushNotificationRequest(user_id="a", user_ids=[], title="x").target_user_ids() == ["a"]
    assert PushNotificationRequest(title="x").target_user_ids() == []


def test_sends_to_every_subscription_of_the_users(client, alice, bob, carol, webpush_fake):
    subscribe(client, alice, "https://push.example/alice-laptop")
    subscribe(client, alice, "https://push.example/alice-phone")
    subscribe(client, bob, "https://push.example/bob")
    subscribe(client, carol, "https://push.example/carol")

    response = push(client, user_ids=[alice.id, bob.id], title="Standup", body="In 5 minutes", url="/standup")

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Done"
    assert body["sent"] == 3
    assert body["failed"] == 0
    assert len(body["results"]) == 3
    assert {call["endpoint"] for call in webpush_fake.calls} == {
        "https://push.example/alice-laptop",
        "https://push.example/alice-phone",
        "https://push.example/bob",
    }

    payload = json.loads(webpush_fake.calls[0]["data"])
    assert payload["title"] == "Standup"
    assert payload["data"]["url"] == "/standup"
    assert webpush_fake.calls[0]["vapid_claims"]["sub"].startswith("mailto:")
    assert webpush_fake.calls[0]["ttl"] > 0


def test_gone_subscriptions_are_pruned(client, db, alice, webpush_fake):
    subscribe(client, alice, "https://push.example/ok")
    subscribe(client, alice, "https://push.example/gone")
    subscribe(client, alice, "https://push.example/missing")
    subscribe(client, alice, "https://push.example/flaky")
    webpush_fake.failures = {
        "https://push.example/gone": 410,
        "https://push.example/missing": 404,
        "https://push.example/flaky": 500,
    }

    body = push(client, user_id=alice.id, title="Hello").json()

    assert body["sent"] == 1
    assert body["failed"] == 3
    status_codes = sorted(r["status_code"] for r in body["results"])
    assert status_codes == [201, 404, 410, 500]

    remaining = {s.endpoint for s in db.query(PushSubscription).all()}
    assert remaining == {"https://push.example/ok", "https://push.example/flaky"}


def test_invalid_subscriptions_are_failed_and_removed(client, db, alice, webpush_fake):
    db.add(PushSubscription(user_id=alice.id, endpoint="https://push.example/no-keys"))
    db.commit()
    subscribe(client, alice, "https://push.example/ok")

    body = push(client, user_id=alice.id, title="Hello").json()

    assert body["sent"] == 1
    assert body["failed"] == 1
    assert len(webpush_fake.calls) == 1
    db.expire_all()
    assert [s.endpoint for s in db.query(PushSubscription).all()] == ["https://push.example/ok"]


def test_no_subscriptions(client, alice):
    body = push(client, user_id=alice.id, title="Hello").json()
    assert body == {"message": "No subscriptions", "sent": 0, "failed": 0, "results": []}


def test_missing_user_ids_is_400(client):
    response = push(client, title="Hello")
    assert response.status_code == 400
    assert response.json() == {"error": "No user IDs provided"}


def test_missing_vapid_keys_is_500(client, alice, monkeypatch):
    monkeypatch.setattr(push_service, "VAPID_PRIVATE_KEY", None)
    response = push(client, user_id=alice.id, title="Hello")
    assert response.status_code == 500
    assert response.json() == {"error": "VAPID keys not configured"}


def test_requires_service_key_or_user_token(client, alice):
    assert push(client, headers={}, user_id=alice.id, title="Hello").status_code == 401
    assert push(client, headers={"Authorization": "Bearer not.a.token"}, user_id=alice.id, title="x").status_code == 401
    assert push(client, headers=alice.headers, user_id=alice.id, title="Hello").status_code == 200


@pytest.mark.asyncio
async def test_notify_helpers_never_raise(db, alice, monkeypatch):
    monkeypatch.setattr(push_service, "VAPID_PUBLIC_KEY", None)
    assert await push_service.notify_task_assigned(db, alice.id, "Task", "Bob", "task-1") is None


@pytest.mark.asyncio
async def test_send_push_notification_direct(client, db, alice, webpush_fake):
    subscribe(client, alice, "https://push.example/alice")

    result = await send_push_notification(db, PushNotificationRequest(user_id=alice.id, title="Direct"))

    assert result.sent == 1
    assert result.results[0].success is True


class TestSubscriptions:
    def test_subscribe_is_an_upsert(self, client, db, alice):
        first = subscribe(client, alice, "https://push.example/a")
        second = client.post(
            "/push/subscriptions",
            json={"endpoint": "https://push.example/a", "keys": {"p256dh": "new-key", "auth": "new-auth"}},
            headers=alice.headers,
        ).json()

        assert first["id"] == second["id"]
        subscription = db.query(PushSubscription).one()
        assert subscription.p256dh == "new-key"

    def test_unsubscribe(self, client, alice):
        subscribe(client, alice, "https://push.example/a")

        response = client.request(
            "DELETE", "/push/subscriptions", json={"endpoint": "https://push.example/a"}, headers=alice.headers
        )
        assert response.status_code == 200

        again = client.request(
            "DELETE", "/push/subscriptions", json={"endpoint": "https://push.example/a"}, headers=alice.headers
        )
        assert again.status_code == 404

    def test_vapid_public_key(self, client):
        assert client.get("/push/vapid-public-key").json() == {"public_key": "test-vapid-public-key"}


def test_service_worker_is_served(client):
    response = client.get("/sw-push.js")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/javascript")
    assert response.headers["service-worker-allowed"] == "/"
    assert "addEventListener('push'" in response.text


def test_users_may_only_push_to_teammates(client, alice, bob, carol, team):
    assert push(client, headers=alice.headers, user_ids=[alice.id, bob.id], title="Standup").status_code == 200

    response = push(client, headers=alice.headers, user_ids=[bob.id, carol.id], title="Spam")

    assert response.status_code == 403
    assert response.json() == {"error": "You can only notify members of your teams"}


def test_service_key_may_push_to_anyone(client, alice, carol):
    assert push(client, user_ids=[alice.id, carol.id], title="Maintenance").status_code == 200
