import pytest

from videotube.core.constants import NOTIFICATION_CLEANUP_JOB_ID
from videotube.core.security import create_access_token
from videotube.models import Notification, NotificationType
from videotube.services import notification_service as ns

BASE = "/api/v1/notifications"


@pytest.fixture
def seed(db, alice, bob):
    def _seed(n=1, recipient=None, sender=None):
        recipient = recipient or alice
        sender = sender or bob
        return [
            ns.create_notification(
                db, recipient.id, NotificationType.SYSTEM, f"Title {i}", f"Message {i}", sender_id=sender.id
            ).id
            for i in range(n)
        ]

    return _seed


def test_requires_authentication(client):
    assert client.get(BASE).status_code == 401
    assert client.get(BASE, headers={"Authorization": "Bearer garbage"}).status_code == 401


def test_token_for_deleted_user_is_rejected(client):
    assert client.get(BASE, headers={"Authorization": f"Bearer {create_access_token(9999)}"}).status_code == 401


def test_access_token_cookie_is_accepted(client, alice):
    client.cookies.set("accessToken", create_access_token(alice.id))

    assert client.get(f"{BASE}/unread-count").status_code == 200


def test_list_notifications(client, alice, auth_headers, seed):
    ids = seed(3)

    r = client.get(BASE, params={"page": 1, "limit": 2}, headers=auth_headers(alice))

    assert r.status_code == 200
    body = r.json()
    assert [n["id"] for n in body["items"]] == [ids[2], ids[1]]
    assert body["total_items"] == 3
    assert body["has_next_page"] is True
    assert body["items"][0]["sender"]["username"] == "bob"


def test_list_rejects_oversized_page(client, alice, auth_headers):
    assert client.get(BASE, params={"limit": 500}, headers=auth_headers(alice)).status_code == 422


def test_unread_count(client, alice, bob, auth_headers, seed):
    seed(2)

    assert client.get(f"{BASE}/unread-count", headers=auth_headers(alice)).json() == {"count": 2}
    assert client.get(f"{BASE}/unread-count", headers=auth_headers(bob)).json() == {"count": 0}


def test_create_notification(client, db, alice, bob, auth_headers):
    r = client.post(
        BASE,
        json={
            "recipient_id": alice.id,
            "type": "new_subscription",
            "title": "New Subscriber",
            "message": "Bob Jones subscribed to your channel",
            "related_channel_id": alice.id,
        },
        headers=auth_headers(bob),
    )

    assert r.status_code == 200
    body = r.json()
    assert body["created"] is True
    assert body["notification"]["sender_id"] == bob.id
    assert body["notification"]["related_channel_id"] == alice.id


def test_create_to_self_is_a_no_op(client, db, alice, auth_headers):
    r = client.post(
        BASE,
        json={"recipient_id": alice.id, "type": "comment_like", "title": "t", "message": "m"},
        headers=auth_headers(alice),
    )

    assert r.status_code == 200
    assert r.json() == {"ok": True, "created": False, "notification": None}
    assert db.query(Notification).count() == 0


@pytest.mark.parametrize(
    "payload",
    [
        {"type": "carrier_pigeon", "title": "t", "message": "m"},
        {"title": "", "message": "m"},
        {"title": "t", "message": "m" * 501},
        {"title": "t", "message": "m", "related_video_id": 1, "related_tweet_id": 2},
    ],
)
def test_create_validation_errors_are_400(client, db, alice, bob, auth_headers, payload):
    r = client.post(BASE, json={"recipient_id": alice.id, **payload}, headers=auth_headers(bob))

    assert r.status_code == 400
    assert db.query(Notification).count() == 0


def test_mark_read_requires_ids(client, alice, auth_headers):
    r = client.patch(f"{BASE}/mark-read", json={"notification_ids": []}, headers=auth_headers(alice))

    assert r.status_code == 400
    assert r.json()["detail"] == "Notification IDs are required"


def test_mark_read_and_mark_all(client, alice, auth_headers, seed):
    ids = seed(3)

    r = client.patch(f"{BASE}/mark-read", json={"notification_ids": ids[:2]}, headers=auth_headers(alice))
    assert r.json() == {"ok": True, "modified_count": 2}

    r = client.patch(f"{BASE}/mark-all-read", headers=auth_headers(alice))
    assert r.json() == {"ok": True, "modified_count": 1}
    assert client.get(f"{BASE}/unread-count", headers=auth_headers(alice)).json() == {"count": 0}


def test_mark_one_read(client, alice, bob, auth_headers, seed):
    (nid,) = seed(1)

    assert client.patch(f"{BASE}/{nid}/mark-read", headers=auth_headers(bob)).status_code == 404
    r = client.patch(f"{BASE}/{nid}/mark-read", headers=auth_headers(alice))
    assert r.status_code == 200
    assert r.json()["notification"]["is_read"] is True


def test_delete_endpoints(client, db, alice, bob, auth_headers, seed):
    ids = seed(3)
    theirs = seed(1, recipient=bob, sender=alice)

    r = client.request("DELETE", f"{BASE}/delete", json={"notification_ids": [ids[0], *theirs]}, headers=auth_headers(alice))
    assert r.json() == {"ok": True, "deleted_count": 1}

    assert client.delete(f"{BASE}/{ids[1]}", headers=auth_headers(alice)).json() == {"ok": True, "id": ids[1]}
    assert client.delete(f"{BASE}/{ids[1]}", headers=auth_headers(alice)).status_code == 404

    assert client.delete(f"{BASE}/delete-all", headers=auth_headers(alice)).json() == {"ok": True, "deleted_count": 1}
    assert db.query(Notification).count() == 1


def test_delete_many_requires_ids(client, alice, auth_headers):
    r = client.request("DELETE", f"{BASE}/delete", json={"notification_ids": []}, headers=auth_headers(alice))

    assert r.status_code == 400


def test_preferences(client, alice, auth_headers):
    r = client.get(f"{BASE}/preferences", headers=auth_headers(alice))
    assert r.json()["comment_likes"] is True

    r = client.patch(f"{BASE}/preferences", json={"comment_likes": False}, headers=auth_headers(alice))
    assert r.status_code == 200
    assert r.json()["comment_likes"] is False

    r = client.patch(f"{BASE}/preferences", json={"nope": True}, headers=auth_headers(alice))
    assert r.status_code == 400


def test_unexpected_error_is_generic_500(client, alice, auth_headers, mocker):
    mocker.patch.object(ns, "get_user_notifications", side_effect=RuntimeError("secret dsn"))

    r = client.get(BASE, headers=auth_headers(alice))

    assert r.status_code == 500
    assert r.json() == {"detail": "Something went wrong"}


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_lifespan_schedules_cleanup_job(db):
    from fastapi.testclient import TestClient

    from videotube.main import app

    with TestClient(app) as c:
        assert c.app.state.scheduler.get_job(NOTIFICATION_CLEANUP_JOB_ID) is not None
    assert app.state.scheduler.running is False
