from horde.db import dynamo
from horde.db import notifications as notifications_db
from horde.models.notification import NotificationType
from horde.utils import notifier

NOTIFICATIONS = "/api/v1/user/notifications"


def _seed(user_id, count=3):
    return [
        notifier.create_notification(user_id, NotificationType.SYSTEM, f"Notice {i}", f"Message {i}")
        for i in range(count)
    ]


def test_list_newest_first(client, user, auth_headers):
    _seed(user[0]["user_id"])

    response = client.get(NOTIFICATIONS, params={"limit": 2}, headers=auth_headers)
    assert response.status_code == 200
    body = response.json()
    assert [n["title"] for n in body["notifications"]] == ["Notice 2", "Notice 1"]
    assert body["pagination"]["total_items_count"] == 3
    assert body["pagination"]["total_pages"] == 2


def test_expired_notifications_are_hidden(client, user, auth_headers):
    stale, fresh = _seed(user[0]["user_id"], 2)
    notifications_db.put_notification({**stale, "expires_at": dynamo.epoch_after(-60)})

    titles = [n["title"] for n in client.get(NOTIFICATIONS, headers=auth_headers).json()["notifications"]]
    assert titles == [fresh["title"]]


def test_read_state(client, user, auth_headers):
    first, _, _ = _seed(user[0]["user_id"])

    assert client.get(f"{NOTIFICATIONS}/unread-count", headers=auth_headers).json() == {"unread_count": 3}

    response = client.patch(f"{NOTIFICATIONS}/{first['notification_id']}/read", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["notification"]["read"] is True
    assert client.get(f"{NOTIFICATIONS}/unread-count", headers=auth_headers).json() == {"unread_count": 2}

    read = client.get(NOTIFICATIONS, params={"read": True}, headers=auth_headers).json()
    assert [n["notification_id"] for n in read["notifications"]] == [first["notification_id"]]

    marked = client.patch(f"{NOTIFICATIONS}/read-all", headers=auth_headers).json()
    assert marked["updated_count"] == 2
    assert client.get(f"{NOTIFICATIONS}/unread-count", headers=auth_headers).json() == {"unread_count": 0}


def test_mark_unknown_notification(client, auth_headers):
    response = client.patch(f"{NOTIFICATIONS}/missing/read", headers=auth_headers)
    assert response.status_code == 404


def test_notifications_are_private(client, user, make_user):
    mine = _seed(user[0]["user_id"], 1)[0]
    _, other_headers = make_user(email="oscar@example.com", full_name="Oscar")

    assert client.get(NOTIFICATIONS, headers=other_headers).json()["notifications"] == []
    assert client.patch(f"{NOTIFICATIONS}/{mine['notification_id']}/read", headers=other_headers).status_code == 404
