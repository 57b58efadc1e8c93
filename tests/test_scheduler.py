from horde.core.config import settings
from horde.db import dynamo
from horde.db import notifications as notifications_db
from horde.db import tokens as tokens_db
from horde.db import users as users_db
from horde.models.notification import NotificationType
from horde.models.user import PendingUserInDB
from horde.utils import notifier, scheduler


def test_purge_expired_records(aws):
    live = notifier.create_notification("u1", NotificationType.SYSTEM, "Live", "Still here")
    stale = notifier.create_notification("u1", NotificationType.SYSTEM, "Stale", "Gone soon")
    notifications_db.put_notification({**stale, "expires_at": dynamo.epoch_after(-1)})

    users_db.put_pending_user(
        PendingUserInDB(full_name="Old Signup", email="old@example.com", expires_at=dynamo.epoch_after(-1)).model_dump()
    )
    users_db.put_pending_user(
        PendingUserInDB(full_name="New Signup", email="new@example.com", expires_at=dynamo.epoch_after(600)).model_dump()
    )

    tokens_db.put_token("expired", tokens_db.PASSWORD_RESET, -1, user_id="u1")
    tokens_db.put_token("active", tokens_db.REFRESH, 600, user_id="u1")

    result = scheduler.purge_expired_records()

    assert (result["notifications"], result["pending_users"], result["tokens"]) == (1, 1, 1)
    remaining = notifications_db.get_notifications_for_user("u1", include_expired=True)
    assert [n["notification_id"] for n in remaining] == [live["notification_id"]]
    assert users_db.get_pending_user_by_email("new@example.com")
    assert tokens_db.get_token("active", tokens_db.REFRESH)


def test_scheduler_disabled_by_configuration():
    scheduler.start_scheduler()
    assert scheduler.get_scheduler_status() == {"running": False, "enabled": False, "jobs": []}


def test_scheduler_registers_purge_job(monkeypatch):
    monkeypatch.setattr(settings, "SCHEDULER_ENABLED", True)
    scheduler.start_scheduler()
    try:
        status = scheduler.get_scheduler_status()
        assert status["running"] is True
        assert [job["id"] for job in status["jobs"]] == [scheduler.PURGE_JOB_ID]
    finally:
        scheduler.stop_scheduler()

    assert scheduler.get_scheduler_status()["running"] is False
