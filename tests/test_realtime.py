import logging
from concurrent.futures import Future

from horde.core.realtime import ConnectionManager


def test_failed_publish_is_logged(caplog):
    future = Future()
    future.set_exception(RuntimeError("loop gone"))

    with caplog.at_level(logging.ERROR, logger="horde.core.realtime"):
        ConnectionManager._log_failure("user-1", "notification", future)

    assert "Publishing notification to user user-1 failed" in caplog.text
    assert "loop gone" in caplog.text


def test_successful_publish_logs_nothing(caplog):
    future = Future()
    future.set_result(1)

    with caplog.at_level(logging.ERROR, logger="horde.core.realtime"):
        ConnectionManager._log_failure("user-1", "notification", future)

    assert caplog.text == ""


def test_publish_without_sockets_is_a_no_op():
    manager = ConnectionManager()
    manager.publish("user-1", "notification", {"title": "Hi"})
    assert manager.connection_count("user-1") == 0
