import pytest
from starlette.websockets import WebSocketDisconnect

from horde.core.security import create_verification_token

from conftest import BUDGET_PAYLOAD

SOCKET = "/api/v1/ws/notifications"


def _token(headers):
    return headers["Authorization"].split(" ", 1)[1]


def test_socket_requires_token(client):
    with pytest.raises(WebSocketDisconnect) as exc:
        with client.websocket_connect(SOCKET):
            pass
    assert exc.value.code == 1008


def test_socket_rejects_bad_token(client):
    with pytest.raises(WebSocketDisconnect) as exc:
        with client.websocket_connect(f"{SOCKET}?token=not-a-jwt"):
            pass
    assert exc.value.code == 1008


def test_ping_and_echo(client, user, auth_headers):
    with client.websocket_connect(f"{SOCKET}?token={_token(auth_headers)}") as websocket:
        assert websocket.receive_json() == {"event": "connection_success", "user_id": user[0]["user_id"]}

        websocket.send_json({"type": "ping"})
        assert websocket.receive_json()["event"] == "pong"

        websocket.send_json({"type": "echo", "message": "hello"})
        echoed = websocket.receive_json()
        assert echoed["event"] == "echo_response"
        assert echoed["message"] == "hello"


def test_bearer_header_is_accepted(client, auth_headers):
    with client.websocket_connect(SOCKET, headers=auth_headers) as websocket:
        assert websocket.receive_json()["event"] == "connection_success"


def test_notifications_are_pushed(client, auth_headers):
    with client.websocket_connect(f"{SOCKET}?token={_token(auth_headers)}") as websocket:
        websocket.receive_json()

        client.post("/api/v1/user/budget", json=BUDGET_PAYLOAD, headers=auth_headers)

        pushed = websocket.receive_json()
        assert pushed["event"] == "notification"
        assert pushed["data"]["type"] == "budget_created"
        assert pushed["data"]["title"] == "Budget Created"


def test_socket_rejects_verification_token(client):
    token = create_verification_token("pending-1", 60)
    with pytest.raises(WebSocketDisconnect) as exc:
        with client.websocket_connect(f"{SOCKET}?token={token}"):
            pass
    assert exc.value.code == 1008
