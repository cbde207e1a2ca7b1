"""pytest 공용 fixture.

시그널링 코어 단위 테스트용 가짜 WebSocket과 FastAPI TestClient를 제공합니다.
"""

import json
import os

# relay.config가 import 시점에 환경변수를 읽으므로 먼저 설정
os.environ["LOG_DIR"] = ""
os.environ.setdefault("ACCESS_PASSWORD", "")

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketState

from relay import Connection, ConnectionLifecycle, MessageRouter, RoomDirectory


class FakeWebSocket:
    """send_json 호출을 기록하는 WebSocket 대역."""

    def __init__(self, incoming=None):
        self.client_state = WebSocketState.CONNECTED
        self.application_state = WebSocketState.CONNECTED
        self.sent = []
        self.incoming = list(incoming or [])
        self.accepted = False
        self.close_code = None

    async def accept(self):
        self.accepted = True

    async def receive(self):
        if not self.incoming:
            return {"type": "websocket.disconnect", "code": 1000}
        return self.incoming.pop(0)

    async def send_json(self, data, mode="text"):
        self.sent.append(json.loads(json.dumps(data)))

    async def close(self, code=1000, reason=None):
        self.close_code = code
        self.application_state = WebSocketState.DISCONNECTED

    def drop(self):
        """클라이언트 측 연결 끊김을 흉내냅니다."""
        self.client_state = WebSocketState.DISCONNECTED

    def of_type(self, message_type):
        return [m for m in self.sent if m["type"] == message_type]


def text_frame(payload) -> dict:
    return {"type": "websocket.receive", "text": json.dumps(payload)}


@pytest.fixture
def directory():
    return RoomDirectory()


@pytest.fixture
def router(directory):
    return MessageRouter(directory)


@pytest.fixture
def lifecycle(directory, router):
    return ConnectionLifecycle(directory, router, max_message_bytes=1024)


@pytest.fixture
def make_connection():
    def _make():
        return Connection(websocket=FakeWebSocket())
    return _make


@pytest.fixture
def client():
    from app import create_app

    with TestClient(create_app()) as test_client:
        yield test_client
