"""Shared test fixtures and configuration for backend tests."""
from typing import Any, Dict, List, Tuple

import pytest
from fastapi.testclient import TestClient

from sharehub.chat.hub import ChatHub
from sharehub.chat.registry import ConnectionRegistry
from sharehub.chat.transport import EventName, Transport
from sharehub.files.service import FileStorageService
from sharehub.main import app


class RecordingTransport(Transport):
    """In-memory transport that records the frames each connection receives.

    Only connections opened with ``connect`` receive anything; sends to other
    ids are dropped, like a real transport dropping frames for closed sockets.
    """

    def __init__(self) -> None:
        self.inboxes: Dict[str, List[Tuple[str, Any]]] = {}

    def connect(self, connection_id: str) -> None:
        self.inboxes[connection_id] = []

    def disconnect(self, connection_id: str) -> None:
        self.inboxes.pop(connection_id, None)

    def send_to_one(self, connection_id: str, event: str, payload: Any) -> bool:
        inbox = self.inboxes.get(connection_id)
        if inbox is None:
            return False
        inbox.append((event, payload))
        return True

    def send_to_all(self, event: str, payload: Any) -> int:
        for inbox in self.inboxes.values():
            inbox.append((event, payload))
        return len(self.inboxes)

    def received(self, connection_id: str, event: str) -> List[Any]:
        return [p for e, p in self.inboxes.get(connection_id, []) if e == event]

    def chat(self, connection_id: str) -> List[Any]:
        return self.received(connection_id, EventName.CHAT_MESSAGE)

    def presence(self, connection_id: str) -> List[Any]:
        return self.received(connection_id, EventName.PRESENCE_UPDATE)

    def clear(self) -> None:
        for inbox in self.inboxes.values():
            inbox.clear()


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def registry():
    return ConnectionRegistry()


@pytest.fixture
def hub(transport, registry):
    return ChatHub(transport=transport, registry=registry)


@pytest.fixture
def connect(hub, transport):
    """Open connections on both the fake transport and the hub."""
    def _connect(*connection_ids: str) -> None:
        for connection_id in connection_ids:
            transport.connect(connection_id)
            hub.on_connect(connection_id)
    return _connect


@pytest.fixture(autouse=True)
def isolated_services(tmp_path):
    """Give each test a fresh hub and a throwaway upload store."""
    ChatHub.reset_instance()
    FileStorageService.reset_instance()
    FileStorageService.get_instance(
        upload_dir=str(tmp_path / "uploads"),
        db_path=":memory:",
    )
    yield
    FileStorageService.reset_instance()
    ChatHub.reset_instance()


@pytest.fixture
def api_client():
    """Provide a TestClient for the main FastAPI app.

    Named api_client (not client) to avoid shadowing the module-level
    `client = TestClient(app)` pattern used in existing test files.
    """
    return TestClient(app)
