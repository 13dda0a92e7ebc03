"""Chat hub: wires the registry, broadcaster and router to a transport.

The hub implements the callbacks a transport drives:

    on_connect(id)                 -> "connected" to the new client, registry.open
    on_event(id, event, payload)   -> rename, presence request or chat message
    on_disconnect(id)              -> registry.close

Errors never reach the client. Duplicate opens and renames that race a
close are logged and ignored; messages with an invalid kind are dropped.
"""
import logging
from typing import Any, Optional

from sharehub.config import get_config

from .errors import DuplicateConnection, InvalidMessageKind, UnknownConnection
from .manager import ConnectionManager
from .presence import PresenceBroadcaster
from .registry import ConnectionRegistry
from .routing import MessageRouter
from .transport import EventName, Transport

logger = logging.getLogger(__name__)


class ChatHub:
    """Owns one registry and the components that share it."""

    _instance: Optional["ChatHub"] = None

    def __init__(
        self,
        transport: Transport,
        registry: Optional[ConnectionRegistry] = None,
    ) -> None:
        self.transport = transport
        self.registry = registry or ConnectionRegistry()
        self.broadcaster = PresenceBroadcaster(transport)
        self.broadcaster.attach(self.registry)
        self.router = MessageRouter(self.registry, transport)

    @classmethod
    def get_instance(cls) -> "ChatHub":
        """Get or create the process-wide hub, configured from settings."""
        if cls._instance is None:
            config = get_config()
            cls._instance = cls(
                transport=ConnectionManager(outbox_size=config.delivery.outbox_size),
                registry=ConnectionRegistry(
                    default_name=config.presence.default_name,
                    max_name_length=config.presence.max_name_length,
                ),
            )
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Reset the singleton instance (for testing)."""
        cls._instance = None

    # =========================================================================
    # Transport callbacks
    # =========================================================================

    def on_connect(self, connection_id: str) -> None:
        self.transport.send_to_one(
            connection_id, EventName.CONNECTED, {"connectionId": connection_id}
        )
        try:
            self.registry.open(connection_id)
        except DuplicateConnection as exc:
            logger.error(f"[Hub] {exc.message}; duplicate open ignored")

    def on_disconnect(self, connection_id: str) -> None:
        self.registry.close(connection_id)

    def on_event(self, connection_id: str, event: Any, payload: Any) -> None:
        """Dispatch one inbound event from a connection.

        Args:
            connection_id: Transport-assigned id of the sender.
            event: Event name (the frame's ``type``).
            payload: The decoded frame.
        """
        if event in (EventName.SET_NAME, EventName.REGISTER):
            self._handle_set_name(connection_id, payload)
            return

        if event in (EventName.GET_USERS, EventName.REQUEST_PRESENCE):
            self.broadcaster.reply(connection_id, self.registry.snapshot())
            return

        if event == EventName.CHAT_MESSAGE:
            try:
                self.router.route(connection_id, payload)
            except InvalidMessageKind as exc:
                logger.warning(f"[Hub] Dropped message from {connection_id}: {exc.message}")
            return

        logger.debug(f"[Hub] Ignoring unknown event {event!r} from {connection_id}")

    def _handle_set_name(self, connection_id: str, payload: Any) -> None:
        name = None
        if isinstance(payload, dict):
            name = payload.get("name", payload.get("displayName"))
        try:
            self.registry.set_name(connection_id, name)
        except UnknownConnection as exc:
            logger.debug(f"[Hub] Rename ignored: {exc.message}")
