"""Delivery primitives the chat core needs from a transport.

The core never touches sockets. It hands events to a ``Transport``, which
owns connection identity and the actual byte-level send. Sends are
fire-and-forget: a transport may drop a frame (closed connection, full
queue) without telling the caller beyond the return value.
"""
from abc import ABC, abstractmethod
from typing import Any


class EventName:
    """Event names on the wire (the ``type`` field of every frame)."""

    # Outbound
    CONNECTED = "connected"
    PRESENCE_UPDATE = "presence_update"
    CHAT_MESSAGE = "chat_message"

    # Inbound
    SET_NAME = "set_name"
    REGISTER = "register"
    GET_USERS = "get_users"
    REQUEST_PRESENCE = "request_presence"


class Transport(ABC):
    """One-to-one and one-to-all delivery."""

    @abstractmethod
    def send_to_one(self, connection_id: str, event: str, payload: Any) -> bool:
        """Queue an event for a single connection.

        Returns:
            True if the frame was handed off, False if it was dropped.
        """

    @abstractmethod
    def send_to_all(self, event: str, payload: Any) -> int:
        """Queue an event for every open connection.

        Returns:
            Number of connections the frame was handed off to.
        """
