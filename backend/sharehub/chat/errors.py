"""Exceptions raised by the chat core.

None of these reach the client. The hub either logs and ignores them
(duplicate opens, renames racing a close) or drops the offending message.
"""
from typing import Any


class ChatError(Exception):
    """Base exception for chat core errors."""
    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class DuplicateConnection(ChatError):
    """Raised when the transport opens an id that is already registered."""
    def __init__(self, connection_id: str):
        self.connection_id = connection_id
        super().__init__(f"Connection {connection_id} is already registered")


class UnknownConnection(ChatError):
    """Raised when a connection id is not (or no longer) registered."""
    def __init__(self, connection_id: str):
        self.connection_id = connection_id
        super().__init__(f"Connection {connection_id} is not registered")


class InvalidMessageKind(ChatError):
    """Raised when a chat submission carries an unrecognised kind."""
    def __init__(self, kind: Any):
        self.kind = kind
        super().__init__(f"Invalid message kind: {kind!r}")


class MissingPrivateTarget(ChatError):
    """Raised when a private message targets a connection that is gone."""
    def __init__(self, target_id: str):
        self.target_id = target_id
        super().__init__(f"Private target {target_id} is not connected")
