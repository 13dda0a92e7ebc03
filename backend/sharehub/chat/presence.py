"""Presence broadcaster: pushes the online list to every connection."""
import logging

from .registry import ConnectionRegistry, PresenceSnapshot
from .transport import EventName, Transport

logger = logging.getLogger(__name__)


class PresenceBroadcaster:
    """Publishes presence snapshots through a transport.

    Every connection receives the same mapping, its own entry included.
    Clients find themselves by comparing against the connection id they got
    in the ``connected`` frame.
    """

    def __init__(self, transport: Transport) -> None:
        self._transport = transport

    def attach(self, registry: ConnectionRegistry) -> None:
        """Publish on every committed registry mutation."""
        registry.add_listener(self.publish)

    def publish(self, snapshot: PresenceSnapshot) -> None:
        delivered = self._transport.send_to_all(EventName.PRESENCE_UPDATE, dict(snapshot))
        logger.debug(
            "[Presence] Published %d users to %d connections", len(snapshot), delivered
        )

    def reply(self, connection_id: str, snapshot: PresenceSnapshot) -> bool:
        """Send the snapshot to a single connection (presence request)."""
        return self._transport.send_to_one(
            connection_id, EventName.PRESENCE_UPDATE, dict(snapshot)
        )
