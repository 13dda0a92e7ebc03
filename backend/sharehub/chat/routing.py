"""Message router: stamps chat submissions and resolves who receives them.

Delivery scopes:
    - Public (no targetId): one send-to-all, every open connection gets it
      once with ``private=False``, the sender included.
    - Strict-private (targetId): the sender always gets an echo; the target
      gets a copy only if it is still registered. Nobody else ever sees it,
      and private bodies are never logged.

Delivery is at-most-once per recipient with no retry and no
acknowledgement. A message whose target has gone away is visible only in
the sender's echo, and the sender is not told.
"""
import logging
import threading
import time
from typing import Any, Callable, Optional

from .errors import MissingPrivateTarget
from .registry import ConnectionRegistry
from .schemas import RoutedMessage, parse_submission
from .transport import EventName, Transport

logger = logging.getLogger(__name__)


class MessageClock:
    """Millisecond timestamps that strictly increase within the process."""

    def __init__(self, time_source: Callable[[], float] = time.time) -> None:
        self._time_source = time_source
        self._last = 0
        self._lock = threading.Lock()

    def now(self) -> int:
        with self._lock:
            current = int(self._time_source() * 1000)
            self._last = max(current, self._last + 1)
            return self._last


class MessageRouter:
    """Routes chat submissions using registry state."""

    def __init__(
        self,
        registry: ConnectionRegistry,
        transport: Transport,
        clock: Optional[MessageClock] = None,
    ) -> None:
        self._registry = registry
        self._transport = transport
        self._clock = clock or MessageClock()

    def route(self, sender_id: str, raw_message: Any) -> RoutedMessage:
        """Validate, stamp and deliver one chat submission.

        Args:
            sender_id: Connection id of the submitter (the only trusted
                identity; any name field in the payload is ignored).
            raw_message: Decoded ``chat_message`` payload.

        Returns:
            The routed message.

        Raises:
            InvalidMessageKind: If the payload's kind is not recognised.
                Nothing is delivered, not even the echo.
        """
        submission = parse_submission(raw_message)

        sender_name = self._registry.lookup(sender_id)
        if sender_name is None:
            sender_name = self._registry.default_name

        message = RoutedMessage(
            body=submission.body,
            senderId=sender_id,
            senderName=sender_name,
            timestamp=self._clock.now(),
            targetId=submission.targetId,
        )

        if message.is_private:
            self._deliver_private(message)
        else:
            delivered = self._transport.send_to_all(
                EventName.CHAT_MESSAGE, message.to_delivery()
            )
            logger.info(
                "[Router] Public %s message %d from %s to %d connections",
                message.kind.value, message.timestamp, sender_id, delivered,
            )
        return message

    def _deliver_private(self, message: RoutedMessage) -> None:
        sender_id = message.senderId
        target_id = message.targetId

        self._transport.send_to_one(sender_id, EventName.CHAT_MESSAGE, message.to_delivery())
        if target_id == sender_id:
            return

        try:
            self._deliver_to_target(message)
        except MissingPrivateTarget as exc:
            logger.info(
                "[Router] Private message %d from %s: %s; echo only",
                message.timestamp, sender_id, exc.message,
            )
            return

        logger.info(
            "[Router] Private %s message %d from %s to %s",
            message.kind.value, message.timestamp, sender_id, target_id,
        )

    def _deliver_to_target(self, message: RoutedMessage) -> None:
        if not self._registry.exists(message.targetId):
            raise MissingPrivateTarget(message.targetId)
        self._transport.send_to_one(
            message.targetId, EventName.CHAT_MESSAGE, message.to_delivery()
        )
