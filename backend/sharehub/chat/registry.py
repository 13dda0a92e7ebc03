"""Connection registry: who is online and under which display name.

The registry is the only shared mutable state in the chat core. A single
lock guards the id -> name mapping; every mutation and every read takes it.

Presence listeners are notified while the lock is still held, right after a
mutation commits. Listeners therefore observe mutations in commit order,
and must not call back into the registry.

Thread Safety:
    Safe for use from multiple threads and from the event loop. Operations
    are O(1) apart from ``snapshot``, which copies the mapping.
"""
import logging
import threading
from types import MappingProxyType
from typing import Callable, Dict, List, Mapping, Optional

from .errors import DuplicateConnection, UnknownConnection

logger = logging.getLogger(__name__)

DEFAULT_DISPLAY_NAME = "Anonymous"

# Maximum number of characters kept from a client-supplied display name
DEFAULT_MAX_NAME_LENGTH = 64

# Immutable id -> displayName mapping taken at one point in time
PresenceSnapshot = Mapping[str, str]

PresenceListener = Callable[[PresenceSnapshot], None]


class ConnectionRegistry:
    """Tracks live connections and their display names.

    Attributes:
        default_name: Sentinel used until a connection sets a name, and for
            empty or whitespace-only names.
        max_name_length: Names longer than this are truncated.
    """

    def __init__(
        self,
        default_name: str = DEFAULT_DISPLAY_NAME,
        max_name_length: int = DEFAULT_MAX_NAME_LENGTH,
    ) -> None:
        self.default_name = default_name
        self.max_name_length = max_name_length
        self._names: Dict[str, str] = {}
        self._listeners: List[PresenceListener] = []
        self._lock = threading.Lock()

    def add_listener(self, listener: PresenceListener) -> None:
        """Subscribe to committed mutations."""
        with self._lock:
            self._listeners.append(listener)

    # =========================================================================
    # Mutations
    # =========================================================================

    def open(self, connection_id: str) -> None:
        """Register a new connection under the default name.

        Raises:
            DuplicateConnection: If the id is already registered. The existing
                record is left untouched and no listener is notified.
        """
        with self._lock:
            if connection_id in self._names:
                raise DuplicateConnection(connection_id)
            self._names[connection_id] = self.default_name
            logger.info(
                "[Registry] Opened %s (%d online)", connection_id, len(self._names)
            )
            self._notify()

    def set_name(self, connection_id: str, name: object) -> str:
        """Change a connection's display name.

        Args:
            connection_id: Connection to rename.
            name: Requested name. Anything that is not a non-blank string
                becomes the default name.

        Returns:
            The name actually stored.

        Raises:
            UnknownConnection: If the id is not registered (for example a
                rename racing a close).
        """
        resolved = self.normalize_name(name)
        with self._lock:
            if connection_id not in self._names:
                raise UnknownConnection(connection_id)
            self._names[connection_id] = resolved
            logger.info("[Registry] %s is now %r", connection_id, resolved)
            self._notify()
        return resolved

    def close(self, connection_id: str) -> bool:
        """Remove a connection. Closing an absent id is a no-op.

        Returns:
            True if a record was removed, False otherwise.
        """
        with self._lock:
            if self._names.pop(connection_id, None) is None:
                logger.debug("[Registry] Close of unknown connection %s ignored", connection_id)
                return False
            logger.info(
                "[Registry] Closed %s (%d online)", connection_id, len(self._names)
            )
            self._notify()
            return True

    # =========================================================================
    # Reads
    # =========================================================================

    def snapshot(self) -> PresenceSnapshot:
        """Return a read-only copy of the current id -> name mapping."""
        with self._lock:
            return self._snapshot_locked()

    def exists(self, connection_id: str) -> bool:
        """Return True while the connection is registered."""
        with self._lock:
            return connection_id in self._names

    def lookup(self, connection_id: str) -> Optional[str]:
        """Return the current display name, or None if not registered."""
        with self._lock:
            return self._names.get(connection_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._names)

    def normalize_name(self, name: object) -> str:
        if not isinstance(name, str) or not name.strip():
            return self.default_name
        return name.strip()[: self.max_name_length]

    # =========================================================================
    # Internals
    # =========================================================================

    def _snapshot_locked(self) -> PresenceSnapshot:
        return MappingProxyType(dict(self._names))

    def _notify(self) -> None:
        # Caller holds the lock; the mutation is already committed.
        snapshot = self._snapshot_locked()
        for listener in self._listeners:
            try:
                listener(snapshot)
            except Exception:
                logger.exception("[Registry] Presence listener %r failed", listener)
