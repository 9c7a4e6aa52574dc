import logging
import threading
from typing import Any, Dict, Optional, Set

logger = logging.getLogger(__name__)


class PresenceRegistry:
    """Process-wide map of user id to that user's live connection.

    One entry per user: a later connection replaces an earlier one. State
    lives only in memory, so after a restart everyone is offline until they
    reconnect.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._entries: Dict[str, Any] = {}

    def register(self, user_id: str, connection: Any) -> None:
        if not user_id:
            raise ValueError("user_id is required")
        with self._lock:
            previous = self._entries.get(user_id)
            self._entries[user_id] = connection
        if previous is not None and previous is not connection:
            logger.info("User %s reconnected, replacing previous connection", user_id)

    def unregister(self, user_id: str, connection: Any = None) -> bool:
        """Drop the user's entry.

        With ``connection`` given, the entry is only dropped while it still
        points at that connection, so a stale socket closing late leaves a
        newer one registered. Returns True when an entry was removed.
        """
        with self._lock:
            current = self._entries.get(user_id)
            if current is None:
                return False
            if connection is not None and current is not connection:
                return False
            del self._entries[user_id]
            return True

    def lookup(self, user_id: str) -> Optional[Any]:
        with self._lock:
            return self._entries.get(user_id)

    def is_online(self, user_id: str) -> bool:
        return self.lookup(user_id) is not None

    def list_online(self) -> Set[str]:
        with self._lock:
            return set(self._entries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


presence = PresenceRegistry()
