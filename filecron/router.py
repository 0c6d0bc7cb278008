"""
Event routing for filecron.
Maps watch handles to the rule table that owns them.
"""

import logging
import threading
from typing import Any, Dict, Optional

from filecron.events import WatchEvent


logger = logging.getLogger(__name__)


class EventRouter:
    """
    Forwards events to the table owning the watch they were reported for.

    Tables are referenced, not owned. Registration and unregistration are
    the only mutators and may run concurrently with dispatch().
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._tables: Dict[Any, Any] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._tables)

    def register(self, watch: Any, table: Any) -> None:
        """
        Route events of a watch to a table.

        Args:
            watch: Watch handle
            table: Object with an on_event(event) method
        """
        if watch is None or table is None:
            return
        with self._lock:
            self._tables[watch] = table

    def unregister(self, watch: Any) -> None:
        """Stop routing events of one watch."""
        with self._lock:
            self._tables.pop(watch, None)

    def unregister_all(self, table: Any) -> None:
        """Stop routing events to a table, whichever watch they come from."""
        with self._lock:
            for watch in [w for w, t in self._tables.items() if t is table]:
                del self._tables[watch]

    def find_table(self, watch: Any) -> Optional[Any]:
        """Return the table owning a watch, or None."""
        with self._lock:
            return self._tables.get(watch)

    def dispatch(self, event: Optional[WatchEvent]) -> bool:
        """
        Deliver an event to its table.

        Events for unknown watches are ignored; they can only appear when a
        table is disposed while its events are still queued.

        Args:
            event: Decoded event

        Returns:
            True if a table received the event
        """
        if event is None or event.watch is None:
            return False

        table = self.find_table(event.watch)
        if table is None:
            logger.debug(f"No table for watch {event.watch!r}, event dropped")
            return False

        table.on_event(event)
        return True
