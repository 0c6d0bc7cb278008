"""File system watches using watchdog library"""

import os
import queue
import logging
import threading
from typing import Dict, List, Optional

from watchdog.observers import Observer
from watchdog.events import FileSystemEventHandler, FileSystemEvent

from filecron.events import (
    WatchEvent, dump_types,
    IN_CREATE, IN_DELETE, IN_DELETE_SELF, IN_MODIFY, IN_MOVED_FROM,
    IN_MOVED_TO, IN_MOVE_SELF, IN_CLOSE_WRITE, IN_CLOSE_NOWRITE, IN_OPEN,
    IN_ISDIR,
)


logger = logging.getLogger(__name__)

EVENT_TYPE_BITS = {
    'created': IN_CREATE,
    'deleted': IN_DELETE,
    'modified': IN_MODIFY,
    'closed': IN_CLOSE_WRITE,
    'closed_no_write': IN_CLOSE_NOWRITE,
    'opened': IN_OPEN,
}


class WatchError(Exception):
    """Raised when a watch cannot be registered"""
    pass


class Watch:
    """
    Handle of one registered watch.

    Handles compare by identity: two rules on the same path get two
    distinct handles.
    """

    def __init__(self, path: str, mask: int):
        self.path = path
        self.mask = mask
        self.enabled = True
        self.active = True

    def __repr__(self) -> str:
        state = "enabled" if self.enabled else "disabled"
        return f"<Watch {self.path!r} mask={self.mask:#x} {state}>"


class _PathHandler(FileSystemEventHandler):
    """
    Receives watchdog events for one path and fans them out to every
    watch registered on that path.
    """

    def __init__(self, service: "WatchService", path: str):
        super().__init__()
        self.service = service
        self.path = path
        self.watches: List[Watch] = []
        self.observed = None

    def dispatch(self, event: FileSystemEvent) -> None:
        for name, mask in translate_event(self.path, event):
            self.service._deliver(self, name, mask)


def _relative_name(root: str, path: str) -> Optional[str]:
    """Name of path relative to root, '' for root itself, None if outside."""
    if os.path.normpath(path) == root:
        return ''
    if os.path.dirname(os.path.normpath(path)) == root:
        return os.path.basename(path)
    return None


def translate_event(root: str, event: FileSystemEvent):
    """
    Convert a watchdog event into (name, mask) pairs in inotify terms.

    Args:
        root: Watched path (normalized)
        event: Event reported by watchdog

    Returns:
        List of (name, mask) tuples, possibly empty
    """
    isdir = IN_ISDIR if event.is_directory else 0
    src_name = _relative_name(root, event.src_path)

    if event.event_type == 'moved':
        results = []
        if src_name == '':
            return [('', IN_MOVE_SELF | isdir)]
        if src_name is not None:
            results.append((src_name, IN_MOVED_FROM | isdir))
        dest_name = _relative_name(root, getattr(event, 'dest_path', '') or '')
        if dest_name:
            results.append((dest_name, IN_MOVED_TO | isdir))
        return results

    bits = EVENT_TYPE_BITS.get(event.event_type)
    if bits is None or src_name is None:
        return []

    if src_name == '':
        if event.event_type == 'deleted':
            bits = IN_DELETE_SELF
        elif event.is_directory and event.event_type == 'modified':
            # watchdog reports the parent directory as modified on every
            # change inside it; inotify does not
            return []

    return [(src_name, bits | isdir)]


class WatchService:
    """
    Registry of watches backed by a watchdog Observer.

    Events are queued by observer threads and consumed one at a time
    through next_event().
    """

    def __init__(self, observer: Optional[Observer] = None):
        """
        Initialize WatchService.

        Args:
            observer: Observer instance (defaults to watchdog's Observer)
        """
        self.observer = observer if observer is not None else Observer()
        self._lock = threading.Lock()
        self._handlers: Dict[str, _PathHandler] = {}
        self._events: "queue.Queue[WatchEvent]" = queue.Queue()

    def start(self) -> None:
        """Start the observer thread."""
        if not self.observer.is_alive():
            self.observer.start()
            logger.info("Watch service started")

    def stop(self) -> None:
        """Stop the observer and drop all watches."""
        with self._lock:
            for handler in self._handlers.values():
                for watch in handler.watches:
                    watch.active = False
            self._handlers.clear()

        if self.observer.is_alive():
            self.observer.stop()
            self.observer.join(timeout=5)
            logger.info("Watch service stopped")

    def add(self, path: str, mask: int) -> Watch:
        """
        Register a watch.

        Args:
            path: Path to watch
            mask: Event types to report

        Returns:
            New watch handle

        Raises:
            WatchError: If the path cannot be watched
        """
        root = os.path.normpath(path)
        if not os.path.lexists(root):
            raise WatchError(f"Path does not exist: {path}")

        watch = Watch(path, mask)

        with self._lock:
            handler = self._handlers.get(root)
            if handler is None:
                handler = _PathHandler(self, root)
                try:
                    handler.observed = self.observer.schedule(handler, root, recursive=False)
                except OSError as e:
                    raise WatchError(f"Cannot watch {path}: {e}")
                self._handlers[root] = handler
            handler.watches.append(watch)

        logger.debug(f"Added watch on {path} (mask {dump_types(mask)})")
        return watch

    def remove(self, watch: Watch) -> None:
        """
        Unregister a watch. Removing an inactive watch is a no-op.

        Args:
            watch: Handle returned by add()
        """
        root = os.path.normpath(watch.path)
        observed = None

        with self._lock:
            watch.active = False
            handler = self._handlers.get(root)
            if handler is None or watch not in handler.watches:
                return
            handler.watches.remove(watch)
            if not handler.watches:
                del self._handlers[root]
                observed = handler.observed

        if observed is not None:
            try:
                self.observer.unschedule(observed)
            except KeyError:
                logger.debug(f"Watch on {watch.path} already gone from observer")

        logger.debug(f"Removed watch on {watch.path}")

    def set_enabled(self, watch: Watch, enabled: bool) -> None:
        """Enable or disable event delivery for a watch."""
        watch.enabled = enabled

    def next_event(self, timeout: Optional[float] = None) -> Optional[WatchEvent]:
        """
        Wait for the next event.

        Args:
            timeout: Seconds to wait, None to block indefinitely

        Returns:
            Next event, or None if the timeout expired
        """
        try:
            return self._events.get(timeout=timeout)
        except queue.Empty:
            return None

    @staticmethod
    def dump_types(mask: int) -> str:
        return dump_types(mask)

    def _deliver(self, handler: _PathHandler, name: str, mask: int) -> None:
        with self._lock:
            bits = mask & ~IN_ISDIR
            targets = [w for w in handler.watches if w.active and w.enabled and w.mask & bits]
        for watch in targets:
            self._events.put(WatchEvent(watch=watch, name=name, mask=mask))
