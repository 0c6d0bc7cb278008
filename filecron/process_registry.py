"""
Registry of spawned child processes for filecron.
Tracks children until their exit status has been collected.
"""

import os
import logging
import threading
from dataclasses import dataclass
from typing import Callable, List, Optional


logger = logging.getLogger(__name__)


@dataclass(eq=False)
class SpawnedProcess:
    """A child process awaiting reaping."""
    pid: int
    on_done: Optional[Callable[[], None]] = None


class ProcessRegistry:
    """
    Set of in-flight children with optional completion callbacks.

    reap_completed() never blocks and must be called periodically; it is
    the only place exited children are collected.
    """

    def __init__(self, waitpid: Optional[Callable] = None):
        """
        Initialize ProcessRegistry.

        Args:
            waitpid: Replacement for os.waitpid (used in tests)
        """
        self._waitpid = waitpid or os.waitpid
        self._lock = threading.Lock()
        self._processes: List[SpawnedProcess] = []

    def __len__(self) -> int:
        with self._lock:
            return len(self._processes)

    def pids(self) -> List[int]:
        """Return pids of all tracked children."""
        with self._lock:
            return [proc.pid for proc in self._processes]

    def track(self, pid: int, on_done: Optional[Callable[[], None]] = None) -> SpawnedProcess:
        """
        Record a newly spawned child.

        Args:
            pid: Process ID of the child
            on_done: Called once, after the child has been reaped

        Returns:
            The tracking record
        """
        process = SpawnedProcess(pid=pid, on_done=on_done)
        with self._lock:
            self._processes.append(process)
        logger.debug(f"Tracking child process {pid}")
        return process

    def reap_completed(self) -> List[int]:
        """
        Collect every child that has terminated.

        Polls each tracked child with WNOHANG. Terminated children have
        their callbacks invoked and are then removed; running children are left
        alone.

        Returns:
            Pids of the children reaped by this call
        """
        with self._lock:
            candidates = list(self._processes)

        finished: List[SpawnedProcess] = []
        for process in candidates:
            if self._has_terminated(process.pid):
                finished.append(process)

        if not finished:
            return []

        # Callbacks run outside the lock, before the records are dropped
        for process in finished:
            if process.on_done is not None:
                try:
                    process.on_done()
                except Exception:
                    logger.exception(f"Completion callback for process {process.pid} failed")

        with self._lock:
            self._processes = [p for p in self._processes if p not in finished]

        return [process.pid for process in finished]

    def _has_terminated(self, pid: int) -> bool:
        try:
            res, status = self._waitpid(pid, os.WNOHANG)
        except ChildProcessError:
            # Already collected by someone else
            logger.warning(f"Child process {pid} vanished before it was reaped")
            return True

        if res != pid:
            return False

        if os.WIFEXITED(status):
            logger.debug(f"Child process {pid} exited with status {os.WEXITSTATUS(status)}")
            return True
        if os.WIFSIGNALED(status):
            logger.debug(f"Child process {pid} killed by signal {os.WTERMSIG(status)}")
            return True
        return False
