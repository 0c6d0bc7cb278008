"""
Daemon process for filecron.
Owns the user tables, delivers events and reaps finished commands.
"""

import os
import sys
import signal
import logging
import logging.handlers
from typing import Dict, Optional

# Import pwd only on Unix systems
try:
    import pwd
    HAS_PWD = True
except ImportError:
    HAS_PWD = False

from filecron.config import Config
from filecron.process_registry import ProcessRegistry
from filecron.router import EventRouter
from filecron.spawner import ProcessSpawner
from filecron.table import SpoolTableSource
from filecron.user_table import UserTable
from filecron.watcher import WatchService


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

logger = logging.getLogger(__name__)


def setup_logging(config: Config) -> logging.Logger:
    """
    Set up logging for the daemon.

    Args:
        config: Configuration object

    Returns:
        Logger instance
    """
    handlers = [logging.StreamHandler(sys.stderr)]

    if config.log_file:
        log_dir = os.path.dirname(config.log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        handlers.append(logging.FileHandler(config.log_file))

    if config.syslog and os.path.exists('/dev/log'):
        syslog_handler = logging.handlers.SysLogHandler(
            address='/dev/log',
            facility=logging.handlers.SysLogHandler.LOG_CRON
        )
        syslog_handler.setFormatter(logging.Formatter('filecron: %(message)s'))
        handlers.append(syslog_handler)

    logging.basicConfig(level=config.level, format=LOG_FORMAT, handlers=handlers)
    return logging.getLogger('filecron')


class Daemon:
    """
    Main daemon: one UserTable per allowed user with a table file.
    """

    def __init__(
        self,
        config: Config,
        service: Optional[WatchService] = None,
        source: Optional[SpoolTableSource] = None,
        registry: Optional[ProcessRegistry] = None,
        spawner: Optional[ProcessSpawner] = None
    ):
        """
        Initialize the daemon with all necessary components.

        Args:
            config: Configuration object
            service: Watch service (optional)
            source: Table source (optional, built from config)
            registry: ProcessRegistry (optional)
            spawner: ProcessSpawner (optional)
        """
        self.config = config
        self.service = service or WatchService()
        self.source = source or SpoolTableSource(
            config.spool_dir,
            allow_file=config.allow_file,
            deny_file=config.deny_file
        )
        self.registry = registry or ProcessRegistry()
        self.spawner = spawner or ProcessSpawner()
        self.router = EventRouter()
        self.tables: Dict[str, UserTable] = {}
        self.running = False
        self._reload_requested = False

    def start(self) -> None:
        """Start watching and load the tables of all users."""
        logger.info("Starting filecron daemon")
        self._write_pid_file()
        self.service.start()
        self.reload()

    def reload(self) -> None:
        """Reload every user's table and drop tables of removed users."""
        users = set(self.source.users()) | set(self.tables)
        for user in sorted(users):
            try:
                self.reload_user(user)
            except (OSError, ValueError) as e:
                logger.error(f"Cannot load table for user {user}: {e}")

    def reload_user(self, user: str) -> Optional[UserTable]:
        """
        Reload one user's table.

        The current table (if any) is disposed first. No new table is
        created for users that are unknown, not allowed or have no table
        file.

        Args:
            user: Name of the user

        Returns:
            The loaded table, or None
        """
        table = self.tables.pop(user, None)
        if table is not None:
            table.dispose()
            logger.info(f"Table for user {user} unloaded")

        if not self._user_exists(user):
            logger.warning(f"Table for unknown user {user} ignored")
            return None
        if not self.source.is_allowed(user):
            logger.warning(f"User {user} is not allowed to use tables")
            return None
        if not os.path.exists(self.source.table_path(user)):
            return None

        table = UserTable(
            user,
            service=self.service,
            router=self.router,
            source=self.source,
            registry=self.registry,
            spawner=self.spawner
        )
        table.load()
        self.tables[user] = table
        return table

    def run_once(self, timeout: Optional[float] = None) -> bool:
        """
        Deliver at most one event, then reap finished children.

        Args:
            timeout: Seconds to wait for an event

        Returns:
            True if an event was dispatched
        """
        event = self.service.next_event(timeout=timeout)
        dispatched = False
        if event is not None:
            dispatched = self.router.dispatch(event)
        self.registry.reap_completed()
        return dispatched

    def run(self) -> None:
        """
        Main daemon event loop.

        Runs until stop() is called or SIGTERM/SIGINT is received.
        """
        try:
            self.start()
            self._setup_signal_handlers()
            self.running = True

            logger.info("Entering main event loop")
            while self.running:
                if self._reload_requested:
                    self._reload_requested = False
                    logger.info("Reloading tables")
                    self.reload()
                self.run_once(timeout=self.config.poll_interval)

        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self.shutdown()

    def stop(self) -> None:
        self.running = False

    def shutdown(self) -> None:
        """Dispose all tables, stop watching and clean up."""
        logger.info("Initiating shutdown")
        for user in list(self.tables):
            self.tables.pop(user).dispose()
        self.service.stop()
        self.registry.reap_completed()
        self._remove_pid_file()
        logger.info("Shutdown complete")

    def _user_exists(self, user: str) -> bool:
        if not HAS_PWD:
            return False
        try:
            pwd.getpwnam(user)
            return True
        except KeyError:
            return False

    def _setup_signal_handlers(self) -> None:
        """
        Set up signal handlers for SIGTERM, SIGINT and SIGHUP.
        """
        try:
            signal.signal(signal.SIGTERM, self._handle_sigterm)
            signal.signal(signal.SIGINT, self._handle_sigterm)
            if hasattr(signal, 'SIGHUP'):
                signal.signal(signal.SIGHUP, self._handle_sighup)
        except ValueError as e:
            # Signal handlers can only be set in the main thread
            logger.warning(f"Could not set up signal handlers: {e}")

    def _handle_sigterm(self, signum, frame) -> None:
        logger.info(f"Received signal {signum}, shutting down")
        self.running = False

    def _handle_sighup(self, signum, frame) -> None:
        self._reload_requested = True

    def _write_pid_file(self) -> None:
        if not self.config.pid_file:
            return
        try:
            pid_dir = os.path.dirname(self.config.pid_file)
            if pid_dir:
                os.makedirs(pid_dir, exist_ok=True)
            with open(self.config.pid_file, 'w') as f:
                f.write(f"{os.getpid()}\n")
        except OSError as e:
            logger.warning(f"Cannot write pid file {self.config.pid_file}: {e}")

    def _remove_pid_file(self) -> None:
        if self.config.pid_file and os.path.exists(self.config.pid_file):
            try:
                os.unlink(self.config.pid_file)
            except OSError as e:
                logger.warning(f"Cannot remove pid file {self.config.pid_file}: {e}")
