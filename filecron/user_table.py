"""
Per-user rule tables for filecron.
Binds each rule to a watch and runs its command when the watch fires.
"""

import logging
from typing import Dict, List, Optional

from filecron.access import AccessChecker
from filecron.events import WatchEvent, IN_DONT_FOLLOW
from filecron.expander import CommandExpander, CommandExpansionError
from filecron.process_registry import ProcessRegistry
from filecron.router import EventRouter
from filecron.spawner import ProcessSpawner
from filecron.table import Rule
from filecron.watcher import WatchError


logger = logging.getLogger(__name__)


class UserTable:
    """
    The watch-bound rules of one user.

    Lifecycle: constructed empty, populated by load(), emptied by
    dispose(). A disposed table can be loaded again.
    """

    def __init__(
        self,
        user: str,
        service,
        router: EventRouter,
        source,
        registry: ProcessRegistry,
        spawner: Optional[ProcessSpawner] = None,
        access: Optional[AccessChecker] = None
    ):
        """
        Initialize UserTable.

        Args:
            user: Name of the user commands run as
            service: Watch service (add/remove/set_enabled)
            router: EventRouter shared by all tables
            source: Rule source with a load(user) method
            registry: ProcessRegistry tracking spawned children
            spawner: ProcessSpawner (optional)
            access: AccessChecker (optional)
        """
        self.user = user
        self.service = service
        self.router = router
        self.source = source
        self.registry = registry
        self.spawner = spawner or ProcessSpawner()
        self.access = access or AccessChecker()
        self._rules: List[Rule] = []
        self._bindings: Dict[object, Rule] = {}
        self._loaded = False

    @property
    def rules(self) -> List[Rule]:
        return list(self._rules)

    @property
    def watches(self) -> List[object]:
        return list(self._bindings)

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    def load(self) -> None:
        """
        Read the user's rules and create one watch per rule.

        Rules whose watch cannot be created stay unwatched and never fire.
        """
        if self._bindings:
            self.dispose()

        self._rules = list(self.source.load(self.user))

        for rule in self._rules:
            no_follow = bool(rule.mask & IN_DONT_FOLLOW)
            # warning only - permissions may change later
            if not self.access.may_access(rule.path, self.user, no_follow):
                logger.warning(f"access denied on {rule.path} - events will be discarded silently")

            try:
                watch = self.service.add(rule.path, rule.mask)
            except WatchError as e:
                logger.error(f"cannot create watch for user {self.user}: {e}")
                continue

            self._bindings[watch] = rule
            self.router.register(watch, self)

        self._loaded = True
        logger.info(
            f"Loaded table for user {self.user}: "
            f"{len(self._bindings)} of {len(self._rules)} rules watched"
        )

    def dispose(self) -> None:
        """Remove every watch of this table. Safe to call repeatedly."""
        for watch in list(self._bindings):
            self.router.unregister(watch)
            self.service.remove(watch)
        self._bindings.clear()
        self._loaded = False

    def find_rule(self, watch) -> Optional[Rule]:
        return self._bindings.get(watch)

    def on_event(self, event: WatchEvent) -> None:
        """
        Run the command of the rule bound to the event's watch.

        Args:
            event: Event reported for one of this table's watches
        """
        rule = self.find_rule(event.watch)
        if rule is None:
            return

        # discard silently if the user has no access to the watched path
        if not self.access.may_access(rule.path, self.user, bool(event.mask & IN_DONT_FOLLOW)):
            return

        command = CommandExpander.expand(rule.command, rule.path, event.name, event.mask)
        try:
            argv = CommandExpander.prepare_args(command)
        except CommandExpansionError as e:
            logger.error(f"cannot prepare command arguments: {e}")
            return

        logger.info(f"({self.user}) CMD ({command})")

        watch = event.watch
        if rule.no_loop:
            self.service.set_enabled(watch, False)

        try:
            pid = self.spawner.spawn(self.user, argv)
        except OSError as e:
            if rule.no_loop:
                self.service.set_enabled(watch, True)
            logger.error(f"cannot fork process: {e}")
            return

        if rule.no_loop:
            self.registry.track(pid, lambda: self.service.set_enabled(watch, True))
        else:
            self.registry.track(pid)
