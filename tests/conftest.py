"""Shared pytest fixtures and configuration for filecron tests"""

import os
import queue
import shutil
import tempfile
from types import SimpleNamespace
import pytest

from filecron.table import Rule
from filecron.watcher import Watch, WatchError


class FakeWatchService:
    """In-memory stand-in for WatchService"""

    def __init__(self, fail_paths=()):
        self.fail_paths = set(fail_paths)
        self.added = []
        self.removed = []
        self.enabled_calls = []
        self.started = False
        self.stopped = False
        self.events = queue.Queue()

    def start(self):
        self.started = True

    def stop(self):
        self.stopped = True

    def add(self, path, mask):
        if path in self.fail_paths:
            raise WatchError(f"Path does not exist: {path}")
        watch = Watch(path, mask)
        self.added.append(watch)
        return watch

    def remove(self, watch):
        watch.active = False
        self.removed.append(watch)

    def set_enabled(self, watch, enabled):
        watch.enabled = enabled
        self.enabled_calls.append((watch, enabled))

    def next_event(self, timeout=None):
        try:
            return self.events.get(timeout=timeout) if timeout else self.events.get_nowait()
        except queue.Empty:
            return None


class FakeSource:
    """Rule source returning fixed rules per user"""

    def __init__(self, rules_by_user=None):
        self.rules_by_user = rules_by_user or {}

    def load(self, user):
        return list(self.rules_by_user.get(user, []))


class FakeSpawner:
    """Records spawn requests instead of forking"""

    def __init__(self, fail=False, first_pid=1000, on_spawn=None):
        self.fail = fail
        self.on_spawn = on_spawn
        self.calls = []
        self._next_pid = first_pid

    def spawn(self, user, argv):
        if self.on_spawn is not None:
            self.on_spawn(user, argv)
        if self.fail:
            raise OSError(11, "Resource temporarily unavailable")
        pid = self._next_pid
        self._next_pid += 1
        self.calls.append(SimpleNamespace(user=user, argv=list(argv), pid=pid))
        return pid


class FakeWaitpid:
    """waitpid replacement driven by a dict of finished children"""

    def __init__(self):
        self.finished = {}  # pid -> raw wait status
        self.vanished = set()
        self.calls = []

    def exit(self, pid, code=0):
        self.finished[pid] = (code & 0xff) << 8

    def kill(self, pid, signum=9):
        self.finished[pid] = signum

    def __call__(self, pid, options):
        self.calls.append((pid, options))
        if pid in self.vanished:
            raise ChildProcessError(10, "No child processes")
        if pid in self.finished:
            return pid, self.finished.pop(pid)
        return 0, 0


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing"""
    tmpdir = tempfile.mkdtemp(prefix='filecron_test_')
    yield tmpdir
    shutil.rmtree(tmpdir, ignore_errors=True)


@pytest.fixture
def current_user():
    """Name of the user running the tests"""
    import pwd
    return pwd.getpwuid(os.getuid()).pw_name


@pytest.fixture
def fake_service():
    return FakeWatchService()


@pytest.fixture
def fake_spawner():
    return FakeSpawner()


@pytest.fixture
def fake_waitpid():
    return FakeWaitpid()


@pytest.fixture
def make_source():
    def _make(rules_by_user):
        return FakeSource(rules_by_user)
    return _make


@pytest.fixture
def sample_rules():
    return [
        Rule(path='/srv/in', mask=0x100, command='echo $@/$#'),
        Rule(path='/srv/conf', mask=0x8, command='reload $#', no_loop=True),
    ]


@pytest.fixture
def make_service():
    def _make(fail_paths=()):
        return FakeWatchService(fail_paths)
    return _make


@pytest.fixture
def make_spawner():
    def _make(fail=False, on_spawn=None):
        return FakeSpawner(fail=fail, on_spawn=on_spawn)
    return _make
