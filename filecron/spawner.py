"""
Process spawning for filecron.
Forks children that switch to the target user before running anything.
"""

import os
import logging
from typing import List

# Import pwd only on Unix systems
try:
    import pwd
    HAS_PWD = True
except ImportError:
    HAS_PWD = False


logger = logging.getLogger(__name__)


class ProcessSpawner:
    """
    Forks and execs commands with the identity of a given user.
    """

    def spawn(self, user: str, argv: List[str]) -> int:
        """
        Run a command as a user without waiting for it.

        Args:
            user: Name of the user to run as
            argv: Argument vector, argv[0] is looked up in PATH

        Returns:
            Process ID of the child

        Raises:
            OSError: If the fork itself fails
        """
        pid = os.fork()

        if pid == 0:  # Child process
            try:
                self._drop_privileges(user)
                os.execvp(argv[0], argv)
            except BaseException as e:
                try:
                    logger.error(f"cannot exec process: {e}")
                finally:
                    os._exit(1)  # never return into the daemon

        return pid

    def _drop_privileges(self, username: str) -> None:
        """
        Switch the current process to a user's group and user IDs.

        Args:
            username: Username to run as

        Raises:
            RuntimeError: If user doesn't exist or privilege dropping fails
        """
        if not HAS_PWD:
            raise RuntimeError("Privilege dropping not supported on this platform")

        try:
            user_info = pwd.getpwnam(username)
        except KeyError:
            raise RuntimeError(f"User '{username}' does not exist")

        uid = user_info.pw_uid
        gid = user_info.pw_gid

        try:
            if os.geteuid() == 0:
                os.initgroups(username, gid)
            # GID must be set before UID
            os.setgid(gid)
            os.setuid(uid)
        except OSError as e:
            raise RuntimeError(f"Failed to drop privileges to user '{username}': {e}")
