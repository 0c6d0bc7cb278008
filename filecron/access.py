"""
Access checks for filecron.
Decides whether a user would be allowed to touch a path, independent of
the identity the daemon itself runs with.
"""

import os
import stat
from typing import Callable, Optional

# Import pwd/grp only on Unix systems
try:
    import pwd
    import grp
    HAS_PWD = True
except ImportError:
    HAS_PWD = False


def _default_getpwnam(username: str):
    return pwd.getpwnam(username)


def _default_getgrgid(gid: int):
    return grp.getgrgid(gid)


class AccessChecker:
    """
    Re-derives owner/group/other permission semantics for an arbitrary user.

    The check is deliberately coarse: any rwx bit in a class that matches
    the user grants access. Classes are tried in the order other, group,
    owner and the first match wins.
    """

    def __init__(
        self,
        getpwnam: Optional[Callable] = None,
        getgrgid: Optional[Callable] = None
    ):
        """
        Initialize AccessChecker.

        Args:
            getpwnam: Password database lookup (defaults to pwd.getpwnam)
            getgrgid: Group database lookup (defaults to grp.getgrgid)
        """
        self._getpwnam = getpwnam or _default_getpwnam
        self._getgrgid = getgrgid or _default_getgrgid

    def may_access(self, path: str, user: str, no_follow: bool = False) -> bool:
        """
        Check whether a user has any access right to a path.

        Args:
            path: Path to check
            user: Name of the user
            no_follow: Do not follow a terminal symbolic link

        Returns:
            True if access is granted by other, group or owner bits
        """
        try:
            st = os.lstat(path) if no_follow else os.stat(path)
        except OSError:
            return False

        mode = st.st_mode

        if mode & stat.S_IRWXO:
            return True

        user_info = self._lookup_user(user)

        if mode & stat.S_IRWXG:
            if user_info is not None and user_info.pw_gid == st.st_gid:
                return True
            if user in self._group_members(st.st_gid):
                return True

        if mode & stat.S_IRWXU:
            if user_info is not None and user_info.pw_uid == st.st_uid:
                return True

        return False

    def _lookup_user(self, user: str):
        if not HAS_PWD and self._getpwnam is _default_getpwnam:
            return None
        try:
            return self._getpwnam(user)
        except KeyError:
            return None

    def _group_members(self, gid: int):
        if not HAS_PWD and self._getgrgid is _default_getgrgid:
            return []
        try:
            return list(self._getgrgid(gid).gr_mem)
        except KeyError:
            return []
