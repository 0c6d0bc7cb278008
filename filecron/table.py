"""
Rule table parsing and loading for filecron.

A table holds one rule per line:

    <path> <mask> <command>

Fields are separated by spaces or tabs. Spaces inside the path are
escaped with a backslash. Empty lines and lines starting with '#' are
ignored.
"""

import os
import re
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from filecron.events import parse_mask, format_mask


logger = logging.getLogger(__name__)

_LINE_RE = re.compile(r'^((?:\\.|[^\s\\])+)\s+(\S+)\s+(.*?)(?<!\\)\s*$')


@dataclass(frozen=True)
class Rule:
    """
    A single table entry.
    """
    path: str
    mask: int
    command: str
    no_loop: bool = False

    def to_line(self) -> str:
        """Render the rule in table syntax."""
        path = self.path.replace('\\', '\\\\').replace(' ', '\\ ').replace('\t', '\\\t')
        return f"{path} {format_mask(self.mask, self.no_loop)} {self.command}"


def _unescape_path(text: str) -> str:
    return re.sub(r'\\(.)', r'\1', text)


def parse_line(line: str) -> Optional[Rule]:
    """
    Parse one table line.

    Args:
        line: Raw line without the trailing newline

    Returns:
        Rule, or None for blank and comment lines

    Raises:
        ValueError: If the line is malformed
    """
    # Trailing whitespace stays when escaped, so only the left side is stripped
    text = line.lstrip()
    if not text.strip() or text.startswith('#'):
        return None

    match = _LINE_RE.match(text)
    if not match or not match.group(3):
        raise ValueError(f"Expected '<path> <mask> <command>', got: {text.rstrip()}")

    path = _unescape_path(match.group(1))
    mask, no_loop = parse_mask(match.group(2))

    return Rule(path=path, mask=mask, command=match.group(3), no_loop=no_loop)


def parse_table(content: str, source: str = "<string>") -> List[Rule]:
    """
    Parse table content, skipping malformed lines.

    Args:
        content: Full table text
        source: Name used in log messages

    Returns:
        Rules in file order
    """
    rules = []
    for lineno, line in enumerate(content.splitlines(), start=1):
        try:
            rule = parse_line(line)
        except ValueError as e:
            logger.warning(f"{source}:{lineno}: invalid rule ignored: {e}")
            continue
        if rule is not None:
            rules.append(rule)
    return rules


def load_table(file_path: str) -> List[Rule]:
    """
    Load rules from a table file.

    Args:
        file_path: Path to the table file

    Returns:
        Rules in file order

    Raises:
        FileNotFoundError: If the file doesn't exist
        OSError: If the file cannot be read
        UnicodeDecodeError: If the file is not valid UTF-8
    """
    with open(file_path, 'r', encoding='utf-8') as f:
        content = f.read()
    return parse_table(content, source=file_path)


def _read_user_list(file_path: str) -> List[str]:
    names = []
    with open(file_path, 'r') as f:
        for line in f:
            name = line.strip()
            if name and not name.startswith('#'):
                names.append(name)
    return names


class SpoolTableSource:
    """
    Reads per-user tables from a spool directory.

    The table of user 'alice' is the file '<spool_dir>/alice'.
    """

    def __init__(
        self,
        spool_dir: str,
        allow_file: Optional[str] = None,
        deny_file: Optional[str] = None
    ):
        """
        Initialize SpoolTableSource.

        Args:
            spool_dir: Directory holding one table file per user
            allow_file: File listing users allowed to have tables
            deny_file: File listing users not allowed to have tables
        """
        self.spool_dir = spool_dir
        self.allow_file = allow_file
        self.deny_file = deny_file

    def table_path(self, user: str) -> str:
        return os.path.join(self.spool_dir, user)

    def users(self) -> List[str]:
        """
        List users that have a table file.

        Returns:
            Sorted user names (empty if the spool directory is missing)
        """
        spool = Path(self.spool_dir)
        if not spool.is_dir():
            logger.warning(f"Table directory does not exist: {self.spool_dir}")
            return []
        try:
            return sorted(
                entry.name for entry in spool.iterdir()
                if entry.is_file() and not entry.name.startswith('.')
            )
        except OSError as e:
            logger.error(f"Cannot list table directory {self.spool_dir}: {e}")
            return []

    def is_allowed(self, user: str) -> bool:
        """
        Check the allow/deny lists for a user.

        If the allow file exists only the users it lists are allowed.
        Otherwise, if the deny file exists, the users it lists are refused.
        Without either file every user is allowed.
        """
        if self.allow_file and os.path.exists(self.allow_file):
            return user in _read_user_list(self.allow_file)
        if self.deny_file and os.path.exists(self.deny_file):
            return user not in _read_user_list(self.deny_file)
        return True

    def load(self, user: str) -> List[Rule]:
        """
        Load a user's rules.

        Args:
            user: Name of the user

        Returns:
            Rules in file order (empty if the user has no table or it
            cannot be read)
        """
        file_path = self.table_path(user)
        try:
            return load_table(file_path)
        except FileNotFoundError:
            logger.debug(f"No table for user {user}")
            return []
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Cannot read table of user {user} from {file_path}: {e}")
            return []
