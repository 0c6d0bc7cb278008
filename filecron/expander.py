"""
Command template expansion for filecron.

Recognized sequences after the '$' marker:

    $$  literal '$'
    $@  watched path
    $#  reported file name
    $%  symbolic event types (comma-joined)
    $&  event types as an unsigned decimal number

Any other character after the marker drops the marker and keeps the
character. A '$' at the very end of the template is kept as is.
"""

from typing import List

from filecron.events import dump_types
from filecron.tokenizer import tokenize


MARKER = '$'


class CommandExpansionError(ValueError):
    """Raised when a command cannot be turned into an argument vector"""
    pass


class CommandExpander:
    """Expands rule command templates against concrete events."""

    @staticmethod
    def expand(template: str, path: str, name: str, mask: int) -> str:
        """
        Expand a command template.

        Args:
            template: Raw command template from the rule
            path: Watched path of the rule
            name: File name reported with the event
            mask: Event type bits

        Returns:
            Expanded command string
        """
        out: List[str] = []
        pos = 0
        length = len(template)

        while True:
            marker = template.find(MARKER, pos)
            if marker < 0:
                break

            out.append(template[pos:marker])
            if marker == length - 1:
                out.append(MARKER)
                pos = length
                break

            token = template[marker + 1]
            if token == MARKER:
                out.append(MARKER)
            elif token == '@':
                out.append(path)
            elif token == '#':
                out.append(name)
            elif token == '%':
                out.append(dump_types(mask))
            elif token == '&':
                out.append(str(mask & 0xffffffff))
            else:
                pos = marker + 1
                continue
            pos = marker + 2

        out.append(template[pos:])
        return ''.join(out)

    @staticmethod
    def prepare_args(command: str) -> List[str]:
        """
        Split an expanded command into an argument vector.

        Args:
            command: Expanded command string

        Returns:
            Non-empty list of argument words

        Raises:
            CommandExpansionError: If the command is empty or yields no words
        """
        if not command:
            raise CommandExpansionError("Command is empty")

        args = tokenize(command)
        if not args:
            raise CommandExpansionError(f"Command has no arguments: {command!r}")

        return args
