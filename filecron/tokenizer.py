"""
Splits command lines into argument words.
"""

from typing import List


def tokenize(text: str, delimiter: str = ' ', escape: str = '\\') -> List[str]:
    """
    Split a string on unescaped delimiters.

    The escape character makes the next character literal and is itself
    removed. A trailing lone escape character is kept. Runs of delimiters
    never produce empty words.

    Args:
        text: String to split
        delimiter: Single delimiter character
        escape: Single escape character

    Returns:
        List of argument words (empty if there are none)
    """
    words: List[str] = []
    current: List[str] = []
    pending = False  # a word has started, even if it is still empty

    i = 0
    length = len(text)
    while i < length:
        char = text[i]
        if char == escape:
            if i + 1 < length:
                current.append(text[i + 1])
                i += 2
            else:
                current.append(char)
                i += 1
            pending = True
        elif char == delimiter:
            if pending:
                words.append(''.join(current))
                current = []
                pending = False
            i += 1
        else:
            current.append(char)
            pending = True
            i += 1

    if pending:
        words.append(''.join(current))

    return words
