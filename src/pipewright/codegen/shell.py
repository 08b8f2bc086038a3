"""Shell content normalization."""

from __future__ import annotations


def _indent_width(line: str) -> int:
    # Tabs count as one character, never expanded
    return len(line) - len(line.lstrip(" \t"))


def normalize_shell(content: str) -> str:
    """Strip the common indentation of a shell block.

    The minimum leading whitespace over non-blank lines is removed from
    every line, blank lines become empty, and leading and trailing blank
    lines are dropped. Applying it twice gives the same result as once.

    Example:
        >>> normalize_shell("    make\\n\\n      make test\\n")
        'make\\n\\n  make test'
    """
    lines = content.replace("\r\n", "\n").split("\n")
    widths = [_indent_width(line) for line in lines if line.strip()]
    strip = min(widths, default=0)

    normalized = [line[strip:] if line.strip() else "" for line in lines]

    while normalized and not normalized[0]:
        normalized.pop(0)
    while normalized and not normalized[-1]:
        normalized.pop()

    return "\n".join(normalized)
