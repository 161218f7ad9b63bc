"""ANSI foreground colors for terminal output."""

from enum import IntEnum


class Color(IntEnum):
    """An ANSI foreground color code."""

    BLACK = 30
    RED = 31
    GREEN = 32
    YELLOW = 33
    BLUE = 34
    MAGENTA = 35
    CYAN = 36
    WHITE = 37

    def add(self, s: str) -> str:
        """Wrap ``s`` in this color's escape sequence and a reset."""
        return f"\x1b[{int(self)}m{s}\x1b[0m"