"""A writer that hands complete lines to callbacks."""

from __future__ import annotations

from typing import Callable

__all__ = ["LineWriter", "LineHandler"]

LineHandler = Callable[[str], bool]


class LineWriter:
    """Buffers written text and calls the handlers once per complete line.

    Handlers get the line with its trailing newline and run in order until one
    returns False.
    """

    def __init__(self, *handlers: LineHandler) -> None:
        self._handlers = handlers
        self._buffer: list[str] = []

    def write(self, data: str | bytes) -> int:
        """Accept ``data`` and return its length."""
        text = data.decode() if isinstance(data, (bytes, bytearray)) else data
        *complete, rest = text.split("\n")
        for part in complete:
            self._buffer.append(part)
            line = "".join(self._buffer) + "\n"
            self._buffer.clear()
            self._handle(line)
        if rest:
            self._buffer.append(rest)
        return len(data)

    def _handle(self, line: str) -> None:
        for handler in self._handlers:
            if not handler(line):
                break