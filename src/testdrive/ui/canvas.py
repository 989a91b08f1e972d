"""Line-indexed drawing surfaces for the streaming renderer.

A canvas is an ordered list of rows. Rows can be appended, rewritten in
place by index, or inserted in the middle (pushing later rows down). The
terminal implementation turns that into cursor movement; the memory one
just keeps the list so tests never have to parse escape sequences.
"""

from __future__ import annotations

import shutil
from typing import List, Protocol, Sequence, TextIO

from ..errors import TerminalIOError

_CSI = "\x1b["
_CLEAR_LINE = _CSI + "2K"


class Canvas(Protocol):
    def append(self, text: str) -> int: ...

    def update(self, index: int, text: str) -> None: ...

    def insert(self, index: int, lines: Sequence[str]) -> None: ...

    def __len__(self) -> int: ...


class MemoryCanvas:
    """Canvas test double: keeps rows in a list."""

    def __init__(self) -> None:
        self.lines: List[str] = []
        self.updates = 0

    def append(self, text: str) -> int:
        self.lines.append(text)
        return len(self.lines) - 1

    def update(self, index: int, text: str) -> None:
        self.lines[index] = text
        self.updates += 1

    def insert(self, index: int, lines: Sequence[str]) -> None:
        self.lines[index:index] = list(lines)

    def __len__(self) -> int:
        return len(self.lines)

    def text(self) -> str:
        return "\n".join(self.lines)


class TerminalCanvas:
    """
    Canvas over an ANSI terminal stream.

    The cursor always rests at the start of the line below the last row.
    Rows are clipped to the terminal width so a wrapped row never shifts the
    line arithmetic. Rows scrolled above the top of the screen are still
    tracked but never redrawn.
    """

    def __init__(self, stream: TextIO, width: int | None = None, height: int | None = None) -> None:
        self.stream = stream
        size = shutil.get_terminal_size()
        self.width = width or size.columns
        self.height = height or size.lines
        self._rows: List[str] = []

    def __len__(self) -> int:
        return len(self._rows)

    def append(self, text: str) -> int:
        text = self._clip(text)
        self._rows.append(text)
        self._write(text + "\n")
        return len(self._rows) - 1

    def update(self, index: int, text: str) -> None:
        text = self._clip(text)
        self._rows[index] = text
        up = len(self._rows) - index
        if up >= self.height:
            return
        self._write(f"{_CSI}{up}A\r{_CLEAR_LINE}{text}{_CSI}{up}B\r")

    def insert(self, index: int, lines: Sequence[str]) -> None:
        if not lines:
            return
        # first row still on screen; the bottom line holds the cursor
        start = max(index, len(self._rows) - (self.height - 1), 0)
        up = len(self._rows) - start
        self._rows[index:index] = [self._clip(line) for line in lines]
        buf = [f"{_CSI}{up}A\r"] if up else []
        for row in self._rows[start:]:
            buf.append(f"{_CLEAR_LINE}{row}\n")
        self._write("".join(buf))

    def _clip(self, text: str) -> str:
        text = text.replace("\n", " ")
        limit = max(self.width - 1, 1)
        if len(text) > limit:
            return text[: limit - 1] + "…"
        return text

    def _write(self, data: str) -> None:
        try:
            self.stream.write(data)
            self.stream.flush()
        except (OSError, ValueError) as e:
            raise TerminalIOError(f"write to terminal: {e}") from e
