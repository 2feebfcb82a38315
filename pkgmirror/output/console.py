"""Console output abstraction.

Services never print directly; they receive a ConsoleProtocol. The CLI
passes a RichConsole, tests pass a MockConsole and assert on the captured
records.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Protocol

__all__ = [
    "Style",
    "ConsoleProtocol",
    "RichConsole",
    "MockConsole",
    "OutputRecord",
]


class Style(Enum):
    """Text styles for console output."""

    DEFAULT = auto()
    SUCCESS = auto()
    ERROR = auto()
    WARNING = auto()
    INFO = auto()
    DIM = auto()
    BOLD = auto()
    HEADER = auto()

    def __str__(self) -> str:
        return self.name.lower()


class ConsoleProtocol(Protocol):
    """Styled line-oriented output."""

    def print(self, message: str, style: Style = Style.DEFAULT) -> None: ...

    def success(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...

    def warning(self, message: str) -> None: ...

    def info(self, message: str) -> None: ...

    def header(self, message: str) -> None: ...

    def newline(self) -> None: ...


class RichConsole:
    """Production console backed by rich.

    Errors and warnings go to stderr so CI logs keep them even when stdout
    is piped elsewhere.
    """

    def __init__(self, *, no_color: bool = False) -> None:
        from rich.console import Console

        self._out = Console(no_color=no_color, highlight=False)
        self._err = Console(stderr=True, no_color=no_color, highlight=False)
        self._style_map = {
            Style.DEFAULT: "",
            Style.SUCCESS: "green",
            Style.ERROR: "red bold",
            Style.WARNING: "yellow",
            Style.INFO: "cyan",
            Style.DIM: "dim",
            Style.BOLD: "bold",
            Style.HEADER: "blue bold",
        }

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        rich_style = self._style_map.get(style, "")
        # URLs and version specs contain brackets; never parse them as markup.
        if rich_style:
            self._out.print(message, style=rich_style, markup=False)
        else:
            self._out.print(message, markup=False)

    def success(self, message: str) -> None:
        self._out.print("[green]OK[/green] ", end="")
        self._out.print(message, markup=False)

    def error(self, message: str) -> None:
        self._err.print("[red bold]error:[/red bold] ", end="")
        self._err.print(message, markup=False)

    def warning(self, message: str) -> None:
        self._err.print("[yellow]warning:[/yellow] ", end="")
        self._err.print(message, markup=False)

    def info(self, message: str) -> None:
        self._out.print("[cyan]info:[/cyan] ", end="")
        self._out.print(message, markup=False)

    def header(self, message: str) -> None:
        self._out.print()
        self._out.print(message, style="blue bold", markup=False)

    def newline(self) -> None:
        self._out.print()


@dataclass
class OutputRecord:
    """A single captured line."""

    message: str
    style: Style


def _empty_outputs() -> list[OutputRecord]:
    return []


@dataclass
class MockConsole:
    """Console that records output instead of printing it."""

    outputs: list[OutputRecord] = field(default_factory=_empty_outputs)

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        self.outputs.append(OutputRecord(message, style))

    def success(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"OK {message}", Style.SUCCESS))

    def error(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"error: {message}", Style.ERROR))

    def warning(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"warning: {message}", Style.WARNING))

    def info(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"info: {message}", Style.INFO))

    def header(self, message: str) -> None:
        self.outputs.append(OutputRecord(message, Style.HEADER))

    def newline(self) -> None:
        self.outputs.append(OutputRecord("", Style.DEFAULT))

    @property
    def messages(self) -> list[str]:
        return [o.message for o in self.outputs]

    @property
    def text(self) -> str:
        return "\n".join(self.messages)

    def has_error(self) -> bool:
        return any(o.style == Style.ERROR for o in self.outputs)

    def has_warning(self) -> bool:
        return any(o.style == Style.WARNING for o in self.outputs)

    def find(self, substring: str) -> list[OutputRecord]:
        """All records whose message contains substring."""
        return [o for o in self.outputs if substring in o.message]

    def count(self, style: Style) -> int:
        return sum(1 for o in self.outputs if o.style == style)
