"""Console output abstraction.

Services report progress and problems through ConsoleProtocol so they never
depend on Rich directly. RichConsole is the production backend; MockConsole
captures lines for tests.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Protocol

__all__ = [
    "ConsoleProtocol",
    "MockConsole",
    "OutputRecord",
    "RichConsole",
    "Tone",
]


class Tone(Enum):
    """How a console line should be rendered."""

    DEFAULT = auto()
    SUCCESS = auto()
    ERROR = auto()
    WARNING = auto()
    INFO = auto()
    DIM = auto()
    HEADER = auto()

    def __str__(self) -> str:
        return self.name.lower()


class ConsoleProtocol(Protocol):
    def print(self, message: str, tone: Tone = Tone.DEFAULT) -> None: ...

    def success(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...

    def warning(self, message: str) -> None: ...

    def info(self, message: str) -> None: ...

    def header(self, message: str) -> None: ...


class RichConsole:
    """Console backed by rich.console.Console."""

    def __init__(self) -> None:
        from rich.console import Console

        self._console = Console(highlight=False)
        self._tone_map = {
            Tone.DEFAULT: "",
            Tone.SUCCESS: "green",
            Tone.ERROR: "red bold",
            Tone.WARNING: "yellow",
            Tone.INFO: "cyan",
            Tone.DIM: "dim",
            Tone.HEADER: "blue bold",
        }

    def print(self, message: str, tone: Tone = Tone.DEFAULT) -> None:
        rich_style = self._tone_map.get(tone, "")
        # CHANGES text may contain [brackets]; never treat it as markup.
        if rich_style:
            self._console.print(message, style=rich_style, markup=False)
        else:
            self._console.print(message, markup=False)

    def success(self, message: str) -> None:
        self._console.print("[green]OK[/green] ", end="")
        self._console.print(message, markup=False)

    def error(self, message: str) -> None:
        self._console.print("[red bold]error:[/red bold] ", end="")
        self._console.print(message, markup=False)

    def warning(self, message: str) -> None:
        self._console.print("[yellow]warning:[/yellow] ", end="")
        self._console.print(message, markup=False)

    def info(self, message: str) -> None:
        self._console.print("[cyan]info:[/cyan] ", end="")
        self._console.print(message, markup=False)

    def header(self, message: str) -> None:
        self._console.print()
        self._console.print(message, style="blue bold", markup=False)


@dataclass
class OutputRecord:
    message: str
    tone: Tone


def _empty_outputs() -> list[OutputRecord]:
    return []


@dataclass
class MockConsole:
    """Console that records output instead of printing it."""

    outputs: list[OutputRecord] = field(default_factory=_empty_outputs)

    def print(self, message: str, tone: Tone = Tone.DEFAULT) -> None:
        self.outputs.append(OutputRecord(message, tone))

    def success(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"OK {message}", Tone.SUCCESS))

    def error(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"error: {message}", Tone.ERROR))

    def warning(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"warning: {message}", Tone.WARNING))

    def info(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"info: {message}", Tone.INFO))

    def header(self, message: str) -> None:
        self.outputs.append(OutputRecord(message, Tone.HEADER))

    @property
    def messages(self) -> list[str]:
        return [o.message for o in self.outputs]

    @property
    def text(self) -> str:
        return "\n".join(self.messages)

    def has_error(self) -> bool:
        return any(o.tone == Tone.ERROR for o in self.outputs)

    def count(self, tone: Tone) -> int:
        return sum(1 for o in self.outputs if o.tone == tone)
