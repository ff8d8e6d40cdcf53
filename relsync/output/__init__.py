"""Output abstraction layer."""

from .console import ConsoleProtocol, MockConsole, RichConsole, Tone

__all__ = [
    "ConsoleProtocol",
    "MockConsole",
    "RichConsole",
    "Tone",
]
