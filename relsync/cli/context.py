from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import typer

from relsync.core.config import Config, load_config_or_default
from relsync.core.errors import ErrorCode
from relsync.core.result import Err
from relsync.output.console import ConsoleProtocol, RichConsole


@dataclass(frozen=True, slots=True)
class CLIContext:
    root: Path
    config: Config
    console: ConsoleProtocol


def build_context(root: Path | None = None) -> CLIContext:
    resolved = (root or Path.cwd()).resolve()
    console = RichConsole()

    config_result = load_config_or_default(resolved)
    if isinstance(config_result, Err):
        console.error(config_result.error.message)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    return CLIContext(root=resolved, config=config_result.value, console=console)
