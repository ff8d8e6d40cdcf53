from __future__ import annotations

import typer

from relsync import __version__
from relsync.cli.commands.changes_cmd import notes, validate
from relsync.cli.commands.reconcile_cmd import reconcile, release

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="Keep CHANGES, release branches, tags and releases in sync.",
)

app.command()(validate)
app.command()(notes)
app.command()(reconcile)
app.command()(release)


def _print_version(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit(code=0)


@app.callback()
def _main(  # pyright: ignore[reportUnusedFunction]
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", callback=_print_version, is_eager=True
    ),
) -> None:
    del version


def main() -> None:
    app()
