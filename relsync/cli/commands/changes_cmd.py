"""Local CHANGES commands: validate and notes."""

from __future__ import annotations

from pathlib import Path

import typer

from relsync.cli.context import CLIContext, build_context
from relsync.core.errors import ErrorCode
from relsync.core.result import Err, Ok
from relsync.output.console import Tone
from relsync.release.changes import ChangeLog, load_changes
from relsync.release.semver import parse_version


def _load(ctx: CLIContext, path: Path) -> ChangeLog:
    match load_changes(path, ctx.config.changes.file_names):
        case Ok(doc):
            return doc
        case Err(e):
            ctx.console.error(e.pretty())
            raise typer.Exit(code=int(ErrorCode.USER_ERROR))


def validate(
    path: Path = typer.Argument(Path("."), help="CHANGES file or project directory"),
    development: bool = typer.Option(
        True,
        "--development/--release-branch",
        help="Main branch CHANGES must start with a flavored version",
    ),
) -> None:
    """Check that a CHANGES file is well formed."""
    ctx = build_context()
    doc = _load(ctx, path)

    findings = doc.validate(is_development_branch=development)
    if not findings:
        current = doc.current_version()
        ctx.console.success(f"{len(doc.entries)} versions, current {current}")
        return

    ctx.console.header(f"{len(findings)} problems found")
    for finding in findings:
        ctx.console.print(finding.message, Tone.ERROR)
    raise typer.Exit(code=int(ErrorCode.VALIDATION_ERROR))


def notes(
    path: Path = typer.Argument(Path("."), help="CHANGES file or project directory"),
    version: str | None = typer.Option(None, "--version", "-v", help="Version (default: current)"),
) -> None:
    """Print the release notes of a version."""
    ctx = build_context()
    doc = _load(ctx, path)

    if version is None:
        ctx.console.print(doc.current_version_notes())
        return

    parsed = parse_version(version)
    if isinstance(parsed, Err):
        ctx.console.error(parsed.error.pretty())
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    text = doc.release_notes(parsed.value)
    if text is None:
        ctx.console.error(f"version {parsed.value} not found")
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))
    ctx.console.print(text)
