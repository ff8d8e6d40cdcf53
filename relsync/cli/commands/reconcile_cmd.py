"""Hosted repository commands: reconcile and release."""

from __future__ import annotations

from datetime import date

import typer

from relsync.cli.context import CLIContext, build_context
from relsync.core.errors import ErrorCode
from relsync.core.result import Err
from relsync.git.repository import Repository
from relsync.output.console import Tone
from relsync.release.gh import GhHostedRepository, ensure_gh_available
from relsync.release.semver import Version, parse_version
from relsync.release.service import ReconcileService, RepoReport


def _service(ctx: CLIContext, slug: str | None) -> ReconcileService:
    gh = ensure_gh_available()
    if isinstance(gh, Err):
        ctx.console.error(gh.error.pretty())
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

    resolved = slug or ctx.config.repo.slug
    if resolved is None:
        ctx.console.error("repository slug required")
        ctx.console.print("hint: pass --repo owner/name or set [repo].slug in relsync.toml", Tone.DIM)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    checkout = Repository(ctx.root, remote=ctx.config.repo.remote)
    if not checkout.exists():
        ctx.console.error(f"not a git checkout: {ctx.root}")
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

    return ReconcileService(
        vcs=checkout,
        hosted=GhHostedRepository(workspace_root=ctx.root, slug=resolved),
        config=ctx.config,
        console=ctx.console,
    )


def _inspect(ctx: CLIContext, service: ReconcileService) -> RepoReport:
    result = service.inspect()
    if isinstance(result, Err):
        ctx.console.error(result.error.pretty())
        raise typer.Exit(code=int(ErrorCode.HOSTING_ERROR))
    report = result.value

    ctx.console.print(f"main branch: {report.main_branch.name} ({report.main_branch.commit_id[:8]})", Tone.DIM)
    ctx.console.print(f"style: prefix={report.style.prefix!r} omit_patch={report.style.omit_patch}", Tone.DIM)

    if report.findings:
        ctx.console.header(f"{len(report.findings)} CHANGES problems found")
        for finding in report.findings:
            ctx.console.print(str(finding), Tone.WARNING)
    return report


def reconcile(
    repo: str | None = typer.Option(None, "--repo", help="GitHub repository owner/name"),
    apply: bool = typer.Option(False, "--apply", help="Create the missing branches, tags and releases"),
) -> None:
    """Find (and optionally create) missing release branches, tags and releases."""
    ctx = build_context()
    service = _service(ctx, repo)
    report = _inspect(ctx, service)

    missing = report.missing
    if missing.is_empty:
        ctx.console.success("all declared releases have branches, tags and releases")
        return

    ctx.console.header("Missing release " + " and ".join(missing.kinds()) + ":")
    for line in missing.describe():
        ctx.console.print(line)

    if not apply:
        ctx.console.print("Run again with --apply to create them.", Tone.DIM)
        raise typer.Exit(code=int(ErrorCode.VALIDATION_ERROR))

    plan = service.backfill(report)
    outcome = service.apply(report, plan)

    ctx.console.header(outcome.summary())
    for error in outcome.errors:
        ctx.console.print(error, Tone.ERROR)
    if outcome.errors:
        raise typer.Exit(code=int(ErrorCode.VALIDATION_ERROR))


def release(
    repo: str | None = typer.Option(None, "--repo", help="GitHub repository owner/name"),
    version: str | None = typer.Option(None, "--version", help="Version to release (default: current)"),
) -> None:
    """Finalize the current CHANGES version and release it."""
    ctx = build_context()

    requested: Version | None = None
    if version is not None:
        parsed = parse_version(version)
        if isinstance(parsed, Err):
            ctx.console.error(parsed.error.pretty())
            raise typer.Exit(code=int(ErrorCode.USER_ERROR))
        requested = parsed.value

    service = _service(ctx, repo)
    report = _inspect(ctx, service)

    result = service.release(report, requested, date.today())
    if isinstance(result, Err):
        ctx.console.error(result.error.pretty())
        raise typer.Exit(code=int(ErrorCode.VALIDATION_ERROR))


__all__ = ["reconcile", "release"]
