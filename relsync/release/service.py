"""Reconciliation of CHANGES with release branches, tags and releases.

ReconcileService ties the pure pieces together around injected collaborators:

1. inspect(): list what exists on the hosted repository, read and validate
   CHANGES on every branch, infer the naming style and compute what is
   missing from the main branch CHANGES.
2. backfill(): replay CHANGES history to find where missing branches and
   tags belong.
3. apply(): create the planned branches and tags, then the missing releases.
4. release(): finalize the current version and cut a new release.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date

from relsync.core.config import Config
from relsync.core.result import Err, Ok, Result
from relsync.output.console import ConsoleProtocol
from relsync.release.backfill import BackfillResult, scan_history
from relsync.release.changes import ChangeLog, Finding
from relsync.release.collaborators import (
    GitError,
    HostedRepository,
    RefInfo,
    ReleaseInfo,
    WorkingCopy,
)
from relsync.release.errors import ReleaseError
from relsync.release.planner import plan_release
from relsync.release.reconcile import MissingArtifacts, check_release_branch, compute_missing
from relsync.release.semver import Version, sort_newest_first
from relsync.release.style import Style, infer_style

__all__ = [
    "ApplyOutcome",
    "BranchFinding",
    "ReconcileService",
    "ReleaseOutcome",
    "RepoReport",
]


@dataclass(frozen=True, slots=True)
class BranchFinding:
    """A CHANGES problem found on one branch."""

    branch: str
    finding: Finding

    def __str__(self) -> str:
        return f"Branch '{self.branch}': {self.finding.message}"


@dataclass(frozen=True, slots=True)
class RepoReport:
    """Snapshot of the hosted repository taken by ReconcileService.inspect().

    ``findings`` covers the main branch CHANGES, validated as a development
    branch, and the CHANGES of every other branch, validated as a release
    branch.
    """

    main_branch: RefInfo
    changes_path: str
    changes: ChangeLog
    branches: tuple[RefInfo, ...]
    tags: tuple[RefInfo, ...]
    releases: tuple[ReleaseInfo, ...]
    style: Style
    findings: tuple[BranchFinding, ...]
    missing: MissingArtifacts


@dataclass
class ApplyOutcome:
    created_branches: list[Version] = field(default_factory=lambda: [])
    created_tags: list[Version] = field(default_factory=lambda: [])
    created_releases: list[Version] = field(default_factory=lambda: [])
    errors: list[str] = field(default_factory=lambda: [])

    def summary(self) -> str:
        return (
            f"Created {len(self.created_branches)} branches, {len(self.created_tags)} tags "
            f"and {len(self.created_releases)} releases with {len(self.errors)} errors"
        )


@dataclass(frozen=True, slots=True)
class ReleaseOutcome:
    version: Version
    release_commit: str
    main_commit: str


class ReconcileService:
    def __init__(
        self,
        *,
        vcs: WorkingCopy,
        hosted: HostedRepository,
        config: Config,
        console: ConsoleProtocol,
    ) -> None:
        self._vcs = vcs
        self._hosted = hosted
        self._config = config
        self._console = console

    # -------------------------------------------------------------------------
    # inspect
    # -------------------------------------------------------------------------

    def inspect(self) -> Result[RepoReport, ReleaseError]:
        main_name = self._config.repo.main_branch
        if main_name is None:
            default = self._hosted.default_branch()
            if isinstance(default, Err):
                return default
            main_name = default.value

        branches = self._hosted.list_branches()
        if isinstance(branches, Err):
            return branches
        tags = self._hosted.list_tags()
        if isinstance(tags, Err):
            return tags
        releases = self._hosted.list_releases()
        if isinstance(releases, Err):
            return releases

        main = next((b for b in branches.value if b.name == main_name), None)
        if main is None:
            return Err(
                ReleaseError(
                    kind="no_main_branch",
                    message=f"main branch '{main_name}' not found",
                    hint="Set [repo].main_branch in relsync.toml",
                )
            )

        fetched = self._fetch_changes(main)
        if isinstance(fetched, Err):
            return fetched
        if fetched.value is None:
            return Err(
                ReleaseError(
                    kind="no_changes_file",
                    message=f"no CHANGES file found on '{main.name}'",
                    hint="Expected one of: " + ", ".join(self._config.changes.file_names),
                )
            )
        changes_path, changes = fetched.value

        if changes.is_reversed():
            return Err(
                ReleaseError(
                    kind="unsupported_order",
                    message=f"'{changes_path}' lists versions oldest first",
                    hint="Versions must be listed newest first",
                )
            )

        names = [b.name for b in branches.value]
        names += [t.name for t in tags.value]
        names += [r.name for r in releases.value]
        style = infer_style(names, default=Style(prefix=self._config.style.default_prefix))

        findings = [BranchFinding(main.name, f) for f in changes.validate(is_development_branch=True)]
        for branch in branches.value:
            if branch is main:
                continue
            checked = self._check_branch(branch, style)
            if isinstance(checked, Err):
                return checked
            findings.extend(checked.value)

        missing = compute_missing(
            changes.declared_releases(),
            branches=[b.name for b in branches.value],
            tags=[t.name for t in tags.value],
            releases=[r.name for r in releases.value],
            style=style,
        )

        return Ok(
            RepoReport(
                main_branch=main,
                changes_path=changes_path,
                changes=changes,
                branches=tuple(branches.value),
                tags=tuple(tags.value),
                releases=tuple(releases.value),
                style=style,
                findings=tuple(findings),
                missing=missing,
            )
        )

    def _check_branch(self, branch: RefInfo, style: Style) -> Result[list[BranchFinding], ReleaseError]:
        """Validate the CHANGES of a non-main branch; branches without one are skipped."""
        fetched = self._fetch_changes(branch)
        if isinstance(fetched, Err):
            return fetched
        if fetched.value is None:
            return Ok([])
        _, doc = fetched.value

        findings = doc.validate(is_development_branch=False)
        version = style.parse(branch.name)
        if version is not None:
            findings += check_release_branch(branch.name, version, doc)
        return Ok([BranchFinding(branch.name, f) for f in findings])

    def _fetch_changes(self, branch: RefInfo) -> Result[tuple[str, ChangeLog] | None, ReleaseError]:
        """CHANGES at the branch head; Ok(None) if no configured file exists there."""
        for name in self._config.changes.file_names:
            text = self._hosted.get_file_text(name, branch.commit_id)
            if isinstance(text, Err):
                return text
            if text.value is None:
                continue
            match ChangeLog.read(text.value):
                case Ok(doc):
                    return Ok((name, doc))
                case Err(e):
                    return Err(
                        ReleaseError(
                            kind="invalid_input",
                            message=f"failed to parse '{name}' on '{branch.name}': {e.pretty()}",
                        )
                    )
        return Ok(None)

    # -------------------------------------------------------------------------
    # backfill / apply
    # -------------------------------------------------------------------------

    def backfill(
        self, report: RepoReport, should_cancel: Callable[[], bool] | None = None
    ) -> BackfillResult:
        self._console.info(f"Scanning history for '{report.changes_path}'...")
        return scan_history(
            self._vcs,
            report.changes_path,
            ref=report.main_branch.commit_id,
            missing_branches=report.missing.branches,
            missing_tags=report.missing.tags,
            should_cancel=should_cancel,
        )

    def apply(self, report: RepoReport, plan: BackfillResult) -> ApplyOutcome:
        """Create planned branches and tags, then missing releases.

        Every failure is collected in the outcome; nothing stops the batch.
        """
        outcome = ApplyOutcome(errors=[p.message for p in plan.problems])
        style = report.style
        tag_commits = {
            v: t.commit_id for t in report.tags if (v := style.parse(t.name)) is not None
        }

        for planned in plan.branches:
            name = style.format(planned.version)
            self._console.info(f"Creating release branch '{name}' at {planned.commit_id[:8]}")
            error = self._create_ref(
                f"refs/heads/{name}", self._vcs.create_or_update_ref, name, planned.commit_id
            )
            if error is None:
                outcome.created_branches.append(planned.version)
            else:
                outcome.errors.append(f"Failed to create release branch '{name}': {error}")

        for planned in plan.tags:
            name = style.format(planned.version)
            self._console.info(f"Creating release tag '{name}' at {planned.commit_id[:8]}")
            error = self._create_ref(f"refs/tags/{name}", self._vcs.tag, name, planned.commit_id)
            if error is None:
                outcome.created_tags.append(planned.version)
                tag_commits[planned.version] = planned.commit_id
            else:
                outcome.errors.append(f"Failed to create release tag '{name}': {error}")

        for version in reversed(sort_newest_first(report.missing.releases)):
            error = self._create_release(report, version, tag_commits.get(version))
            if error is None:
                outcome.created_releases.append(version)
            else:
                outcome.errors.append(error)

        return outcome

    def _create_ref(
        self,
        full_ref: str,
        create: Callable[[str, str], Result[None, GitError]],
        name: str,
        commit_id: str,
    ) -> str | None:
        created = create(name, commit_id)
        if isinstance(created, Err):
            return created.error.message
        pushed = self._vcs.push(full_ref)
        if isinstance(pushed, Err):
            return pushed.error.message
        return None

    def _create_release(self, report: RepoReport, version: Version, commit_id: str | None) -> str | None:
        name = report.style.format(version)
        if commit_id is None:
            return f"Failed to find release tag '{name}'"
        notes = report.changes.release_notes(version)
        if notes is None:
            return f"Failed to find release notes for version {version}"
        self._console.info(f"Creating release '{name}'")
        created = self._hosted.create_release(name=name, tag=name, commit_id=commit_id, body=notes)
        if isinstance(created, Err):
            return f"Failed to create release '{name}': {created.error.pretty()}"
        return None

    # -------------------------------------------------------------------------
    # release
    # -------------------------------------------------------------------------

    def release(
        self, report: RepoReport, version: Version | None, today: date
    ) -> Result[ReleaseOutcome, ReleaseError]:
        """Finalize the current version of the main branch CHANGES and release it.

        The working copy must be checked out at the inspected main branch head.
        """
        planned = plan_release(report.changes, version, today)
        if isinstance(planned, Err):
            return planned
        plan = planned.value

        head = self._vcs.head_commit()
        if isinstance(head, Err):
            return Err(ReleaseError(kind="git_failed", message=head.error.message))
        if head.value.commit_id != report.main_branch.commit_id:
            return Err(
                ReleaseError(
                    kind="git_failed",
                    message=f"new changes have landed in '{report.main_branch.name}'",
                    hint="Update the checkout and run again",
                )
            )

        self._console.info(f"Updating {report.changes_path}")
        release_commit = self._vcs.write_and_commit(
            report.changes_path, str(plan.finalized), plan.finalize_message
        )
        if isinstance(release_commit, Err):
            return Err(ReleaseError(kind="git_failed", message=release_commit.error.message))
        release_id = release_commit.value.commit_id

        name = report.style.format(plan.version)
        for full_ref, create in (
            (f"refs/heads/{name}", self._vcs.create_or_update_ref),
            (f"refs/tags/{name}", self._vcs.tag),
        ):
            error = self._create_ref(full_ref, create, name, release_id)
            if error is not None:
                return Err(ReleaseError(kind="git_failed", message=f"failed to create {full_ref}: {error}"))

        notes = plan.finalized.current_version_notes()
        created = self._hosted.create_release(name=name, tag=name, commit_id=release_id, body=notes)
        if isinstance(created, Err):
            return created

        main_commit = self._vcs.write_and_commit(
            report.changes_path, str(plan.stubbed), plan.stub_message
        )
        if isinstance(main_commit, Err):
            return Err(ReleaseError(kind="git_failed", message=main_commit.error.message))
        pushed = self._vcs.push_commit(main_commit.value.commit_id, report.main_branch.name)
        if isinstance(pushed, Err):
            return Err(
                ReleaseError(
                    kind="git_failed",
                    message=f"failed to push to main branch '{report.main_branch.name}'",
                    hint=pushed.error.message,
                )
            )

        self._console.success(f"Release {plan.version} successfully made")
        return Ok(
            ReleaseOutcome(
                version=plan.version,
                release_commit=release_id,
                main_commit=main_commit.value.commit_id,
            )
        )
