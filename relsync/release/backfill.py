"""Historical backfill: find the commit where each missing version was declared.

Missing release branches and tags should point at the commit that first
added the version's heading to CHANGES, not at the current tip. Headings are
only ever prepended, so replaying the history of the CHANGES file oldest
first and noting where each version first shows up gives its origin.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Literal

from relsync.core.result import Err, Ok
from relsync.release.changes import ChangeLog
from relsync.release.collaborators import VersionControl
from relsync.release.semver import Version, sort_newest_first

__all__ = [
    "ArtifactKind",
    "BackfillPlan",
    "BackfillProblem",
    "BackfillResult",
    "PlannedRef",
    "scan_history",
]

ArtifactKind = Literal["branch", "tag"]
ProblemKind = Literal["log_failed", "historical_parse", "unresolved"]


@dataclass(frozen=True, slots=True)
class PlannedRef:
    version: Version
    commit_id: str


type BackfillPlan = tuple[PlannedRef, ...]


@dataclass(frozen=True, slots=True)
class BackfillProblem:
    """A non-fatal problem met while scanning history."""

    kind: ProblemKind
    message: str
    version: Version | None = None
    commit_id: str | None = None
    artifact: ArtifactKind | None = None


@dataclass(frozen=True, slots=True)
class BackfillResult:
    """Plans in ascending history order, plus every problem encountered."""

    branches: BackfillPlan = ()
    tags: BackfillPlan = ()
    problems: tuple[BackfillProblem, ...] = ()
    cancelled: bool = False

    @property
    def ok(self) -> bool:
        return not self.problems and not self.cancelled


@dataclass
class _Tracker:
    """Unresolved versions of one artifact kind and the plan built so far."""

    kind: ArtifactKind
    unresolved: set[Version]
    planned: list[PlannedRef] = field(default_factory=lambda: [])

    def observe(self, declared: frozenset[Version], commit_id: str) -> None:
        found = declared & self.unresolved
        # Ascending within a commit so the plan reads oldest to newest.
        for v in reversed(sort_newest_first(found)):
            self.planned.append(PlannedRef(version=v, commit_id=commit_id))
            self.unresolved.discard(v)


def scan_history(
    vcs: VersionControl,
    path: str,
    *,
    ref: str = "HEAD",
    missing_branches: Iterable[Version],
    missing_tags: Iterable[Version],
    should_cancel: Callable[[], bool] | None = None,
) -> BackfillResult:
    """Replay the history of ``path`` to place missing branches and tags.

    Args:
        vcs: Version control collaborator
        path: Repository-relative path of the CHANGES file
        ref: Ref of the main branch
        missing_branches: Versions without a release branch
        missing_tags: Versions without a release tag
        should_cancel: Checked before each commit; returning True stops the
            scan and keeps what has been planned so far

    Returns:
        BackfillResult. Snapshots that cannot be read or parsed are skipped
        and reported; versions never seen are reported as unresolved.
    """
    trackers = [
        _Tracker(kind="branch", unresolved=set(missing_branches)),
        _Tracker(kind="tag", unresolved=set(missing_tags)),
    ]
    problems: list[BackfillProblem] = []

    if not any(t.unresolved for t in trackers):
        return BackfillResult()

    match vcs.log(path, ref, -1):
        case Err(e):
            return BackfillResult(
                problems=(
                    BackfillProblem(
                        kind="log_failed",
                        message=f"Failed to retrieve git log for '{path}': {e.message}",
                    ),
                )
            )
        case Ok(history):
            pass

    cancelled = False
    for commit in reversed(history):
        if should_cancel is not None and should_cancel():
            cancelled = True
            break
        if not any(t.unresolved for t in trackers):
            break

        content = vcs.show_file(path, commit.commit_id)
        if isinstance(content, Err):
            problems.append(
                BackfillProblem(
                    kind="historical_parse",
                    message=f"Failed to read '{path}' at {commit.commit_id}: {content.error.message}",
                    commit_id=commit.commit_id,
                )
            )
            continue

        parsed = ChangeLog.from_bytes(content.value)
        if isinstance(parsed, Err):
            problems.append(
                BackfillProblem(
                    kind="historical_parse",
                    message=f"Failed to parse '{path}' at {commit.commit_id}: {parsed.error.pretty()}",
                    commit_id=commit.commit_id,
                )
            )
            continue

        declared = parsed.value.declared_releases()
        for tracker in trackers:
            tracker.observe(declared, commit.commit_id)

    if not cancelled:
        for tracker in trackers:
            for v in reversed(sort_newest_first(tracker.unresolved)):
                problems.append(
                    BackfillProblem(
                        kind="unresolved",
                        message=f"Release {tracker.kind} for {v} not found in the history of '{path}'",
                        version=v,
                        artifact=tracker.kind,
                    )
                )

    branches, tags = trackers
    return BackfillResult(
        branches=tuple(branches.planned),
        tags=tuple(tags.planned),
        problems=tuple(problems),
        cancelled=cancelled,
    )
