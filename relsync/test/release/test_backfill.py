from __future__ import annotations

from datetime import UTC, datetime

from relsync.core.result import Err, Ok, Result
from relsync.git.repository import Commit, GitError
from relsync.release.backfill import PlannedRef, scan_history
from relsync.release.semver import Version

V1 = Version(1, 0, 0)
V2 = Version(2, 0, 0)
V21 = Version(2, 1, 0)


class FakeHistory:
    """VersionControl serving a fixed CHANGES history (oldest first)."""

    def __init__(self, snapshots: list[tuple[str, bytes | None]]) -> None:
        self.snapshots = dict(snapshots)
        self.order = [commit_id for commit_id, _ in snapshots]
        self.shown: list[str] = []
        self.log_error: GitError | None = None

    def log(self, path: str, ref: str = "HEAD", count: int = -1) -> Result[list[Commit], GitError]:
        if self.log_error is not None:
            return Err(self.log_error)
        stamp = datetime(2020, 1, 1, tzinfo=UTC)
        commits = [Commit(commit_id=c, timestamp=stamp, author="dev", subject=c) for c in self.order]
        return Ok(list(reversed(commits)))

    def show_file(self, path: str, commit_id: str) -> Result[bytes, GitError]:
        self.shown.append(commit_id)
        content = self.snapshots[commit_id]
        if content is None:
            return Err(GitError(command="show", message=f"path '{path}' does not exist"))
        return Ok(content)

    def create_or_update_ref(self, name: str, commit_id: str) -> Result[None, GitError]:
        raise AssertionError("scan must not write")

    def tag(self, name: str, commit_id: str) -> Result[None, GitError]:
        raise AssertionError("scan must not write")

    def push(self, ref: str) -> Result[None, GitError]:
        raise AssertionError("scan must not write")


HISTORY = [
    ("c1", b"### 1.1.0-dev\n\n### 1.0.0\n"),
    ("c2", b"### 2.1.0\n\n### 2.0.0\n\n### 1.0.0\n"),
    ("c3", b"### 2.2.0-dev\n\n### 2.1.0\n\n### 2.0.0\n\n### 1.0.0\n"),
]


def test_versions_resolve_to_first_commit_declaring_them() -> None:
    vcs = FakeHistory(HISTORY)
    result = scan_history(vcs, "CHANGES", missing_branches=[V21], missing_tags=[V21, V1, V2])
    assert result.ok
    assert result.branches == (PlannedRef(V21, "c2"),)
    assert result.tags == (PlannedRef(V1, "c1"), PlannedRef(V2, "c2"), PlannedRef(V21, "c2"))


def test_scan_stops_once_everything_is_resolved() -> None:
    vcs = FakeHistory(HISTORY)
    scan_history(vcs, "CHANGES", missing_branches=[], missing_tags=[V1])
    assert vcs.shown == ["c1"]


def test_nothing_missing_skips_history() -> None:
    vcs = FakeHistory(HISTORY)
    vcs.log_error = GitError(command="log", message="should not be called")
    result = scan_history(vcs, "CHANGES", missing_branches=[], missing_tags=[])
    assert result.ok
    assert vcs.shown == []


def test_never_declared_version_is_unresolved() -> None:
    vcs = FakeHistory(HISTORY)
    missing = Version(9, 9, 9)
    result = scan_history(vcs, "CHANGES", missing_branches=[], missing_tags=[missing, V2])
    assert result.tags == (PlannedRef(V2, "c2"),)
    assert [(p.kind, p.version, p.artifact) for p in result.problems] == [("unresolved", missing, "tag")]
    assert result.problems[0].message == "Release tag for 9.9.9 not found in the history of 'CHANGES'"
    assert not result.ok


def test_broken_snapshots_are_skipped_and_reported() -> None:
    vcs = FakeHistory(
        [
            ("c0", None),
            ("c1", b"### 1.0.0\n\xff"),
            ("c2", b"### 2.0.0\n\n### 1.0.0\n"),
        ]
    )
    result = scan_history(vcs, "CHANGES", missing_branches=[V1], missing_tags=[])
    assert result.branches == (PlannedRef(V1, "c2"),)
    assert [(p.kind, p.commit_id) for p in result.problems] == [
        ("historical_parse", "c0"),
        ("historical_parse", "c1"),
    ]
    assert result.problems[0].message.startswith("Failed to read 'CHANGES' at c0")
    assert result.problems[1].message.startswith("Failed to parse 'CHANGES' at c1")


def test_log_failure() -> None:
    vcs = FakeHistory(HISTORY)
    vcs.log_error = GitError(command="log", message="bad revision")
    result = scan_history(vcs, "CHANGES", missing_branches=[V1], missing_tags=[])
    assert result.branches == ()
    assert [p.kind for p in result.problems] == ["log_failed"]
    assert "bad revision" in result.problems[0].message


def test_cancel_keeps_partial_plan() -> None:
    vcs = FakeHistory(HISTORY)
    calls = iter([False, True])
    result = scan_history(
        vcs,
        "CHANGES",
        missing_branches=[],
        missing_tags=[V1, V2],
        should_cancel=lambda: next(calls),
    )
    assert result.cancelled
    assert result.tags == (PlannedRef(V1, "c1"),)
    assert result.problems == ()
    assert not result.ok
