"""Interfaces to version control and the hosted repository.

The reconciliation code only talks to these protocols; concrete adapters are
relsync.git.Repository (local git checkout) and
relsync.release.gh.GhHostedRepository (GitHub through the gh CLI). Tests pass
in-memory fakes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from relsync.core.result import Result
from relsync.git.repository import Commit, GitError
from relsync.release.errors import ReleaseError

__all__ = [
    "Commit",
    "GitError",
    "HostedRepository",
    "RefInfo",
    "ReleaseInfo",
    "VersionControl",
    "WorkingCopy",
]


@dataclass(frozen=True, slots=True)
class RefInfo:
    """A branch or tag on the hosted repository."""

    name: str
    commit_id: str


@dataclass(frozen=True, slots=True)
class ReleaseInfo:
    """A hosted release record."""

    name: str
    tag: str


class VersionControl(Protocol):
    def log(self, path: str, ref: str = "HEAD", count: int = -1) -> Result[list[Commit], GitError]:
        """Commits touching ``path`` reachable from ``ref``, newest first."""
        ...

    def show_file(self, path: str, commit_id: str) -> Result[bytes, GitError]: ...

    def create_or_update_ref(self, name: str, commit_id: str) -> Result[None, GitError]:
        """Point local branch ``name`` at ``commit_id``."""
        ...

    def tag(self, name: str, commit_id: str) -> Result[None, GitError]: ...

    def push(self, ref: str) -> Result[None, GitError]:
        """Push a full ref name (refs/heads/x or refs/tags/x) to the remote."""
        ...


class WorkingCopy(VersionControl, Protocol):
    """A checkout of the main branch that releases are committed from."""

    def head_commit(self) -> Result[Commit, GitError]: ...

    def write_and_commit(self, path: str, content: str, message: str) -> Result[Commit, GitError]: ...

    def push_commit(self, commit_id: str, branch: str) -> Result[None, GitError]: ...


class HostedRepository(Protocol):
    def default_branch(self) -> Result[str, ReleaseError]: ...

    def list_branches(self) -> Result[list[RefInfo], ReleaseError]: ...

    def list_tags(self) -> Result[list[RefInfo], ReleaseError]: ...

    def list_releases(self) -> Result[list[ReleaseInfo], ReleaseError]: ...

    def get_file_text(self, path: str, ref: str) -> Result[str | None, ReleaseError]:
        """File content at ``ref``; Ok(None) if the file does not exist there."""
        ...

    def create_release(
        self, *, name: str, tag: str, commit_id: str, body: str
    ) -> Result[None, ReleaseError]: ...
