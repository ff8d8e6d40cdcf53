"""Git repository adapter.

Implements the VersionControl operations relsync needs on a local checkout:
history of a file, file content at a revision, branch/tag creation, commit
and push. All operations return Result types.

Usage:
    repo = Repository(Path("/path/to/checkout"), remote="origin")

    match repo.log("CHANGES.md"):
        case Ok(commits):
            for c in commits:
                print(c.short_id, c.subject)
        case Err(e):
            print(f"git log failed: {e.message}")
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from relsync.core.result import Err, Ok, Result
from relsync.platform.process import ProcessError
from relsync.platform.process import run as run_process
from relsync.platform.process import run_bytes

_GIT_TIMEOUT_SECONDS = 60.0
_GIT_NETWORK_TIMEOUT_SECONDS = 15 * 60.0

# Record / unit separators keep commit bodies with arbitrary text parseable.
_RECORD_SEP = "\x1e"
_FIELD_SEP = "\x1f"
_LOG_FORMAT = "%x1e%H%x1f%cI%x1f%an <%ae>%x1f%s%x1f%b"

__all__ = [
    "Commit",
    "GitError",
    "Repository",
    "parse_log",
]


@dataclass(frozen=True, slots=True)
class GitError:
    """Error from a git operation.

    Attributes:
        command: The git command that failed
        message: Error message
        returncode: Process return code
    """

    command: str
    message: str
    returncode: int = 1


@dataclass(frozen=True, slots=True)
class Commit:
    commit_id: str
    timestamp: datetime
    author: str
    subject: str
    body: str = ""

    @property
    def short_id(self) -> str:
        return self.commit_id[:8]


def parse_log(output: str) -> list[Commit]:
    """Parse ``git log`` output produced with _LOG_FORMAT."""
    commits: list[Commit] = []
    for record in output.split(_RECORD_SEP):
        parts = record.split(_FIELD_SEP)
        if len(parts) != 5:
            continue
        commit_id, stamp, author, subject, body = parts
        try:
            timestamp = datetime.fromisoformat(stamp.strip())
        except ValueError:
            continue
        commits.append(
            Commit(
                commit_id=commit_id.strip(),
                timestamp=timestamp,
                author=author.strip(),
                subject=subject.strip(),
                body=body.strip(),
            )
        )
    return commits


class Repository:
    """A local git checkout.

    Attributes:
        path: Path to the repository root
        remote: Remote name or URL that push() targets
    """

    def __init__(self, path: Path, remote: str = "origin") -> None:
        self.path = path
        self.remote = remote

    def exists(self) -> bool:
        """Check if this is a valid git repository."""
        return (self.path / ".git").exists()

    def log(self, path: str, ref: str = "HEAD", count: int = -1) -> Result[list[Commit], GitError]:
        """Commits touching ``path`` reachable from ``ref``, newest first.

        A negative ``count`` returns the whole history.
        """
        args = ["log", ref or "HEAD", f"--pretty=format:{_LOG_FORMAT}"]
        if count > 0:
            args.append(f"-{count}")
        args.extend(["--", path])
        match self._run(args):
            case Err(e):
                return Err(self._error("log", e, "git log failed"))
            case Ok(stdout):
                return Ok(parse_log(stdout))

    def head_commit(self) -> Result[Commit, GitError]:
        match self._run(["log", "-1", f"--pretty=format:{_LOG_FORMAT}"]):
            case Err(e):
                return Err(self._error("log -1", e, "git log failed"))
            case Ok(stdout):
                commits = parse_log(stdout)
                if not commits:
                    return Err(GitError(command="log -1", message="no commits found"))
                return Ok(commits[0])

    def show_file(self, path: str, commit_id: str) -> Result[bytes, GitError]:
        """Content of ``path`` at ``commit_id``."""
        result = run_bytes(
            ["git", "-C", str(self.path), "show", f"{commit_id}:{path}"],
            cwd=self.path,
            timeout=_GIT_TIMEOUT_SECONDS,
        )
        if isinstance(result, Err):
            return Err(self._error("show", result.error, f"cannot show {path} at {commit_id}"))
        return Ok(result.value)

    def create_or_update_ref(self, name: str, commit_id: str) -> Result[None, GitError]:
        """Point local branch ``name`` at ``commit_id`` without checking it out."""
        return self._simple(
            ["update-ref", f"refs/heads/{name}", commit_id], f"cannot create branch {name}"
        )

    def tag(self, name: str, commit_id: str) -> Result[None, GitError]:
        return self._simple(["tag", name, commit_id], f"cannot create tag {name}")

    def add(self, path: str) -> Result[None, GitError]:
        return self._simple(["add", "--", path], f"cannot stage {path}")

    def commit(self, message: str) -> Result[Commit, GitError]:
        """Commit staged changes and return the new HEAD."""
        result = self._simple(["commit", "-m", message], "git commit failed")
        if isinstance(result, Err):
            return result
        return self.head_commit()

    def write_and_commit(self, path: str, content: str, message: str) -> Result[Commit, GitError]:
        """Write ``content`` to ``path`` (repository-relative), stage and commit it."""
        target = self.path / path
        try:
            target.write_text(content, encoding="utf-8")
        except OSError as e:
            return Err(GitError(command="write", message=f"failed to write {target}: {e}"))
        added = self.add(path)
        if isinstance(added, Err):
            return added
        return self.commit(message)

    def push(self, ref: str) -> Result[None, GitError]:
        """Push ``ref`` to the remote.

        Pass full ref names (refs/heads/x, refs/tags/x): release branches and
        tags may share a name.
        """
        return self._simple(["push", self.remote, ref], f"cannot push {ref} to {self.remote}")

    def push_commit(self, commit_id: str, branch: str) -> Result[None, GitError]:
        """Push ``commit_id`` to remote branch ``branch``."""
        return self._simple(
            ["push", self.remote, f"{commit_id}:refs/heads/{branch}"],
            f"cannot push to {branch}",
        )

    def _simple(self, args: list[str], fallback: str) -> Result[None, GitError]:
        match self._run(args):
            case Err(e):
                return Err(self._error(args[0], e, fallback))
            case Ok(_):
                return Ok(None)

    def _error(self, command: str, e: ProcessError, fallback: str) -> GitError:
        return GitError(
            command=command,
            message=e.stderr.strip() or e.stdout.strip() or fallback,
            returncode=e.returncode,
        )

    def _run(self, args: list[str]) -> Result[str, ProcessError]:
        """Run a git command in this repository."""
        command = args[0] if args else ""
        timeout = (
            _GIT_NETWORK_TIMEOUT_SECONDS
            if command in {"fetch", "pull", "push", "clone"}
            else _GIT_TIMEOUT_SECONDS
        )
        return run_process(["git", "-C", str(self.path), *args], cwd=self.path, timeout=timeout)
