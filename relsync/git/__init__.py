"""Git operations.

Usage:
    from relsync.git import Repository

    repo = Repository(Path("/path/to/checkout"))
    commits = repo.log("CHANGES")
"""

from relsync.git.repository import Commit, GitError, Repository, parse_log

__all__ = [
    "Commit",
    "GitError",
    "Repository",
    "parse_log",
]
