"""Exit codes for relsync commands."""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Process exit codes.

    - 0: Success
    - 1: User error (bad arguments, unreadable CHANGES file)
    - 2: Environment error (git or gh missing, not a repository)
    - 3: Validation error (CHANGES problems, missing artifacts left behind)
    - 4: Hosting error (hosted repository API failed)
    """

    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    VALIDATION_ERROR = 3
    HOSTING_ERROR = 4

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")
