"""Error payloads for the release domain."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

ReleaseErrorKind = Literal[
    "gh_missing",
    "hosting_failed",
    "invalid_input",
    "no_changes_file",
    "no_main_branch",
    "unsupported_order",
    "nothing_to_release",
    "invalid_version",
    "git_failed",
]


@dataclass(frozen=True, slots=True)
class FormatError:
    """Text that violates the version or CHANGES heading grammar.

    ``line`` is 1-based and only set when the text came from a document.
    """

    message: str
    text: str
    line: int | None = None

    def pretty(self) -> str:
        if self.line is not None:
            return f"{self.message} on line {self.line}: {self.text!r}"
        return self.message


@dataclass(frozen=True, slots=True)
class ReleaseError:
    """Failure of a reconciliation or release step."""

    kind: ReleaseErrorKind
    message: str
    hint: str | None = None

    def pretty(self) -> str:
        if self.hint:
            return f"{self.message} (hint: {self.hint})"
        return self.message
