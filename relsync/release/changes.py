"""CHANGES document model.

A CHANGES document is free text in which some lines are version headings::

    ### 2.2.1-dev
    Notes about the upcoming patch release

    ### 2.2.0    2020-02-10
    Notes about the 2.2.0 minor release

Headings are listed newest first; the topmost one is the current version.
A ChangeLog keeps the raw lines (so ``str(doc)`` always reproduces the input
exactly) and the entries derived from them. Mutations build new lines and
reparse them into a new ChangeLog, so entry line numbers never drift.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Literal

from relsync.core.config import DEFAULT_CHANGES_FILE_NAMES
from relsync.core.result import Err, Ok, Result
from relsync.release.errors import FormatError, ReleaseError
from relsync.release.semver import (
    VERSION_TOKEN,
    FlavorMode,
    Version,
    compare,
    parse_version,
    sort_newest_first,
)
from relsync.release.style import Style, parse_style

__all__ = [
    "ChangeLog",
    "DEFAULT_SEPARATOR",
    "Finding",
    "FindingKind",
    "VersionEntry",
    "find_changes_file",
    "load_changes",
]

DEFAULT_SEPARATOR = "  "
DATE_FORMAT = "%Y-%m-%d"

_HEADING_RE = re.compile(
    r"^([ \t]*#*[ \t]*)(" + VERSION_TOKEN + r")([ \t]*)(\d{4}-\d{2}-\d{2})?(\s*)$"
)

FindingKind = Literal[
    "no_versions",
    "unflavored_top",
    "illegal_flavor",
    "non_monotonic",
    "future_version",
]


@dataclass(frozen=True, slots=True)
class Finding:
    """A structural problem found by ChangeLog.validate()."""

    kind: FindingKind
    message: str
    line: int | None = None

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True, slots=True)
class VersionEntry:
    """A version heading and where it sits in the document.

    Attributes:
        line: 1-based line number of the heading
        marker: Heading markers and indentation before the version ("### ")
        version: Parsed version
        style: Style the version token was written in
        separator: Text between the version token and the date
        date: ISO date text, "" when the heading is undated
        trailing: Whitespace after the heading text, including a CR left by
            CRLF line endings
    """

    line: int
    marker: str
    version: Version
    style: Style
    separator: str
    date: str
    trailing: str = ""

    def heading(self) -> str:
        return f"{self.marker}{self.style.format(self.version)}{self.separator}{self.date}{self.trailing}"


def _parse_entries(lines: tuple[str, ...]) -> Result[tuple[VersionEntry, ...], FormatError]:
    entries: list[VersionEntry] = []
    for index, text in enumerate(lines):
        m = _HEADING_RE.match(text)
        if m is None:
            continue
        marker, token, separator, when, trailing = m.groups()
        match parse_version(token):
            case Err(e):
                return Err(FormatError(message=e.message, text=text, line=index + 1))
            case Ok(version):
                pass
        entries.append(
            VersionEntry(
                line=index + 1,
                marker=marker,
                version=version,
                style=parse_style(token) or Style(),
                separator=separator,
                date=when or "",
                trailing=trailing,
            )
        )
    return Ok(tuple(entries))


def _trim_blank(lines: list[str]) -> list[str]:
    start, end = 0, len(lines)
    while start < end and not lines[start].strip():
        start += 1
    while end > start and not lines[end - 1].strip():
        end -= 1
    return lines[start:end]


@dataclass(frozen=True, slots=True)
class ChangeLog:
    """Immutable snapshot of a CHANGES document.

    Build instances with ChangeLog.read() or ChangeLog.from_bytes().
    """

    lines: tuple[str, ...]
    entries: tuple[VersionEntry, ...]

    @classmethod
    def read(cls, text: str) -> Result[ChangeLog, FormatError]:
        """Parse CHANGES text."""
        return cls._from_lines(tuple(text.split("\n")))

    @classmethod
    def from_bytes(cls, data: bytes) -> Result[ChangeLog, FormatError]:
        """Parse CHANGES content as stored in a repository (UTF-8)."""
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as e:
            return Err(FormatError(message=f"CHANGES content is not valid UTF-8: {e.reason}", text=""))
        return cls.read(text)

    @classmethod
    def _from_lines(cls, lines: tuple[str, ...]) -> Result[ChangeLog, FormatError]:
        return _parse_entries(lines).map(lambda entries: cls(lines=lines, entries=entries))

    def __str__(self) -> str:
        return "\n".join(self.lines)

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def versions(self) -> list[Version]:
        """All declared versions, newest first."""
        return sort_newest_first(e.version for e in self.entries)

    def declared_releases(self) -> frozenset[Version]:
        """Unflavored declared versions, i.e. the versions that should be released."""
        return frozenset(e.version for e in self.entries if not e.version.is_flavored)

    def current_entry(self) -> VersionEntry | None:
        return self.entries[0] if self.entries else None

    def current_version(self) -> Version | None:
        entry = self.current_entry()
        return entry.version if entry is not None else None

    def _notes_at(self, index: int) -> str:
        start = self.entries[index].line  # first line after the heading, 0-based
        if index + 1 < len(self.entries):
            end = self.entries[index + 1].line - 1
        else:
            end = len(self.lines)
        return "\n".join(_trim_blank(list(self.lines[start:end])))

    def release_notes(self, version: Version) -> str | None:
        """Notes written under ``version``'s heading; None if it is not declared."""
        for index, entry in enumerate(self.entries):
            if entry.version == version:
                return self._notes_at(index)
        return None

    def current_version_notes(self) -> str:
        if not self.entries:
            return ""
        return self._notes_at(0)

    def is_reversed(self) -> bool:
        """True if headings are listed oldest first instead of newest first.

        Flavor alone does not make a document reversed: ``1.1.0-dev`` above
        ``1.1.0`` is an ordering mistake, reported by validate().
        """
        pairs = list(zip(self.entries, self.entries[1:], strict=False))
        if not pairs:
            return False
        return all(compare(a.version, b.version) < 0 for a, b in pairs) and any(
            compare(a.version, b.version, FlavorMode.IGNORE) < 0 for a, b in pairs
        )

    # -------------------------------------------------------------------------
    # Mutations (each returns a freshly parsed snapshot)
    # -------------------------------------------------------------------------

    def _replace_lines(self, lines: list[str]) -> ChangeLog:
        result = ChangeLog._from_lines(tuple(lines))
        if isinstance(result, Err):
            # Every generated heading comes from Style.format(); it always parses.
            raise AssertionError(f"regenerated CHANGES failed to parse: {result.error.pretty()}")
        return result.value

    def adjust_current_version(self, version: Version, when: date) -> ChangeLog | None:
        """Rewrite the topmost heading to ``version`` dated ``when``.

        Marker, separator and trailing whitespace are preserved; an empty
        separator becomes two spaces. Returns None if the document declares no
        version.
        """
        current = self.current_entry()
        if current is None:
            return None
        updated = VersionEntry(
            line=current.line,
            marker=current.marker,
            version=version,
            style=current.style,
            separator=current.separator or DEFAULT_SEPARATOR,
            date=when.strftime(DATE_FORMAT),
            trailing=current.trailing,
        )
        lines = list(self.lines)
        lines[current.line - 1] = updated.heading()
        return self._replace_lines(lines)

    def add_new_version(self, version: Version, when: date | None, body: str) -> ChangeLog:
        """Insert a new topmost heading followed by ``body``.

        The new heading copies the marker, style and separator of the current
        topmost heading. Inserted lines keep the document's CRLF endings.
        """
        at = len(self.lines)
        marker, style, separator, eol = "", Style(), "", ""
        current = self.current_entry()
        if current is not None:
            at = current.line - 1
            marker, style, separator = current.marker, current.style, current.separator
            if current.trailing.endswith("\r"):
                eol = "\r"
        if when is not None and not separator:
            separator = DEFAULT_SEPARATOR

        heading = VersionEntry(
            line=at + 1,
            marker=marker,
            version=version,
            style=style,
            separator=separator,
            date=when.strftime(DATE_FORMAT) if when is not None else "",
            trailing=eol,
        )

        lines = list(self.lines[:at])
        if not lines or lines[-1] not in ("", eol):
            lines.append(eol)
        lines.extend([heading.heading(), eol])
        if body:
            lines.extend(line + eol for line in body.split("\n"))
            lines.append(eol)
        lines.extend(self.lines[at:])
        return self._replace_lines(lines)

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    def validate(self, is_development_branch: bool) -> list[Finding]:
        """Check the document is well formed; returns every problem found.

        Args:
            is_development_branch: The document lives on the main branch, whose
                topmost version must be flavored (e.g. ``-dev``).
        """
        if not self.entries:
            return [Finding(kind="no_versions", message="CHANGES file does not contain any versions")]

        findings: list[Finding] = []
        top = self.entries[0]

        if is_development_branch and not top.version.is_flavored:
            findings.append(
                Finding(
                    kind="unflavored_top",
                    message=(
                        f"Top-most version {top.version} on line {top.line} "
                        "is not suffixed with a flavor (e.g. -dev)"
                    ),
                    line=top.line,
                )
            )

        for entry in reversed(self.entries[1:]):
            if entry.version.is_flavored:
                findings.append(
                    Finding(
                        kind="illegal_flavor",
                        message=(
                            f"Version {entry.version} on line {entry.line} is flavored. "
                            "Only the current version can be flavored"
                        ),
                        line=entry.line,
                    )
                )

        for newer, older in zip(self.entries, self.entries[1:], strict=False):
            if compare(newer.version, older.version) <= 0:
                findings.append(
                    Finding(
                        kind="non_monotonic",
                        message=(
                            f"Version {newer.version} on line {newer.line} is not greater "
                            f"than version {older.version} on line {older.line}"
                        ),
                        line=newer.line,
                    )
                )

        return findings


def find_changes_file(
    root: Path, file_names: tuple[str, ...] = DEFAULT_CHANGES_FILE_NAMES
) -> Path | None:
    for name in file_names:
        candidate = root / name
        if candidate.is_file():
            return candidate
    return None


def load_changes(
    path: Path, file_names: tuple[str, ...] = DEFAULT_CHANGES_FILE_NAMES
) -> Result[ChangeLog, ReleaseError]:
    """Load a CHANGES file.

    ``path`` may be the file itself or a project directory containing one of
    ``file_names``.
    """
    if path.is_dir():
        found = find_changes_file(path, file_names)
        if found is None:
            return Err(
                ReleaseError(
                    kind="no_changes_file",
                    message=f"no CHANGES file found in {path}",
                    hint="Expected one of: " + ", ".join(file_names),
                )
            )
        path = found

    try:
        data = path.read_bytes()
    except OSError as e:
        return Err(ReleaseError(kind="invalid_input", message=f"failed to read {path}: {e}"))

    match ChangeLog.from_bytes(data):
        case Ok(doc):
            return Ok(doc)
        case Err(e):
            return Err(ReleaseError(kind="invalid_input", message=e.pretty(), hint=str(path)))
