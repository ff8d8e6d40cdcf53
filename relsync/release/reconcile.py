"""Missing release branch / tag / release detection and release branch checks."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from relsync.release.changes import ChangeLog, Finding
from relsync.release.semver import FlavorMode, Version, sort_newest_first
from relsync.release.style import Style

__all__ = [
    "MissingArtifacts",
    "check_release_branch",
    "compute_missing",
    "existing_versions",
]


@dataclass(frozen=True, slots=True)
class MissingArtifacts:
    """Released versions declared in CHANGES without a branch, tag or release."""

    branches: frozenset[Version]
    tags: frozenset[Version]
    releases: frozenset[Version]
    style: Style

    @property
    def is_empty(self) -> bool:
        return not (self.branches or self.tags or self.releases)

    def kinds(self) -> list[str]:
        out: list[str] = []
        if self.branches:
            out.append("branches")
        if self.tags:
            out.append("tags")
        if self.releases:
            out.append("releases")
        return out

    def describe(self) -> list[str]:
        """One line per missing artifact, newest version first within each kind."""
        lines: list[str] = []
        for v in sort_newest_first(self.branches):
            lines.append(f"Release branch '{self.style.format(v)}' for release {v}")
        for v in sort_newest_first(self.tags):
            lines.append(f"Release tag '{self.style.format(v)}'")
        for v in sort_newest_first(self.releases):
            lines.append(f"Release '{self.style.format(v)}'")
        return lines


def existing_versions(names: Iterable[str], style: Style) -> frozenset[Version]:
    """Versions named by ``names`` under ``style``; unparseable names are skipped."""
    out: set[Version] = set()
    for name in names:
        v = style.parse(name)
        if v is not None:
            out.add(v)
    return frozenset(out)


def compute_missing(
    declared: Iterable[Version],
    *,
    branches: Iterable[str],
    tags: Iterable[str],
    releases: Iterable[str],
    style: Style,
) -> MissingArtifacts:
    """Difference between declared releases and existing artifacts.

    Flavored (in-development) declared versions are never expected to have a
    branch, tag or release and are dropped first.
    """
    expected = frozenset(v for v in declared if not v.is_flavored)
    return MissingArtifacts(
        branches=expected - existing_versions(branches, style),
        tags=expected - existing_versions(tags, style),
        releases=expected - existing_versions(releases, style),
        style=style,
    )


def check_release_branch(name: str, version: Version, doc: ChangeLog) -> list[Finding]:
    """Flag a release branch whose CHANGES already declares a later version.

    A release branch is cut when its version is finalized, so every heading
    on it should be at or below ``version``. Only the newest offender is
    reported.
    """
    for declared in doc.versions():
        if declared.greater_than(version, FlavorMode.IGNORE):
            entry = next(e for e in doc.entries if e.version == declared)
            return [
                Finding(
                    kind="future_version",
                    message=(
                        f"CHANGES in release branch '{name}' has notes for future version {declared}"
                    ),
                    line=entry.line,
                )
            ]
    return []
