from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from relsync.core.result import Err, Ok, Result
from relsync.release.changes import ChangeLog
from relsync.release.errors import ReleaseError
from relsync.release.semver import FlavorMode, Version

STUB_NOTES = "[Add release notes here]"


@dataclass(frozen=True, slots=True)
class ReleasePlan:
    """The two CHANGES commits that make up a release.

    ``finalized`` is committed first and is what the release branch and tag
    point at; ``stubbed`` reopens development on the main branch.
    """

    version: Version
    next_version: Version
    finalized: ChangeLog
    finalize_message: str
    stubbed: ChangeLog
    stub_message: str


def validate_release_version(current: Version, candidate: Version) -> Result[None, ReleaseError]:
    if not candidate.greater_equal(current, FlavorMode.IGNORE):
        return Err(
            ReleaseError(
                kind="invalid_version",
                message=f"version must be greater or equal to {current.without_flavor()}",
                hint=f"got {candidate}",
            )
        )
    return Ok(None)


def plan_release(doc: ChangeLog, version: Version | None, today: date) -> Result[ReleasePlan, ReleaseError]:
    """Plan releasing the current (flavored) version of ``doc``.

    Args:
        doc: CHANGES of the main branch
        version: Version to release; None releases the current version
            without its flavor
        today: Release date written into the heading
    """
    current = doc.current_version()
    if current is None or not current.is_flavored:
        return Err(
            ReleaseError(
                kind="nothing_to_release",
                message="nothing to release: top-most version is not flavored",
                hint="The main branch CHANGES should start with a version like 1.2.0-dev",
            )
        )

    target = (version or current).without_flavor()
    check = validate_release_version(current, target)
    if isinstance(check, Err):
        return check

    finalized = doc.adjust_current_version(target, today)
    if finalized is None:
        raise AssertionError("document with a current version refused adjustment")

    finalize_message = f"Finalize release notes for {target}\n\n"
    notes = finalized.current_version_notes()
    if notes:
        finalize_message += "Release Notes:\n\n" + notes

    next_version = target.bump_patch().with_flavor(current.flavor)
    stubbed = finalized.add_new_version(next_version, None, STUB_NOTES)

    return Ok(
        ReleasePlan(
            version=target,
            next_version=next_version,
            finalized=finalized,
            finalize_message=finalize_message,
            stubbed=stubbed,
            stub_message=f"Stub release notes for {next_version}\n",
        )
    )
