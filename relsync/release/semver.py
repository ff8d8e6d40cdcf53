"""Semantic versions with an optional flavor suffix (``2.2.1-dev``)."""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass, replace
from enum import Enum
from functools import cmp_to_key

from relsync.core.result import Err, Ok, Result
from relsync.release.errors import FormatError

__all__ = [
    "FlavorMode",
    "Version",
    "VERSION_TOKEN",
    "compare",
    "parse_version",
    "sort_newest_first",
]

# Optional prefix: a word token that does not start with a digit followed by
# "-" (release-, ver_1-) or a bare "v".
PREFIX_TOKEN = r"(?:[^\W\d]\w*-|v)"
VERSION_TOKEN = PREFIX_TOKEN + r"?\d+\.\d+(?:\.\d+)?(?:-\w+)?"

_VERSION_RE = re.compile(r"^" + PREFIX_TOKEN + r"?(\d+)\.(\d+)(?:\.(\d+))?(?:-(\w+))?$")


class FlavorMode(Enum):
    """Whether the flavor takes part in a comparison."""

    AWARE = "aware"
    IGNORE = "ignore"


@dataclass(frozen=True, slots=True)
class Version:
    major: int
    minor: int
    patch: int = 0
    flavor: str = ""

    def __post_init__(self) -> None:
        if self.major < 0 or self.minor < 0 or self.patch < 0:
            raise ValueError(f"version numbers must be non-negative: {self.numbers}")

    @property
    def numbers(self) -> tuple[int, int, int]:
        return (self.major, self.minor, self.patch)

    @property
    def is_flavored(self) -> bool:
        return self.flavor != ""

    def without_flavor(self) -> Version:
        return replace(self, flavor="")

    def with_flavor(self, flavor: str) -> Version:
        return replace(self, flavor=flavor)

    def bump_patch(self) -> Version:
        return replace(self, patch=self.patch + 1)

    def greater_than(self, other: Version, mode: FlavorMode = FlavorMode.AWARE) -> bool:
        return compare(self, other, mode) > 0

    def greater_equal(self, other: Version, mode: FlavorMode = FlavorMode.AWARE) -> bool:
        return compare(self, other, mode) >= 0

    # Rich comparisons are flavor-aware; equality stays field-wise.
    def __lt__(self, other: Version) -> bool:
        return compare(self, other) < 0

    def __le__(self, other: Version) -> bool:
        return compare(self, other) <= 0

    def __gt__(self, other: Version) -> bool:
        return compare(self, other) > 0

    def __ge__(self, other: Version) -> bool:
        return compare(self, other) >= 0

    def __str__(self) -> str:
        s = f"{self.major}.{self.minor}.{self.patch}"
        if self.flavor:
            s += f"-{self.flavor}"
        return s


def compare(a: Version, b: Version, mode: FlavorMode = FlavorMode.AWARE) -> int:
    """Compare two versions, returning -1, 0 or 1.

    Numbers compare first. Under FlavorMode.AWARE an unflavored version is
    greater than any flavored one with the same numbers (2.2.1 > 2.2.1-dev),
    and two flavors tie-break lexicographically.
    """
    if a.numbers != b.numbers:
        return -1 if a.numbers < b.numbers else 1
    if mode is FlavorMode.IGNORE or a.flavor == b.flavor:
        return 0
    if a.flavor == "":
        return 1
    if b.flavor == "":
        return -1
    return -1 if a.flavor < b.flavor else 1


def parse_version(text: str) -> Result[Version, FormatError]:
    """Parse ``[prefix]MAJOR.MINOR[.PATCH][-FLAVOR]``.

    >>> parse_version("v2.3-dev")
    Ok(Version(major=2, minor=3, patch=0, flavor='dev'))
    """
    m = _VERSION_RE.match(text)
    if m is None:
        return Err(FormatError(message=f"cannot parse {text!r} as a semantic version", text=text))
    major, minor, patch, flavor = m.groups()
    return Ok(
        Version(
            major=int(major),
            minor=int(minor),
            patch=int(patch) if patch is not None else 0,
            flavor=flavor or "",
        )
    )


def sort_newest_first(versions: Iterable[Version]) -> list[Version]:
    return sorted(versions, key=cmp_to_key(compare), reverse=True)
