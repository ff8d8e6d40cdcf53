"""Naming styles for release branches, tags and releases.

A style is the literal prefix in front of the version digits plus whether a
zero patch digit is left out: ``release-1.2.0``, ``v2019.1``, ``3.0.1``.
"""

from __future__ import annotations

import re
from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass

from relsync.core.config import DEFAULT_STYLE_PREFIX
from relsync.core.result import Ok
from relsync.release.semver import PREFIX_TOKEN, Version, parse_version

__all__ = [
    "DEFAULT_STYLE",
    "Style",
    "infer_style",
    "merge",
    "parse_style",
]

_STYLE_RE = re.compile(r"^(" + PREFIX_TOKEN + r")?\d+\.\d+(\.\d+)?(?:-\w+)?$")


@dataclass(frozen=True, slots=True)
class Style:
    prefix: str = ""
    omit_patch: bool = False

    def format(self, version: Version) -> str:
        out = f"{self.prefix}{version.major}.{version.minor}"
        if version.patch != 0 or not self.omit_patch:
            out += f".{version.patch}"
        if version.flavor:
            out += f"-{version.flavor}"
        return out

    def parse(self, name: str) -> Version | None:
        """Parse a name written in this style; None if it does not match.

        The prefix must match exactly. A patch digit is accepted whether or
        not the style omits it.
        """
        if not name.startswith(self.prefix):
            return None
        rest = name[len(self.prefix) :]
        if not rest[:1].isdigit():
            return None
        match parse_version(rest):
            case Ok(version):
                return version
            case _:
                return None


DEFAULT_STYLE = Style(prefix=DEFAULT_STYLE_PREFIX, omit_patch=False)


def parse_style(name: str) -> Style | None:
    """Determine the style a version name is written in."""
    m = _STYLE_RE.match(name)
    if m is None:
        return None
    return Style(prefix=m.group(1) or "", omit_patch=m.group(2) is None)


def merge(a: Style, b: Style) -> Style | None:
    """Merge two styles; None if their prefixes differ."""
    if a.prefix != b.prefix:
        return None
    return Style(prefix=a.prefix, omit_patch=a.omit_patch or b.omit_patch)


def infer_style(names: Iterable[str], default: Style = DEFAULT_STYLE) -> Style:
    """Infer the dominant style from existing artifact names.

    The most used prefix wins; equal counts go to the lexicographically
    smallest prefix. The patch digit is omitted only if every parsed name
    omits it. Returns ``default`` when no name parses.
    """
    uses: Counter[str] = Counter()
    all_omit_patch = True
    for name in names:
        style = parse_style(name)
        if style is None:
            continue
        uses[style.prefix] += 1
        all_omit_patch = all_omit_patch and style.omit_patch

    if not uses:
        return default

    prefix = min(uses, key=lambda p: (-uses[p], p))
    return Style(prefix=prefix, omit_patch=all_omit_patch)
