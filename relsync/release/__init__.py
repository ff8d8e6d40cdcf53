"""Release domain: versions, styles, CHANGES documents and reconciliation.

Pure modules (no I/O):
- semver: Version, comparison, parsing
- style: naming styles and style inference
- changes: CHANGES document model and validation
- reconcile: missing branch / tag / release detection
- backfill: historical scan placing missing branches and tags
- planner: release planning (finalize + stub CHANGES)

Adapters and orchestration:
- collaborators: protocols for version control and the hosted repository
- gh: GitHub adapter over the gh CLI
- service: ReconcileService
"""

from __future__ import annotations

from relsync.release.changes import ChangeLog, Finding, VersionEntry
from relsync.release.semver import FlavorMode, Version, compare, parse_version
from relsync.release.style import Style, infer_style

__all__ = [
    "ChangeLog",
    "Finding",
    "FlavorMode",
    "Style",
    "Version",
    "VersionEntry",
    "compare",
    "infer_style",
    "parse_version",
]
