"""Hosted repository adapter backed by the GitHub CLI (``gh api``)."""

from __future__ import annotations

import base64
import binascii
import json
import shutil
from pathlib import Path

from relsync.core.result import Err, Ok, Result
from relsync.core.structured import as_str_dict, get_str, get_table
from relsync.platform.process import run as run_process
from relsync.release.collaborators import RefInfo, ReleaseInfo
from relsync.release.errors import ReleaseError

__all__ = ["GH_TIMEOUT_SECONDS", "GhHostedRepository", "ensure_gh_available"]

GH_TIMEOUT_SECONDS = 60.0

# One compact JSON value per line for paginated listings.
_LINES_JQ = ".[] | tojson"


def ensure_gh_available() -> Result[None, ReleaseError]:
    if shutil.which("gh") is None:
        return Err(
            ReleaseError(
                kind="gh_missing",
                message="gh: missing",
                hint="Install GitHub CLI: https://cli.github.com/",
            )
        )
    return Ok(None)


def _parse_json_lines(text: str, endpoint: str) -> Result[list[object], ReleaseError]:
    out: list[object] = []
    for line in text.splitlines():
        if not line.strip():
            continue
        try:
            out.append(json.loads(line))
        except json.JSONDecodeError as e:
            return Err(
                ReleaseError(
                    kind="hosting_failed",
                    message=f"gh api returned invalid JSON: {e}",
                    hint=endpoint,
                )
            )
    return Ok(out)


class GhHostedRepository:
    """HostedRepository for a GitHub repository ``owner/name``."""

    def __init__(self, *, workspace_root: Path, slug: str) -> None:
        self.workspace_root = workspace_root
        self.slug = slug

    def _api(self, args: list[str], *, message: str, endpoint: str) -> Result[str, ReleaseError]:
        result = run_process(
            ["gh", "api", *args],
            cwd=self.workspace_root,
            timeout=GH_TIMEOUT_SECONDS,
        )
        if isinstance(result, Err):
            return Err(
                ReleaseError(
                    kind="hosting_failed",
                    message=message,
                    hint=result.error.stderr.strip() or endpoint,
                )
            )
        return Ok(result.value)

    def _list(self, endpoint: str, *, message: str) -> Result[list[dict[str, object]], ReleaseError]:
        text = self._api(["--paginate", endpoint, "--jq", _LINES_JQ], message=message, endpoint=endpoint)
        if isinstance(text, Err):
            return text
        items = _parse_json_lines(text.value, endpoint)
        if isinstance(items, Err):
            return items
        return Ok([d for d in (as_str_dict(i) for i in items.value) if d is not None])

    def default_branch(self) -> Result[str, ReleaseError]:
        endpoint = f"repos/{self.slug}"
        text = self._api([endpoint], message=f"failed to fetch repository {self.slug}", endpoint=endpoint)
        if isinstance(text, Err):
            return text
        try:
            data = as_str_dict(json.loads(text.value))
        except json.JSONDecodeError as e:
            return Err(ReleaseError(kind="hosting_failed", message=f"invalid JSON: {e}", hint=endpoint))
        name = get_str(data, "default_branch") if data is not None else None
        if name is None:
            return Err(ReleaseError(kind="hosting_failed", message=f"missing default_branch: {self.slug}"))
        return Ok(name)

    def _list_refs(self, kind: str) -> Result[list[RefInfo], ReleaseError]:
        endpoint = f"repos/{self.slug}/{kind}?per_page=100"
        items = self._list(endpoint, message=f"failed to list {kind} for {self.slug}")
        if isinstance(items, Err):
            return items
        out: list[RefInfo] = []
        for d in items.value:
            name = get_str(d, "name")
            commit = get_table(d, "commit")
            sha = get_str(commit, "sha") if commit is not None else None
            if name is None or sha is None:
                continue
            out.append(RefInfo(name=name, commit_id=sha))
        return Ok(out)

    def list_branches(self) -> Result[list[RefInfo], ReleaseError]:
        return self._list_refs("branches")

    def list_tags(self) -> Result[list[RefInfo], ReleaseError]:
        return self._list_refs("tags")

    def list_releases(self) -> Result[list[ReleaseInfo], ReleaseError]:
        endpoint = f"repos/{self.slug}/releases?per_page=100"
        items = self._list(endpoint, message=f"failed to list releases for {self.slug}")
        if isinstance(items, Err):
            return items
        out: list[ReleaseInfo] = []
        for d in items.value:
            tag = get_str(d, "tag_name")
            if tag is None:
                continue
            # Untitled releases display as their tag on GitHub.
            out.append(ReleaseInfo(name=get_str(d, "name") or tag, tag=tag))
        return Ok(out)

    def get_file_text(self, path: str, ref: str) -> Result[str | None, ReleaseError]:
        endpoint = f"repos/{self.slug}/contents/{path}?ref={ref}"
        result = run_process(["gh", "api", endpoint], cwd=self.workspace_root, timeout=GH_TIMEOUT_SECONDS)
        if isinstance(result, Err):
            if "404" in result.error.stderr:
                return Ok(None)
            return Err(
                ReleaseError(
                    kind="hosting_failed",
                    message=f"failed to fetch {path} at {ref}",
                    hint=result.error.stderr.strip() or endpoint,
                )
            )

        try:
            data = as_str_dict(json.loads(result.value))
        except json.JSONDecodeError as e:
            return Err(ReleaseError(kind="hosting_failed", message=f"invalid JSON: {e}", hint=endpoint))
        if data is None or get_str(data, "encoding") != "base64":
            return Err(
                ReleaseError(
                    kind="hosting_failed",
                    message=f"unexpected contents payload for {path}",
                    hint=endpoint,
                )
            )

        try:
            raw = base64.b64decode(get_str(data, "content") or "", validate=False)
            return Ok(raw.decode("utf-8"))
        except (binascii.Error, ValueError) as e:
            # UnicodeDecodeError is a ValueError.
            return Err(
                ReleaseError(
                    kind="hosting_failed",
                    message=f"failed to decode contents of {path}: {e}",
                    hint=endpoint,
                )
            )

    def create_release(self, *, name: str, tag: str, commit_id: str, body: str) -> Result[None, ReleaseError]:
        endpoint = f"repos/{self.slug}/releases"
        result = self._api(
            [
                "-X",
                "POST",
                endpoint,
                "-f",
                f"tag_name={tag}",
                "-f",
                f"target_commitish={commit_id}",
                "-f",
                f"name={name}",
                "-f",
                f"body={body}",
                "-F",
                "draft=false",
                "-F",
                "prerelease=false",
            ],
            message=f"failed to create release {name}",
            endpoint=endpoint,
        )
        if isinstance(result, Err):
            return result
        return Ok(None)
