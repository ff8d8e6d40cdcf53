from __future__ import annotations

from dataclasses import replace
from datetime import UTC, date, datetime

from relsync.core.config import Config, RepoConfig
from relsync.core.result import Err, Ok, Result
from relsync.git.repository import Commit, GitError
from relsync.output.console import MockConsole
from relsync.release.backfill import BackfillResult, PlannedRef
from relsync.release.collaborators import RefInfo, ReleaseInfo
from relsync.release.errors import ReleaseError
from relsync.release.semver import Version
from relsync.release.service import ReconcileService, RepoReport
from relsync.release.style import Style

C1 = "## v1.0.0    2020-01-01\n\n* first\n"
C2 = "## v1.1.0-dev\n\n* second\n\n" + C1
C3 = "## v1.1.0    2020-02-01\n\n* second\n\n" + C1
C4 = "## v1.1.1-dev\n\n[Add release notes here]\n\n" + C3

V100 = Version(1, 0, 0)
V110 = Version(1, 1, 0)


class FakeHosted:
    """HostedRepository holding refs, releases and files in memory."""

    def __init__(self) -> None:
        self.branches = [RefInfo("main", "c4"), RefInfo("v1.0.0", "c1")]
        self.tags = [RefInfo("v1.0.0", "c1")]
        self.releases = [ReleaseInfo("v1.0.0", "v1.0.0")]
        self.files: dict[tuple[str, str], str] = {("CHANGES.md", "c4"): C4}
        self.created: list[dict[str, str]] = []
        self.fail_release = False
        self.broken_refs: set[str] = set()

    def default_branch(self) -> Result[str, ReleaseError]:
        return Ok("main")

    def list_branches(self) -> Result[list[RefInfo], ReleaseError]:
        return Ok(list(self.branches))

    def list_tags(self) -> Result[list[RefInfo], ReleaseError]:
        return Ok(list(self.tags))

    def list_releases(self) -> Result[list[ReleaseInfo], ReleaseError]:
        return Ok(list(self.releases))

    def get_file_text(self, path: str, ref: str) -> Result[str | None, ReleaseError]:
        if ref in self.broken_refs:
            return Err(ReleaseError(kind="hosting_failed", message=f"failed to fetch {path} at {ref}"))
        return Ok(self.files.get((path, ref)))

    def create_release(self, *, name: str, tag: str, commit_id: str, body: str) -> Result[None, ReleaseError]:
        if self.fail_release:
            return Err(ReleaseError(kind="hosting_failed", message=f"failed to create release {name}"))
        self.created.append({"name": name, "tag": tag, "commit_id": commit_id, "body": body})
        return Ok(None)


def _commit(commit_id: str) -> Commit:
    return Commit(commit_id=commit_id, timestamp=datetime(2020, 1, 1, tzinfo=UTC), author="dev", subject="")


class FakeCheckout:
    """WorkingCopy over a linear CHANGES history; records every write."""

    def __init__(self) -> None:
        self.history = [("c1", C1), ("c2", C2), ("c3", C3), ("c4", C4)]
        self.head = "c4"
        self.refs: list[tuple[str, str]] = []
        self.pushed: list[str] = []
        self.commits: list[tuple[str, str, str]] = []
        self.main_pushes: list[tuple[str, str]] = []
        self.fail_push: set[str] = set()

    def log(self, path: str, ref: str = "HEAD", count: int = -1) -> Result[list[Commit], GitError]:
        ids = [commit_id for commit_id, _ in self.history]
        ids = ids[: ids.index(ref) + 1] if ref in ids else ids
        return Ok([_commit(c) for c in reversed(ids)])

    def show_file(self, path: str, commit_id: str) -> Result[bytes, GitError]:
        return Ok(dict(self.history)[commit_id].encode())

    def create_or_update_ref(self, name: str, commit_id: str) -> Result[None, GitError]:
        self.refs.append((f"refs/heads/{name}", commit_id))
        return Ok(None)

    def tag(self, name: str, commit_id: str) -> Result[None, GitError]:
        self.refs.append((f"refs/tags/{name}", commit_id))
        return Ok(None)

    def push(self, ref: str) -> Result[None, GitError]:
        if ref in self.fail_push:
            return Err(GitError(command="push", message=f"rejected {ref}"))
        self.pushed.append(ref)
        return Ok(None)

    def head_commit(self) -> Result[Commit, GitError]:
        return Ok(_commit(self.head))

    def write_and_commit(self, path: str, content: str, message: str) -> Result[Commit, GitError]:
        commit_id = f"n{len(self.commits) + 1}"
        self.commits.append((path, content, message))
        self.head = commit_id
        return Ok(_commit(commit_id))

    def push_commit(self, commit_id: str, branch: str) -> Result[None, GitError]:
        self.main_pushes.append((commit_id, branch))
        return Ok(None)


def _service(
    hosted: FakeHosted | None = None,
    checkout: FakeCheckout | None = None,
    config: Config | None = None,
) -> tuple[ReconcileService, FakeHosted, FakeCheckout, MockConsole]:
    hosted = hosted or FakeHosted()
    checkout = checkout or FakeCheckout()
    console = MockConsole()
    service = ReconcileService(vcs=checkout, hosted=hosted, config=config or Config(), console=console)
    return service, hosted, checkout, console


def _report(service: ReconcileService) -> RepoReport:
    result = service.inspect()
    assert isinstance(result, Ok), result
    return result.value


class TestInspect:
    """ReconcileService.inspect() snapshots the hosted repository."""

    def test_finds_missing_artifacts(self) -> None:
        service, _, _, _ = _service()
        report = _report(service)

        assert report.main_branch == RefInfo("main", "c4")
        assert report.changes_path == "CHANGES.md"
        assert report.style == Style("v", False)
        assert report.findings == ()
        assert report.missing.branches == frozenset({V110})
        assert report.missing.tags == frozenset({V110})
        assert report.missing.releases == frozenset({V110})

    def test_configured_main_branch_must_exist(self) -> None:
        config = Config(repo=RepoConfig(main_branch="trunk"))
        service, _, _, _ = _service(config=config)
        result = service.inspect()
        assert isinstance(result, Err)
        assert result.error.kind == "no_main_branch"

    def test_no_changes_file(self) -> None:
        hosted = FakeHosted()
        hosted.files = {}
        service, _, _, _ = _service(hosted=hosted)
        result = service.inspect()
        assert isinstance(result, Err)
        assert result.error.kind == "no_changes_file"

    def test_reversed_document_is_unsupported(self) -> None:
        hosted = FakeHosted()
        hosted.files = {("CHANGES", "c4"): "## 1.0.0\n\n## 1.1.0\n\n## 1.2.0-dev\n"}
        service, _, _, _ = _service(hosted=hosted)
        result = service.inspect()
        assert isinstance(result, Err)
        assert result.error.kind == "unsupported_order"

    def test_default_prefix_when_no_names_parse(self) -> None:
        hosted = FakeHosted()
        hosted.branches = [RefInfo("main", "c4")]
        hosted.tags = []
        hosted.releases = []
        service, _, _, _ = _service(hosted=hosted)
        report = _report(service)
        assert report.style == Style("release-", False)
        assert report.missing.tags == frozenset({V100, V110})

    def test_findings_are_reported(self) -> None:
        hosted = FakeHosted()
        hosted.files = {("CHANGES.md", "c4"): C3}
        service, _, _, _ = _service(hosted=hosted)
        report = _report(service)
        assert [(f.branch, f.finding.kind) for f in report.findings] == [("main", "unflavored_top")]

    def test_other_branches_are_validated_as_release_branches(self) -> None:
        hosted = FakeHosted()
        hosted.branches.append(RefInfo("feature", "f1"))
        hosted.branches.append(RefInfo("docs", "d1"))
        hosted.files[("CHANGES.md", "c1")] = "## v2.0.0\n\n" + C1
        hosted.files[("CHANGES", "f1")] = "## v1.2.0-dev\n\n## v1.1.0-rc\n\n" + C1
        service, _, _, _ = _service(hosted=hosted)
        report = _report(service)

        assert [(f.branch, f.finding.kind) for f in report.findings] == [
            ("v1.0.0", "future_version"),
            ("feature", "illegal_flavor"),
        ]
        assert str(report.findings[0]) == (
            "Branch 'v1.0.0': CHANGES in release branch 'v1.0.0' has notes for future version 2.0.0"
        )
        assert report.findings[0].finding.line == 1

    def test_branch_fetch_failure_is_an_error(self) -> None:
        hosted = FakeHosted()
        hosted.broken_refs = {"c1"}
        service, _, _, _ = _service(hosted=hosted)
        result = service.inspect()
        assert isinstance(result, Err)
        assert result.error.kind == "hosting_failed"

    def test_flavor_only_misorder_is_a_finding(self) -> None:
        hosted = FakeHosted()
        hosted.files = {("CHANGES.md", "c4"): "## v1.1.0-dev\n\n## v1.1.0    2020-02-01\n"}
        service, _, _, _ = _service(hosted=hosted)
        report = _report(service)
        assert [(f.branch, f.finding.kind) for f in report.findings] == [("main", "non_monotonic")]


class TestBackfillAndApply:
    """Missing refs are placed at the commit that declared the version."""

    def test_backfill_then_apply(self) -> None:
        service, hosted, checkout, console = _service()
        report = _report(service)

        plan = service.backfill(report)
        assert plan.ok
        assert plan.branches == (PlannedRef(V110, "c3"),)
        assert plan.tags == (PlannedRef(V110, "c3"),)

        outcome = service.apply(report, plan)
        assert outcome.errors == []
        assert outcome.created_branches == [V110]
        assert outcome.created_tags == [V110]
        assert outcome.created_releases == [V110]
        assert checkout.refs == [("refs/heads/v1.1.0", "c3"), ("refs/tags/v1.1.0", "c3")]
        assert checkout.pushed == ["refs/heads/v1.1.0", "refs/tags/v1.1.0"]
        assert hosted.created == [{"name": "v1.1.0", "tag": "v1.1.0", "commit_id": "c3", "body": "* second"}]
        assert "Created 1 branches, 1 tags and 1 releases with 0 errors" == outcome.summary()
        assert not console.has_error()

    def test_release_without_tag_is_reported(self) -> None:
        service, hosted, _, _ = _service()
        report = _report(service)
        outcome = service.apply(report, BackfillResult())
        assert outcome.created_releases == []
        assert outcome.errors == ["Failed to find release tag 'v1.1.0'"]
        assert hosted.created == []

    def test_release_uses_existing_tag(self) -> None:
        hosted = FakeHosted()
        hosted.tags.append(RefInfo("v1.1.0", "c3"))
        service, _, _, _ = _service(hosted=hosted)
        report = _report(service)
        assert report.missing.tags == frozenset()

        outcome = service.apply(report, BackfillResult())
        assert outcome.created_releases == [V110]
        assert hosted.created[0]["commit_id"] == "c3"

    def test_push_failure_does_not_stop_the_batch(self) -> None:
        checkout = FakeCheckout()
        checkout.fail_push = {"refs/heads/v1.1.0"}
        service, hosted, _, _ = _service(checkout=checkout)
        report = _report(service)

        outcome = service.apply(report, service.backfill(report))
        assert outcome.created_branches == []
        assert outcome.created_tags == [V110]
        assert outcome.created_releases == [V110]
        assert outcome.errors == ["Failed to create release branch 'v1.1.0': rejected refs/heads/v1.1.0"]
        assert len(hosted.created) == 1

    def test_plan_problems_are_carried_into_errors(self) -> None:
        service, _, _, _ = _service()
        report = _report(service)
        report = replace(report, missing=replace(report.missing, tags=frozenset({V110, Version(0, 9, 0)})))

        plan = service.backfill(report)
        outcome = service.apply(report, plan)
        assert outcome.errors[0] == "Release tag for 0.9.0 not found in the history of 'CHANGES.md'"


class TestRelease:
    """ReconcileService.release() finalizes, tags and stubs."""

    def test_release_current_version(self) -> None:
        hosted = FakeHosted()
        hosted.files = {("CHANGES.md", "c4"): C2}
        service, hosted, checkout, console = _service(hosted=hosted)
        report = _report(service)

        result = service.release(report, None, date(2020, 3, 1))
        assert isinstance(result, Ok)
        assert result.value.version == V110
        assert result.value.release_commit == "n1"
        assert result.value.main_commit == "n2"

        finalized_path, finalized, finalize_message = checkout.commits[0]
        assert finalized_path == "CHANGES.md"
        assert finalized.startswith("## v1.1.0  2020-03-01\n")
        assert finalize_message == "Finalize release notes for 1.1.0\n\nRelease Notes:\n\n* second"

        stubbed = checkout.commits[1][1]
        assert stubbed.startswith("\n## v1.1.1-dev  \n\n[Add release notes here]\n\n## v1.1.0  2020-03-01\n")
        assert checkout.commits[1][2] == "Stub release notes for 1.1.1-dev\n"

        assert checkout.refs == [("refs/heads/v1.1.0", "n1"), ("refs/tags/v1.1.0", "n1")]
        assert hosted.created == [{"name": "v1.1.0", "tag": "v1.1.0", "commit_id": "n1", "body": "* second"}]
        assert checkout.main_pushes == [("n2", "main")]
        assert console.messages[-1] == "OK Release 1.1.0 successfully made"

    def test_stale_checkout_is_rejected(self) -> None:
        hosted = FakeHosted()
        hosted.files = {("CHANGES.md", "c4"): C2}
        checkout = FakeCheckout()
        checkout.head = "c3"
        service, _, _, _ = _service(hosted=hosted, checkout=checkout)

        result = service.release(_report(service), None, date(2020, 3, 1))
        assert isinstance(result, Err)
        assert result.error.kind == "git_failed"
        assert checkout.commits == []

    def test_nothing_to_release(self) -> None:
        hosted = FakeHosted()
        hosted.files = {("CHANGES.md", "c4"): C3}
        service, _, checkout, _ = _service(hosted=hosted)

        result = service.release(_report(service), None, date(2020, 3, 1))
        assert isinstance(result, Err)
        assert result.error.kind == "nothing_to_release"
        assert checkout.commits == []

    def test_hosting_failure_stops_before_stub(self) -> None:
        hosted = FakeHosted()
        hosted.files = {("CHANGES.md", "c4"): C2}
        hosted.fail_release = True
        service, _, checkout, _ = _service(hosted=hosted)

        result = service.release(_report(service), None, date(2020, 3, 1))
        assert isinstance(result, Err)
        assert result.error.kind == "hosting_failed"
        assert len(checkout.commits) == 1
        assert checkout.main_pushes == []
