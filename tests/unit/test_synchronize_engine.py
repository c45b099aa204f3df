"""Unit tests for the SyncEngine class."""

import asyncio

import pytest

from jitrub.exceptions import ConfigurationError, MergeConflictError
from jitrub.github.models import Branch
from jitrub.synchronize.engine import SyncEngine
from tests.unit.fakes import FakeRepository, FakeTracker


def make_engine(keys: list[str], branches: list[str], conflicts: list[str] | None = None) -> tuple[SyncEngine, FakeTracker, FakeRepository]:
    """Build an engine configured for project PROJ with the Approved status."""
    tracker = FakeTracker(keys)
    repository = FakeRepository(branches, conflicts or [])
    engine = SyncEngine(tracker, repository)
    engine.select_project("PROJ")
    engine.include_status("Approved")
    return engine, tracker, repository


def merge_calls(repository: FakeRepository) -> list[tuple[str, ...]]:
    """Return the merge calls made against the fake repository."""
    return [call for call in repository.calls if call[0] == "merge"]


def test_defaults() -> None:
    """Test the configuration of a freshly created engine."""
    engine = SyncEngine(FakeTracker([]), FakeRepository([]))
    assert engine.project == ""
    assert engine.base == "master"
    assert engine.head == "jitrub"
    assert engine.statuses == frozenset()


def test_setters() -> None:
    """Test that the setters update the configuration."""
    engine = SyncEngine(FakeTracker([]), FakeRepository([]))
    engine.select_project("PROJ")
    engine.select_base("main")
    engine.select_head("build")
    engine.include_status("Approved")
    engine.include_status("Done")
    engine.include_status("")
    engine.exclude_status("Done")
    assert engine.project == "PROJ"
    assert engine.base == "main"
    assert engine.head == "build"
    assert engine.statuses == frozenset({"Approved"})


@pytest.mark.asyncio
async def test_sync_end_to_end() -> None:
    """Test that existing feature branches are merged and missing ones excluded."""
    engine, tracker, repository = make_engine(["PROJ-5", "PROJ-1"], ["master", "PROJ-1"])

    result = await engine.sync()

    assert tracker.queries == [("PROJ", frozenset({"Approved"}))]
    assert merge_calls(repository) == [("merge", "master", "PROJ-1")]
    assert result.branches == {"master": True, "PROJ-1": True}
    assert result.removed == []


@pytest.mark.asyncio
async def test_sync_merges_in_lexicographic_order() -> None:
    """Test that branches are merged in issue key order, not tracker order."""
    engine, _, repository = make_engine(["B-2", "A-1"], ["master", "A-1", "B-2"])

    result = await engine.sync()

    assert merge_calls(repository) == [("merge", "master", "A-1", "B-2")]
    assert result.added == ["master", "A-1", "B-2"]


@pytest.mark.asyncio
async def test_sync_collapses_duplicate_issue_keys() -> None:
    """Test that an issue returned twice is merged once."""
    engine, _, repository = make_engine(["A-1", "A-1"], ["master", "A-1"])

    await engine.sync()

    assert merge_calls(repository) == [("merge", "master", "A-1")]


@pytest.mark.asyncio
async def test_sync_without_base_branch() -> None:
    """Test that a missing base branch fails before any merge."""
    engine, _, repository = make_engine(["A-1"], ["A-1"])

    with pytest.raises(ConfigurationError, match="no 'master' base branch"):
        await engine.sync()

    assert merge_calls(repository) == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "project,status",
    [
        pytest.param("", "Approved", id="no project"),
        pytest.param("PROJ", None, id="no statuses"),
    ],
)
async def test_sync_without_filter_builds_base_only(project: str, status: str | None) -> None:
    """Test that an unconfigured filter yields a build holding only the base branch."""
    tracker = FakeTracker(["A-1"])
    repository = FakeRepository(["master", "A-1"])
    engine = SyncEngine(tracker, repository)
    engine.select_project(project)
    if status:
        engine.include_status(status)

    result = await engine.sync()

    assert merge_calls(repository) == [("merge", "master")]
    assert result.branches == {"master": True}


@pytest.mark.asyncio
async def test_sync_reports_removed_branches_from_previous_build() -> None:
    """Test that branches of the previous build absent now are reported as removed."""
    engine, _, _ = make_engine(["A-1"], ["master", "A-1"])

    result = await engine.sync(previous=["master", "A-1", "A-0"])

    assert result.branches == {"master": True, "A-1": True, "A-0": False}
    assert result.removed == ["A-0"]
    assert result.current == {"master", "A-1"}


@pytest.mark.asyncio
async def test_sync_propagates_merge_conflict() -> None:
    """Test that a conflict stops the sync and keeps earlier merges."""
    engine, _, repository = make_engine(["A-1", "A-2", "A-3"], ["master", "A-1", "A-2", "A-3"], conflicts=["A-2"])

    with pytest.raises(MergeConflictError) as exc_info:
        await engine.sync()

    assert exc_info.value.head == "A-2"
    assert exc_info.value.email == "a-2@example.com"
    assert repository.merged == [("master", "A-1")]
    assert repository.branches["master"].sha == "merge-A-1"


@pytest.mark.asyncio
async def test_sync_looks_up_branches_concurrently() -> None:
    """Test that branch lookups are in flight at the same time."""

    class ConcurrentLookupRepository(FakeRepository):
        """Blocks every lookup until all expected lookups have started."""

        def __init__(self, branches: list[str], expected: int) -> None:
            super().__init__(branches)
            self.expected = expected
            self.started = 0
            self.all_started = asyncio.Event()

        async def branch(self, name: str) -> Branch | None:
            self.started += 1
            if self.started == self.expected:
                self.all_started.set()
            await self.all_started.wait()
            return await super().branch(name)

    tracker = FakeTracker(["A-1", "A-2"])
    repository = ConcurrentLookupRepository(["master", "A-1", "A-2"], expected=3)
    engine = SyncEngine(tracker, repository)
    engine.select_project("PROJ")
    engine.include_status("Approved")

    result = await asyncio.wait_for(engine.sync(), timeout=5)

    assert result.added == ["master", "A-1", "A-2"]
