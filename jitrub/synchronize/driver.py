"""Orchestrates a sync run: build branch preparation, locking, merging and snapshots."""

import asyncio
import time

import structlog

from jitrub.configuration.models import RepositoryConnection, SyncOptions, TrackerConnection
from jitrub.exceptions import ConfigurationError, SyncTimeoutError
from jitrub.github.abc import RepositoryClientBase
from jitrub.github.adapter import PyGithubAdapter
from jitrub.jira.abc import IssueTrackerClientBase
from jitrub.jira.client import JiraClient
from jitrub.synchronize.engine import SyncEngine
from jitrub.synchronize.results import SyncResult
from jitrub.synchronize.snapshot import load_snapshot, save_snapshot

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


async def ensure_build_branch(repository: RepositoryClientBase, base: str, head: str) -> None:
    """Create the build branch from the base branch if it does not exist yet."""
    if await repository.ref(f"heads/{head}") is not None:
        return
    base_ref = await repository.ref(f"heads/{base}")
    if base_ref is None:
        raise ConfigurationError(f"no '{base}' base branch")
    await repository.create_ref(f"heads/{head}", base_ref.sha)
    logger.info("Created build branch", head=head, base=base, sha=base_ref.sha)


async def sync_build(
    tracker: IssueTrackerClientBase,
    repository: RepositoryClientBase,
    tracker_connection: TrackerConnection,
    repository_connection: RepositoryConnection,
    options: SyncOptions,
) -> SyncResult:
    """Run one sync against already-created clients.

    Unless options.in_place is set, the build branch (head) is reset to the
    base branch and the feature branches are merged into it, leaving the base
    branch untouched. Otherwise they are merged into the base branch itself.
    """
    base = repository_connection.base
    head = repository_connection.head
    destination = base if options.in_place or head == base else head

    if destination != base:
        await ensure_build_branch(repository, base, head)

    if options.lock:
        await repository.lock(destination)
    try:
        if destination != base:
            await repository.reset(destination, f"heads/{base}")
            logger.info("Reset build branch", head=destination, base=base)

        engine = SyncEngine(tracker, repository)
        engine.select_project(tracker_connection.project)
        for status in tracker_connection.statuses:
            engine.include_status(status)
        engine.select_base(destination)
        engine.select_head(head)

        previous = load_snapshot(options.snapshot_path) if options.snapshot_path else None
        try:
            result = await asyncio.wait_for(engine.sync(previous), timeout=options.sync_timeout)
        except asyncio.TimeoutError as exc:
            raise SyncTimeoutError(f"sync did not complete within {options.sync_timeout} seconds") from exc

        if options.snapshot_path:
            save_snapshot(options.snapshot_path, result.added)

        if destination != base:
            comparison = await repository.compare(base, destination)
            logger.info(
                "Build branch compared with base",
                base=base,
                head=destination,
                status=comparison.status,
                ahead_by=comparison.ahead_by,
                behind_by=comparison.behind_by,
            )
        return result
    finally:
        if options.lock and not await repository.unlock(destination):
            logger.warning("Lock tag was already removed", branch=destination)


async def run_sync_workflow(
    tracker_connection: TrackerConnection,
    repository_connection: RepositoryConnection,
    options: SyncOptions,
) -> SyncResult:
    """Run the sync workflow: connect to Jira and GitHub and synchronize the build branch."""
    start_time = time.time()
    repository = await PyGithubAdapter.create(
        repo=repository_connection.repo,
        credentials=repository_connection.credentials,
        github_api_url=options.github_api_url,
        timeout=options.request_timeout,
    )
    async with JiraClient(tracker_connection.endpoint, tracker_connection.credentials, timeout=options.request_timeout) as tracker:
        result = await sync_build(tracker, repository, tracker_connection, repository_connection, options)
    logger.info("Sync workflow finished", repo=repository_connection.repo, duration=round(time.time() - start_time, 2))
    return result
