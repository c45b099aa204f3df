"""Merges the feature branches of selected issues into a base branch."""

import asyncio
import time
from typing import Iterable

import structlog

from jitrub.exceptions import ConfigurationError
from jitrub.github.abc import RepositoryClientBase
from jitrub.jira.abc import IssueTrackerClientBase
from jitrub.synchronize.results import SyncResult

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

DEFAULT_BASE = "master"
DEFAULT_HEAD = "jitrub"


class SyncEngine:
    """Synchronizes a base branch with the feature branches of tracker issues.

    Feature branches are named after issue keys. The engine is configured
    with the setters before calling sync(); it must not be reconfigured while
    a sync is running.
    """

    def __init__(self, tracker: IssueTrackerClientBase, repository: RepositoryClientBase) -> None:
        """Initialize the engine with the tracker and repository clients."""
        self.tracker = tracker
        self.repository = repository
        self._project = ""
        self._base = DEFAULT_BASE
        self._head = DEFAULT_HEAD
        self._statuses: set[str] = set()

    @property
    def project(self) -> str:
        """Tracker project code; empty selects no issues."""
        return self._project

    @property
    def base(self) -> str:
        """Branch the feature branches are merged into."""
        return self._base

    @property
    def head(self) -> str:
        """Build branch the merged result is published as."""
        return self._head

    @property
    def statuses(self) -> frozenset[str]:
        """Tracker statuses an issue must have to be selected."""
        return frozenset(self._statuses)

    def select_project(self, project: str) -> None:
        """Select the tracker project whose issues are merged."""
        self._project = project or ""

    def select_base(self, base: str) -> None:
        """Select the branch the feature branches are merged into."""
        self._base = base

    def select_head(self, head: str) -> None:
        """Select the build branch."""
        self._head = head

    def include_status(self, status: str) -> None:
        """Select issues having this status."""
        if status:
            self._statuses.add(status)

    def exclude_status(self, status: str) -> None:
        """Stop selecting issues having this status."""
        self._statuses.discard(status)

    async def sync(self, previous: Iterable[str] | None = None) -> SyncResult:
        """Merge the base branch with every existing feature branch of the selected issues.

        Args:
            previous: Branch names of the previous build, as kept by the caller.
                Names missing from this build are reported as removed.

        Returns:
            SyncResult mapping branch names to True (in the build) or False (removed).

        Raises:
            ConfigurationError: If the base branch does not exist.
        """
        start_time = time.time()
        base = self._base

        logger.info("Querying issues", project=self._project, statuses=sorted(self._statuses))
        keys = sorted(set(await self.tracker.issues(self._project, set(self._statuses))))

        logger.info("Resolving branches", base=base, candidates=keys)
        base_branch, *feature_branches = await asyncio.gather(
            self.repository.branch(base),
            *(self.repository.branch(key) for key in keys),
        )
        if base_branch is None:
            raise ConfigurationError(f"no '{base}' base branch")
        features = [key for key, branch in zip(keys, feature_branches) if branch is not None]
        missing = [key for key, branch in zip(keys, feature_branches) if branch is None]
        if missing:
            logger.info("Issues without a feature branch are excluded", issues=missing)

        logger.info("Merging branches", base=base, features=features)
        ref = await self.repository.merge(base, features)

        result = SyncResult.from_composition([base, *features], previous, ref)
        logger.info(
            "Synchronized branches",
            base=base,
            added=result.added,
            removed=result.removed,
            duration=round(time.time() - start_time, 2),
        )
        return result
