"""Base ABC for issue tracker clients."""

from abc import ABC, abstractmethod
from typing import Iterable


class IssueTrackerClientBase(ABC):
    """Base ABC for issue tracker clients."""

    @abstractmethod
    async def issues(self, project: str, statuses: Iterable[str]) -> list[str]:
        """Return the keys of the issues in a project that have one of the statuses.

        An empty project or an empty set of statuses selects no issues.
        """
        pass
