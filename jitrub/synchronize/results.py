"""Contains results of a synchronization."""

from typing import Iterable

from jitrub.github.models import Branch, Ref


class SyncResult:
    """Changelog of one synchronization.

    Maps a branch name to True when it is part of the build just produced, and
    to False when it was part of the previous build but is not any more.
    """

    def __init__(self, branches: dict[str, bool], ref: Branch | Ref | None = None) -> None:
        """Initialize the result with the branch changelog and the merged ref."""
        self.branches = branches
        self.ref = ref

    @classmethod
    def from_composition(cls, current: list[str], previous: Iterable[str] | None = None, ref: Branch | Ref | None = None) -> "SyncResult":
        """Build a result from the current build composition and an optional previous one."""
        branches = {name: True for name in current}
        for name in sorted(set(previous or ())):
            if name not in branches:
                branches[name] = False
        return cls(branches, ref)

    @property
    def added(self) -> list[str]:
        """Branches present in the current build, in merge order."""
        return [name for name, present in self.branches.items() if present]

    @property
    def removed(self) -> list[str]:
        """Branches from the previous build missing from the current one."""
        return [name for name, present in self.branches.items() if not present]

    @property
    def current(self) -> set[str]:
        """Set of branch names making up the current build."""
        return set(self.added)

    def __repr__(self) -> str:
        return f"SyncResult(branches={self.branches!r})"
