"""Base ABC for repository clients."""

from abc import ABC, abstractmethod

from .models import Branch, Comparison, Ref, Tag


class RepositoryClientBase(ABC):
    """Base ABC for repository clients.

    Ref paths are relative to 'refs/', for example 'heads/main' or 'tags/v1'.
    """

    # Lookups
    @abstractmethod
    async def branch(self, name: str) -> Branch | None:
        """Look up a branch, returning None if it does not exist."""
        pass

    @abstractmethod
    async def ref(self, ref: str) -> Ref | None:
        """Look up a ref, returning None if it does not exist."""
        pass

    @abstractmethod
    async def tag(self, name: str) -> Tag | None:
        """Look up an annotated tag by name, returning None if it does not exist."""
        pass

    @abstractmethod
    async def compare(self, ref_a: str, ref_b: str) -> Comparison:
        """Compare two refs."""
        pass

    # Ref CRUD
    @abstractmethod
    async def create_ref(self, ref: str, sha: str) -> Ref:
        """Create a ref pointing at a sha."""
        pass

    @abstractmethod
    async def update_ref(self, ref: str, sha: str, fast_forward_only: bool = False) -> Ref:
        """Move a ref to a sha, optionally rejecting non fast-forward updates."""
        pass

    @abstractmethod
    async def delete_ref(self, ref: str) -> bool:
        """Delete a ref, returning False if the remote refuses or it is already gone."""
        pass

    @abstractmethod
    async def reset(self, branch: str, ref: str) -> Ref:
        """Force a branch to the sha of another ref."""
        pass

    # Tags and locks
    @abstractmethod
    async def create_tag(self, name: str, branch: str, message: str) -> Tag:
        """Create an annotated tag of a branch head."""
        pass

    @abstractmethod
    async def lock(self, branch: str) -> Tag:
        """Place an advisory lock tag on a branch."""
        pass

    @abstractmethod
    async def unlock(self, branch: str) -> bool:
        """Remove the advisory lock tag from a branch."""
        pass

    # Merging
    @abstractmethod
    async def merge(self, base: str, heads: list[str]) -> Branch | Ref:
        """Merge heads one at a time into base."""
        pass
