"""Repository client adapter for the PyGithub library."""

import asyncio
from datetime import datetime, timezone
from functools import wraps
from typing import Any, Awaitable, Callable, Self, TypeVar

import structlog
from github import Github, GithubException, InputGitAuthor
from github.Branch import Branch as GithubBranch
from github.GithubObject import NotSet
from github.GitRef import GitRef
from github.GitTag import GitTag
from github.Repository import Repository

from jitrub.credentials import Credentials
from jitrub.exceptions import BranchNotFoundError, JitrubError, LockError, MergeConflictError, RemoteQueryError
from jitrub.utils.github import split_repository
from jitrub.utils.retry import retry_on_rate_limit

from .abc import RepositoryClientBase
from .client import DEFAULT_GITHUB_API_URL, get_github_client
from .models import Branch, Comparison, Ref, Tag

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Awaitable[Any]])
T = TypeVar("T")

LOCK_TAG_PREFIX = "lock-"
LOCK_MESSAGE = "branch locked by jitrub"
MERGE_MESSAGE = "JitRub merge {head} into {base}"


def handle_unexpected_status(func: F) -> F:
    """Decorator converting GitHub errors that escaped a method into RemoteQueryError."""

    @wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return await func(*args, **kwargs)
        except GithubException as exc:
            message = exc.data.get("message") if isinstance(exc.data, dict) else None
            logger.error(
                "Unexpected GitHub response",
                function=func.__name__,
                status_code=exc.status,
                message=message,
            )
            detail = f": {message}" if message else ""
            raise RemoteQueryError(f"unexpected {exc.status} status in {func.__name__}{detail}", status_code=exc.status) from exc

    return wrapper  # type: ignore


async def run_to_completion(func: Callable[..., T], /, *args: Any, **kwargs: Any) -> T:
    """Run a blocking mutation in a worker thread.

    If the caller is cancelled, the cancellation only propagates once the
    thread has returned, so no write is still in flight afterwards.
    """
    task = asyncio.ensure_future(asyncio.to_thread(func, *args, **kwargs))
    try:
        return await asyncio.shield(task)
    except asyncio.CancelledError:
        await asyncio.wait({task})
        error = None if task.cancelled() else task.exception()
        logger.warning(
            "Mutation finished after cancellation",
            function=getattr(func, "__name__", repr(func)),
            error=str(error) if error is not None else None,
        )
        raise


def _to_branch(github_branch: GithubBranch) -> Branch:
    author = github_branch.commit.commit.author
    return Branch(
        name=github_branch.name,
        sha=github_branch.commit.sha,
        author_email=author.email if author is not None else None,
    )


def _to_ref(github_ref: GitRef) -> Ref:
    return Ref(name=github_ref.ref, sha=github_ref.object.sha, type=github_ref.object.type)


def _to_tag(github_tag: GitTag) -> Tag:
    return Tag(
        name=github_tag.tag,
        sha=github_tag.sha,
        message=github_tag.message,
        object_sha=github_tag.object.sha,
    )


class PyGithubAdapter(RepositoryClientBase):
    """Repository client adapter for the PyGithub library.

    PyGithub is blocking, so every remote call runs in a worker thread. This
    keeps independent lookups concurrent when they are gathered by the caller.
    """

    def __init__(self, client: Github, repository: Repository, credentials: Credentials) -> None:
        """Initialize the adapter with an already-initialized client and repository."""
        self.client = client
        self.repository = repository
        self.credentials = credentials

    @classmethod
    async def create(
        cls,
        repo: str,
        credentials: Credentials,
        github_api_url: str = DEFAULT_GITHUB_API_URL,
        timeout: float = 30.0,
    ) -> Self:
        """Create a new repository client adapter.

        Args:
            repo: Repository in 'owner/name' format
            credentials: Identity, secret and optional tagger email
            github_api_url: GitHub API URL (defaults to https://api.github.com)
            timeout: Per-request timeout in seconds

        Returns:
            Configured PyGithubAdapter instance

        Raises:
            ValueError: If the repository identifier is malformed
            ConfigurationError: If the credentials are incomplete
        """
        owner, name = split_repository(repo)
        logger.info("Creating client for GitHub instance and repository", github_api_url=github_api_url, owner=owner, repo_name=name)
        client = get_github_client(credentials, github_api_url=github_api_url, timeout=timeout)
        repository = client.get_repo(f"{owner}/{name}")
        return cls(client, repository, credentials)

    # Lookups
    @handle_unexpected_status
    @retry_on_rate_limit(retry_transport_errors=True)
    async def branch(self, name: str) -> Branch | None:
        """Look up branch info, returning None if the branch does not exist."""

        def get_branch() -> Branch | None:
            try:
                return _to_branch(self.repository.get_branch(name))
            except GithubException as exc:
                if exc.status == 404:
                    return None
                raise

        return await asyncio.to_thread(get_branch)

    @handle_unexpected_status
    @retry_on_rate_limit(retry_transport_errors=True)
    async def ref(self, ref: str) -> Ref | None:
        """Look up ref info.  The ref should be in the form 'heads/A' or 'tags/B'."""

        def get_ref() -> Ref | None:
            try:
                return _to_ref(self.repository.get_git_ref(ref))
            except GithubException as exc:
                if exc.status == 404:
                    return None
                raise

        return await asyncio.to_thread(get_ref)

    @handle_unexpected_status
    @retry_on_rate_limit(retry_transport_errors=True)
    async def tag(self, name: str) -> Tag | None:
        """Look up a tag, peeling its ref to the annotated tag object."""

        def get_tag() -> Tag | None:
            try:
                github_ref = self.repository.get_git_ref(f"tags/{name}")
            except GithubException as exc:
                if exc.status == 404:
                    return None
                raise
            if github_ref.object.type != "tag":
                # Lightweight tag; there is no annotation to read.
                return Tag(name=name, sha=github_ref.object.sha, message="", object_sha=github_ref.object.sha)
            return _to_tag(self.repository.get_git_tag(github_ref.object.sha))

        return await asyncio.to_thread(get_tag)

    @handle_unexpected_status
    @retry_on_rate_limit(retry_transport_errors=True)
    async def compare(self, ref_a: str, ref_b: str) -> Comparison:
        """Compare two refs (ref_a...ref_b)."""

        def compare_refs() -> Comparison:
            comparison = self.repository.compare(ref_a, ref_b)
            return Comparison(
                status=comparison.status,
                ahead_by=comparison.ahead_by,
                behind_by=comparison.behind_by,
                total_commits=comparison.total_commits,
            )

        return await asyncio.to_thread(compare_refs)

    # Ref CRUD
    @handle_unexpected_status
    @retry_on_rate_limit()
    async def create_ref(self, ref: str, sha: str) -> Ref:
        """Create a ref.  The ref should be in the form 'heads/A' or 'tags/B'."""
        github_ref = await run_to_completion(self.repository.create_git_ref, ref=f"refs/{ref}", sha=sha)
        logger.info("Created ref", ref=ref, sha=sha)
        return _to_ref(github_ref)

    @handle_unexpected_status
    @retry_on_rate_limit()
    async def update_ref(self, ref: str, sha: str, fast_forward_only: bool = False) -> Ref:
        """Move a ref to a new sha; non fast-forward updates are forced unless fast_forward_only is set."""

        def edit_ref() -> Ref:
            github_ref = self.repository.get_git_ref(ref)
            github_ref.edit(sha, force=not fast_forward_only)
            return _to_ref(github_ref)

        updated = await run_to_completion(edit_ref)
        logger.info("Updated ref", ref=ref, sha=sha, fast_forward_only=fast_forward_only)
        return updated

    @handle_unexpected_status
    @retry_on_rate_limit()
    async def delete_ref(self, ref: str) -> bool:
        """Delete a ref, returning False if it is absent, protected or otherwise refused."""

        def remove_ref() -> bool:
            try:
                github_ref = self.repository.get_git_ref(ref)
            except GithubException as exc:
                if exc.status in (404, 409, 422):
                    return False
                raise
            try:
                github_ref.delete()
            except GithubException as exc:
                if exc.status in (409, 422):
                    return False
                raise
            return True

        deleted = await run_to_completion(remove_ref)
        logger.info("Deleted ref" if deleted else "Ref was not deleted", ref=ref)
        return deleted

    async def reset(self, branch: str, ref: str) -> Ref:
        """Force a branch to point at the same commit as another ref."""
        target = await self.ref(ref)
        if target is None:
            raise BranchNotFoundError(ref)
        return await self.update_ref(f"heads/{branch}", target.sha, fast_forward_only=False)

    # Tags and locks
    @handle_unexpected_status
    @retry_on_rate_limit()
    async def _create_tag_object(self, name: str, message: str, sha: str) -> Tag:
        tagger: Any = NotSet
        if self.credentials.email:
            tagger = InputGitAuthor(
                self.credentials.identity,
                self.credentials.email,
                datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
            )
        github_tag = await run_to_completion(
            self.repository.create_git_tag,
            tag=name,
            message=message,
            object=sha,
            type="commit",
            tagger=tagger,
        )
        return _to_tag(github_tag)

    async def create_tag(self, name: str, branch: str, message: str) -> Tag:
        """Create an annotated tag of a branch head and the ref that points at it."""
        head = await self.ref(f"heads/{branch}")
        if head is None:
            raise BranchNotFoundError(branch)
        tag = await self._create_tag_object(name, message, head.sha)
        await self.create_ref(f"tags/{tag.name}", tag.sha)
        logger.info("Created tag", tag=tag.name, branch=branch, sha=tag.object_sha)
        return tag

    async def lock(self, branch: str) -> Tag:
        """Create an advisory lock for a branch with a tag referencing the branch head.

        Fails with LockError if the branch is missing or the lock already exists.
        """
        try:
            if await self.branch(branch) is None:
                raise BranchNotFoundError(branch)
            tag = await self.create_tag(f"{LOCK_TAG_PREFIX}{branch}", branch, LOCK_MESSAGE)
        except JitrubError as exc:
            logger.warning("Could not lock branch", branch=branch, error=str(exc))
            raise LockError(exc) from exc
        logger.info("Locked branch", branch=branch)
        return tag

    async def unlock(self, branch: str) -> bool:
        """Remove an advisory lock placed on a branch with lock()."""
        return await self.delete_ref(f"tags/{LOCK_TAG_PREFIX}{branch}")

    # Merging
    @handle_unexpected_status
    @retry_on_rate_limit()
    async def _merge_branch(self, base: str, head: str, message: str, author_email: str | None) -> str | None:
        """Merge one head into base, returning the merge commit sha or None if there was nothing to merge."""
        try:
            commit = await run_to_completion(self.repository.merge, base, head, message)
        except GithubException as exc:
            if exc.status == 409:
                raise MergeConflictError(base, head, author_email) from exc
            raise
        return commit.sha if commit is not None else None

    async def merge(self, base: str, heads: list[str]) -> Branch | Ref:
        """Merge heads into base one at a time, in list order.

        Each successful merge advances base before the next head is merged.
        A conflict stops the sequence; merges already applied are kept.
        """
        if not heads:
            current = await self.branch(base)
            if current is None:
                raise BranchNotFoundError(base)
            return current

        for index in range(len(heads) - 1):
            await self._merge_head(base, heads, index)
        return await self._merge_head(base, heads, len(heads) - 1)

    async def _merge_head(self, base: str, heads: list[str], index: int) -> Ref:
        """Merge heads[index] into base and return the advanced base ref."""
        head = heads[index]
        head_branch = await self.branch(head)
        if head_branch is None:
            raise BranchNotFoundError(head)
        accumulated = "+".join([base, *heads[:index]])
        message = MERGE_MESSAGE.format(head=head, base=accumulated)
        sha = await self._merge_branch(base, head, message, head_branch.author_email)
        if sha is None:
            logger.info("Nothing to merge", base=base, head=head)
            current = await self.ref(f"heads/{base}")
            if current is None:
                raise BranchNotFoundError(base)
            return current
        logger.info("Merged branch", base=base, head=head, sha=sha)
        return await self.update_ref(f"heads/{base}", sha)
