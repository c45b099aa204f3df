"""Repository objects returned by the repository client."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Branch:
    """A branch and the head commit it points at."""

    name: str
    sha: str
    author_email: str | None = None


@dataclass(frozen=True)
class Ref:
    """A git reference such as 'refs/heads/main' or 'refs/tags/v1'."""

    name: str
    sha: str
    type: str = "commit"


@dataclass(frozen=True)
class Tag:
    """An annotated tag object and the commit it annotates."""

    name: str
    sha: str
    message: str
    object_sha: str


@dataclass(frozen=True)
class Comparison:
    """Summary of comparing two refs."""

    status: str
    ahead_by: int
    behind_by: int
    total_commits: int
