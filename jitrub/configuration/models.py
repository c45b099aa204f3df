"""Configuration models produced from connection strings and CLI options."""

from dataclasses import dataclass, field
from pathlib import Path

from jitrub.credentials import Credentials


@dataclass(frozen=True)
class TrackerConnection:
    """Where to find the tracker and which issues to select."""

    endpoint: str
    credentials: Credentials
    project: str = ""
    statuses: frozenset[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class RepositoryConnection:
    """Which repository to merge in and which branches to use."""

    repo: str
    credentials: Credentials
    base: str = "master"
    head: str = "jitrub"


@dataclass
class SyncOptions:
    """Options of one sync run."""

    github_api_url: str = "https://api.github.com"
    request_timeout: float = 30.0
    sync_timeout: float | None = None
    lock: bool = False
    in_place: bool = False
    snapshot_path: Path | None = None
