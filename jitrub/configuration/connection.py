"""Parses the tracker and repository connection strings given on the command line.

Tracker:    jira+https://<identity>:<secret>@<host>/<rest path>?<PROJECT>:<Status>,<Status>
Repository: github://<identity>:<secret>@<owner>/<name>?base=<branch>&head=<branch>&email=<email>
"""

from urllib.parse import parse_qs, unquote, unquote_plus, urlsplit

from jitrub.configuration.exceptions import InvalidConnectionSchemeError
from jitrub.configuration.models import RepositoryConnection, TrackerConnection
from jitrub.credentials import Credentials
from jitrub.exceptions import ConfigurationError
from jitrub.synchronize.engine import DEFAULT_BASE, DEFAULT_HEAD
from jitrub.utils.github import split_repository

JIRA_SCHEMES = {"jira+http": "http", "jira+https": "https"}
GITHUB_SCHEME = "github"


def parse_issue_spec(issue_spec: str) -> tuple[str, frozenset[str]]:
    """Split '<PROJECT>:<Status>,<Status>' into the project code and its statuses."""
    issue_spec = unquote_plus(issue_spec or "")
    project, _, statuses = issue_spec.partition(":")
    return project.strip(), frozenset(status.strip() for status in statuses.split(",") if status.strip())


def _credentials(username: str | None, password: str | None, email: str | None = None) -> Credentials:
    return Credentials(unquote(username or ""), unquote(password or ""), email)


def parse_tracker_connection(uri: str) -> TrackerConnection:
    """Parse a Jira connection string."""
    parts = urlsplit(uri)
    if parts.scheme not in JIRA_SCHEMES:
        raise InvalidConnectionSchemeError(parts.scheme, "jira")
    if not parts.hostname:
        raise ConfigurationError(f"Jira connection string has no host: {parts.scheme}://...")
    host = parts.netloc.rpartition("@")[2]
    endpoint = f"{JIRA_SCHEMES[parts.scheme]}://{host}{parts.path}".rstrip("/")
    project, statuses = parse_issue_spec(parts.query)
    return TrackerConnection(
        endpoint=endpoint,
        credentials=_credentials(parts.username, parts.password),
        project=project,
        statuses=statuses,
    )


def parse_repository_connection(uri: str) -> RepositoryConnection:
    """Parse a GitHub connection string."""
    parts = urlsplit(uri)
    if parts.scheme != GITHUB_SCHEME:
        raise InvalidConnectionSchemeError(parts.scheme, "github")
    repo = f"{parts.netloc.rpartition('@')[2]}{parts.path}"
    try:
        owner, name = split_repository(repo)
    except ValueError as exc:
        raise ConfigurationError(str(exc)) from exc
    query = parse_qs(parts.query)
    return RepositoryConnection(
        repo=f"{owner}/{name}",
        credentials=_credentials(parts.username, parts.password, query.get("email", [None])[0]),
        base=query.get("base", [DEFAULT_BASE])[0],
        head=query.get("head", [DEFAULT_HEAD])[0],
    )
