"""Jira REST client used to select the issues whose branches are merged.

The client talks to the search endpoint only. Authentication uses the static
credential pair as an HTTP Basic header, which is never logged.
"""

from __future__ import annotations

from typing import Any, Iterable

import httpx
import structlog

from jitrub.credentials import Credentials
from jitrub.exceptions import RemoteQueryError, RemoteRateLimitError
from jitrub.utils.retry import retry_on_rate_limit

from .abc import IssueTrackerClientBase

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

DEFAULT_TIMEOUT = 30.0
DEFAULT_PAGE_SIZE = 100
MALFORMED_RESPONSE = "malformed Jira search response"


def quote_jql(value: str) -> str:
    """Quote a value for use inside a JQL string literal."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def build_issue_query(project: str, statuses: Iterable[str]) -> str:
    """Build the JQL selecting issues of a project in any of the statuses."""
    status_list = ", ".join(quote_jql(status) for status in sorted(set(statuses)))
    return f"project = {quote_jql(project)} AND status in ({status_list})"


def issue_key(issue: Any) -> str:
    """Read the key of one search result entry."""
    if not isinstance(issue, dict) or not isinstance(issue.get("key"), str):
        logger.error("Jira search result without a key", issue=str(issue)[:200])
        raise RemoteQueryError(MALFORMED_RESPONSE, status_code=200)
    return issue["key"]  # type: ignore[no-any-return]


class JiraClient(IssueTrackerClientBase):
    """Async Jira client for issue selection.

    Must be used as an async context manager, which owns the HTTP connection
    pool for the lifetime of a sync.
    """

    def __init__(
        self,
        endpoint: str,
        credentials: Credentials,
        timeout: float = DEFAULT_TIMEOUT,
        page_size: int = DEFAULT_PAGE_SIZE,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the Jira client.

        Args:
            endpoint: Jira REST base URL; '/search' is appended to it.
            credentials: Identity/secret pair used for Basic authentication.
            timeout: Request timeout in seconds.
            page_size: Number of issues requested per search page.
            transport: Optional httpx transport, mainly for tests.
        """
        self.endpoint = endpoint.rstrip("/")
        self.credentials = credentials
        self.timeout = timeout
        self.page_size = page_size
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> JiraClient:
        """Enter async context manager."""
        self._client = httpx.AsyncClient(
            headers={"Accept": "application/json", **self.credentials.headers()},
            timeout=self.timeout,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        """Exit async context manager."""
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get the HTTP client, ensuring it's initialized."""
        if self._client is None:
            raise RuntimeError("JiraClient must be used as async context manager")
        return self._client

    @retry_on_rate_limit(retry_transport_errors=True)
    async def _search(self, jql: str, start_at: int) -> dict[str, Any]:
        """Fetch one page of search results."""
        response = await self.client.get(
            f"{self.endpoint}/search",
            params={"jql": jql, "startAt": start_at, "maxResults": self.page_size, "fields": "key"},
        )
        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After")
            raise RemoteRateLimitError("Jira rate limit exceeded", retry_after=float(retry_after) if retry_after else None)
        if response.status_code != 200:
            logger.error("Unexpected Jira response", status_code=response.status_code, body=response.text[:200])
            raise RemoteQueryError(f"unexpected {response.status_code} status from Jira search", status_code=response.status_code)
        try:
            page = response.json()
        except ValueError as exc:
            logger.error("Jira search response is not JSON", content_type=response.headers.get("Content-Type"), body=response.text[:200])
            raise RemoteQueryError(MALFORMED_RESPONSE, status_code=response.status_code) from exc
        if not isinstance(page, dict):
            raise RemoteQueryError(MALFORMED_RESPONSE, status_code=response.status_code)
        return page

    async def issues(self, project: str, statuses: Iterable[str]) -> list[str]:
        """Return the keys of issues in the project having any of the statuses.

        No request is made when the project or the statuses are empty.
        """
        status_set = {status for status in statuses if status}
        if not project or not status_set:
            logger.info("No issue filter configured", project=project, statuses=sorted(status_set))
            return []

        jql = build_issue_query(project, status_set)
        logger.info("Searching issues", jql=jql)
        keys: list[str] = []
        start_at = 0
        while True:
            page = await self._search(jql, start_at)
            issues = page.get("issues") or []
            if not isinstance(issues, list):
                raise RemoteQueryError(MALFORMED_RESPONSE, status_code=200)
            keys.extend(issue_key(issue) for issue in issues)
            start_at += len(issues)
            total = page.get("total")
            if not issues or total is None or start_at >= total:
                break
        logger.info("Found issues", project=project, count=len(keys))
        return keys
