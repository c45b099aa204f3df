"""Sets up the authenticated PyGithub client."""

from github import Auth, Github

from jitrub.credentials import Credentials
from jitrub.exceptions import ConfigurationError

DEFAULT_GITHUB_API_URL = "https://api.github.com"


def get_github_client(credentials: Credentials, github_api_url: str = DEFAULT_GITHUB_API_URL, timeout: float = 30.0) -> Github:
    """Returns a GitHub client authenticated with HTTP Basic credentials.

    PyGithub's own retry is disabled; callers wrap their calls with
    `retry_on_rate_limit` instead. The client is lazy: objects such as the
    repository are only fetched when one of their attributes is read.
    """
    if not (credentials.identity and credentials.secret):
        raise ConfigurationError("GitHub authentication requires both an identity and a secret.")
    return Github(
        auth=Auth.Login(credentials.identity, credentials.secret),
        base_url=github_api_url,
        timeout=int(timeout),
        user_agent=credentials.user_agent,
        retry=None,
        lazy=True,
    )
