"""Static credential pair shared by the tracker and repository clients."""

import base64
from dataclasses import dataclass, field

USER_AGENT_PREFIX = "jitrub"


@dataclass(frozen=True)
class Credentials:
    """Identity/secret pair with an optional email used for tagging."""

    identity: str
    secret: str = field(repr=False)
    email: str | None = None

    def __post_init__(self) -> None:
        """Coerce values to strings and normalize an empty email to None."""
        object.__setattr__(self, "identity", str(self.identity))
        object.__setattr__(self, "secret", str(self.secret))
        object.__setattr__(self, "email", str(self.email) if self.email else None)

    @property
    def authorization(self) -> str:
        """Value of an HTTP Basic Authorization header."""
        token = base64.b64encode(f"{self.identity}:{self.secret}".encode()).decode()
        return f"Basic {token}"

    @property
    def user_agent(self) -> str:
        """User-Agent string identifying the tool and the acting identity."""
        return f"{USER_AGENT_PREFIX} ({self.identity})"

    def headers(self) -> dict[str, str]:
        """Return the authentication headers sent with every request."""
        return {"Authorization": self.authorization, "User-Agent": self.user_agent}
