"""Contains the exceptions raised while synchronizing feature branches."""


class JitrubError(Exception):
    """Base class for all errors surfaced to the command line."""

    pass


class ConfigurationError(JitrubError):
    """Raised when the synchronization cannot start because of its configuration."""

    pass


class RemoteQueryError(JitrubError):
    """Raised when the tracker or repository answers with an unexpected status."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        """Initializes the exception with the HTTP status that caused it."""
        super().__init__(message)
        self.status_code = status_code


class BranchNotFoundError(JitrubError):
    """Raised when an operation requires a branch or ref that does not exist."""

    def __init__(self, branch: str) -> None:
        """Initializes the exception with the missing branch name."""
        super().__init__(f"branch {branch} not found")
        self.branch = branch


class LockError(JitrubError):
    """Raised when the advisory lock on a branch can not be obtained."""

    def __init__(self, cause: Exception | None = None) -> None:
        """Initializes the exception with the underlying cause, if any."""
        message = "could not obtain lock"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)
        self.cause = cause


class MergeConflictError(JitrubError):
    """Raised when a feature branch can not be merged cleanly into the base."""

    def __init__(self, base: str, head: str, email: str | None) -> None:
        """Initializes the exception with the conflicting head and its author."""
        super().__init__(f"conflict merging {head} into {base} ({email})")
        self.base = base
        self.head = head
        self.email = email


class RemoteRateLimitError(JitrubError):
    """Raised when a remote service asks the client to slow down."""

    def __init__(self, message: str, retry_after: float | None = None) -> None:
        """Initializes the exception with the server-provided wait time."""
        super().__init__(message)
        self.retry_after = retry_after


class RemoteNetworkError(JitrubError):
    """Raised when a remote service can not be reached."""

    pass


class RemoteTimeoutError(RemoteNetworkError):
    """Raised when a remote service does not answer in time."""

    pass


class SyncTimeoutError(JitrubError):
    """Raised when a whole synchronization exceeds its deadline."""

    pass
