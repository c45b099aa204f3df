"""Contains utility functions for GitHub interactions."""


def split_repository(repo: str | None) -> tuple[str, str]:
    """Splits an 'owner/name' repository identifier into owner and name."""
    if repo is None:
        raise ValueError("A repository in the format 'owner/name' is required.")
    repo = repo.strip("/")
    parts = repo.split("/")
    if len(parts) != 2 or not all(parts):
        raise ValueError(f"Repository must be in the format 'owner/name', got '{repo}'.")
    owner, name = parts
    return owner, name
