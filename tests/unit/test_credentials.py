"""Unit tests for the Credentials pair."""

import base64

from jitrub.credentials import Credentials


def test_authorization_header() -> None:
    """Test that the Basic authorization header encodes identity and secret."""
    credentials = Credentials("user", "s3cret")
    token = credentials.authorization.removeprefix("Basic ")
    assert base64.b64decode(token).decode() == "user:s3cret"


def test_headers() -> None:
    """Test the headers sent with every request."""
    credentials = Credentials("user", "s3cret")
    assert credentials.headers() == {"Authorization": credentials.authorization, "User-Agent": "jitrub (user)"}


def test_secret_not_in_repr() -> None:
    """Test that the secret is never rendered in logs or tracebacks."""
    assert "s3cret" not in repr(Credentials("user", "s3cret", "user@example.com"))


def test_empty_email_is_none() -> None:
    """Test that an empty email is normalized to None."""
    assert Credentials("user", "s3cret", "").email is None
    assert Credentials("user", "s3cret", "user@example.com").email == "user@example.com"
