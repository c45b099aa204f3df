"""Contains exceptions raised when reading connection strings."""

from jitrub.exceptions import ConfigurationError


class InvalidConnectionSchemeError(ConfigurationError):
    """Raised when a connection string uses a scheme the tool does not understand."""

    def __init__(self, scheme: str, expected: str) -> None:
        """Initializes the exception with the rejected and expected schemes."""
        super().__init__(f"{scheme or '(none)'}: is not a valid {expected} scheme")
        self.scheme = scheme
        self.expected = expected
