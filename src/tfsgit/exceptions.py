"""Exceptions for tfsgit."""


class TfsGitError(Exception):
    """Base class for errors that abort a changeset's application."""


class ContentFetchError(TfsGitError):
    """Raised when a file's content cannot be fetched from the source server.

    The in-progress changeset must be abandoned; discard its batch.
    """

    def __init__(self, path: str):
        super().__init__(f"Cannot fetch content for {path!r}")
        self.path = path


class IdentityLookupError(TfsGitError):
    """Raised when a committer login cannot be resolved to a name and email."""

    def __init__(self, login: str):
        super().__init__(f"Unknown identity: {login!r}")
        self.login = login


class TreeQueryError(TfsGitError):
    """Raised when the destination tree cannot be queried or its listing is malformed."""
