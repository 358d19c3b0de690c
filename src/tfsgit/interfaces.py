"""Collaborator interfaces consumed by :class:`~tfsgit.apply.ChangesetApplier`.

Implementations shipped here: :class:`~tfsgit.paths.RemotePathMapper`,
:class:`~tfsgit.tree.DulwichTreeQuery`, :class:`~tfsgit.tree.GitCommandTreeQuery`
and :class:`~tfsgit.dump.ChangesetDump`.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, BinaryIO, Protocol

if TYPE_CHECKING:
    from .changes import Item
    from .log import Identity
    from .tree import TreeEntry


class PathMapper(Protocol):
    """Translates server paths into destination-repository paths."""

    def map(self, server_path: str) -> str | None:
        """Return the repo-relative path, or None if *server_path* is out of scope."""
        ...

    def should_skip(self, path: str) -> bool:
        """Return True if the repo-relative *path* is excluded."""
        ...


class PriorPathResolver(Protocol):
    """Recovers where an item lived at an earlier revision."""

    def server_path_at_revision(self, item_id: int, revision: int) -> str | None:
        """Return the item's server path at *revision*, or None if it did not exist."""
        ...


class IdentityLookup(Protocol):
    """Resolves a committer login.

    Raises:
        KeyError: If the login is unknown.
    """

    def identity(self, login: str) -> Identity:
        ...


class ContentSource(Protocol):
    """Opens item content; called lazily, once per materialized update."""

    def open_stream(self, item: Item) -> BinaryIO:
        ...


class TreeQuery(Protocol):
    """Read access to committed destination trees.

    Commits are hex ids.  Failures raise :class:`~tfsgit.exceptions.TreeQueryError`.
    """

    def lookup(self, commit: str, path: str) -> TreeEntry | None:
        """Return the entry at *path* in *commit*, or None if absent."""
        ...

    def list_blobs_recursive(self, commit: str, path: str) -> list[str]:
        """Return every file under directory *path*, relative to it."""
        ...

    def ls_tree(self, commit: str, path: str) -> bytes:
        """Return ``git ls-tree -z`` output for *path* in *commit*."""
        ...
