"""Source-side change records and their application order."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, Flag
from typing import TYPE_CHECKING, BinaryIO, Iterable

if TYPE_CHECKING:
    from .interfaces import ContentSource


class ChangeType(Flag):
    """Set of change flags carried by a single change.

    Values match the server's bitmask so raw masks convert directly.
    """
    ADD = 2
    EDIT = 4
    ENCODING = 8
    RENAME = 16
    DELETE = 32
    UNDELETE = 64
    BRANCH = 128
    MERGE = 256
    LOCK = 512
    ROLLBACK = 1024
    SOURCE_RENAME = 2048
    PROPERTY = 8192

    def includes_any_of(self, other: ChangeType) -> bool:
        """Return True if any flag in *other* is also set here."""
        return bool(self & other)

    @classmethod
    def from_names(cls, names: str | Iterable[str]) -> ChangeType:
        """Build a flag set from names like ``"Add, Edit"`` or ``["rename"]``."""
        if isinstance(names, str):
            names = names.split(",")
        result = cls(0)
        for raw in names:
            name = raw.strip().replace(" ", "_").upper()
            if not name or name == "NONE":
                continue
            if name == "SOURCERENAME":
                name = "SOURCE_RENAME"
            try:
                result |= cls[name]
            except KeyError:
                raise ValueError(f"Unknown change type: {raw.strip()!r}")
        return result


class ItemType(str, Enum):
    """Kind of versioned item: ``FILE`` or ``FOLDER``."""
    FILE = "file"
    FOLDER = "folder"

    def __str__(self) -> str:          # noqa: D105
        return self.value


@dataclass(frozen=True)
class Item:
    """A versioned item as it exists in the changeset that touched it.

    Attributes:
        item_id: Server-wide identity of the item, stable across renames.
        changeset_id: Changeset this view of the item belongs to.
        server_path: Server path after the change (``$/Project/...``).
        item_type: :class:`ItemType` of the item.
        deletion_id: Nonzero if the item no longer exists after the change.
        content_source: Where :meth:`open_stream` fetches the bytes from.
    """
    item_id: int
    changeset_id: int
    server_path: str
    item_type: ItemType = ItemType.FILE
    deletion_id: int = 0
    content_source: ContentSource | None = field(default=None, compare=False, repr=False)

    def open_stream(self) -> BinaryIO:
        """Open the item's content at this changeset."""
        if self.content_source is None:
            raise FileNotFoundError(f"No content source for {self.server_path!r}")
        return self.content_source.open_stream(self)


@dataclass(frozen=True)
class Change:
    """One item mutation within a changeset."""
    change_type: ChangeType
    item: Item


@dataclass(frozen=True)
class Changeset:
    """An atomic, ordered group of changes from the source server.

    Attributes:
        changeset_id: Monotonically increasing id within the source repository.
        created: Creation timestamp.
        comment: Free-text check-in comment.
        committer: Login of the user who checked in.
        changes: Changes in server order.
    """
    changeset_id: int
    created: datetime
    comment: str
    committer: str
    changes: tuple[Change, ...] = ()


def rank(change_type: ChangeType) -> int:
    """Return the application rank: deletes, then renames, then everything else."""
    if change_type.includes_any_of(ChangeType.DELETE):
        return 0
    if change_type.includes_any_of(ChangeType.RENAME):
        return 1
    return 2


def sort_changes(changes: Iterable[Change]) -> list[Change]:
    """Order *changes* by :func:`rank`; equal ranks keep their input order."""
    return sorted(changes, key=lambda change: rank(change.change_type))
