"""Append-only index batch for one changeset."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, BinaryIO, Callable, Iterator, Union

from dulwich.objects import Blob

from .exceptions import ContentFetchError
from .tree import _normalize_path, rebuild_tree

if TYPE_CHECKING:
    from dulwich.repo import Repo

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Update:
    """Write a file at *path* with *mode*; content is fetched on demand."""
    mode: str
    path: str
    content: Callable[[], BinaryIO]

    def read(self) -> bytes:
        """Fetch the content.  Each call opens a fresh stream.

        Raises:
            ContentFetchError: If the stream cannot be opened or read.
        """
        try:
            with self.content() as stream:
                return stream.read()
        except (OSError, LookupError, ValueError) as exc:
            raise ContentFetchError(self.path) from exc


@dataclass(frozen=True)
class Remove:
    """Remove the file at *path*."""
    path: str


Operation = Union[Update, Remove]


class IndexBatch:
    """Accumulates update and remove operations in the order they are issued.

    The batch never commits anything.  The owner materializes it with
    :meth:`write_tree`, or drops it with :meth:`discard` if the changeset
    could not be applied completely.
    """

    def __init__(self):
        self._ops: list[Operation] = []
        self._closed = False

    def __repr__(self) -> str:
        return f"IndexBatch(ops={len(self._ops)}, closed={self._closed})"

    def __iter__(self) -> Iterator[Operation]:
        return iter(self._ops)

    def __len__(self) -> int:
        return len(self._ops)

    @property
    def operations(self) -> tuple[Operation, ...]:
        return tuple(self._ops)

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_open(self) -> None:
        if self._closed:
            raise RuntimeError("Batch is closed")

    def update(self, mode: str, path: str, content: Callable[[], BinaryIO]) -> None:
        self._check_open()
        if len(mode) != 6 or not mode.isdigit():
            raise ValueError(f"Invalid file mode: {mode!r}")
        self._ops.append(Update(mode, _normalize_path(path), content))

    def remove(self, path: str) -> None:
        self._check_open()
        self._ops.append(Remove(_normalize_path(path)))

    def discard(self) -> None:
        """Drop every pending operation and close the batch."""
        self._ops.clear()
        self._closed = True

    def write_tree(self, repo: Repo, base_tree: bytes | None = None) -> bytes:
        """Apply the operations on top of *base_tree* and return the new tree id.

        Operations replay in order, so a later operation on a path replaces an
        earlier one.  Content is fetched here, once per surviving update.

        Raises:
            ContentFetchError: If any update's content cannot be fetched.
        """
        self._check_open()
        final: dict[str, Operation] = {}
        for op in self._ops:
            final.pop(op.path, None)
            final[op.path] = op

        writes: dict[str, tuple[bytes, int]] = {}
        removes: set[str] = set()
        for path, op in final.items():
            if isinstance(op, Update):
                blob = Blob.from_string(op.read())
                repo.object_store.add_object(blob)
                writes[path] = (blob.id, int(op.mode, 8))
            else:
                removes.add(path)

        tree_id = rebuild_tree(repo, base_tree, writes, removes)
        logger.debug("Wrote tree %s (%d writes, %d removes)", tree_id.decode("ascii"), len(writes), len(removes))
        return tree_id

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is not None:
            self.discard()
        return False
