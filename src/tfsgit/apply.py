"""Translate one changeset into index operations and a log entry."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .batch import IndexBatch
from .changes import ChangeType, ItemType, sort_changes
from .expand import expand_delete
from .log import build_log_entry
from .mode import DEFAULT_FILE_MODE, resolve_mode

if TYPE_CHECKING:
    from .changes import Change, Changeset, Item
    from .interfaces import IdentityLookup, PathMapper, PriorPathResolver, TreeQuery
    from .log import LogEntry

logger = logging.getLogger(__name__)


class ChangesetApplier:
    """Applies changesets from one server folder to a git index batch.

    Args:
        path_mapper: Maps server paths into the repository.
        prior_paths: Recovers an item's path before a rename.
        tree_query: Reads the prior commit's tree.
        identities: Resolves committer logins.
        line_terminator: Appended to every log message.
    """

    def __init__(
        self,
        path_mapper: PathMapper,
        prior_paths: PriorPathResolver,
        tree_query: TreeQuery,
        identities: IdentityLookup,
        *,
        line_terminator: str = "\n",
    ):
        self._paths = path_mapper
        self._prior_paths = prior_paths
        self._tree_query = tree_query
        self._identities = identities
        self._line_terminator = line_terminator

    def apply(
        self,
        prior_commit: str | None,
        changeset: Changeset,
        batch: IndexBatch | None = None,
    ) -> tuple[IndexBatch, LogEntry]:
        """Issue the operations for *changeset* against *prior_commit*.

        Deletes are issued first, then renames, then everything else, so a
        path is always vacated before anything is written to it.

        Args:
            prior_commit: Commit holding the result of the previous changeset,
                or None/"" for the first one.
            changeset: The changeset to apply.
            batch: Batch to append to; a new one is created if omitted.

        Returns:
            The batch and the :class:`~tfsgit.log.LogEntry` for the commit.

        Raises:
            TfsGitError: On any failure.  The batch is discarded first.
        """
        if batch is None:
            batch = IndexBatch()
        try:
            for change in sort_changes(changeset.changes):
                self._apply_change(prior_commit, change, batch)
            entry = build_log_entry(
                changeset, self._identities, line_terminator=self._line_terminator,
            )
        except Exception:
            batch.discard()
            raise
        logger.info("Changeset %d: %d operations", changeset.changeset_id, len(batch))
        return batch, entry

    def _apply_change(self, prior_commit: str | None, change: Change, batch: IndexBatch) -> None:
        item = change.item
        # Folder changes come with a change for every contained file, and git
        # has no empty directories.
        if item.item_type is ItemType.FOLDER:
            logger.debug("Skipping folder %s", item.server_path)
            return
        path = self._paths.map(item.server_path)
        if path is None or self._paths.should_skip(path):
            logger.debug("Skipping %s", item.server_path)
            return

        change_type = change.change_type
        if change_type.includes_any_of(ChangeType.RENAME):
            old_path = self._path_before_rename(item)
            if old_path is not None:
                logger.debug("D\t%s", old_path)
                batch.remove(old_path)
            if item.deletion_id == 0 and not change_type.includes_any_of(ChangeType.DELETE):
                self._update(prior_commit, change, old_path, path, batch)
        elif change_type.includes_any_of(ChangeType.DELETE):
            for removed in expand_delete(self._tree_query, prior_commit, path):
                batch.remove(removed)
        elif item.deletion_id == 0:
            self._update(prior_commit, change, path, path, batch)

    def _path_before_rename(self, item: Item) -> str | None:
        server_path = self._prior_paths.server_path_at_revision(item.item_id, item.changeset_id - 1)
        if server_path is None:
            return None
        return self._paths.map(server_path)

    def _update(
        self,
        prior_commit: str | None,
        change: Change,
        mode_source: str | None,
        path: str,
        batch: IndexBatch,
    ) -> None:
        mode = None
        if mode_source is not None:
            mode = resolve_mode(self._tree_query, prior_commit, mode_source)
        if mode is None or change.change_type.includes_any_of(ChangeType.ADD):
            mode = DEFAULT_FILE_MODE
        logger.debug("M\t%s\t%s", mode, path)
        batch.update(mode, path, change.item.open_stream)
