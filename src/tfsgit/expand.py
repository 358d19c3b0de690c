"""Expansion of a delete into the concrete file paths it removes."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .interfaces import TreeQuery

logger = logging.getLogger(__name__)


def expand_delete(tree_query: TreeQuery, prior_commit: str | None, path: str) -> list[str]:
    """Return the paths to remove for a delete of *path*.

    A directory in *prior_commit* expands to every file beneath it; the
    directory itself is never listed since git does not track directories.
    Anything else, including a path that is already absent, is removed as is.

    Raises:
        TreeQueryError: If the prior tree cannot be read.  A failed listing is
            never taken to mean the directory was empty.
    """
    entry = tree_query.lookup(prior_commit, path) if prior_commit else None
    if entry is None or entry.kind != "tree":
        logger.debug("D\t%s", path)
        return [path]
    removed = []
    for sub_path in tree_query.list_blobs_recursive(prior_commit, path):
        full = f"{path}/{sub_path}"
        logger.debug("D\t%s", full)
        removed.append(full)
    return removed
