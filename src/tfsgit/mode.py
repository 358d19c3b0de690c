"""Permission-mode lookup against the prior commit."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .tree import parse_ls_tree

if TYPE_CHECKING:
    from .interfaces import TreeQuery

DEFAULT_FILE_MODE = "100644"


def resolve_mode(tree_query: TreeQuery, prior_commit: str | None, path: str) -> str | None:
    """Return the six-digit mode of the file at *path* in *prior_commit*.

    Returns None when there is no prior commit, or when *path* is absent or
    is not a file.  Only an exact name match counts.

    Raises:
        TreeQueryError: If the listing cannot be obtained or parsed.
    """
    if not prior_commit:
        return None
    for entry in parse_ls_tree(tree_query.ls_tree(prior_commit, path)):
        if entry.kind == "blob" and entry.name == path:
            return entry.mode
    return None
