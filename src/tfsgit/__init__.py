from .apply import ChangesetApplier
from .batch import IndexBatch, Remove, Update
from .changes import Change, Changeset, ChangeType, Item, ItemType, rank, sort_changes
from .dump import ChangesetDump
from .exceptions import ContentFetchError, IdentityLookupError, TfsGitError, TreeQueryError
from .expand import expand_delete
from .log import Identity, LogEntry, TfsId, build_log_entry, find_last_tfs_id, format_tfs_id, parse_tfs_id
from .mode import DEFAULT_FILE_MODE, resolve_mode
from .paths import RemotePathMapper
from .tree import DulwichTreeQuery, GitCommandTreeQuery, TreeEntry, format_ls_tree, parse_ls_tree

__all__ = [
    "ChangesetApplier", "IndexBatch", "Update", "Remove",
    "Change", "Changeset", "ChangeType", "Item", "ItemType", "rank", "sort_changes",
    "ChangesetDump",
    "TfsGitError", "ContentFetchError", "IdentityLookupError", "TreeQueryError",
    "expand_delete",
    "Identity", "LogEntry", "TfsId", "build_log_entry", "format_tfs_id", "parse_tfs_id", "find_last_tfs_id",
    "DEFAULT_FILE_MODE", "resolve_mode",
    "RemotePathMapper",
    "DulwichTreeQuery", "GitCommandTreeQuery", "TreeEntry", "format_ls_tree", "parse_ls_tree",
]
