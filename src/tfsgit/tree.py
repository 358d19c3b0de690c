"""Destination tree access for tfsgit.

Provides the ``git ls-tree -z`` line codec, two interchangeable tree query
backends (in-process dulwich and the ``git`` executable), and the recursive
tree rebuild used to materialize an index batch.
"""

from __future__ import annotations

import os
import re
import subprocess
from collections import defaultdict
from typing import TYPE_CHECKING, Iterable, Iterator, NamedTuple

from dulwich.objects import Commit as _DCommit
from dulwich.objects import Tree as _DTree

from .exceptions import TreeQueryError

if TYPE_CHECKING:
    from dulwich.repo import Repo


GIT_FILEMODE_TREE = 0o040000
GIT_FILEMODE_BLOB = 0o100644
GIT_FILEMODE_COMMIT = 0o160000

_SHA_RE = re.compile(r"[0-9a-f]{40}|[0-9a-f]{64}")
_LS_TREE_RE = re.compile(
    r"(?P<mode>\d{6}) (?P<kind>blob|tree|commit) (?P<hash>[0-9a-f]{40}|[0-9a-f]{64})\t(?P<name>.+)",
    re.DOTALL,
)


class TreeEntry(NamedTuple):
    """One ``ls-tree`` record.

    Attributes:
        mode: Six-digit octal filemode string (e.g. ``"100644"``).
        kind: ``"blob"``, ``"tree"`` or ``"commit"``.
        hash: Hex object id.
        name: Path relative to the tree root.
    """

    mode: str
    kind: str
    hash: str
    name: str


def _kind_from_mode(mode: int) -> str:
    if mode == GIT_FILEMODE_TREE:
        return "tree"
    if mode == GIT_FILEMODE_COMMIT:
        return "commit"
    return "blob"


def _normalize_path(path: str | os.PathLike[str]) -> str:
    """Normalize a path: strip leading/trailing slashes, reject bad segments."""
    path = os.fspath(path)
    if os.name == "nt":
        path = path.replace("\\", "/")
    path = path.strip("/")
    if not path:
        raise ValueError("Path must not be empty")
    segments = path.split("/")
    for seg in segments:
        if not seg:
            raise ValueError(f"Empty segment in path: {path!r}")
        if seg in (".", ".."):
            raise ValueError(f"Invalid path segment: {seg!r}")
    return "/".join(segments)


# ---------------------------------------------------------------------------
# ls-tree line codec
# ---------------------------------------------------------------------------

def format_ls_tree(entries: Iterable[TreeEntry]) -> bytes:
    """Render entries as ``<mode> <kind> <hash>\\t<path>\\0`` records."""
    return b"".join(
        f"{e.mode} {e.kind} {e.hash}\t{e.name}\0".encode("utf-8") for e in entries
    )


def _split_records(data: bytes) -> list[bytes]:
    if not data:
        return []
    records = data.split(b"\0")
    if records[-1] != b"":
        raise TreeQueryError("ls-tree output is not NUL-terminated")
    return records[:-1]


def parse_ls_tree(data: bytes) -> list[TreeEntry]:
    """Parse ``git ls-tree -z`` output.

    Raises:
        TreeQueryError: On any malformed record.  An empty listing is only
            ever produced by empty input.
    """
    entries = []
    for record in _split_records(data):
        try:
            text = record.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise TreeQueryError(f"Undecodable ls-tree record: {record!r}") from exc
        m = _LS_TREE_RE.fullmatch(text)
        if m is None:
            raise TreeQueryError(f"Malformed ls-tree record: {text!r}")
        entries.append(TreeEntry(m["mode"], m["kind"], m["hash"], m["name"]))
    return entries


def split_names(data: bytes) -> list[str]:
    """Parse ``git ls-tree --name-only -z`` output into paths."""
    names = []
    for record in _split_records(data):
        if not record:
            raise TreeQueryError("Empty name in ls-tree output")
        try:
            names.append(record.decode("utf-8"))
        except UnicodeDecodeError as exc:
            raise TreeQueryError(f"Undecodable ls-tree name: {record!r}") from exc
    return names


# ---------------------------------------------------------------------------
# dulwich tree walking
# ---------------------------------------------------------------------------

def _entry_at_path(
    repo: Repo, tree_oid: bytes, path: str
) -> tuple[bytes, int] | None:
    """Return (oid, filemode) of the entry at *path*, or None if missing."""
    segments = path.split("/")
    tree = repo.object_store[tree_oid]
    for i, seg in enumerate(segments):
        if not isinstance(tree, _DTree):
            return None
        try:
            mode, sha = tree[seg.encode("utf-8")]
        except KeyError:
            return None
        if i < len(segments) - 1:
            if mode != GIT_FILEMODE_TREE:
                return None
            tree = repo.object_store[sha]
        else:
            return (sha, mode)
    return None


def iter_leaves(repo: Repo, tree_oid: bytes, prefix: str = "") -> Iterator[str]:
    """Yield the path of every non-tree entry under a tree, depth first in tree order."""
    tree = repo.object_store[tree_oid]
    for entry in tree.iteritems():
        name = entry.path.decode("utf-8")
        child = f"{prefix}/{name}" if prefix else name
        if entry.mode == GIT_FILEMODE_TREE:
            yield from iter_leaves(repo, entry.sha, child)
        else:
            yield child


class DulwichTreeQuery:
    """Answers tree queries from a dulwich repository in process."""

    def __init__(self, repo: Repo):
        self._repo = repo

    def __repr__(self) -> str:
        return f"DulwichTreeQuery({self._repo.path!r})"

    def _commit_tree(self, commit: str) -> bytes:
        if not _SHA_RE.fullmatch(commit):
            raise TreeQueryError(f"Not a commit id: {commit!r}")
        try:
            obj = self._repo.object_store[commit.encode("ascii")]
        except KeyError as exc:
            raise TreeQueryError(f"Unknown commit: {commit}") from exc
        if not isinstance(obj, _DCommit):
            raise TreeQueryError(f"Not a commit: {commit}")
        return obj.tree

    def lookup(self, commit: str, path: str) -> TreeEntry | None:
        path = _normalize_path(path)
        found = _entry_at_path(self._repo, self._commit_tree(commit), path)
        if found is None:
            return None
        sha, mode = found
        return TreeEntry(f"{mode:06o}", _kind_from_mode(mode), sha.decode("ascii"), path)

    def list_blobs_recursive(self, commit: str, path: str) -> list[str]:
        entry = self.lookup(commit, path)
        if entry is None or entry.kind != "tree":
            raise TreeQueryError(f"Not a directory in {commit}: {path!r}")
        return list(iter_leaves(self._repo, entry.hash.encode("ascii")))

    def ls_tree(self, commit: str, path: str) -> bytes:
        entry = self.lookup(commit, path)
        return format_ls_tree([entry]) if entry is not None else b""


class GitCommandTreeQuery:
    """Answers tree queries by running ``git ls-tree`` against *git_dir*."""

    def __init__(self, git_dir: str | os.PathLike[str], *, git: str = "git", timeout: float | None = None):
        self._git_dir = os.fspath(git_dir)
        self._git = git
        self._timeout = timeout

    def __repr__(self) -> str:
        return f"GitCommandTreeQuery({self._git_dir!r})"

    def _run(self, *args: str) -> bytes:
        cmd = [self._git, f"--git-dir={self._git_dir}", *args]
        try:
            proc = subprocess.run(cmd, capture_output=True, timeout=self._timeout, check=True)
        except subprocess.CalledProcessError as exc:
            detail = exc.stderr.decode("utf-8", "replace").strip()
            raise TreeQueryError(f"{' '.join(cmd)}: {detail}") from exc
        except (OSError, subprocess.SubprocessError) as exc:
            raise TreeQueryError(f"{' '.join(cmd)}: {exc}") from exc
        return proc.stdout

    def ls_tree(self, commit: str, path: str) -> bytes:
        path = _normalize_path(path)
        return self._run("ls-tree", "-z", "--full-tree", commit, "--", path)

    def lookup(self, commit: str, path: str) -> TreeEntry | None:
        path = _normalize_path(path)
        for entry in parse_ls_tree(self.ls_tree(commit, path)):
            if entry.name == path:
                return entry
        return None

    def list_blobs_recursive(self, commit: str, path: str) -> list[str]:
        entry = self.lookup(commit, path)
        if entry is None or entry.kind != "tree":
            raise TreeQueryError(f"Not a directory in {commit}: {path!r}")
        return split_names(self._run("ls-tree", "-r", "--name-only", "-z", entry.hash))


# ---------------------------------------------------------------------------
# Tree rebuild
# ---------------------------------------------------------------------------

class TreeBuilder:
    """Wraps dulwich Tree construction."""

    def __init__(self, repo: Repo, base_tree: _DTree | None = None):
        self._repo = repo
        self._entries: dict[bytes, tuple[int, bytes]] = {}
        if base_tree is not None:
            for entry in base_tree.iteritems():
                self._entries[entry.path] = (entry.mode, entry.sha)

    def insert(self, name: str, oid: bytes, mode: int) -> None:
        self._entries[name.encode("utf-8")] = (mode, oid)

    def remove(self, name: str) -> None:
        del self._entries[name.encode("utf-8")]

    def write(self) -> bytes:
        tree = _DTree()
        for name_bytes, (mode, sha) in self._entries.items():
            tree.add(name_bytes, mode, sha)
        self._repo.object_store.add_object(tree)
        return tree.id


def rebuild_tree(
    repo: Repo,
    base_tree_oid: bytes | None,
    writes: dict[str, tuple[bytes, int]],
    removes: set[str],
) -> bytes:
    """Rebuild a tree with writes and removes applied.

    Only the ancestor chain from changed leaves to root is rebuilt.
    Sibling subtrees are shared by hash reference.

    Args:
        repo: The dulwich repository.
        base_tree_oid: OID of the existing tree (or None for empty).
        writes: Mapping of normalized path -> (blob oid, filemode).
        removes: Set of normalized paths to remove.

    Returns:
        OID of the new root tree.
    """
    # Group changes by first path segment
    sub_writes: dict[str, dict[str, tuple[bytes, int]]] = defaultdict(dict)
    leaf_writes: dict[str, tuple[bytes, int]] = {}
    sub_removes: dict[str, set[str]] = defaultdict(set)
    leaf_removes: set[str] = set()

    for path, value in writes.items():
        parts = path.split("/", 1)
        if len(parts) == 1:
            leaf_writes[parts[0]] = value
        else:
            sub_writes[parts[0]][parts[1]] = value

    for path in removes:
        parts = path.split("/", 1)
        if len(parts) == 1:
            leaf_removes.add(parts[0])
        else:
            sub_removes[parts[0]].add(parts[1])

    tree = repo.object_store[base_tree_oid] if base_tree_oid is not None else None
    tb = TreeBuilder(repo, tree)

    existing_subtrees: dict[str, bytes] = {}
    if tree is not None:
        for entry in tree.iteritems():
            if entry.mode == GIT_FILEMODE_TREE:
                existing_subtrees[entry.path.decode("utf-8")] = entry.sha

    # Removes first so a write of the same name wins
    for name in leaf_removes:
        if name not in leaf_writes:
            try:
                tb.remove(name)
            except KeyError:
                pass

    for name, (blob_oid, mode) in leaf_writes.items():
        tb.insert(name, blob_oid, mode)

    for subdir in set(sub_writes) | set(sub_removes):
        existing_oid = existing_subtrees.get(subdir)
        if subdir in leaf_writes:
            # A file written at this name replaces the directory
            continue
        if existing_oid is None and not sub_writes.get(subdir):
            continue

        new_subtree_oid = rebuild_tree(
            repo,
            existing_oid,
            sub_writes.get(subdir, {}),
            sub_removes.get(subdir, set()),
        )

        # Prune empty directories
        if len(repo.object_store[new_subtree_oid]) == 0:
            try:
                tb.remove(subdir)
            except KeyError:
                pass
        else:
            tb.insert(subdir, new_subtree_oid, GIT_FILEMODE_TREE)

    return tb.write()
