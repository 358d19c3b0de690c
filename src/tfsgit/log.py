"""Commit-log records built from changeset metadata."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, NamedTuple

from dulwich.objects import Commit as _DCommit

from .exceptions import IdentityLookupError

if TYPE_CHECKING:
    from dulwich.repo import Repo

    from .changes import Changeset
    from .interfaces import IdentityLookup


class Identity(NamedTuple):
    """A resolved user: display name and mail address."""

    display_name: str
    mail_address: str


@dataclass(frozen=True)
class LogEntry:
    """Everything needed to create the commit for one changeset.

    Attributes:
        author_name: Author display name.
        author_email: Author mail address.
        committer_name: Same as *author_name*.
        committer_email: Same as *author_email*.
        date: Changeset creation time.
        message: Check-in comment followed by one line terminator.
        changeset_id: Id of the changeset this entry came from.
    """
    author_name: str
    author_email: str
    committer_name: str
    committer_email: str
    date: datetime
    message: str
    changeset_id: int


def build_log_entry(
    changeset: Changeset,
    identities: IdentityLookup,
    *,
    line_terminator: str = "\n",
) -> LogEntry:
    """Build the :class:`LogEntry` for *changeset*.

    Raises:
        IdentityLookupError: If the committer login cannot be resolved.
    """
    try:
        identity = identities.identity(changeset.committer)
    except LookupError as exc:
        raise IdentityLookupError(changeset.committer) from exc
    if identity is None:
        raise IdentityLookupError(changeset.committer)
    return LogEntry(
        author_name=identity.display_name,
        author_email=identity.mail_address,
        committer_name=identity.display_name,
        committer_email=identity.mail_address,
        date=changeset.created,
        message=(changeset.comment or "") + line_terminator,
        changeset_id=changeset.changeset_id,
    )


# ---------------------------------------------------------------------------
# Resume markers
# ---------------------------------------------------------------------------

_TFS_ID_RE = re.compile(r"^git-tfs-id: \[(?P<url>[^\]]*)\](?P<path>.+);C(?P<id>\d+)\s*$", re.MULTILINE)


class TfsId(NamedTuple):
    """Where a commit came from: server url, repository path, changeset id."""

    url: str
    repository_path: str
    changeset_id: int


def format_tfs_id(url: str, repository_path: str, changeset_id: int) -> str:
    """Return the marker line appended to commit messages."""
    return f"git-tfs-id: [{url}]{repository_path};C{changeset_id}"


def parse_tfs_id(message: str) -> TfsId | None:
    """Return the last marker in *message*, or None."""
    found = None
    for m in _TFS_ID_RE.finditer(message):
        found = TfsId(m["url"], m["path"], int(m["id"]))
    return found


def find_last_tfs_id(repo: Repo, commit: str | bytes, *, max_depth: int | None = None) -> TfsId | None:
    """Walk first-parent history from *commit* and return the newest marker.

    Returns None if no commit within *max_depth* carries one.
    """
    sha = commit.encode("ascii") if isinstance(commit, str) else commit
    depth = 0
    while sha is not None and (max_depth is None or depth < max_depth):
        obj = repo.object_store[sha]
        if not isinstance(obj, _DCommit):
            raise ValueError(f"Not a commit: {sha.decode('ascii')}")
        found = parse_tfs_id(obj.message.decode("utf-8", "replace"))
        if found is not None:
            return found
        sha = obj.parents[0] if obj.parents else None
        depth += 1
    return None
