"""Changesets loaded from a JSON dump.

A dump holds one changeset together with everything needed to apply it
without a server connection::

    {
      "changeset": {
        "id": 12,
        "created": "2024-03-01T10:00:00+00:00",
        "comment": "Fix build",
        "committer": "CORP\\\\alice",
        "changes": [
          {"change_type": "Rename, Edit", "item_type": "file",
           "path": "$/Project/trunk/new.txt", "item_id": 5,
           "deletion_id": 0, "content": "hello\\n"}
        ]
      },
      "history": {"5": {"11": "$/Project/trunk/old.txt"}},
      "identities": {"CORP\\\\alice": {"display_name": "Alice",
                                     "mail_address": "alice@corp.example"}}
    }

``content_base64`` may replace ``content`` for binary files.  ``history``
maps item id -> changeset id -> server path.
"""

from __future__ import annotations

import base64
import io
import json
import os
from datetime import datetime
from typing import Any, BinaryIO

from .changes import Change, Changeset, ChangeType, Item, ItemType
from .log import Identity


class ChangesetDump:
    """Serves a dumped changeset's history, content and identities."""

    def __init__(
        self,
        changeset: dict[str, Any],
        *,
        history: dict[str, dict[str, str]] | None = None,
        identities: dict[str, dict[str, str]] | None = None,
    ):
        self._history = {
            int(item_id): {int(rev): path for rev, path in revs.items()}
            for item_id, revs in (history or {}).items()
        }
        self._identities = {
            login: Identity(v["display_name"], v["mail_address"])
            for login, v in (identities or {}).items()
        }
        self._contents: dict[tuple[int, int], bytes] = {}
        self.changeset = self._parse_changeset(changeset)

    def __repr__(self) -> str:
        return f"ChangesetDump(C{self.changeset.changeset_id})"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ChangesetDump:
        try:
            changeset = data["changeset"]
        except KeyError:
            raise ValueError("Dump has no 'changeset'")
        return cls(changeset, history=data.get("history"), identities=data.get("identities"))

    @classmethod
    def load(cls, path: str | os.PathLike[str]) -> ChangesetDump:
        """Read a dump file."""
        with open(path, encoding="utf-8") as f:
            return cls.from_dict(json.load(f))

    def _parse_changeset(self, data: dict[str, Any]) -> Changeset:
        changeset_id = int(data["id"])
        changes = []
        for raw in data.get("changes", ()):
            item = Item(
                item_id=int(raw["item_id"]),
                changeset_id=changeset_id,
                server_path=raw["path"],
                item_type=ItemType(raw.get("item_type", "file").lower()),
                deletion_id=int(raw.get("deletion_id", 0)),
                content_source=self,
            )
            if "content_base64" in raw:
                self._contents[(item.item_id, changeset_id)] = base64.b64decode(raw["content_base64"])
            elif "content" in raw:
                self._contents[(item.item_id, changeset_id)] = raw["content"].encode("utf-8")
            changes.append(Change(ChangeType.from_names(raw["change_type"]), item))
        return Changeset(
            changeset_id=changeset_id,
            created=datetime.fromisoformat(data["created"]),
            comment=data.get("comment", ""),
            committer=data["committer"],
            changes=tuple(changes),
        )

    def server_path_at_revision(self, item_id: int, revision: int) -> str | None:
        """Return the newest recorded path of *item_id* at or before *revision*."""
        revs = self._history.get(item_id, {})
        known = [rev for rev in revs if rev <= revision]
        if not known:
            return None
        return revs[max(known)]

    def open_stream(self, item: Item) -> BinaryIO:
        try:
            return io.BytesIO(self._contents[(item.item_id, item.changeset_id)])
        except KeyError:
            raise FileNotFoundError(f"No content in dump for {item.server_path!r}")

    def identity(self, login: str) -> Identity:
        return self._identities[login]
