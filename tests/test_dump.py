"""Tests for ChangesetDump."""

import base64
import json
from datetime import datetime, timezone

import pytest

from tfsgit.changes import ChangeType, ItemType
from tfsgit.dump import ChangesetDump
from tfsgit.log import Identity

DUMP = {
    "changeset": {
        "id": 12,
        "created": "2024-03-01T10:00:00+00:00",
        "comment": "Move things",
        "committer": "CORP\\alice",
        "changes": [
            {"change_type": "Rename, Edit", "item_type": "File",
             "path": "$/P/trunk/new.txt", "item_id": 5, "content": "hello\n"},
            {"change_type": ["Add"], "path": "$/P/trunk/logo.png", "item_id": 6,
             "content_base64": base64.b64encode(b"\x89PNG").decode()},
            {"change_type": "Delete", "item_type": "folder", "path": "$/P/trunk/old",
             "item_id": 7, "deletion_id": 3},
        ],
    },
    "history": {"5": {"4": "$/P/trunk/older.txt", "11": "$/P/trunk/old.txt"}},
    "identities": {"CORP\\alice": {"display_name": "Alice", "mail_address": "alice@corp.example"}},
}


@pytest.fixture
def dump():
    return ChangesetDump.from_dict(DUMP)


class TestChangesetDump:
    def test_changeset(self, dump):
        cs = dump.changeset
        assert cs.changeset_id == 12
        assert cs.created == datetime(2024, 3, 1, 10, 0, tzinfo=timezone.utc)
        assert cs.comment == "Move things"
        assert cs.committer == "CORP\\alice"
        assert [c.change_type for c in cs.changes] == [
            ChangeType.RENAME | ChangeType.EDIT, ChangeType.ADD, ChangeType.DELETE,
        ]

    def test_items(self, dump):
        rename, add, delete = dump.changeset.changes
        assert rename.item.item_id == 5
        assert rename.item.changeset_id == 12
        assert rename.item.item_type is ItemType.FILE
        assert delete.item.item_type is ItemType.FOLDER
        assert delete.item.deletion_id == 3

    def test_content(self, dump):
        rename, add, delete = dump.changeset.changes
        assert rename.item.open_stream().read() == b"hello\n"
        assert add.item.open_stream().read() == b"\x89PNG"
        with pytest.raises(FileNotFoundError):
            delete.item.open_stream()

    def test_history(self, dump):
        assert dump.server_path_at_revision(5, 11) == "$/P/trunk/old.txt"
        assert dump.server_path_at_revision(5, 9) == "$/P/trunk/older.txt"
        assert dump.server_path_at_revision(5, 3) is None
        assert dump.server_path_at_revision(99, 11) is None

    def test_identity(self, dump):
        assert dump.identity("CORP\\alice") == Identity("Alice", "alice@corp.example")
        with pytest.raises(KeyError):
            dump.identity("nobody")

    def test_load(self, tmp_path):
        path = tmp_path / "cs.json"
        path.write_text(json.dumps(DUMP), encoding="utf-8")
        assert ChangesetDump.load(path).changeset.changeset_id == 12

    def test_missing_changeset(self):
        with pytest.raises(ValueError):
            ChangesetDump.from_dict({"history": {}})

    def test_bad_change_type(self):
        data = json.loads(json.dumps(DUMP))
        data["changeset"]["changes"][0]["change_type"] = "Teleport"
        with pytest.raises(ValueError):
            ChangesetDump.from_dict(data)
