"""Tests for the tfsgit CLI."""

import json

import pytest

from tfsgit.cli import main

DUMP = {
    "changeset": {
        "id": 12,
        "created": "2024-03-01T10:00:00+00:00",
        "comment": "Move things",
        "committer": "alice",
        "changes": [
            {"change_type": "Rename", "path": "$/P/trunk/bin/run.sh", "item_id": 5, "content": "#!/bin/sh\n"},
            {"change_type": "Delete", "path": "$/P/trunk/docs", "item_id": 6},
            {"change_type": "Add", "path": "$/P/trunk/readme.txt", "item_id": 7, "content": "hi\n"},
            {"change_type": "Add", "path": "$/P/trunk/bin", "item_type": "folder", "item_id": 8},
        ],
    },
    "history": {"5": {"11": "$/P/trunk/run.sh"}},
    "identities": {"alice": {"display_name": "Alice", "mail_address": "alice@corp.example"}},
}


@pytest.fixture
def dump_file(tmp_path):
    path = tmp_path / "changeset.json"
    path.write_text(json.dumps(DUMP), encoding="utf-8")
    return str(path)


@pytest.fixture
def prior(commit_files):
    return commit_files({
        "run.sh": (b"#!/bin/sh\n", 0o100755),
        "docs/a.md": b"a",
        "docs/b.md": b"b",
        "keep.txt": b"k",
    })


class TestPlan:
    def test_first_changeset(self, runner, dump_file):
        result = runner.invoke(main, ["plan", dump_file, "--tfs-path", "$/P/trunk"])
        assert result.exit_code == 0, result.output
        assert result.output.splitlines() == [
            "D\tdocs",
            "D\trun.sh",
            "M\t100644\tbin/run.sh",
            "M\t100644\treadme.txt",
            "Author: Alice <alice@corp.example>",
            "Changeset: C12",
        ]

    def test_with_parent(self, runner, bare_repo, dump_file, prior):
        result = runner.invoke(main, [
            "plan", "--repo", bare_repo.controldir(), dump_file,
            "--tfs-path", "$/P/trunk", "--parent", prior,
        ])
        assert result.exit_code == 0, result.output
        assert result.output.splitlines()[:5] == [
            "D\tdocs/a.md",
            "D\tdocs/b.md",
            "D\trun.sh",
            "M\t100755\tbin/run.sh",
            "M\t100644\treadme.txt",
        ]

    def test_repo_from_env(self, runner, bare_repo, dump_file, prior):
        result = runner.invoke(
            main, ["plan", dump_file, "--tfs-path", "$/P/trunk", "--parent", prior],
            env={"TFSGIT_REPO": bare_repo.controldir()},
        )
        assert result.exit_code == 0, result.output

    def test_parent_requires_repo(self, runner, dump_file, prior):
        result = runner.invoke(
            main, ["plan", dump_file, "--tfs-path", "$/P/trunk", "--parent", prior],
            env={"TFSGIT_REPO": ""},
        )
        assert result.exit_code != 0
        assert "No repository specified" in result.output

    def test_ignore(self, runner, dump_file):
        result = runner.invoke(main, [
            "plan", dump_file, "--tfs-path", "$/P/trunk", "--ignore", "*.txt",
        ])
        assert result.exit_code == 0, result.output
        assert "readme.txt" not in result.output

    def test_unknown_committer(self, runner, tmp_path):
        data = json.loads(json.dumps(DUMP))
        data["identities"] = {}
        path = tmp_path / "bad.json"
        path.write_text(json.dumps(data), encoding="utf-8")
        result = runner.invoke(main, ["plan", str(path), "--tfs-path", "$/P/trunk"])
        assert result.exit_code != 0
        assert "Unknown identity" in result.output

    def test_bad_tfs_path(self, runner, dump_file):
        result = runner.invoke(main, ["plan", dump_file, "--tfs-path", "P/trunk"])
        assert result.exit_code != 0


class TestWriteTree:
    def test_writes_tree(self, runner, bare_repo, dump_file, prior, read_tree):
        result = runner.invoke(main, [
            "write-tree", "--repo", bare_repo.controldir(), dump_file,
            "--tfs-path", "$/P/trunk", "--parent", prior,
        ])
        assert result.exit_code == 0, result.output
        tree_id = result.output.strip().encode()
        assert read_tree(tree_id) == {
            "bin/run.sh": (b"#!/bin/sh\n", 0o100755),
            "keep.txt": (b"k", 0o100644),
            "readme.txt": (b"hi\n", 0o100644),
        }

    def test_unknown_parent(self, runner, bare_repo, dump_file):
        result = runner.invoke(main, [
            "write-tree", "--repo", bare_repo.controldir(), dump_file,
            "--tfs-path", "$/P/trunk", "--parent", "c" * 40,
        ])
        assert result.exit_code != 0
        assert "Unknown commit" in result.output

    def test_missing_repo(self, runner, tmp_path, dump_file):
        result = runner.invoke(main, [
            "write-tree", "--repo", str(tmp_path / "nope.git"), dump_file, "--tfs-path", "$/P/trunk",
        ])
        assert result.exit_code != 0
        assert "Repository not found" in result.output
