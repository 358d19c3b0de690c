"""Shared fixtures for tfsgit tests."""

import io

import pytest
from click.testing import CliRunner
from dulwich.objects import Blob, Commit
from dulwich.repo import Repo

from tfsgit.tree import GIT_FILEMODE_BLOB, _entry_at_path, iter_leaves, rebuild_tree


@pytest.fixture
def bare_repo(tmp_path):
    """Create a bare repository."""
    return Repo.init_bare(str(tmp_path / "test.git"), mkdir=True)


@pytest.fixture
def commit_files(bare_repo):
    """Return a function committing ``{path: data | (data, mode)}`` as a root commit.

    The function returns the new commit's hex id.
    """
    def _commit(files, parent=None, message="init\n"):
        writes = {}
        for path, value in files.items():
            data, mode = value if isinstance(value, tuple) else (value, GIT_FILEMODE_BLOB)
            blob = Blob.from_string(data)
            bare_repo.object_store.add_object(blob)
            writes[path] = (blob.id, mode)
        commit = Commit()
        commit.tree = rebuild_tree(bare_repo, None, writes, set())
        commit.parents = [parent.encode("ascii")] if parent else []
        commit.author = commit.committer = b"Test <test@example.com>"
        commit.author_time = commit.commit_time = 1700000000
        commit.author_timezone = commit.commit_timezone = 0
        commit.message = message.encode("utf-8")
        bare_repo.object_store.add_object(commit)
        return commit.id.decode("ascii")
    return _commit


@pytest.fixture
def read_tree(bare_repo):
    """Return a function mapping a tree id to ``{path: (data, mode)}``."""
    def _read(tree_id):
        out = {}
        for path in iter_leaves(bare_repo, tree_id):
            sha, mode = _entry_at_path(bare_repo, tree_id, path)
            out[path] = (bare_repo.object_store[sha].data, mode)
        return out
    return _read


class DictContent:
    """ContentSource serving bytes keyed by server path; counts opens."""

    def __init__(self, data=None):
        self.data = dict(data or {})
        self.opened = []

    def open_stream(self, item):
        self.opened.append(item.server_path)
        return io.BytesIO(self.data[item.server_path])


@pytest.fixture
def content():
    return DictContent()


@pytest.fixture
def runner():
    return CliRunner()
