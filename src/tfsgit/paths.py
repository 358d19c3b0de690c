"""Server path to repository path mapping.

Ignore patterns follow gitignore rules (implemented by
``dulwich.ignore.IgnoreFilter``); ``ignore_regex`` is matched with
``re.search`` against the repository-relative path.
"""

from __future__ import annotations

import re
from typing import Sequence

from dulwich.ignore import IgnoreFilter

_DOT_GIT_RE = re.compile(r"(?:^|/)\.git(?:/|$)", re.IGNORECASE)


class RemotePathMapper:
    """Maps paths under one server folder (e.g. ``$/Project/trunk``) into the repo."""

    def __init__(
        self,
        repository_path: str,
        *,
        ignore_patterns: Sequence[str] | None = None,
        ignore_regex: str | None = None,
    ) -> None:
        repository_path = repository_path.rstrip("/")
        if not repository_path.startswith("$/") and repository_path != "$":
            raise ValueError(f"Server path must start with '$/': {repository_path!r}")
        self.repository_path = repository_path
        self._ignore: IgnoreFilter | None = (
            IgnoreFilter([p.encode("utf-8") for p in ignore_patterns])
            if ignore_patterns else None
        )
        self._ignore_regex = re.compile(ignore_regex) if ignore_regex else None

    def __repr__(self) -> str:
        return f"RemotePathMapper({self.repository_path!r})"

    def map(self, server_path: str) -> str | None:
        """Return *server_path* relative to the repository folder, or None."""
        prefix = self.repository_path
        if len(server_path) <= len(prefix):
            return None
        if server_path[:len(prefix)].lower() != prefix.lower():
            return None
        rest = server_path[len(prefix):]
        if not rest.startswith("/"):
            return None
        segments = [seg for seg in rest.split("/") if seg]
        if any(seg in (".", "..") for seg in segments):
            return None
        return "/".join(segments) or None

    def should_skip(self, path: str) -> bool:
        """Return True for paths inside ``.git`` or matching an ignore rule."""
        if _DOT_GIT_RE.search(path):
            return True
        if self._ignore_regex is not None and self._ignore_regex.search(path):
            return True
        return self._ignore is not None and self._ignore.is_ignored(path) is True
