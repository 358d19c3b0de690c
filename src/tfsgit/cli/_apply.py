"""Commands: plan, write-tree."""

from __future__ import annotations

import click

from ..exceptions import TfsGitError
from ._helpers import (
    main,
    _changeset_options,
    _format_operation,
    _load_dump,
    _make_applier,
    _open_repo,
    _repo_option,
    _require_repo,
    _resolve_parent,
    _status,
)


# ---------------------------------------------------------------------------
# plan
# ---------------------------------------------------------------------------

@main.command()
@_repo_option
@_changeset_options
@click.pass_context
def plan(ctx, dump, tfs_path, parent, ignore_patterns, ignore_regex, git_command):
    """Print the index operations a changeset dump produces.

    Without --parent the changeset is treated as the first one and no
    repository is needed.
    """
    changeset_dump = _load_dump(dump)
    repo = None
    if parent:
        repo = _open_repo(_require_repo(ctx))
        parent = _resolve_parent(repo, parent).id.decode("ascii")
    applier = _make_applier(
        ctx, changeset_dump, tfs_path=tfs_path, ignore_patterns=ignore_patterns,
        ignore_regex=ignore_regex, git_command=git_command, repo=repo,
    )
    try:
        batch, entry = applier.apply(parent, changeset_dump.changeset)
    except TfsGitError as exc:
        raise click.ClickException(str(exc))
    for op in batch:
        click.echo(_format_operation(op))
    click.echo(f"Author: {entry.author_name} <{entry.author_email}>")
    click.echo(f"Changeset: C{entry.changeset_id}")


# ---------------------------------------------------------------------------
# write-tree
# ---------------------------------------------------------------------------

@main.command("write-tree")
@_repo_option
@_changeset_options
@click.pass_context
def write_tree(ctx, dump, tfs_path, parent, ignore_patterns, ignore_regex, git_command):
    """Apply a changeset dump on top of --parent and print the new tree id."""
    changeset_dump = _load_dump(dump)
    repo = _open_repo(_require_repo(ctx))
    base_tree = None
    if parent:
        commit = _resolve_parent(repo, parent)
        parent, base_tree = commit.id.decode("ascii"), commit.tree
    applier = _make_applier(
        ctx, changeset_dump, tfs_path=tfs_path, ignore_patterns=ignore_patterns,
        ignore_regex=ignore_regex, git_command=git_command, repo=repo,
    )
    try:
        batch, _entry = applier.apply(parent, changeset_dump.changeset)
        with batch:
            tree_id = batch.write_tree(repo, base_tree)
    except TfsGitError as exc:
        raise click.ClickException(str(exc))
    _status(ctx, f"{len(batch)} operations")
    click.echo(tree_id.decode("ascii"))
