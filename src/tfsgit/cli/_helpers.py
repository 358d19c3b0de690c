"""Shared helpers, option decorators, and the main CLI group."""

from __future__ import annotations

import logging

import click
from dulwich.errors import NotGitRepository
from dulwich.objects import Commit
from dulwich.repo import Repo

from ..apply import ChangesetApplier
from ..batch import Remove
from ..dump import ChangesetDump
from ..paths import RemotePathMapper
from ..tree import DulwichTreeQuery, GitCommandTreeQuery


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _store_repo(ctx, param, value):
    """Click callback: store --repo value in the context."""
    ctx.ensure_object(dict)
    if value is not None:
        ctx.obj["repo_path"] = value
    return value


def _repo_option(f):
    """Shared --repo/-r option decorator for all commands."""
    return click.option(
        "--repo", "-r", type=click.Path(), envvar="TFSGIT_REPO",
        help="Path to the destination git repository (or set TFSGIT_REPO).",
        expose_value=False, callback=_store_repo, is_eager=True,
    )(f)


def _require_repo(ctx) -> str:
    """Get the repo path from context, raising a clear error if missing."""
    repo = ctx.obj.get("repo_path")
    if not repo:
        raise click.ClickException(
            "No repository specified. Use --repo or set TFSGIT_REPO."
        )
    return repo


def _open_repo(repo_path: str) -> Repo:
    try:
        return Repo(repo_path)
    except NotGitRepository:
        raise click.ClickException(f"Repository not found: {repo_path}")


def _status(ctx, msg):
    """Emit a status message to stderr when verbose mode (-v) is on."""
    if ctx.obj.get("verbose"):
        click.echo(msg, err=True)


def _changeset_options(f):
    """Options shared by every command that applies a dump."""
    f = click.option("--git-command", is_flag=True, default=False,
                     help="Query trees with the git executable instead of dulwich.")(f)
    f = click.option("--ignore-regex", default=None,
                     help="Skip repo paths matching this regular expression.")(f)
    f = click.option("--ignore", "ignore_patterns", multiple=True,
                     help="Skip repo paths matching this gitignore pattern (repeatable).")(f)
    f = click.option("--parent", default=None,
                     help="Commit holding the result of the previous changeset.")(f)
    f = click.option("--tfs-path", required=True,
                     help="Server folder mapped to the repo root (e.g. $/Project/trunk).")(f)
    f = click.argument("dump", type=click.Path(exists=True, dir_okay=False))(f)
    return f


def _load_dump(dump_path: str) -> ChangesetDump:
    try:
        return ChangesetDump.load(dump_path)
    except (ValueError, KeyError, TypeError) as exc:
        raise click.ClickException(f"Invalid dump {dump_path}: {exc}")


def _resolve_parent(repo: Repo, parent: str) -> Commit:
    try:
        obj = repo[parent.encode()]
    except (KeyError, ValueError):
        raise click.ClickException(f"Unknown commit: {parent}")
    if not isinstance(obj, Commit):
        raise click.ClickException(f"Object {parent} is not a commit")
    return obj


def _make_applier(ctx, dump, *, tfs_path, ignore_patterns, ignore_regex, git_command, repo=None):
    try:
        mapper = RemotePathMapper(
            tfs_path, ignore_patterns=list(ignore_patterns), ignore_regex=ignore_regex,
        )
    except ValueError as exc:
        raise click.ClickException(str(exc))
    if repo is None:
        tree_query = None
    elif git_command:
        tree_query = GitCommandTreeQuery(repo.controldir())
    else:
        tree_query = DulwichTreeQuery(repo)
    _status(ctx, f"Applying C{dump.changeset.changeset_id} from {mapper.repository_path}")
    return ChangesetApplier(mapper, dump, tree_query, dump)


def _format_operation(op) -> str:
    if isinstance(op, Remove):
        return f"D\t{op.path}"
    return f"M\t{op.mode}\t{op.path}"


# ---------------------------------------------------------------------------
# Main group
# ---------------------------------------------------------------------------

@click.group()
@click.option("--repo", "-r", type=click.Path(), envvar="TFSGIT_REPO",
              help="Path to the destination git repository (or set TFSGIT_REPO).",
              expose_value=False, callback=_store_repo, is_eager=True)
@click.option("-v", "--verbose", is_flag=True, help="Verbose output on stderr.")
@click.pass_context
def main(ctx, verbose):
    """tfsgit: apply TFS changesets to git trees.

    \b
    Quick start:
      tfsgit plan changeset.json --tfs-path '$/Project/trunk'
      tfsgit write-tree -r repo.git changeset.json --tfs-path '$/Project/trunk' --parent HEADSHA

    Set TFSGIT_REPO to avoid passing --repo on every call.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(message)s")
