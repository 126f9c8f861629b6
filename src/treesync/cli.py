"""treesync CLI — sync flat local directories into git repositories."""

from __future__ import annotations

import asyncio
import logging
import os
import sys

import click

from .exceptions import TreeSyncError
from .gateway import DulwichGateway, GitHubGateway, open_gateway
from .objects import branch_ref
from .options import SyncOptions
from .sync import run_sync
from .tree import TreeCache, resolve_path, split_path


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _strip_colon(raw: str) -> str:
    """Strip an optional leading ':' from a repo-side path."""
    return raw[1:] if raw.startswith(":") else raw


def _status(ctx, msg):
    """Emit a status message to stderr when verbose mode (-v) is on."""
    if ctx.obj.get("verbose"):
        click.echo(msg, err=True)


def _store_option(f):
    """Shared --store option: a local bare repository instead of GitHub."""
    return click.option(
        "--store", "-s", type=click.Path(), envvar="TREESYNC_STORE", default=None,
        help="Path to a local bare git repository (or set TREESYNC_STORE).",
    )(f)


def _remote_options(f):
    """Shared --user/--repo/--token options for GitHub."""
    f = click.option("--token", envvar="GITHUB_TOKEN", default=None,
                     help="GitHub OAuth token (or set GITHUB_TOKEN).")(f)
    f = click.option("--repo", "-r", default=None, help="Repository name.")(f)
    f = click.option("--user", "-u", default=None, help="Owner of the repository.")(f)
    return f


def _branch_option(f):
    return click.option("--branch", "-b", default="master", show_default=True,
                        help="Branch to operate on.")(f)


def _open_reader(store: str | None, user: str | None, repo: str | None, token: str | None):
    """Open a gateway for read-only commands."""
    if store:
        try:
            return DulwichGateway.open(store)
        except FileNotFoundError as exc:
            raise click.ClickException(str(exc))
    if not (user and repo):
        raise click.ClickException(
            "No repository specified. Use --store, or --user and --repo."
        )
    return GitHubGateway.connect(user, repo, token=token)


# ---------------------------------------------------------------------------
# Main group
# ---------------------------------------------------------------------------

@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Verbose output on stderr.")
@click.pass_context
def main(ctx, verbose):
    """treesync — sync a flat directory into a git repository path.

    Files are written straight into the repository's object store; no
    clone or working copy is needed.

    \b
    Quick start:
      treesync init --store site.git --branch master
      treesync sync ./dist :site/assets --store site.git -m "Publish assets"
      treesync ls :site/assets --store site.git

    \b
    Against GitHub:
      treesync sync ./dist :site/assets -u owner -r repo -m "Publish" \\
          --branch deploy --create-branch --pull-request
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG, stream=sys.stderr,
            format="%(levelname)s %(name)s: %(message)s",
        )


# ---------------------------------------------------------------------------
# init
# ---------------------------------------------------------------------------

@main.command()
@click.option("--store", "-s", type=click.Path(), envvar="TREESYNC_STORE", required=True,
              help="Path of the bare repository to create (or set TREESYNC_STORE).")
@click.option("--branch", "-b", default="master", show_default=True,
              help="Initial branch name.")
@click.option("-f", "--force", is_flag=True, help="Destroy existing repo and recreate.")
@click.pass_context
def init(ctx, store, branch, force):
    """Create a new bare git repository to sync into."""
    if force and os.path.exists(store):
        import shutil
        shutil.rmtree(store)
    elif os.path.exists(store):
        raise click.ClickException(f"Repository already exists: {store}")
    DulwichGateway.init(store, branch=branch)
    _status(ctx, f"Initialized {store}")


# ---------------------------------------------------------------------------
# sync
# ---------------------------------------------------------------------------

@main.command()
@click.argument("local_path", type=click.Path(exists=True, file_okay=False))
@click.argument("repo_path")
@_store_option
@_remote_options
@click.option("-m", "--message", required=True, help="Commit message.")
@_branch_option
@click.option("--base-branch", default="master", show_default=True,
              help="Branch to create --branch from, and pull-request base.")
@click.option("--create-branch", is_flag=True, help="Create --branch from --base-branch if missing.")
@click.option("--pull-request", "create_pull_request", is_flag=True,
              help="Open a pull request from --branch into --base-branch.")
@click.option("--preserve", "preserve_repo_files", is_flag=True,
              help="Keep repo files that do not exist locally.")
@click.option("--require-parent", is_flag=True,
              help="Fail instead of creating missing parent directories.")
@click.option("--retries", type=click.IntRange(min=1), default=1, show_default=True,
              help="Attempts when the branch moves during the sync.")
@click.pass_context
def sync(ctx, local_path, repo_path, store, user, repo, token, message, branch, base_branch,
         create_branch, create_pull_request, preserve_repo_files, require_parent, retries):
    """Make REPO_PATH on --branch match the files in LOCAL_PATH.

    LOCAL_PATH must be a flat directory; subdirectories are skipped.
    REPO_PATH may be prefixed with ':' and '/' means the repository root.

    \b
    Examples:
        treesync sync ./dist :docs --store site.git -m "Update docs"
        treesync sync ./dist :docs -u owner -r repo -m "Update docs" --preserve
    """
    if store:
        user = user or "local"
        repo = repo or "local"
    try:
        options = SyncOptions(
            user=user, repo=repo,
            local_path=local_path, repo_path=_strip_colon(repo_path) or "/",
            message=message,
            branch=branch, base_branch=base_branch,
            create_branch=create_branch, create_pull_request=create_pull_request,
            preserve_repo_files=preserve_repo_files, require_parent=require_parent,
            oauth_token=token, debug=ctx.obj["verbose"],
        )
        gateway = open_gateway(options, store_path=store)
        result = run_sync(options, gateway=gateway, retries=retries)
    except FileNotFoundError as exc:
        raise click.ClickException(str(exc))
    except TreeSyncError as exc:
        raise click.ClickException(str(exc))

    if result.branch_created:
        _status(ctx, f"Created branch {result.branch} from {base_branch}")
    if result.changed:
        _status(ctx, f"Committed {result.commit_sha[:7]} to {result.branch}")
    else:
        _status(ctx, "No changes")
    click.echo(result.commit_sha)
    if result.pull_request is not None:
        click.echo(result.pull_request.url)


# ---------------------------------------------------------------------------
# ls
# ---------------------------------------------------------------------------

async def _tree_at(gateway, branch: str, parts: list[str]):
    ref = await gateway.get_reference(branch_ref(branch))
    commit = await gateway.get_commit(ref.sha)
    root = await gateway.get_tree(commit.tree)
    chain = await resolve_path(gateway, TreeCache(), root, parts)
    if len(chain) != len(parts) + 1:
        return None
    return chain[-1]


@main.command()
@click.argument("repo_path", required=False, default="")
@_store_option
@_remote_options
@_branch_option
@click.option("-l", "--long", "long_", is_flag=True, help="Show modes, types, and hashes.")
@click.pass_context
def ls(ctx, repo_path, store, user, repo, token, branch, long_):
    """List the entries at REPO_PATH (or the root) on --branch."""
    gateway = _open_reader(store, user, repo, token)
    try:
        parts = split_path(_strip_colon(repo_path))
        tree = asyncio.run(_tree_at(gateway, branch, parts))
    except ValueError as exc:
        raise click.ClickException(f"Invalid repo path: {exc}")
    except TreeSyncError as exc:
        raise click.ClickException(str(exc))
    if tree is None:
        raise click.ClickException(f"Path not found: {'/'.join(parts)}")

    for entry in sorted(tree, key=lambda e: e.path):
        name = entry.path + "/" if entry.is_tree else entry.path
        if long_:
            click.echo(f"{entry.mode:06o} {entry.type} {entry.sha}\t{name}")
        else:
            click.echo(name)
