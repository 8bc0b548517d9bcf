"""Command line interface for reposync."""

import logging
import sys
from dataclasses import replace
from pathlib import Path

import click

from .config import load_configuration
from .errors import SyncError
from .generate import generate_targets, write_targets
from .git_sync import RemoteSpec, RepoTarget, TaskStatus, sync
from .logging_config import setup_logging
from .scheduler import run_tasks
from .tasks import TaskFileError, load_targets


@click.group()
@click.option("--log-level", default=None, help="Override REPOSYNC_LOG_LEVEL (DEBUG, INFO, ...)")
@click.pass_context
def main(ctx, log_level):
    """
    Keep git repositories cloned, on the right branch and up to date.

    \b
    Commands:
      git        Sync a single repository
      run        Sync every repository in a task file
      generate   Write a task file from repositories on disk
    """
    try:
        config = load_configuration()
        if log_level:
            config = replace(config, log_level=log_level)
    except ValueError as e:
        raise click.UsageError(str(e))

    setup_logging(config)
    ctx.obj = config


@main.command(name="git")
@click.option("--git-url", required=True, help="URL of the remote to clone or update from")
@click.option("--git-path", required=True, type=click.Path(path_type=Path), help="Directory of the repository")
@click.option("--remote", default=None, help="Name of the remote (default: origin)")
@click.option("--branch", default=None, help="Branch to check out (default: current or remote default)")
@click.option("--prune", is_flag=True, help="Delete local branches merged upstream")
@click.pass_obj
def git_cmd(config, git_url, git_path, remote, branch, prune):
    """Clone or update one repository."""
    logger = logging.getLogger('reposync.cli')
    try:
        target = RepoTarget(
            path=git_path,
            remotes=[RemoteSpec(name=remote or config.default_remote_name, fetch_url=git_url)],
            desired_branch=branch,
            prune=prune,
        )
        result = sync(target, config)
    except SyncError as e:
        click.echo(str(e), err=True)
        sys.exit(1)

    logger.info(f"{'Updated' if result.did_work else 'Nothing to do for'} {result.path}")


@main.command(name="run")
@click.argument("taskfile", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_obj
def run_cmd(config, taskfile):
    """Sync every repository listed in TASKFILE."""
    try:
        targets = load_targets(taskfile)
    except (TaskFileError, SyncError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    summary = run_tasks(targets, config)
    click.echo(
        f"{summary.status.value}: {summary.passed} updated, "
        f"{summary.skipped} unchanged, {summary.failed} failed"
    )
    if summary.status == TaskStatus.FAILED:
        sys.exit(1)


@main.command(name="generate")
@click.option("--search-path", "search_paths", multiple=True, required=True,
              type=click.Path(path_type=Path), help="Directory to search for repositories")
@click.option("--exclude", "excludes", multiple=True, help="Skip paths containing this string")
@click.option("--prune", is_flag=True, help="Set prune for every generated repository")
@click.option("--remote-order", multiple=True, help="Remote names to list first, in order")
@click.option("--output", required=True, type=click.Path(dir_okay=False, path_type=Path),
              help="Task file to write")
def generate_cmd(search_paths, excludes, prune, remote_order, output):
    """Write a task file describing repositories found on disk."""
    targets = generate_targets(search_paths, excludes, prune=prune, remote_order=remote_order)
    write_targets(targets, output)
    click.echo(f"Wrote {len(targets)} repositories to {output}")


if __name__ == "__main__":
    main()
