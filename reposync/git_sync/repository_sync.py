"""Idempotent clone-or-update of one repository."""

import logging
import time
from typing import Callable, Optional, Tuple

from git import GitCommandError

from ..config import Config
from ..errors import SyncError, SyncErrorKind
from .backend import GitBackend
from .branch_utils import get_push_branch, get_upstream_branch, needs_checkout, resolve_target_branch
from .checkout import checkout_branch
from .config_layers import LayeredConfig
from .merge import fast_forward_merge
from .prune import prune_merged_branches
from .remote_utils import RetryPolicy, configure_remote, redact_credentials
from .repository_info import RepoTarget, SyncResult
from .status import warn_for_unpushed_changes


def sync(
    target: RepoTarget,
    config: Optional[Config] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> SyncResult:
    """
    Bring the repository at ``target.path`` to the state ``target`` describes.

    Handles every starting state with the same steps: a missing directory,
    an empty directory, a fresh clone, or a repository with local
    branches. The working tree is never overwritten while it has changes,
    and branches are only ever fast-forwarded.

    Args:
        target: Desired repository state
        config: Retry and checkout settings, defaults if omitted
        sleep: Used to wait between fetch retries

    Returns:
        SyncResult whose ``did_work`` says whether anything changed

    Raises:
        SyncError: Any failure, with the repository path attached
    """
    config = config or Config()
    logger = logging.getLogger('reposync.git_sync.sync')
    start_time = time.time()

    try:
        did_work, branch = _sync(target, config, sleep)
    except SyncError as e:
        if e.path is None:
            e.path = target.path
        logger.error(f"❌ {e}")
        raise
    except GitCommandError as e:
        logger.error(f"❌ Git command failed while syncing {target.path}")
        raise SyncError(
            SyncErrorKind.GIT_COMMAND_FAILED,
            f"Git command failed: {redact_credentials(str(e))}",
            path=target.path,
        ) from e

    return SyncResult(
        did_work=did_work,
        path=target.path,
        branch=branch,
        duration=time.time() - start_time,
    )


def _sync(target: RepoTarget, config: Config, sleep: Callable[[float], None]) -> Tuple[bool, str]:
    logger = logging.getLogger('reposync.git_sync.sync')
    did_work = False

    if not target.path.is_dir():
        logger.info(f"Creating directory {target.path}")
        try:
            target.path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise SyncError(
                SyncErrorKind.DIRECTORY_CREATE_FAILED,
                f"Failed to create directory: {e}",
            ) from e
        did_work = True

    backend, newly_created = GitBackend.open_or_init(target.path)
    did_work |= newly_created
    git_config = LayeredConfig(backend.repo)

    policy = RetryPolicy.from_config(config)
    for remote in target.remotes:
        did_work |= configure_remote(backend, remote, policy, sleep=sleep)

    default_remote = target.default_remote.name
    if target.prune and not newly_created:
        did_work |= prune_merged_branches(backend, target, config.max_submodule_depth)

    branch = resolve_target_branch(backend, target)

    if newly_created or needs_checkout(backend, branch) or backend.find_branch(branch.short_name) is None:
        did_work |= checkout_branch(
            backend,
            branch,
            default_remote,
            force=newly_created,
            max_depth=config.max_submodule_depth,
        )

    candidate = get_push_branch(backend, branch.short_name, git_config)
    if candidate is None:
        candidate = get_upstream_branch(backend, branch.short_name)
    if candidate is not None:
        did_work |= fast_forward_merge(backend, branch, candidate, config.max_submodule_depth)
    else:
        logger.debug(f"Branch '{branch.short_name}' has no push or upstream branch, not merging")

    if not newly_created:
        try:
            warn_for_unpushed_changes(backend, git_config, target.path)
        except GitCommandError as e:
            logger.warning(f"⚠️ Could not check {target.path} for unpushed work: {e}")

    return did_work, branch.short_name
