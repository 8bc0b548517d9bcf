"""Deletion of local branches whose work has landed upstream."""

import logging
from typing import List, Optional, Set

from git import Head

from ..errors import SyncError, SyncErrorKind
from .backend import GitBackend
from .branch_utils import get_upstream_branch, remote_head_branch
from .checkout import MAX_SUBMODULE_DEPTH, checkout_branch
from .cherry import unmerged_commits
from .repository_info import BranchRef, RepoTarget, shorten_branch_ref
from .status import ensure_clean_for_prune


def find_prunable_branches(backend: GitBackend, protected: Set[str]) -> List[Head]:
    """
    Local branches that can be deleted without losing work.

    A branch qualifies when no remote-tracking branch of any remote has
    its name, it has an upstream, and every commit on it has an
    equivalent patch in that upstream. Branches in ``protected`` never
    qualify.
    """
    logger = logging.getLogger('reposync.git_sync.prune')

    remote_branch_names = [ref.name for ref in backend.remote_branches()]
    prunable = []
    for head in backend.local_branches():
        name = head.name
        if name in protected:
            logger.debug(f"Not pruning protected branch '{name}'")
            continue
        if any(remote_name.endswith(f"/{name}") for remote_name in remote_branch_names):
            continue

        upstream = get_upstream_branch(backend, name)
        if upstream is None:
            logger.debug(f"Not pruning '{name}': no upstream branch")
            continue
        if unmerged_commits(backend, upstream.commit, head.commit):
            logger.debug(f"Not pruning '{name}': has commits not in '{upstream.name}'")
            continue

        prunable.append(head)
    return prunable


def prune_merged_branches(
    backend: GitBackend,
    target: RepoTarget,
    max_depth: int = MAX_SUBMODULE_DEPTH,
) -> bool:
    """
    Delete local branches that were merged and removed upstream.

    The branch the default remote's HEAD points to and the requested
    branch are never deleted. If HEAD is on a branch being deleted, the
    default remote's HEAD branch is checked out first.

    Returns:
        True if any branch was deleted
    """
    logger = logging.getLogger('reposync.git_sync.prune')

    default_remote = target.default_remote.name
    default_branch = remote_head_branch(backend, default_remote)
    protected = {default_branch}
    if target.desired_branch:
        protected.add(shorten_branch_ref(target.desired_branch))
    protected.discard(None)

    prunable = find_prunable_branches(backend, protected)
    if not prunable:
        logger.debug("Nothing to prune.")
        return False

    ensure_clean_for_prune(backend)

    for head in prunable:
        if backend.head_branch() == head.path:
            move_off_branch(backend, head, default_branch, default_remote, max_depth)
        delete_branch(backend, head)
    return True


def move_off_branch(
    backend: GitBackend,
    head: Head,
    default_branch: Optional[str],
    default_remote: str,
    max_depth: int,
) -> None:
    if default_branch is None:
        raise SyncError(
            SyncErrorKind.NO_DEFAULT_BRANCH_RESOLVED,
            f"Cannot prune checked out branch '{head.name}': "
            f"remote '{default_remote}' has no default branch to switch to",
            branch=head.name,
            remote=default_remote,
        )
    checkout_branch(backend, BranchRef.local(default_branch), default_remote, force=False, max_depth=max_depth)


def delete_branch(backend: GitBackend, head: Head) -> None:
    logger = logging.getLogger('reposync.git_sync.prune')
    logger.warning(f"Deleting '{head.path}' branch '{head.name}', was at '{head.commit.hexsha}'")
    backend.delete_branch(head.name)
