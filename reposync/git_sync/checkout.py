"""Branch checkout with a clean-tree precondition and recursive submodule update."""

import logging
from typing import List, Tuple

from git import GitCommandError, InvalidGitRepositoryError, NoSuchPathError

from ..errors import SyncError, SyncErrorKind
from .backend import GitBackend
from .repository_info import BranchRef
from .status import ensure_clean

MAX_SUBMODULE_DEPTH = 16


def update_submodules(backend: GitBackend, max_depth: int = MAX_SUBMODULE_DEPTH) -> None:
    """
    Initialize and force-checkout every submodule, then theirs, and so on.

    Walks the submodule tree with an explicit stack of
    ``(repository, path from the top-level repository)`` pairs.

    Raises:
        SyncError: SUBMODULE_UPDATE_FAILED on any failure or if nesting
            goes deeper than ``max_depth``
    """
    logger = logging.getLogger('reposync.git_sync.checkout')

    stack: List[Tuple[GitBackend, Tuple[str, ...]]] = [(backend, ())]
    while stack:
        parent, parent_path = stack.pop()
        for submodule in parent.submodules():
            submodule_path = parent_path + (submodule.path,)
            display_path = "/".join(submodule_path)
            if len(submodule_path) > max_depth:
                raise SyncError(
                    SyncErrorKind.SUBMODULE_UPDATE_FAILED,
                    f"Submodule '{display_path}' is nested deeper than {max_depth} levels",
                )

            logger.debug(f"Updating submodule '{display_path}'")
            try:
                parent.update_submodule(submodule.path)
                child = GitBackend(submodule.module())
            except (GitCommandError, InvalidGitRepositoryError, NoSuchPathError, ValueError) as e:
                raise SyncError(
                    SyncErrorKind.SUBMODULE_UPDATE_FAILED,
                    f"Failed to update submodule '{display_path}': {e}",
                ) from e
            stack.append((child, submodule_path))


def force_checkout_head(backend: GitBackend, max_depth: int = MAX_SUBMODULE_DEPTH) -> None:
    """Make the working tree, index and submodules match the commit HEAD points at."""
    backend.checkout_head()
    update_submodules(backend, max_depth)


def checkout_branch(
    backend: GitBackend,
    branch: BranchRef,
    default_remote: str,
    force: bool = False,
    max_depth: int = MAX_SUBMODULE_DEPTH,
) -> bool:
    """
    Check out a local branch, creating it from the default remote if needed.

    A missing local branch is created at ``refs/remotes/<default_remote>/<branch>``
    with that as its upstream. Unless ``force`` is set, nothing is
    overwritten while the working tree has changes. ``force`` is only
    used for repositories this sync just created.

    Args:
        backend: Repository being synced
        branch: Local branch to end up on
        default_remote: Remote new branches start from
        force: Skip the clean-tree check and always check out
        max_depth: Submodule nesting limit

    Returns:
        True if HEAD or the working tree was changed
    """
    logger = logging.getLogger('reposync.git_sync.checkout')

    head = backend.find_branch(branch.short_name)
    if head is None:
        remote_branch = BranchRef.remote(default_remote, branch.short_name)
        remote_ref = backend.find_ref(remote_branch.full_name)
        if remote_ref is None:
            raise SyncError(
                SyncErrorKind.INVALID_BRANCH_REFERENCE,
                f"Branch '{branch.short_name}' exists neither locally nor as '{remote_branch}'",
                branch=branch.short_name,
                remote=default_remote,
            )
        logger.info(f"Branch {branch.short_name} doesn't exist, creating it from {remote_branch}")
        backend.create_ref(branch.short_name, remote_ref.commit, upstream=remote_ref)
    elif not force and not backend.head_is_detached() and backend.head_branch() == branch.full_name:
        logger.debug(f"Already on branch '{branch.short_name}'")
        return False

    if not force:
        ensure_clean(backend, branch=branch.short_name)

    logger.info(f"Checking out branch '{branch.short_name}'")
    backend.point_head(branch.full_name)
    force_checkout_head(backend, max_depth)
    return True
