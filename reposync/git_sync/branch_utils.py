"""Branch resolution: target branch, @{push} and @{upstream} lookups."""

import logging
from typing import Optional

from git import GitCommandError, SymbolicReference

from ..errors import SyncError, SyncErrorKind
from .backend import GitBackend
from .config_layers import LayeredConfig
from .repository_info import BranchRef, RepoTarget, shorten_branch_ref


def validate_branch_name(backend: GitBackend, short_name: str) -> None:
    """Raise INVALID_BRANCH_REFERENCE unless git accepts ``short_name`` as a branch name."""
    try:
        backend.repo.git.check_ref_format("--branch", short_name)
    except GitCommandError as e:
        raise SyncError(
            SyncErrorKind.INVALID_BRANCH_REFERENCE,
            f"'{short_name}' is not a valid branch name",
            branch=short_name,
        ) from e


def resolve_target_branch(backend: GitBackend, target: RepoTarget) -> BranchRef:
    """
    Work out which branch the repository should end up on.

    Uses the requested branch if there is one. Otherwise keeps the branch
    HEAD is on, or for a repository without commits yet, uses the branch
    the default remote's HEAD points to.

    Args:
        backend: Repository being synced
        target: Desired repository state

    Returns:
        BranchRef for the local branch
    """
    logger = logging.getLogger('reposync.git_sync.branch')
    default_remote = target.default_remote.name

    if target.desired_branch:
        short_name = shorten_branch_ref(target.desired_branch)
        logger.debug(f"Using requested branch '{short_name}'")
    elif not backend.head_is_unborn():
        if backend.head_is_detached():
            raise SyncError(
                SyncErrorKind.NO_DEFAULT_BRANCH_RESOLVED,
                "HEAD is detached and no branch was requested",
            )
        short_name = shorten_branch_ref(backend.head_branch())
        logger.debug(f"Using current branch '{short_name}'")
    else:
        short_name = remote_head_branch(backend, default_remote)
        if short_name is None:
            try:
                short_name = backend.remote_default_branch(default_remote)
            except GitCommandError as e:
                logger.debug(f"Could not ask remote '{default_remote}' for its default branch: {e}")
        if not short_name:
            raise SyncError(
                SyncErrorKind.NO_DEFAULT_BRANCH_RESOLVED,
                f"Repository has no commits and remote '{default_remote}' has no default branch",
                remote=default_remote,
            )
        logger.debug(f"Using default branch '{short_name}' of remote '{default_remote}'")

    validate_branch_name(backend, short_name)
    return BranchRef.local(short_name)


def remote_head_branch(backend: GitBackend, remote_name: str) -> Optional[str]:
    """Short name of the branch ``refs/remotes/<remote>/HEAD`` points to, if published."""
    target = backend.read_symbolic_ref(f"refs/remotes/{remote_name}/HEAD")
    if not target:
        return None
    return shorten_branch_ref(target, remote_name)


def get_push_branch(backend: GitBackend, short_name: str, git_config: LayeredConfig) -> Optional[SymbolicReference]:
    """
    Find the @{push} branch for a local branch.

    Looks up ``branch.<name>.pushRemote``, falling back to
    ``remote.pushDefault``. A push remote that isn't a configured remote
    (e.g. a raw URL written by PR checkout tooling) or a remote-tracking
    branch that doesn't exist yet both mean there is no push branch.

    Returns:
        The remote-tracking reference, or None
    """
    logger = logging.getLogger('reposync.git_sync.branch')

    push_remote = git_config.get(f"branch.{short_name}.pushRemote")
    if push_remote is None:
        push_remote = git_config.get("remote.pushDefault")
    if push_remote is None:
        logger.debug(f"Branch '{short_name}' has no push remote")
        return None

    if push_remote not in backend.remote_names():
        logger.debug(f"Push remote '{push_remote}' for branch '{short_name}' is not a configured remote")
        return None

    push_branch = backend.find_ref(BranchRef.remote(push_remote, short_name).full_name)
    if push_branch is None:
        logger.debug(f"Push branch '{push_remote}/{short_name}' does not exist")
    return push_branch


def get_upstream_branch(backend: GitBackend, short_name: str) -> Optional[SymbolicReference]:
    """
    Find the @{upstream} branch for a local branch.

    Reads ``branch.<name>.remote`` and ``branch.<name>.merge``; a remote of
    ``.`` means the upstream is another local branch.

    Returns:
        The upstream reference if configured and present, otherwise None
    """
    head = backend.find_branch(short_name)
    if head is None:
        return None

    reader = head.config_reader()
    if not (reader.has_option("remote") and reader.has_option("merge")):
        return None

    remote_name = str(reader.get("remote"))
    merge_ref = str(reader.get("merge"))
    if remote_name == ".":
        upstream_name = merge_ref
    else:
        upstream_name = BranchRef.remote(remote_name, shorten_branch_ref(merge_ref)).full_name
    return backend.find_ref(upstream_name)


def needs_checkout(backend: GitBackend, branch: BranchRef) -> bool:
    """True unless HEAD is attached to ``branch`` already."""
    logger = logging.getLogger('reposync.git_sync.branch')
    current_branch = backend.head_branch()
    if current_branch == branch.full_name:
        logger.debug(f"Already on branch: '{branch.short_name}'")
        return False
    logger.debug(f"Current branch: {current_branch}")
    return True
