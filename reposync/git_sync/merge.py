"""Fast-forward-only merge of a local branch onto its push or upstream branch."""

import logging

from git import SymbolicReference

from ..errors import SyncError, SyncErrorKind
from .backend import GitBackend
from .checkout import MAX_SUBMODULE_DEPTH, force_checkout_head
from .repository_info import BranchRef, MergeOutcome
from .status import ensure_clean


def fast_forward_merge(
    backend: GitBackend,
    branch: BranchRef,
    candidate: SymbolicReference,
    max_depth: int = MAX_SUBMODULE_DEPTH,
) -> bool:
    """
    Fast-forward ``branch`` to ``candidate`` if that needs no merge commit.

    Diverged history is an error, never a merge. The working tree must be
    clean before the branch is moved.

    Returns:
        True if the branch was moved or created
    """
    logger = logging.getLogger('reposync.git_sync.merge')

    candidate_commit = candidate.commit
    head = backend.find_branch(branch.short_name)
    local_commit = head.commit if head is not None else None

    outcome = backend.merge_analyze(local_commit, candidate_commit)
    logger.debug(f"Merge analysis of {branch.short_name} against {candidate.name}: {outcome.value}")

    if outcome == MergeOutcome.DIVERGED:
        raise SyncError(
            SyncErrorKind.DIVERGED_HISTORY,
            f"Branch '{branch.short_name}' has diverged from '{candidate.name}' "
            f"({candidate_commit.hexsha[:8]}), refusing to merge. Rebase or reset it by hand.",
            branch=branch.short_name,
        )

    if outcome == MergeOutcome.UP_TO_DATE:
        logger.debug(f"Branch '{branch.short_name}' is up to date with '{candidate.name}'")
        return False

    ensure_clean(backend, branch=branch.short_name)

    if head is not None:
        message = f"Fast-Forward: Setting {branch.full_name} to id: {candidate_commit.hexsha}"
        logger.info(message)
        backend.set_ref_target(head, candidate_commit, message)
    else:
        logger.info(f"Creating {branch.full_name} at {candidate_commit.hexsha}")
        backend.create_ref(branch.short_name, candidate_commit)

    backend.point_head(branch.full_name)
    force_checkout_head(backend, max_depth)
    return True
