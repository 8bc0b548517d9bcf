"""Patch-id computation and ``git cherry`` style merge-equivalence checks."""

import hashlib
import logging
import struct
from typing import Set

from git import Commit

from .backend import GitBackend


def _diff_path(diff) -> str:
    return diff.b_path or diff.a_path or ""


def _as_bytes(text) -> bytes:
    if text is None:
        return b""
    if isinstance(text, bytes):
        return text
    return text.encode("utf-8", errors="surrogateescape")


def patch_id(backend: GitBackend, commit: Commit) -> bytes:
    """
    Generate a patch-id for the commit.

    Diffs the commit against its first parent and hashes, file by file in
    path order, the file paths, mode flags, hunk headers and line content.
    Author, committer, timestamps, message and parent ids never enter the
    hash, so the same change cherry-picked or rebased elsewhere gets the
    same id.

    Args:
        backend: Repository the commit lives in
        commit: Commit to identify

    Returns:
        SHA-256 digest of the normalized patch
    """
    digest = hashlib.sha256()
    for diff in sorted(backend.diff(commit), key=_diff_path):
        digest.update(_as_bytes(diff.a_path))
        digest.update(b"\0")
        digest.update(_as_bytes(diff.b_path))
        digest.update(b"\0")
        flags = (diff.new_file << 2) | (diff.deleted_file << 1) | int(diff.renamed_file)
        digest.update(struct.pack(">IIB", diff.a_mode or 0, diff.b_mode or 0, flags))

        patch = _as_bytes(diff.diff)
        digest.update(patch)
        if not patch.lstrip().startswith(b"@@"):
            # Binary or mode-only change: no hunks, identify by content instead.
            digest.update(_as_bytes(diff.a_blob.hexsha if diff.a_blob else None))
            digest.update(_as_bytes(diff.b_blob.hexsha if diff.b_blob else None))
    return digest.digest()


def unmerged_commits(backend: GitBackend, upstream: Commit, head: Commit) -> bool:
    """
    Return True if there are commits that aren't in upstream but are in head.

    Finds the merge-base of ``upstream`` and ``head``, then checks whether
    every commit on ``head`` since that base has an equivalent patch among
    the commits on ``upstream`` since the base. This is what
    ``git cherry -v upstream head | grep -q '^+'`` answers, so branches
    merged by squash or rebase count as merged.

    Args:
        backend: Repository both commits live in
        upstream: Tip of the branch changes should have landed on
        head: Tip of the branch being checked

    Returns:
        True as soon as one head-side commit has no upstream equivalent
    """
    logger = logging.getLogger('reposync.git_sync.cherry')

    merge_base = backend.merge_base(upstream, head)
    logger.debug(f"Merge base of {upstream.hexsha[:8]} and {head.hexsha[:8]}: {merge_base}")

    upstream_patch_ids: Set[bytes] = set()
    for commit in backend.rev_list(upstream, merge_base):
        upstream_patch_ids.add(patch_id(backend, commit))
    logger.debug(f"Collected {len(upstream_patch_ids)} upstream patch ids")

    for commit in backend.rev_list(head, merge_base):
        if patch_id(backend, commit) not in upstream_patch_ids:
            logger.debug(f"Commit {commit.hexsha[:8]} has no equivalent upstream")
            return True

    return False
