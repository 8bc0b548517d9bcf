"""Working tree status, clean checks and unpushed-work warnings."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from ..errors import SyncError, SyncErrorKind, uncommitted_changes
from .backend import GitBackend
from .branch_utils import get_push_branch, get_upstream_branch
from .cherry import unmerged_commits
from .config_layers import LayeredConfig


@dataclass
class StatusEntry:
    """One changed path from ``git status --porcelain=v2``."""
    index: str
    worktree: str
    path: str
    orig_path: Optional[str] = None
    submodule: str = "N..."

    @property
    def untracked(self) -> bool:
        return self.index == "?"

    def short_format(self) -> str:
        """Render the entry like ``git status --short``, with submodule details."""
        if self.untracked:
            return f"?? {self.path}"
        if self.orig_path is not None:
            line = f"R{self.worktree} {self.orig_path} {self.path}"
        else:
            line = f"{self.index}{self.worktree} {self.path}"

        if self.submodule.startswith("S"):
            commit_changed, modified, untracked = self.submodule[1:4]
            if commit_changed == "C":
                line += " (new commits)"
            elif modified == "M":
                line += " (modified content)"
            elif untracked == "U":
                line += " (untracked content)"
        return line


def _status_code(code: str) -> str:
    return " " if code == "." else code


def parse_status(raw: str) -> List[StatusEntry]:
    """
    Parse NUL separated ``git status --porcelain=v2 -z`` output.

    Ignored entries are dropped. Untracked entries are returned after
    every tracked change.
    """
    tracked: List[StatusEntry] = []
    untracked: List[StatusEntry] = []

    fields = raw.split("\0")
    i = 0
    while i < len(fields):
        record = fields[i]
        i += 1
        if not record:
            continue

        kind = record[0]
        if kind == "1":
            # 1 XY sub mH mI mW hH hI path
            parts = record.split(" ", 8)
            tracked.append(StatusEntry(
                index=_status_code(parts[1][0]),
                worktree=_status_code(parts[1][1]),
                path=parts[8],
                submodule=parts[2],
            ))
        elif kind == "2":
            # 2 XY sub mH mI mW hH hI Xscore path, followed by the original path
            parts = record.split(" ", 9)
            orig_path = fields[i] if i < len(fields) else ""
            i += 1
            tracked.append(StatusEntry(
                index=_status_code(parts[1][0]),
                worktree=_status_code(parts[1][1]),
                path=parts[9],
                orig_path=orig_path,
                submodule=parts[2],
            ))
        elif kind == "u":
            # u XY sub m1 m2 m3 mW h1 h2 h3 path
            parts = record.split(" ", 10)
            tracked.append(StatusEntry(
                index=parts[1][0],
                worktree=parts[1][1],
                path=parts[10],
                submodule=parts[2],
            ))
        elif kind == "?":
            untracked.append(StatusEntry(index="?", worktree="?", path=record[2:]))

    return tracked + untracked


def dirty_summary(backend: GitBackend) -> str:
    """Short-format status lines, empty when the working tree is clean."""
    return "".join(f"{entry.short_format()}\n" for entry in parse_status(backend.status()))


def is_clean(backend: GitBackend) -> bool:
    return not dirty_summary(backend)


def ensure_clean(backend: GitBackend, branch: Optional[str] = None) -> None:
    """Raise UNCOMMITTED_CHANGES if the working tree or index has changes."""
    status = dirty_summary(backend)
    if status:
        raise uncommitted_changes(status, branch=branch)


def ensure_clean_for_prune(backend: GitBackend) -> None:
    status = dirty_summary(backend)
    if status:
        raise SyncError(
            SyncErrorKind.PRUNE_BLOCKED_BY_DIRTY_TREE,
            "Cannot prune branches while there are uncommitted changes",
            status=status,
        )


def warn_for_unpushed_changes(backend: GitBackend, git_config: LayeredConfig, path: Path) -> None:
    """
    Log warnings for local work that exists nowhere else.

    Covers uncommitted changes, stashes, branches with commits missing
    from their push or upstream branch, branches with neither, and
    branches that look like forks. Only logs, never raises for findings.
    """
    logger = logging.getLogger('reposync.git_sync.status')

    status = dirty_summary(backend)
    if status:
        logger.warning(f"⚠️ Uncommitted changes in {path}:\n{status.rstrip()}")

    stashes = backend.stash_list()
    if stashes:
        logger.warning(f"⚠️ {len(stashes)} stash(es) in {path}:\n" + "\n".join(stashes))

    for head in backend.local_branches():
        name = head.name
        push_branch = get_push_branch(backend, name, git_config)
        if push_branch is not None:
            if unmerged_commits(backend, push_branch.commit, head.commit):
                logger.warning(f"⚠️ Branch '{name}' has commits not pushed to '{push_branch.name}' in {path}")
            continue

        upstream = get_upstream_branch(backend, name)
        if upstream is not None:
            if unmerged_commits(backend, upstream.commit, head.commit):
                logger.warning(f"⚠️ Branch '{name}' has commits not merged into '{upstream.name}' in {path}")
            continue

        logger.warning(f"⚠️ Branch '{name}' has no push or upstream branch in {path}")

    fork_branches = [ref.name for ref in backend.remote_branches() if is_fork_branch(ref.name)]
    if fork_branches:
        logger.warning(f"⚠️ Remote branches that look like forks in {path}: " + ", ".join(fork_branches))


def is_fork_branch(name: str) -> bool:
    """Remote branches named like ``*fork*``, except ``forkmain`` and HEAD refs."""
    return "fork" in name and "HEAD" not in name and "forkmain" not in name
