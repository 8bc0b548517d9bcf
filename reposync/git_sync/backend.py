"""GitPython-backed capability layer over one on-disk repository."""

import logging
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

from git import (
    Commit,
    GitCommandError,
    Head,
    InvalidGitRepositoryError,
    NoSuchPathError,
    NULL_TREE,
    RemoteReference,
    Repo,
    SymbolicReference,
)

from ..errors import SyncError, SyncErrorKind
from .repository_info import MergeOutcome, shorten_branch_ref

# Fail fetches that need a password instead of waiting on a terminal prompt.
NON_INTERACTIVE_ENV = {"GIT_TERMINAL_PROMPT": "0"}


class GitBackend:
    """
    Capability set the sync engine needs from a git implementation.

    Wraps a GitPython ``Repo``. Where GitPython has an object API (heads,
    remote references, diffs, merge bases) it is used directly; the rest
    goes through the ``repo.git`` command proxy. One instance is owned by a
    single sync call and never shared between threads.
    """

    def __init__(self, repo: Repo):
        self.repo = repo
        self.path = Path(repo.working_tree_dir)
        self.logger = logging.getLogger('reposync.git_sync.backend')

    @classmethod
    def open_or_init(cls, path: Path) -> Tuple["GitBackend", bool]:
        """
        Open the repository at ``path``, initializing an empty one if absent.

        Returns:
            Tuple of (backend, newly_created)
        """
        logger = logging.getLogger('reposync.git_sync.backend')
        try:
            repo = Repo(path)
            newly_created = False
        except InvalidGitRepositoryError:
            logger.info(f"No git repository at {path}, initializing one")
            try:
                repo = Repo.init(path)
            except (GitCommandError, OSError) as e:
                raise SyncError(
                    SyncErrorKind.REPOSITORY_OPEN_OR_INIT_FAILED,
                    f"Failed to initialize repository: {e}",
                    path=path,
                ) from e
            newly_created = True
        except (NoSuchPathError, GitCommandError, OSError) as e:
            raise SyncError(
                SyncErrorKind.REPOSITORY_OPEN_OR_INIT_FAILED,
                f"Failed to open repository: {e}",
                path=path,
            ) from e

        if repo.bare or repo.working_tree_dir is None:
            raise SyncError(
                SyncErrorKind.REPOSITORY_OPEN_OR_INIT_FAILED,
                "Repository has no working tree",
                path=path,
            )
        return cls(repo), newly_created

    # Refs

    def find_ref(self, full_name: str) -> Optional[SymbolicReference]:
        """Return the reference if it exists and resolves to an object."""
        try:
            ref = SymbolicReference.from_path(self.repo, full_name)
        except ValueError:
            return None
        return ref if ref.is_valid() else None

    def find_branch(self, short_name: str) -> Optional[Head]:
        ref = self.find_ref(f"refs/heads/{short_name}")
        return ref if isinstance(ref, Head) else None

    def create_ref(self, short_name: str, commit: Commit, upstream: Optional[RemoteReference] = None) -> Head:
        """Create local branch ``short_name`` at ``commit``, optionally tracking ``upstream``."""
        head = self.repo.create_head(short_name, commit)
        if upstream is not None:
            head.set_tracking_branch(upstream)
        return head

    def set_ref_target(self, head: Head, commit: Commit, message: str) -> None:
        head.set_commit(commit, logmsg=message)

    def delete_branch(self, short_name: str) -> None:
        self.repo.delete_head(short_name, force=True)

    def read_symbolic_ref(self, full_name: str) -> Optional[str]:
        """Return what a symbolic ref points at, or None if it is missing or not symbolic."""
        try:
            return self.repo.git.symbolic_ref("--quiet", full_name).strip() or None
        except GitCommandError:
            return None

    def write_symbolic_ref(self, full_name: str, target: str, reason: str) -> None:
        self.repo.git.symbolic_ref("-m", reason, full_name, target)

    # HEAD

    def head_is_unborn(self) -> bool:
        return not self.repo.head.is_valid()

    def head_is_detached(self) -> bool:
        return self.repo.head.is_detached

    def head_branch(self) -> Optional[str]:
        """Full name of the branch HEAD points at (which may be unborn), None when detached."""
        if self.repo.head.is_detached:
            return None
        return self.repo.head.reference.path

    def point_head(self, full_name: str) -> None:
        self.repo.head.reference = Head(self.repo, full_name)

    def checkout_head(self) -> None:
        """
        Force index and working tree to match the commit HEAD points at.

        Tracked files absent from the new tree are removed; untracked and
        ignored files are left alone. Callers check the tree is clean first.
        """
        self.repo.git.checkout("--force")

    # Remotes

    def remote_names(self) -> List[str]:
        return [remote.name for remote in self.repo.remotes]

    def fetch(self, remote_name: str) -> None:
        """Fetch ``remote_name`` using its configured refspecs."""
        remote = self.repo.remote(remote_name)
        with self.repo.git.custom_environment(**NON_INTERACTIVE_ENV):
            remote.fetch()

    def remote_default_branch(self, remote_name: str) -> Optional[str]:
        """Ask the remote which branch its HEAD points to."""
        with self.repo.git.custom_environment(**NON_INTERACTIVE_ENV):
            output = self.repo.git.ls_remote("--symref", remote_name, "HEAD")
        for line in output.splitlines():
            # "ref: refs/heads/main\tHEAD"
            if line.startswith("ref: "):
                target = line[len("ref: "):].split("\t")[0].strip()
                return shorten_branch_ref(target)
        return None

    # History

    def commit(self, rev) -> Commit:
        return self.repo.commit(rev)

    def merge_base(self, first: Commit, second: Commit) -> Optional[Commit]:
        bases = self.repo.merge_base(first, second)
        return bases[0] if bases else None

    def rev_list(self, include: Commit, exclude: Optional[Commit]) -> Iterator[Commit]:
        """Commits reachable from ``include`` but not from ``exclude``."""
        if exclude is None:
            return self.repo.iter_commits(include.hexsha)
        return self.repo.iter_commits(f"{exclude.hexsha}..{include.hexsha}")

    def diff(self, commit: Commit) -> list:
        """Patch-format diff of ``commit`` against its first parent (or the empty tree)."""
        if commit.parents:
            return commit.parents[0].diff(commit, create_patch=True)
        return commit.diff(NULL_TREE, create_patch=True, R=True)

    def merge_analyze(self, local: Optional[Commit], candidate: Commit) -> MergeOutcome:
        """Classify how ``candidate`` relates to ``local`` without touching anything."""
        if local is None:
            # Unborn branch: anything is a fast-forward.
            return MergeOutcome.FAST_FORWARD
        if local.hexsha == candidate.hexsha or self.repo.is_ancestor(candidate, local):
            return MergeOutcome.UP_TO_DATE
        if self.repo.is_ancestor(local, candidate):
            return MergeOutcome.FAST_FORWARD
        return MergeOutcome.DIVERGED

    # Working tree

    def status(self) -> str:
        """Raw ``git status --porcelain=v2 -z`` output, ignored files excluded."""
        return self.repo.git.status(
            "--porcelain=v2", "-z", "--untracked-files=normal", "--ignore-submodules=none"
        )

    def stash_list(self) -> List[str]:
        output = self.repo.git.stash("list")
        return [line for line in output.splitlines() if line.strip()]

    def local_branches(self) -> List[Head]:
        return list(self.repo.heads)

    def remote_branches(self) -> List[RemoteReference]:
        """Every remote-tracking ref, including those of remotes no longer configured."""
        return list(RemoteReference.iter_items(self.repo))

    def submodules(self) -> list:
        return list(self.repo.submodules)

    def update_submodule(self, submodule_path: str) -> None:
        """Fetch if needed and force-checkout the commit the superproject records."""
        with self.repo.git.custom_environment(**NON_INTERACTIVE_ENV):
            self.repo.git.submodule("update", "--init", "--force", "--", submodule_path)
