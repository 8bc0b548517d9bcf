"""Data structures describing a repository sync target and its outcome."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional

from ..errors import SyncError, SyncErrorKind
from ..platform import normalize_path


@dataclass(frozen=True)
class RemoteSpec:
    """A git remote the target repository must have."""
    name: str
    fetch_url: str
    push_url: Optional[str] = None

    @classmethod
    def from_remote(cls, remote) -> "RemoteSpec":
        """Create a spec from an existing GitPython remote."""
        reader = remote.config_reader
        fetch_url = reader.get("url")
        push_url = reader.get("pushurl") if reader.has_option("pushurl") else None
        if push_url == fetch_url:
            push_url = None
        return cls(name=remote.name, fetch_url=fetch_url, push_url=push_url)

    def to_dict(self) -> dict:
        data = {"name": self.name, "fetch_url": self.fetch_url}
        if self.push_url:
            data["push_url"] = self.push_url
        return data


@dataclass(frozen=True)
class RepoTarget:
    """
    Desired state of one on-disk repository.

    ``remotes[0]`` is the default remote: it supplies the default branch of
    a freshly created repository and the start point of new local branches.
    """
    path: Path
    remotes: List[RemoteSpec]
    desired_branch: Optional[str] = None
    prune: bool = False

    def __post_init__(self):
        if not self.remotes:
            raise SyncError(
                SyncErrorKind.NO_REMOTES_CONFIGURED,
                "Must specify at least one remote.",
                path=self.path,
            )
        object.__setattr__(self, "path", normalize_path(self.path))
        object.__setattr__(self, "remotes", list(self.remotes))

    @property
    def default_remote(self) -> RemoteSpec:
        return self.remotes[0]

    def to_dict(self) -> dict:
        data = {
            "path": str(self.path),
            "remotes": [remote.to_dict() for remote in self.remotes],
        }
        if self.desired_branch:
            data["branch"] = self.desired_branch
        data["prune"] = self.prune
        return data


@dataclass(frozen=True)
class BranchRef:
    """A branch reference in both its fully qualified and short forms."""
    full_name: str
    short_name: str

    @classmethod
    def local(cls, short_name: str) -> "BranchRef":
        short_name = shorten_branch_ref(short_name)
        return cls(full_name=f"refs/heads/{short_name}", short_name=short_name)

    @classmethod
    def remote(cls, remote_name: str, short_name: str) -> "BranchRef":
        return cls(
            full_name=f"refs/remotes/{remote_name}/{short_name}",
            short_name=f"{remote_name}/{short_name}",
        )

    def __str__(self) -> str:
        return self.short_name


def shorten_branch_ref(branch: str, remote_name: Optional[str] = None) -> str:
    """
    Remove the leading ``refs/heads/`` or ``refs/remotes/`` from a branch.

    When ``remote_name`` is given the ``<remote>/`` prefix is removed too,
    e.g. ``refs/remotes/up/master`` -> ``master``.
    """
    short_branch = branch
    if short_branch.startswith("refs/heads/"):
        short_branch = short_branch[len("refs/heads/"):]
    elif short_branch.startswith("refs/remotes/"):
        short_branch = short_branch[len("refs/remotes/"):]
    if remote_name and short_branch.startswith(f"{remote_name}/"):
        short_branch = short_branch[len(remote_name) + 1:]
    return short_branch


class MergeOutcome(Enum):
    """Result of merge analysis between a local branch and a candidate commit."""
    FAST_FORWARD = "fast_forward"     # Local is a strict ancestor of the candidate
    UP_TO_DATE = "up_to_date"         # Candidate is already contained in local
    DIVERGED = "diverged"             # Neither contains the other


@dataclass
class SyncResult:
    """Result of one repository sync."""
    did_work: bool
    path: Optional[Path] = None
    branch: Optional[str] = None
    duration: Optional[float] = None


class TaskStatus(Enum):
    """Aggregate status of a batch of syncs."""
    PASSED = "passed"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class TaskSummary:
    """Outcome of running many syncs."""
    status: TaskStatus
    results: List[SyncResult] = field(default_factory=list)
    errors: List[SyncError] = field(default_factory=list)

    @property
    def passed(self) -> int:
        return sum(1 for result in self.results if result.did_work)

    @property
    def skipped(self) -> int:
        return sum(1 for result in self.results if not result.did_work)

    @property
    def failed(self) -> int:
        return len(self.errors)
