"""Error types for reposync repository synchronization."""

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Dict, Any, List, Optional, Union


class SyncErrorKind(Enum):
    """Kinds of hard failures that abort a repository sync."""
    DIRECTORY_CREATE_FAILED = "directory_create_failed"
    REPOSITORY_OPEN_OR_INIT_FAILED = "repository_open_or_init_failed"
    NO_REMOTES_CONFIGURED = "no_remotes_configured"
    REMOTE_NOT_FOUND = "remote_not_found"
    FETCH_FAILED = "fetch_failed"
    UNCOMMITTED_CHANGES = "uncommitted_changes"
    DIVERGED_HISTORY = "diverged_history"
    INVALID_BRANCH_REFERENCE = "invalid_branch_reference"
    NO_DEFAULT_BRANCH_RESOLVED = "no_default_branch_resolved"
    SUBMODULE_UPDATE_FAILED = "submodule_update_failed"
    PRUNE_BLOCKED_BY_DIRTY_TREE = "prune_blocked_by_dirty_tree"
    GIT_COMMAND_FAILED = "git_command_failed"


class SyncError(Exception):
    """
    A hard failure of one repository sync.

    Every kind of failure shares this class; callers match on ``kind``.
    The repository path, branch and remote involved are carried as context
    so the message can be reported without further lookups.
    """

    def __init__(
        self,
        kind: SyncErrorKind,
        message: str,
        path: Optional[Union[str, Path]] = None,
        branch: Optional[str] = None,
        remote: Optional[str] = None,
        hints: Optional[List[str]] = None,
        status: Optional[str] = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.path = Path(path) if path is not None else None
        self.branch = branch
        self.remote = remote
        self.hints = list(hints or [])
        self.status = status

    @property
    def error_code(self) -> str:
        return self.kind.name

    def __str__(self) -> str:
        parts = []
        if self.path is not None:
            parts.append(f"Failed to sync git repo at '{self.path}': {self.message}")
        else:
            parts.append(self.message)
        if self.status:
            parts.append(f"Status:\n{self.status.rstrip()}")
        parts.extend(self.hints)
        return "\n".join(parts)

    def to_dict(self) -> Dict[str, Any]:
        """Convert the error to a structured response."""
        context: Dict[str, Any] = {}
        if self.path is not None:
            context["path"] = str(self.path)
        if self.branch:
            context["branch"] = self.branch
        if self.remote:
            context["remote"] = self.remote
        if self.status:
            context["status"] = self.status
        if self.hints:
            context["hints"] = self.hints
        result = {
            "success": False,
            "error": "Repository sync failed",
            "error_code": self.error_code,
            "message": self.message,
            "timestamp": datetime.now().isoformat(),
        }
        if context:
            result["context"] = context
        return result


def uncommitted_changes(status: str, path=None, branch: Optional[str] = None) -> SyncError:
    """Build the error raised when a working tree is dirty before an overwrite."""
    return SyncError(
        SyncErrorKind.UNCOMMITTED_CHANGES,
        "Repo has uncommitted changes, refusing to update.",
        path=path,
        branch=branch,
        status=status,
    )
