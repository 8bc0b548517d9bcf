"""Error categorization types for git fetch failures."""

from dataclasses import dataclass
from enum import Enum
from typing import List


class ErrorCategory(Enum):
    """Categories of fetch failures for appropriate handling."""
    NETWORK = "network"
    AUTHENTICATION = "authentication"
    REPOSITORY_ACCESS = "repository_access"
    UNKNOWN = "unknown"


class RecoveryAction(Enum):
    """What the fetch loop does after a failure of a given category."""
    RETRY = "retry"
    USER_ACTION_REQUIRED = "user_action_required"


@dataclass
class ErrorResolution:
    """Information about how to resolve a specific fetch failure."""
    category: ErrorCategory
    action: RecoveryAction
    user_message: str
    resolution_steps: List[str]

    @property
    def retryable(self) -> bool:
        return self.action == RecoveryAction.RETRY
