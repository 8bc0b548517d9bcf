"""Git repository synchronization engine for reposync."""

from .repository_sync import sync
from .repository_info import (
    RemoteSpec,
    RepoTarget,
    SyncResult,
    MergeOutcome,
    TaskStatus,
    TaskSummary,
)
from .remote_utils import RetryPolicy, RetryState

__all__ = [
    'sync',
    'RemoteSpec',
    'RepoTarget',
    'SyncResult',
    'MergeOutcome',
    'TaskStatus',
    'TaskSummary',
    'RetryPolicy',
    'RetryState',
]
