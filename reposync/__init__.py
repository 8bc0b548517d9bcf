"""
reposync - bring developer-machine git checkouts into a desired state.

This package clones or updates git repositories in place, fast-forwarding
them onto their tracking branches without ever discarding unpushed work,
and prunes local branches whose changes have already landed upstream.
"""

__version__ = "1.0.0"
__author__ = "reposync developers"
__description__ = "Idempotent git repository synchronization for developer machines"

from .git_sync import sync, RepoTarget, RemoteSpec, SyncResult
from .errors import SyncError, SyncErrorKind

__all__ = ["sync", "RepoTarget", "RemoteSpec", "SyncResult", "SyncError", "SyncErrorKind"]
