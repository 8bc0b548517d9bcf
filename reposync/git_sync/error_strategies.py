"""Remediation strategies for git fetch failures."""

import logging
from typing import Dict, List

from ..platform import get_ssh_add_hint
from .error_types import ErrorCategory, ErrorResolution, RecoveryAction


def build_error_strategies() -> Dict[ErrorCategory, ErrorResolution]:
    """Build remediation strategies for each error category."""
    return {
        ErrorCategory.NETWORK: ErrorResolution(
            category=ErrorCategory.NETWORK,
            action=RecoveryAction.RETRY,
            user_message="Network connection issue detected while fetching",
            resolution_steps=[
                "Check your internet connection",
                "Verify the remote host is reachable",
                "Try again in a few minutes",
            ],
        ),

        ErrorCategory.AUTHENTICATION: ErrorResolution(
            category=ErrorCategory.AUTHENTICATION,
            action=RecoveryAction.RETRY,
            user_message="Authentication failure while trying to fetch git repository",
            resolution_steps=[
                "If 'git clone <url>' works, you probably need to add your ssh keys to the ssh-agent.",
                get_ssh_add_hint(),
                "For https remotes check 'git config --global credential.helper'",
            ],
        ),

        ErrorCategory.REPOSITORY_ACCESS: ErrorResolution(
            category=ErrorCategory.REPOSITORY_ACCESS,
            action=RecoveryAction.USER_ACTION_REQUIRED,
            user_message="Repository not accessible - please verify the URL",
            resolution_steps=[
                "Verify the repository URL is correct",
                "Check the repository exists and you have access to it",
            ],
        ),

        ErrorCategory.UNKNOWN: ErrorResolution(
            category=ErrorCategory.UNKNOWN,
            action=RecoveryAction.USER_ACTION_REQUIRED,
            user_message="Fetch failed for an unknown reason",
            resolution_steps=[
                "Run 'git fetch' in the repository to see the full error",
            ],
        ),
    }


def build_error_patterns() -> Dict[str, ErrorCategory]:
    """Build mapping of git stderr patterns to categories, checked in order."""
    return {
        # Network errors
        "connection refused": ErrorCategory.NETWORK,
        "network is unreachable": ErrorCategory.NETWORK,
        "connection timed out": ErrorCategory.NETWORK,
        "operation timed out": ErrorCategory.NETWORK,
        "no route to host": ErrorCategory.NETWORK,
        "could not resolve host": ErrorCategory.NETWORK,
        "temporary failure in name resolution": ErrorCategory.NETWORK,
        "connection reset by peer": ErrorCategory.NETWORK,
        "the remote end hung up unexpectedly": ErrorCategory.NETWORK,

        # Authentication errors
        "authentication failed": ErrorCategory.AUTHENTICATION,
        "permission denied": ErrorCategory.AUTHENTICATION,
        "could not read username": ErrorCategory.AUTHENTICATION,
        "could not read password": ErrorCategory.AUTHENTICATION,
        "terminal prompts disabled": ErrorCategory.AUTHENTICATION,
        "host key verification failed": ErrorCategory.AUTHENTICATION,
        "invalid credentials": ErrorCategory.AUTHENTICATION,
        "returned error: 403": ErrorCategory.AUTHENTICATION,
        "returned error: 401": ErrorCategory.AUTHENTICATION,

        # Repository access errors
        "repository not found": ErrorCategory.REPOSITORY_ACCESS,
        "does not appear to be a git repository": ErrorCategory.REPOSITORY_ACCESS,
        "could not read from remote repository": ErrorCategory.REPOSITORY_ACCESS,
        "not found": ErrorCategory.REPOSITORY_ACCESS,
    }


_ERROR_PATTERNS = build_error_patterns()
_ERROR_STRATEGIES = build_error_strategies()


def categorize_error(error_message: str) -> ErrorCategory:
    """Categorize a git failure from its stderr text."""
    logger = logging.getLogger('reposync.git_sync.error_strategies')

    if not error_message:
        return ErrorCategory.UNKNOWN

    error_lower = error_message.lower()
    for pattern, category in _ERROR_PATTERNS.items():
        if pattern in error_lower:
            logger.debug(f"Categorized error as {category}: pattern '{pattern}' found")
            return category

    return ErrorCategory.UNKNOWN


def get_resolution(category: ErrorCategory) -> ErrorResolution:
    """Return the remediation strategy for a category."""
    return _ERROR_STRATEGIES[category]


def remediation_hints(category: ErrorCategory) -> List[str]:
    """User-facing remediation lines for a failure category."""
    resolution = get_resolution(category)
    return [resolution.user_message] + resolution.resolution_steps
