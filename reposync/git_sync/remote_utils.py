"""Remote configuration, fetch with retry, and remote HEAD publishing."""

import logging
import re
import time
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

from git import GitCommandError

from ..errors import SyncError, SyncErrorKind
from .backend import GitBackend
from .error_strategies import categorize_error, get_resolution, remediation_hints
from .repository_info import RemoteSpec, shorten_branch_ref

T = TypeVar("T")

AUTH_RETRY_COUNT = 10
RETRY_SLEEP_INTERVAL = 2.0

_URL_CREDENTIALS = re.compile(r"([a-zA-Z][a-zA-Z0-9+.-]*://)[^/@\s]+@")


def redact_credentials(text: str) -> str:
    """Replace the userinfo part of any URL in ``text`` with ``***``."""
    return _URL_CREDENTIALS.sub(r"\1***@", text)


@dataclass
class RetryState:
    """Attempt counter for one fetch, shared by every call made on its behalf."""
    attempts: int = 0


@dataclass(frozen=True)
class RetryPolicy:
    """
    How often to retry fetches that fail with authentication or network errors.

    The first ``sleep_after`` attempts run back to back, later ones wait
    ``interval`` seconds. This gives an ssh-agent prompting for a key
    passphrase time to finish.
    """
    max_attempts: int = AUTH_RETRY_COUNT
    sleep_after: int = 2
    interval: float = RETRY_SLEEP_INTERVAL

    @classmethod
    def from_config(cls, config) -> "RetryPolicy":
        return cls(max_attempts=config.auth_retry_count, interval=config.retry_sleep_interval)

    def exhausted(self, state: RetryState) -> bool:
        return state.attempts >= self.max_attempts

    def delay(self, state: RetryState) -> float:
        """Seconds to wait before the next attempt."""
        return self.interval if state.attempts >= self.sleep_after else 0.0


def _stderr_text(error: GitCommandError) -> str:
    stderr = error.stderr
    if isinstance(stderr, bytes):
        stderr = stderr.decode("utf-8", errors="replace")
    return (stderr or str(error)).strip()


def run_with_retry(
    operation: Callable[[], T],
    remote_name: str,
    policy: RetryPolicy,
    state: RetryState,
    description: str = "Fetch",
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Run a network operation against a remote, retrying transient failures.

    Authentication and network failures are retried until the policy's
    attempt budget in ``state`` is spent. Anything else fails on the spot.

    Args:
        operation: Callable doing the git call
        remote_name: Remote being contacted, for messages
        policy: Retry limits
        state: Attempt counter, updated in place
        description: What the operation is, for messages
        sleep: Used to wait between attempts

    Returns:
        Whatever ``operation`` returns

    Raises:
        SyncError: FETCH_FAILED with remediation hints
    """
    logger = logging.getLogger('reposync.git_sync.remote')

    while True:
        state.attempts += 1
        try:
            return operation()
        except GitCommandError as e:
            stderr = redact_credentials(_stderr_text(e))
            category = categorize_error(stderr)
            resolution = get_resolution(category)

            if not resolution.retryable or policy.exhausted(state):
                raise SyncError(
                    SyncErrorKind.FETCH_FAILED,
                    f"{description} of remote '{remote_name}' failed after "
                    f"{state.attempts} attempt(s): {stderr}",
                    remote=remote_name,
                    hints=remediation_hints(category),
                ) from e

            delay = policy.delay(state)
            logger.warning(
                f"⚠️ {description} of remote '{remote_name}' failed ({category.value}), "
                f"attempt {state.attempts}/{policy.max_attempts}, retrying in {delay:.1f}s"
            )
            if delay:
                sleep(delay)


def set_remote_head(backend: GitBackend, remote_name: str, default_branch: str) -> bool:
    """
    Point ``refs/remotes/<remote>/HEAD`` at the remote's default branch.

    Returns:
        True if the symbolic ref was created or changed
    """
    logger = logging.getLogger('reposync.git_sync.remote')

    remote_ref = f"refs/remotes/{remote_name}/HEAD"
    remote_head = f"refs/remotes/{remote_name}/{shorten_branch_ref(default_branch)}"

    current = backend.read_symbolic_ref(remote_ref)
    if current == remote_head:
        logger.debug(f"{remote_ref} already points to {remote_head}")
        return False

    if current is not None or backend.find_ref(remote_ref) is not None:
        logger.warning(f"Overwriting {remote_ref} (was {current}) to point to {remote_head}")
    else:
        logger.info(f"Creating {remote_ref} pointing to {remote_head}")

    backend.write_symbolic_ref(remote_ref, remote_head, "reposync: set remote HEAD")
    return True


def configure_remote(
    backend: GitBackend,
    remote: RemoteSpec,
    policy: Optional[RetryPolicy] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> bool:
    """
    Make one remote match its spec, fetch it, and publish its default branch.

    Creates the remote when missing and corrects its fetch URL when it
    differs. A push URL, when given, is always written.

    Returns:
        True if anything in the repository changed
    """
    logger = logging.getLogger('reposync.git_sync.remote')
    policy = policy or RetryPolicy()
    did_work = False

    if remote.name not in backend.remote_names():
        logger.info(f"Adding remote '{remote.name}': {redact_credentials(remote.fetch_url)}")
        backend.repo.create_remote(remote.name, remote.fetch_url)
        did_work = True

    try:
        git_remote = backend.repo.remote(remote.name)
    except ValueError as e:
        raise SyncError(
            SyncErrorKind.REMOTE_NOT_FOUND,
            f"Remote '{remote.name}' not found",
            remote=remote.name,
        ) from e

    if git_remote.url != remote.fetch_url:
        logger.info(
            f"Updating fetch url of remote '{remote.name}': "
            f"{redact_credentials(git_remote.url)} -> {redact_credentials(remote.fetch_url)}"
        )
        git_remote.set_url(remote.fetch_url)
        did_work = True

    if remote.push_url:
        backend.repo.git.remote("set-url", "--push", remote.name, remote.push_url)
        did_work = True

    state = RetryState()
    logger.debug(f"Fetching remote '{remote.name}'")
    run_with_retry(lambda: backend.fetch(remote.name), remote.name, policy, state, sleep=sleep)

    default_branch = run_with_retry(
        lambda: backend.remote_default_branch(remote.name),
        remote.name,
        policy,
        state,
        description="Default branch query",
        sleep=sleep,
    )
    if default_branch:
        did_work |= set_remote_head(backend, remote.name, default_branch)
    else:
        logger.debug(f"Remote '{remote.name}' does not report a default branch")

    return did_work
