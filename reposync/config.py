"""Configuration management for reposync."""

import os
import logging
from dataclasses import dataclass, field
from typing import List

from dotenv import load_dotenv

from .platform import validate_git_availability

load_dotenv()  # Load .env file if it exists


def _default_worker_count() -> int:
    return os.cpu_count() or 4


@dataclass
class Config:
    """Configuration class for reposync with validation and defaults."""

    # Logging
    log_level: str = "INFO"

    # Fetch authentication retries
    auth_retry_count: int = 10
    retry_sleep_interval: float = 2.0

    # Checkout
    max_submodule_depth: int = 16

    # Scheduler
    slow_sync_threshold: float = 60.0
    worker_count: int = field(default_factory=_default_worker_count)

    # Remote name used by the single-repository CLI when none is given
    default_remote_name: str = "origin"

    def __post_init__(self):
        """Validate configuration after initialization."""
        valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        self.log_level = self.log_level.upper()
        if self.log_level not in valid_log_levels:
            raise ValueError(f"Invalid log level: {self.log_level}. Must be one of {valid_log_levels}")

        if self.auth_retry_count < 1:
            raise ValueError("auth_retry_count must be at least 1")

        if self.retry_sleep_interval < 0:
            raise ValueError("retry_sleep_interval must be non-negative")

        if self.max_submodule_depth < 1:
            raise ValueError("max_submodule_depth must be at least 1")

        if self.slow_sync_threshold <= 0:
            raise ValueError("slow_sync_threshold must be positive")

        if self.worker_count <= 0:
            raise ValueError("worker_count must be positive")

        if not self.default_remote_name:
            raise ValueError("default_remote_name must not be empty")


def load_configuration() -> Config:
    """Load configuration from REPOSYNC_* environment variables."""
    try:
        return Config(
            log_level=os.getenv("REPOSYNC_LOG_LEVEL", "INFO"),
            auth_retry_count=int(os.getenv("REPOSYNC_AUTH_RETRY_COUNT", "10")),
            retry_sleep_interval=float(os.getenv("REPOSYNC_RETRY_SLEEP_INTERVAL", "2.0")),
            max_submodule_depth=int(os.getenv("REPOSYNC_MAX_SUBMODULE_DEPTH", "16")),
            slow_sync_threshold=float(os.getenv("REPOSYNC_SLOW_SYNC_THRESHOLD", "60.0")),
            worker_count=int(os.getenv("REPOSYNC_WORKER_COUNT", str(_default_worker_count()))),
            default_remote_name=os.getenv("REPOSYNC_DEFAULT_REMOTE", "origin"),
        )
    except (ValueError, TypeError) as e:
        raise ValueError(f"Configuration error: {e}")


def validate_configuration(config: Config) -> List[str]:
    """Validate configuration and the environment, returning ERROR:/WARNING: strings."""
    errors = []

    git_available, git_error = validate_git_availability()
    if not git_available:
        errors.append(f"ERROR: {git_error}")

    if config.auth_retry_count < 3:
        errors.append("WARNING: Low auth_retry_count may fail fetches while the ssh-agent is still unlocking keys")

    if config.worker_count > 64:
        errors.append("WARNING: High worker_count may exhaust file descriptors or remote rate limits")

    if not os.environ.get("SSH_AUTH_SOCK"):
        logging.getLogger('reposync.config').debug("SSH_AUTH_SOCK is not set, ssh remotes may fail to authenticate")

    return errors
