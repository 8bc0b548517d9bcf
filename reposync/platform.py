"""Cross-platform helpers for reposync."""

import os
import platform
import shutil
from enum import Enum
from pathlib import Path
from typing import Optional, Dict, Any, Union


class PlatformType(Enum):
    """Supported platform types."""
    WINDOWS = "windows"
    MACOS = "macos"
    LINUX = "linux"
    UNKNOWN = "unknown"


class PlatformInfo:
    """Platform information and utilities."""

    def __init__(self):
        """Initialize platform detection."""
        self._platform_type = self._detect_platform()

    def _detect_platform(self) -> PlatformType:
        """Detect the current platform."""
        system = platform.system().lower()

        if system == "windows":
            return PlatformType.WINDOWS
        elif system == "darwin":
            return PlatformType.MACOS
        elif system == "linux":
            return PlatformType.LINUX
        else:
            return PlatformType.UNKNOWN

    @property
    def platform_type(self) -> PlatformType:
        """Get the detected platform type."""
        return self._platform_type

    @property
    def is_windows(self) -> bool:
        return self._platform_type == PlatformType.WINDOWS

    @property
    def is_macos(self) -> bool:
        return self._platform_type == PlatformType.MACOS

    def get_platform_name(self) -> str:
        """Get human-readable platform name."""
        return self._platform_type.value


# Global platform info instance
_platform_info: Optional[PlatformInfo] = None


def get_platform_info() -> PlatformInfo:
    """Get the global platform info instance."""
    global _platform_info
    if _platform_info is None:
        _platform_info = PlatformInfo()
    return _platform_info


def normalize_path(path: Union[str, Path]) -> Path:
    """
    Normalize a path for the current platform.

    Expands ``~`` and makes the path absolute. Symlinks are left alone so
    that a repository configured at a symlinked location stays there.

    Args:
        path: Path to normalize

    Returns:
        Normalized Path object
    """
    if isinstance(path, str):
        path = Path(path)

    return Path(os.path.abspath(path.expanduser()))


def get_git_executable() -> str:
    """Get the Git executable name for the current platform."""
    if get_platform_info().is_windows:
        return "git.exe"
    return "git"


def validate_git_availability() -> tuple[bool, Optional[str]]:
    """
    Validate that Git is available on the current platform.

    Returns:
        Tuple of (is_available, error_message)
    """
    git_cmd = get_git_executable()
    if shutil.which(git_cmd) is None:
        return False, f"Git executable '{git_cmd}' not found"
    return True, None


def get_ssh_add_hint() -> str:
    """Return the ssh-add invocation that loads keys into the agent on this platform."""
    # On macOS ssh-add takes -K to store the key passphrase in the keychain.
    keychain_flag = "-K " if get_platform_info().is_macos else ""
    return (
        f"Try running 'ssh-add {keychain_flag}-A' or "
        f"'ssh-add {keychain_flag}~/.ssh/*id_{{rsa,ed25519}}'."
    )


def get_system_info() -> Dict[str, Any]:
    """Get basic system information for diagnostics."""
    info = get_platform_info()
    return {
        'platform': info.get_platform_name(),
        'release': platform.release(),
        'python_version': platform.python_version(),
        'ssh_auth_sock_set': bool(os.environ.get("SSH_AUTH_SOCK")),
    }
