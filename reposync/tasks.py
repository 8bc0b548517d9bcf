"""Loading repository targets from JSON task files."""

import json
import logging
import os
from pathlib import Path
from string import Template
from typing import Any, Dict, List, Union

from .git_sync import RemoteSpec, RepoTarget


class TaskFileError(Exception):
    """A task file could not be read or describes an invalid target."""


def expand(value: str) -> str:
    """
    Expand ``~`` and ``$VAR``/``${VAR}`` in a task file value.

    Raises:
        TaskFileError: If a variable is not set
    """
    try:
        expanded = Template(value).substitute(os.environ)
    except KeyError as e:
        raise TaskFileError(f"Environment variable {e.args[0]} is not set (in '{value}')") from e
    except ValueError as e:
        raise TaskFileError(f"Invalid variable reference in '{value}': {e}") from e
    return os.path.expanduser(expanded)


def _parse_remote(data: Dict[str, Any]) -> RemoteSpec:
    try:
        name = data["name"]
        fetch_url = data["fetch_url"]
    except (KeyError, TypeError) as e:
        raise TaskFileError(f"Remote entry needs 'name' and 'fetch_url': {data!r}") from e

    push_url = data.get("push_url")
    return RemoteSpec(
        name=expand(name),
        fetch_url=expand(fetch_url),
        push_url=expand(push_url) if push_url else None,
    )


def parse_target(data: Dict[str, Any]) -> RepoTarget:
    """Build a RepoTarget from one repository entry of a task file."""
    if not isinstance(data, dict) or "path" not in data:
        raise TaskFileError(f"Repository entry needs a 'path': {data!r}")

    remotes = [_parse_remote(remote) for remote in data.get("remotes") or []]
    if not remotes:
        raise TaskFileError(f"Repository '{data['path']}' needs at least one remote")

    branch = data.get("branch")
    return RepoTarget(
        path=Path(expand(data["path"])),
        remotes=remotes,
        desired_branch=expand(branch) if branch else None,
        prune=bool(data.get("prune", False)),
    )


def load_targets(path: Union[str, Path]) -> List[RepoTarget]:
    """
    Read every repository target from a JSON task file.

    The file holds either a list of repository entries or an object with a
    ``repos`` list. Each entry has ``path``, ``remotes`` (``name``,
    ``fetch_url``, optional ``push_url``), optional ``branch`` and optional
    ``prune``.

    Raises:
        TaskFileError: If the file can't be read or an entry is invalid
    """
    logger = logging.getLogger('reposync.tasks')
    path = Path(path)

    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except OSError as e:
        raise TaskFileError(f"Failed to read task file {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise TaskFileError(f"Task file {path} is not valid JSON: {e}") from e

    if isinstance(data, dict):
        data = data.get("repos")
    if not isinstance(data, list):
        raise TaskFileError(f"Task file {path} must contain a list of repositories or a 'repos' list")

    targets = [parse_target(entry) for entry in data]
    logger.debug(f"Loaded {len(targets)} targets from {path}")
    return targets
