"""Generating a task file from repositories already on disk."""

import json
import logging
import os
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Union

from git import InvalidGitRepositoryError, Repo

from .git_sync import RemoteSpec, RepoTarget
from .platform import normalize_path


def find_repos(search_paths: Iterable[Union[str, Path]], excludes: Optional[Sequence[str]] = None) -> List[Path]:
    """
    Find git working trees below the search paths.

    A directory is a working tree if it contains a ``.git`` directory. The
    walk does not descend into working trees it finds, or into any path
    containing one of the ``excludes`` strings.
    """
    logger = logging.getLogger('reposync.generate')
    excludes = list(excludes or [])
    repo_paths = []

    for search_path in search_paths:
        search_path = normalize_path(search_path)
        logger.debug(f"Searching in '{search_path}'")
        for dirpath, dirnames, _ in os.walk(search_path):
            if any(exclude in dirpath for exclude in excludes):
                dirnames[:] = []
                continue
            if os.path.isdir(os.path.join(dirpath, ".git")):
                repo_paths.append(Path(dirpath))
                dirnames[:] = []
                continue
            dirnames.sort()

    logger.debug(f"Found repo paths: {repo_paths}")
    return repo_paths


def target_from_repo(path: Path, prune: bool = False, remote_order: Sequence[str] = ()) -> Optional[RepoTarget]:
    """Describe an on-disk repository as a target, remotes in ``remote_order`` first."""
    logger = logging.getLogger('reposync.generate')
    try:
        repo = Repo(path)
    except InvalidGitRepositoryError:
        logger.warning(f"Skipping {path}: not a git repository")
        return None

    remotes = {remote.name: remote for remote in repo.remotes}
    ordered_names = [name for name in remote_order if name in remotes]
    ordered_names += [name for name in remotes if name not in ordered_names]
    if not ordered_names:
        logger.warning(f"Skipping {path}: no remotes configured")
        return None

    return RepoTarget(
        path=path,
        remotes=[RemoteSpec.from_remote(remotes[name]) for name in ordered_names],
        prune=prune,
    )


def generate_targets(
    search_paths: Iterable[Union[str, Path]],
    excludes: Optional[Sequence[str]] = None,
    prune: bool = False,
    remote_order: Sequence[str] = (),
) -> List[RepoTarget]:
    """Build a target for every repository under ``search_paths``, sorted by path."""
    targets = []
    for path in find_repos(search_paths, excludes):
        target = target_from_repo(path, prune=prune, remote_order=remote_order)
        if target is not None:
            targets.append(target)
    return sorted(targets, key=lambda target: str(target.path))


def _display_path(path: Path) -> str:
    home = Path.home()
    try:
        return f"~/{path.relative_to(home).as_posix()}"
    except ValueError:
        return str(path)


def write_targets(targets: Iterable[RepoTarget], output: Union[str, Path]) -> None:
    """Write targets as a ``{"repos": [...]}`` task file, with home shortened to ``~``."""
    repos = []
    for target in targets:
        data = target.to_dict()
        data["path"] = _display_path(target.path)
        repos.append(data)

    output = Path(output)
    output.parent.mkdir(parents=True, exist_ok=True)
    with open(output, 'w', encoding='utf-8') as f:
        json.dump({"repos": repos}, f, indent=2)
        f.write("\n")
    logging.getLogger('reposync.generate').info(f"Wrote {len(repos)} repositories to {output}")
