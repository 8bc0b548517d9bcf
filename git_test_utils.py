#!/usr/bin/env python3
"""
Helpers for building throw-away git repositories in tests.

A test usually needs a bare "remote", an author clone that pushes commits
to it, and a directory for reposync to sync into.
"""

import subprocess
from pathlib import Path
from typing import Optional

GIT_IDENTITY = [
    "-c", "user.name=Test User",
    "-c", "user.email=test@example.com",
    "-c", "commit.gpgsign=false",
    "-c", "protocol.file.allow=always",
]


def git(cwd: Path, *args: str) -> str:
    """Run git in ``cwd`` and return its stripped stdout."""
    result = subprocess.run(
        ["git", *GIT_IDENTITY, *args],
        cwd=cwd,
        capture_output=True,
        check=True,
        text=True,
    )
    return result.stdout.strip()


def create_bare_remote(path: Path, default_branch: str = "main") -> Path:
    """Create a bare repository whose HEAD points at ``default_branch``."""
    path.mkdir(parents=True, exist_ok=True)
    git(path, "init", "--bare", "--quiet")
    git(path, "symbolic-ref", "HEAD", f"refs/heads/{default_branch}")
    return path


def create_author_repo(path: Path, remote: Path, branch: str = "main") -> Path:
    """Create a working repository with ``remote`` as origin, on ``branch``."""
    path.mkdir(parents=True, exist_ok=True)
    git(path, "init", "--quiet")
    git(path, "checkout", "-b", branch)
    git(path, "remote", "add", "origin", str(remote))
    return path


def commit_file(repo: Path, name: str, content: str, message: Optional[str] = None) -> str:
    """Write ``name``, commit it and return the new commit id."""
    file_path = repo / name
    file_path.parent.mkdir(parents=True, exist_ok=True)
    file_path.write_text(content)
    git(repo, "add", name)
    git(repo, "commit", "--quiet", "-m", message or f"Update {name}")
    return rev_parse(repo, "HEAD")


def push(repo: Path, branch: str = "main", remote: str = "origin") -> None:
    """Push ``branch`` (or a ``src:dst`` refspec) to ``remote``."""
    refspec = branch if ":" in branch else f"{branch}:{branch}"
    git(repo, "push", "--quiet", remote, refspec)


def rev_parse(repo: Path, rev: str) -> str:
    return git(repo, "rev-parse", rev)


def current_branch(repo: Path) -> str:
    return git(repo, "symbolic-ref", "--short", "HEAD")


def branches(repo: Path) -> set:
    """Short names of every local branch."""
    output = git(repo, "for-each-ref", "--format=%(refname:short)", "refs/heads")
    return {line for line in output.splitlines() if line}


def seed_remote(base: Path, default_branch: str = "main"):
    """
    Create ``base/remote.git`` with one commit and an author clone at ``base/author``.

    Returns:
        Tuple of (remote path, author repo path)
    """
    remote = create_bare_remote(base / "remote.git", default_branch)
    author = create_author_repo(base / "author", remote, default_branch)
    commit_file(author, "README.md", "# Test Repository\n", "Initial commit")
    push(author, default_branch)
    return remote, author


def isolated_git_env(home: Path) -> dict:
    """
    Environment that hides the user's git configuration from a test.

    Also allows file:// transport so local submodules can be cloned.
    """
    home.mkdir(parents=True, exist_ok=True)
    return {
        "HOME": str(home),
        "XDG_CONFIG_HOME": str(home / ".config"),
        "GIT_CONFIG_NOSYSTEM": "1",
        "GIT_CONFIG_COUNT": "1",
        "GIT_CONFIG_KEY_0": "protocol.file.allow",
        "GIT_CONFIG_VALUE_0": "always",
    }
