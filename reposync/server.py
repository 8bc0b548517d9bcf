"""MCP server exposing repository sync as tools."""

import logging
import sys
from typing import Optional

from mcp.server.fastmcp import FastMCP

from .config import Config, load_configuration, validate_configuration
from .errors import SyncError, SyncErrorKind
from .git_sync import RemoteSpec, RepoTarget, sync
from .git_sync.backend import GitBackend
from .git_sync.status import parse_status
from .logging_config import setup_logging
from .platform import get_system_info, normalize_path


def sync_repository_tool(
    path: str,
    fetch_url: str,
    remote: str = "origin",
    branch: Optional[str] = None,
    prune: bool = False,
    config: Optional[Config] = None,
) -> dict:
    """Run one sync and return a JSON-friendly result."""
    try:
        target = RepoTarget(
            path=path,
            remotes=[RemoteSpec(name=remote, fetch_url=fetch_url)],
            desired_branch=branch,
            prune=prune,
        )
        result = sync(target, config)
    except SyncError as e:
        return e.to_dict()

    return {
        "success": True,
        "did_work": result.did_work,
        "path": str(result.path),
        "branch": result.branch,
        "duration": result.duration,
    }


def repository_status_tool(path: str) -> dict:
    """Report branch and porcelain status of an existing repository."""
    repo_path = normalize_path(path)
    if not (repo_path / ".git").exists():
        return SyncError(
            SyncErrorKind.REPOSITORY_OPEN_OR_INIT_FAILED,
            "Not a git repository",
            path=repo_path,
        ).to_dict()

    try:
        backend, _ = GitBackend.open_or_init(repo_path)
        entries = parse_status(backend.status())
    except SyncError as e:
        return e.to_dict()

    branch = backend.head_branch()
    return {
        "success": True,
        "path": str(repo_path),
        "branch": branch[len("refs/heads/"):] if branch else None,
        "detached": backend.head_is_detached(),
        "clean": not entries,
        "status": [entry.short_format() for entry in entries],
    }


def register_tools(server: FastMCP, server_config: Config) -> None:
    """Register MCP tools with the server instance."""

    @server.tool()
    def sync_repository(
        path: str,
        fetch_url: str,
        remote: str = "origin",
        branch: Optional[str] = None,
        prune: bool = False,
    ) -> dict:
        """
        Clone or update a git repository.

        Creates the directory and repository if needed, makes sure the
        remote exists with the given URL, checks out the branch and
        fast-forwards it. Never discards uncommitted work and never merges
        diverged history; those cases return an error instead.

        Args:
            path: Directory of the repository (~ is expanded)
            fetch_url: URL of the remote
            remote: Name of the remote
            branch: Branch to check out, default keeps the current one
            prune: Delete local branches already merged upstream

        Returns:
            Dictionary with success and did_work, or an error description
        """
        return sync_repository_tool(path, fetch_url, remote, branch, prune, server_config)

    @server.tool()
    def repository_status(path: str) -> dict:
        """
        Show the checked out branch and uncommitted changes of a repository.

        Args:
            path: Directory of the repository

        Returns:
            Dictionary with branch, clean flag and short status lines
        """
        return repository_status_tool(path)

    logging.getLogger('reposync.server').info("MCP tools registered successfully")


def initialize_server() -> FastMCP:
    """Initialize MCP server with stdio transport."""
    server_config = load_configuration()
    setup_logging(server_config)
    init_logger = logging.getLogger('reposync.server')
    init_logger.debug(f"System info: {get_system_info()}")

    validation_issues = validate_configuration(server_config)
    for issue in validation_issues:
        if issue.startswith("ERROR:"):
            init_logger.error(issue[7:])  # Remove "ERROR: " prefix
        elif issue.startswith("WARNING:"):
            init_logger.warning(issue[9:])  # Remove "WARNING: " prefix

    error_count = sum(1 for issue in validation_issues if issue.startswith("ERROR:"))
    if error_count > 0:
        init_logger.critical(f"Server startup failed due to {error_count} configuration error(s)")
        sys.exit(1)

    server = FastMCP("reposync", log_level=server_config.log_level)
    register_tools(server, server_config)
    init_logger.info("reposync MCP server initialized")
    return server


def main():
    """Entry point for the reposync MCP server."""
    server = initialize_server()
    try:
        server.run(transport="stdio")
    except KeyboardInterrupt:
        logging.getLogger('reposync.server').info("Server stopped by user (Ctrl+C)")


if __name__ == "__main__":
    main()
