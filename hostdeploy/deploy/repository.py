"""Repository stage: clone or update the application source in the workspace."""

import logging
import os
from urllib.parse import urlsplit, urlunsplit

from hostdeploy.provisioning.shell import run_shell_cmd
from hostdeploy.result import ExitCode, FatalError

logger = logging.getLogger(__name__)

# Hosts that accept a bare token in the URL authority.
TOKEN_HOSTS = ("github.com",)


def authenticated_url(repo_url: str, token: str) -> str:
    """Embed token into the URL authority for recognized hosts only."""
    parts = urlsplit(repo_url)
    host = parts.hostname or ""
    if not token or not any(host == h or host.endswith(f".{h}") for h in TOKEN_HOSTS):
        return repo_url
    netloc = parts.netloc.rsplit("@", 1)[-1]
    return urlunsplit((parts.scheme, f"{token}@{netloc}", parts.path, parts.query, parts.fragment))


async def fetch_repository(repo_url, token, branch, dest, run_local=run_shell_cmd) -> str:
    """Produce a checkout of branch at dest.

    An existing checkout at dest is updated with ``git pull``; otherwise the
    branch is cloned (full history).

    Returns:
        dest

    Raises:
        FatalError: CLONE_FAILED or WORKSPACE_NAVIGATION.
    """
    dest = str(dest)
    if os.path.isdir(os.path.join(dest, ".git")):
        logger.info("Repository already exists, pulling latest changes...")
        rc, _, stderr = await run_local(["git", "-C", dest, "pull", "origin", branch])
        if rc != 0:
            raise FatalError(ExitCode.CLONE_FAILED, f"Failed to pull repository: {stderr.strip()}")
    else:
        logger.info("Cloning repository...")
        auth_url = authenticated_url(repo_url, token)
        rc, _, stderr = await run_local(["git", "clone", "-b", branch, auth_url, dest])
        if rc != 0:
            raise FatalError(ExitCode.CLONE_FAILED, f"Failed to clone repository: {stderr.strip()}")

    if not os.path.isdir(dest):
        raise FatalError(ExitCode.WORKSPACE_NAVIGATION, f"Failed to navigate to repository at {dest}")

    logger.info(f"Repository ready at: {dest}")
    return dest
