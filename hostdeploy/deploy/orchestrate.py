"""Deploy orchestration: run_deploy, run_teardown, run_cleanup."""

import asyncio
import logging
import shlex

from hostdeploy.deploy.nginx import remove_site
from hostdeploy.deploy.project import BuildStrategy
from hostdeploy.result import ExitCode, FatalError
from hostdeploy.settings import DEFAULT_SETTLE_INTERVAL

logger = logging.getLogger(__name__)

_NAMES_FORMAT = "'{{.Names}}'"


def running_containers_cmd(name):
    """List running containers whose name contains name (docker's filter is a substring match)."""
    return f"docker ps --filter name={shlex.quote(name)} --format {_NAMES_FORMAT}"


async def container_running(run_cmd, name) -> bool:
    rc, stdout, _ = await run_cmd(running_containers_cmd(name), log_output=False)
    return rc == 0 and bool(stdout.strip())


async def run_teardown(run_cmd, name, remote_dir):
    """Remove the previous instance. Best effort: nothing here is fatal.

    Compose-down only covers a compose stack, and it succeeds whenever a
    compose file is present. The named single-image container is stopped
    and removed regardless of its result.
    """
    logger.info("Stopping existing containers...")
    await run_cmd(f"cd {shlex.quote(remote_dir)} && docker-compose down", log_output=False)
    await run_cmd(f"docker stop {shlex.quote(name)}", log_output=False)
    await run_cmd(f"docker rm {shlex.quote(name)}", log_output=False)


async def run_deploy(run_cmd, sync_files, name, remote_dir, strategy: BuildStrategy, app_port,
                     settle_interval=DEFAULT_SETTLE_INTERVAL):
    """Ship the workspace and (re)start the application.

    Running this twice with the same arguments converges to one running
    instance: the second run's teardown replaces what the first started.

    Args:
        run_cmd: async callable(command, timeout=None, log_output=True) -> (returncode, stdout, stderr)
        sync_files: async callable(remote_dir) -> returncode, mirrors the workspace
        name: deployment name (container, image, compose project directory)
        remote_dir: deployment directory on the server
        strategy: how the application is built
        app_port: published on the host and in the container
        settle_interval: seconds to wait before checking the container

    Raises:
        FatalError: FILE_TRANSFER, COMPOSE_DEPLOY, IMAGE_BUILD, CONTAINER_RUN
            or CONTAINER_NOT_RUNNING.
    """
    quoted_dir = shlex.quote(remote_dir)
    quoted_name = shlex.quote(name)

    if strategy is BuildStrategy.SINGLE_IMAGE and name != name.lower():
        raise FatalError(
            ExitCode.IMAGE_BUILD,
            f"Cannot tag image {name}:latest: Docker image names must be lowercase. "
            "Rename the repository to a lowercase name.",
        )

    # Step 1: Remote directory
    logger.info("Creating remote deployment directory...")
    rc, _, _ = await run_cmd(f"mkdir -p {quoted_dir}")
    if rc != 0:
        raise FatalError(ExitCode.FILE_TRANSFER, f"Failed to create {remote_dir}")

    # Step 2: Mirror workspace
    logger.info("Transferring project files...")
    rc = await sync_files(remote_dir)
    if rc != 0:
        raise FatalError(ExitCode.FILE_TRANSFER, "Failed to transfer files")

    # Step 3: Replace previous instance
    await run_teardown(run_cmd, name, remote_dir)

    # Step 4: Bring up
    if strategy is BuildStrategy.COMPOSE:
        logger.info("Building and starting with Docker Compose...")
        rc, _, _ = await run_cmd(f"cd {quoted_dir} && docker-compose up -d --build")
        if rc != 0:
            raise FatalError(ExitCode.COMPOSE_DEPLOY, "Failed to deploy with Docker Compose")
    else:
        logger.info("Building Docker image...")
        rc, _, _ = await run_cmd(f"cd {quoted_dir} && docker build -t {quoted_name}:latest .")
        if rc != 0:
            raise FatalError(ExitCode.IMAGE_BUILD, "Failed to build Docker image")

        logger.info("Running Docker container...")
        rc, _, _ = await run_cmd(
            f"docker run -d --name {quoted_name} -p {app_port}:{app_port} {quoted_name}:latest"
        )
        if rc != 0:
            raise FatalError(ExitCode.CONTAINER_RUN, "Failed to run Docker container")

    # Step 5: Fixed grace period, not a readiness probe
    if settle_interval:
        await asyncio.sleep(settle_interval)

    # Step 6: Container listed
    logger.info("Checking container status...")
    if not await container_running(run_cmd, name):
        raise FatalError(ExitCode.CONTAINER_NOT_RUNNING, "Container not running")


async def run_cleanup(run_cmd, name, remote_dir):
    """Remove the container, its image, the nginx site and the deployment directory.

    Container and image removal are best effort. Reloading nginx and
    deleting the directory must succeed.

    Raises:
        FatalError: PROXY_RELOAD or GENERAL.
    """
    quoted_dir = shlex.quote(remote_dir)
    quoted_name = shlex.quote(name)

    logger.warning("Removing deployed resources...")
    await run_cmd(f"cd {quoted_dir} && docker-compose down --rmi local", log_output=False)
    await run_cmd(f"docker stop {quoted_name}", log_output=False)
    await run_cmd(f"docker rm {quoted_name}", log_output=False)
    await run_cmd(f"docker rmi {quoted_name}:latest", log_output=False)

    await remove_site(run_cmd, name)

    rc, _, _ = await run_cmd(f"rm -rf {quoted_dir}")
    if rc != 0:
        raise FatalError(ExitCode.GENERAL, f"Failed to remove {remote_dir}")
