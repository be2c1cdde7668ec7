"""Remote server provisioning: install Docker, docker-compose and nginx."""

import logging
from dataclasses import dataclass

from hostdeploy.result import ExitCode, FatalError

logger = logging.getLogger(__name__)

COMPOSE_RELEASE_URL = (
    "https://github.com/docker/compose/releases/latest/download/docker-compose-$(uname -s)-$(uname -m)"
)


@dataclass(frozen=True)
class Package:
    """A tool the server needs, how to detect it, and how to install it."""

    label: str
    probe: str
    install: str
    failure_code: ExitCode


def required_packages(ssh_user):
    return [
        Package(
            label="Docker",
            probe="command -v docker",
            install=(
                "curl -fsSL https://get.docker.com -o get-docker.sh"
                " && sudo sh get-docker.sh"
                f" && sudo usermod -aG docker {ssh_user}"
                " && rm get-docker.sh"
            ),
            failure_code=ExitCode.ENGINE_INSTALL,
        ),
        Package(
            label="Docker Compose",
            probe="command -v docker-compose",
            install=(
                f'sudo curl -L "{COMPOSE_RELEASE_URL}" -o /usr/local/bin/docker-compose'
                " && sudo chmod +x /usr/local/bin/docker-compose"
            ),
            failure_code=ExitCode.COMPOSE_INSTALL,
        ),
        Package(
            label="Nginx",
            probe="command -v nginx",
            install=(
                "sudo apt-get install -y nginx"
                " && sudo systemctl enable nginx"
                " && sudo systemctl start nginx"
            ),
            failure_code=ExitCode.PROXY_INSTALL,
        ),
    ]


async def ensure_package(run_cmd, package: Package) -> bool:
    """Install package unless its probe succeeds.

    Returns:
        True if an install ran, False if the package was already present.

    Raises:
        FatalError: with the package's own exit code if the install fails.
    """
    rc, _, _ = await run_cmd(package.probe, log_output=False)
    if rc == 0:
        logger.info(f"{package.label} already installed")
        return False

    logger.info(f"Installing {package.label}...")
    rc, _, _ = await run_cmd(package.install)
    if rc != 0:
        raise FatalError(package.failure_code, f"Failed to install {package.label}")
    return True


async def report_versions(run_cmd):
    """Log installed versions. Informational only."""
    for label, command in (
        ("Docker", "docker --version"),
        ("Docker Compose", "docker-compose --version"),
        ("Nginx", "nginx -v"),
    ):
        rc, stdout, stderr = await run_cmd(command, log_output=False)
        # nginx -v prints to stderr
        version = (stdout.strip() or stderr.strip()) if rc == 0 else "unavailable"
        logger.info(f"{label} version: {version}")


async def provision_remote(run_cmd, ssh_user) -> list[str]:
    """Ensure the remote server is ready for deployment.

    Steps (each checks before installing):
    1. Refresh the package index (advisory)
    2. Install Docker if not found
    3. Install docker-compose if not found
    4. Install and start nginx if not found
    5. Report versions

    Returns:
        Advisory warnings.

    Raises:
        FatalError: ENGINE_INSTALL, COMPOSE_INSTALL or PROXY_INSTALL.
    """
    warnings = []

    logger.info("Updating system packages...")
    rc, _, _ = await run_cmd("sudo apt-get update -y")
    if rc != 0:
        warnings.append("Package update failed")
        logger.warning("Package update failed")

    for package in required_packages(ssh_user):
        await ensure_package(run_cmd, package)

    logger.info("Verifying installations...")
    await report_versions(run_cmd)
    return warnings
