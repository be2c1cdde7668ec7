"""Post-deploy validation: services active, container present, endpoints reachable."""

import asyncio
import logging
import shlex

import httpx

from hostdeploy.deploy.orchestrate import container_running
from hostdeploy.result import ExitCode, FatalError
from hostdeploy.settings import DEFAULT_EXTERNAL_PROBE_DELAY

logger = logging.getLogger(__name__)

EXTERNAL_PROBE_TIMEOUT = 10


async def probe_external(url, timeout=EXTERNAL_PROBE_TIMEOUT) -> bool:
    """GET url from this machine; True on any 2xx/3xx answer."""
    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            response = await client.get(url)
    except httpx.HTTPError as e:
        logger.debug(f"External probe {url} failed: {e}")
        return False
    return response.status_code < 400


async def _missing_services(run_cmd, remote_dir, services):
    rc, stdout, _ = await run_cmd(
        f"cd {shlex.quote(remote_dir)} && docker-compose ps --services --filter status=running",
        log_output=False,
    )
    if rc != 0:
        return list(services)
    running = {line.strip() for line in stdout.splitlines() if line.strip()}
    return [s for s in services if s not in running]


async def validate_deployment(run_cmd, name, server, app_port, remote_dir=None, services=(),
                              probe_delay=DEFAULT_EXTERNAL_PROBE_DELAY, http_probe=probe_external) -> list[str]:
    """Check the deployment end to end.

    Docker active, the container listed and nginx active are required.
    Compose services, the local endpoint and the external endpoint only
    produce warnings: external reachability can lag behind firewall or DNS
    changes.

    Returns:
        Advisory warnings.

    Raises:
        FatalError: ENGINE_NOT_ACTIVE, CONTAINER_MISSING or PROXY_NOT_ACTIVE.
    """
    warnings = []

    logger.info("Checking Docker service...")
    rc, _, _ = await run_cmd("sudo systemctl is-active docker")
    if rc != 0:
        raise FatalError(ExitCode.ENGINE_NOT_ACTIVE, "Docker service not running")

    logger.info("Checking container health...")
    if not await container_running(run_cmd, name):
        raise FatalError(ExitCode.CONTAINER_MISSING, "Container not found")

    logger.info("Checking Nginx status...")
    rc, _, _ = await run_cmd("sudo systemctl is-active nginx")
    if rc != 0:
        raise FatalError(ExitCode.PROXY_NOT_ACTIVE, "Nginx not running")

    if services and remote_dir:
        logger.info("Checking compose services...")
        missing = await _missing_services(run_cmd, remote_dir, services)
        if missing:
            warnings.append(f"Compose services not running: {', '.join(missing)}")

    logger.info("Testing local endpoint...")
    rc, _, _ = await run_cmd(
        f"curl -f -s -o /dev/null http://localhost:{app_port} || curl -f -s -o /dev/null http://localhost",
        log_output=False,
    )
    if rc != 0:
        warnings.append("Local endpoint test failed")

    logger.info("Testing external endpoint...")
    if probe_delay:
        await asyncio.sleep(probe_delay)
    url = f"http://{server}"
    if await http_probe(url):
        logger.info(f"External endpoint accessible at {url}")
    else:
        warnings.append("External endpoint may not be accessible yet. Check firewall rules.")

    for warning in warnings:
        logger.warning(warning)
    return warnings
