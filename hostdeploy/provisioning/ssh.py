"""Initial SSH reachability probe."""

import logging

from hostdeploy.provisioning.shell import run_shell_cmd
from hostdeploy.provisioning.ssh_transport import RemoteTarget
from hostdeploy.settings import DEFAULT_CONNECT_TIMEOUT

logger = logging.getLogger(__name__)


def _failure_hint(error_text: str) -> str:
    lowered = error_text.lower()
    if "no route to host" in lowered:
        return "No route to host. Check network reachability of the server."
    if "connection timed out" in lowered or "operation timed out" in lowered:
        return "SSH timed out. Verify the server is online and port 22 is reachable."
    if "connection refused" in lowered:
        return "SSH connection refused. Confirm the SSH daemon is running and port 22 is open."
    if "permission denied" in lowered:
        return "SSH authentication failed. Verify key access for the configured user."
    if "host key verification failed" in lowered:
        return "Host key changed since the last connection. Check known_hosts."
    return ""


def probe_args(target: RemoteTarget, connect_timeout=DEFAULT_CONNECT_TIMEOUT):
    """SSH arguments for the probe.

    Unlike operational commands, the probe records the host key on first
    contact (accept-new) and refuses a changed one.
    """
    return [
        "ssh",
        "-i", target.ssh_key,
        "-o", f"ConnectTimeout={connect_timeout}",
        "-o", "BatchMode=yes",
        "-o", "StrictHostKeyChecking=accept-new",
        target.address,
        "echo 'SSH connection successful'",
    ]


async def check_ssh(target: RemoteTarget, connect_timeout=DEFAULT_CONNECT_TIMEOUT, run_local=run_shell_cmd) -> bool:
    """Single connection attempt with a bounded connect timeout.

    Returns:
        True if the server accepted the key and ran the probe command.
    """
    rc, _, stderr = await run_local(probe_args(target, connect_timeout), timeout=None, log_output=False)
    if rc == 0:
        return True

    detail = stderr.strip()
    message = f"SSH probe to {target.address} failed (exit code {rc})."
    if detail:
        message = f"{message} {detail}"
    hint = _failure_hint(detail)
    if hint:
        message = f"{message} {hint}"
    logger.error(message)
    return False
