"""SSH transport: run commands and mirror directories on the remote server."""

import logging
import shlex
from dataclasses import dataclass

from hostdeploy.provisioning.shell import run_shell_cmd

logger = logging.getLogger(__name__)

# Host-key verification is relaxed for operational commands; the first
# contact goes through the reachability probe in ssh.py.
_SSH_OPTIONS = [
    "-o", "StrictHostKeyChecking=no",
    "-o", "UserKnownHostsFile=/dev/null",
    "-o", "BatchMode=yes",
    "-o", "ServerAliveInterval=60",
    "-o", "ServerAliveCountMax=5",
]


@dataclass(frozen=True)
class RemoteTarget:
    """Fixed (host, user, key) every remote command of a run is sent to."""

    host: str
    user: str
    ssh_key: str

    @property
    def address(self) -> str:
        """SSH address string (user@host)."""
        return f"{self.user}@{self.host}"


def ssh_base_args(target: RemoteTarget):
    """Build base SSH arguments for operational commands."""
    return ["ssh", "-i", target.ssh_key, *_SSH_OPTIONS, target.address]


def make_run_cmd(target: RemoteTarget, run_local=run_shell_cmd):
    """Create a run_cmd callable for SSH execution.

    The returned coroutine function takes a shell command string and returns
    (returncode, stdout, stderr). Operational commands have no timeout.
    """

    async def run_cmd(command, timeout=None, log_output=True):
        logger.debug(f"ssh {target.address}: {command}")
        args = ssh_base_args(target)
        args.append(command)
        return await run_local(args, timeout=timeout, log_output=log_output)

    return run_cmd


def rsync_ssh_command(target: RemoteTarget) -> str:
    """The ``-e`` argument for rsync, with the same options as run_cmd."""
    return shlex.join(["ssh", "-i", target.ssh_key, *_SSH_OPTIONS])


async def sync_workspace(target: RemoteTarget, local_dir, remote_dir, run_local=run_shell_cmd):
    """Mirror local_dir into remote_dir, deleting remote files missing locally."""
    args = [
        "rsync", "-avz", "--delete",
        "-e", rsync_ssh_command(target),
        f"{str(local_dir).rstrip('/')}/",
        f"{target.address}:{remote_dir}/",
    ]
    rc, _, stderr = await run_local(args, timeout=None, log_output=False)
    if rc != 0:
        logger.error(f"rsync to {target.address}:{remote_dir} failed: {stderr.strip()}")
    return rc
