"""Command execution and server provisioning: local shell, SSH transport, installs."""

from hostdeploy.provisioning.remote import provision_remote
from hostdeploy.provisioning.shell import run_shell_cmd
from hostdeploy.provisioning.ssh import check_ssh
from hostdeploy.provisioning.ssh_transport import (
    RemoteTarget,
    make_run_cmd,
    ssh_base_args,
    sync_workspace,
)

__all__ = [
    "RemoteTarget",
    "check_ssh",
    "run_shell_cmd",
    "provision_remote",
    "ssh_base_args",
    "make_run_cmd",
    "sync_workspace",
]
