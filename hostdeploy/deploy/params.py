"""Deployment parameters: dataclass, derived deployment name, prompt collection."""

import getpass
import logging
import os
import sys
from dataclasses import dataclass, field
from urllib.parse import urlparse

from hostdeploy.logging_setup import log_success
from hostdeploy.redact import register_secret
from hostdeploy.result import ExitCode, FatalError
from hostdeploy.settings import Settings
from hostdeploy.validation import (
    expand_key_path,
    validate_deployment_name,
    validate_ipv4,
    validate_key_path,
    validate_port,
    validate_url,
)

logger = logging.getLogger(__name__)

DEFAULT_BRANCH = "main"
DEFAULT_SSH_KEY = "~/.ssh/id_rsa"
TOKEN_ENV_VAR = "GIT_TOKEN"


@dataclass
class DeploymentParameters:
    """Everything one run needs. Lives in memory for the run only."""

    repo_url: str
    ssh_user: str
    server: str
    ssh_key: str
    token: str = field(default="", repr=False)
    branch: str = DEFAULT_BRANCH
    app_port: int = 0

    @property
    def name(self) -> str:
        return deployment_name(self.repo_url)

    @property
    def remote_dir(self) -> str:
        return remote_deploy_dir(self.ssh_user, self.name)


def deployment_name(repo_url: str) -> str:
    """Last non-empty path segment of the repository URL without a ``.git`` suffix.

    A URL without a path segment falls back to its host, like ``basename``.

    >>> deployment_name("https://github.com/acme/shop-api.git")
    'shop-api'
    >>> deployment_name("https://github.com/")
    'github.com'
    """
    parts = urlparse(repo_url)
    segments = [s for s in parts.path.split("/") if s]
    segment = segments[-1] if segments else (parts.hostname or "")
    if segment.endswith(".git") and segment != ".git":
        segment = segment[: -len(".git")]
    return segment


def check_deployment_name(name: str) -> str:
    """Raise unless name is usable as a directory, container and site name.

    An empty name, ``.`` or ``..`` would make the deployment directory the
    shared deployments root or its parent.

    Raises:
        FatalError: GENERAL.
    """
    if not validate_deployment_name(name):
        raise FatalError(ExitCode.GENERAL, f"Cannot derive a deployment name from the repository URL (got {name!r})")
    return name


def remote_deploy_dir(ssh_user: str, name: str) -> str:
    return f"/home/{ssh_user}/deployments/{name}"


class _Prompter:
    """Reads answers from stdin, re-prompting on invalid input.

    On a TTY invalid answers are re-prompted without limit; otherwise the
    prompter gives up after ``max_attempts`` invalid answers.
    """

    def __init__(self, settings: Settings, input_fn=input, secret_fn=getpass.getpass, interactive=None):
        self.max_attempts = settings.max_prompt_attempts
        self.input_fn = input_fn
        self.secret_fn = secret_fn
        self.interactive = sys.stdin.isatty() if interactive is None else interactive

    def _read(self, prompt, default=None, secret=False):
        label = f"{prompt} (default: {default}): " if default and not secret else f"{prompt}: "
        reader = self.secret_fn if secret else self.input_fn
        try:
            answer = reader(label).strip()
        except EOFError:
            raise FatalError(ExitCode.GENERAL, f"No input available for '{prompt}'") from None
        return answer or (default or "")

    def ask(self, prompt, default=None, secret=False):
        return self._read(prompt, default, secret)

    def ask_valid(self, prompt, check, error, default=None):
        attempts = 0
        while True:
            answer = self._read(prompt, default)
            if check(answer):
                return answer
            logger.error(error(answer) if callable(error) else error)
            attempts += 1
            if not self.interactive and attempts >= self.max_attempts:
                raise FatalError(ExitCode.GENERAL, f"Giving up on '{prompt}' after {attempts} invalid answers")


def collect_parameters(settings: Settings, cleanup=False, input_fn=input, secret_fn=getpass.getpass,
                       interactive=None) -> DeploymentParameters:
    """Prompt for every deployment parameter in a fixed order.

    In cleanup mode only the repository URL, SSH username, server address
    and SSH key are asked for.

    Raises:
        FatalError: unusable deployment name, empty token, empty username,
            or input exhausted.
    """
    ask = _Prompter(settings, input_fn=input_fn, secret_fn=secret_fn, interactive=interactive)
    defaults = settings.defaults

    repo_url = ask.ask_valid(
        "Enter Git Repository URL",
        validate_url,
        "Invalid URL format. Please use http:// or https://",
        default=defaults.get("repo_url"),
    )
    check_deployment_name(deployment_name(repo_url))

    token = ""
    branch = DEFAULT_BRANCH
    if not cleanup:
        token = ask.ask("Enter Personal Access Token (PAT)", default=os.environ.get(TOKEN_ENV_VAR), secret=True)
        if not token:
            raise FatalError(ExitCode.EMPTY_TOKEN, "PAT cannot be empty")
        register_secret(token)
        branch = ask.ask("Enter branch name", default=defaults.get("branch", DEFAULT_BRANCH))

    ssh_user = ask.ask("Enter SSH username", default=defaults.get("ssh_user"))
    if not ssh_user:
        raise FatalError(ExitCode.EMPTY_USERNAME, "SSH username cannot be empty")

    server = ask.ask_valid(
        "Enter server IP address",
        validate_ipv4,
        "Invalid IP address format",
        default=defaults.get("server"),
    )

    key_default = defaults.get("ssh_key", DEFAULT_SSH_KEY)
    ssh_key = ask.ask_valid(
        "Enter SSH key path",
        validate_key_path,
        lambda answer: f"SSH key not found at {expand_key_path(answer)}",
        default=key_default,
    )

    app_port = 0
    if not cleanup:
        app_port = int(
            ask.ask_valid(
                "Enter application port",
                validate_port,
                "Invalid port number (1-65535)",
                default=defaults.get("app_port"),
            )
        )

    params = DeploymentParameters(
        repo_url=repo_url,
        token=token,
        branch=branch,
        ssh_user=ssh_user,
        server=server,
        ssh_key=expand_key_path(ssh_key),
        app_port=app_port,
    )
    log_success(logger, "All parameters collected successfully")
    return params
