"""Pipeline controller: stage order, workspace lifecycle, cleanup mode.

One run walks a fixed chain of stages::

    COLLECTING_PARAMS -> CLONING -> INSPECTING -> TESTING_CONNECTION
        -> PROVISIONING -> DEPLOYING -> CONFIGURING_PROXY -> VALIDATING -> DONE

Cleanup mode replaces everything after COLLECTING_PARAMS with TEARDOWN.
The first fatal StageResult moves the run to FAILED and skips the rest.
Whatever happens, the ephemeral workspace is removed before run() returns
or raises.
"""

import logging
import os
import shutil
import tempfile
from dataclasses import dataclass, field
from enum import Enum

from hostdeploy.deploy.health import probe_external, validate_deployment
from hostdeploy.deploy.nginx import configure_proxy
from hostdeploy.deploy.orchestrate import run_cleanup, run_deploy
from hostdeploy.deploy.params import DeploymentParameters, check_deployment_name
from hostdeploy.deploy.project import BuildStrategy, compose_services, detect_strategy
from hostdeploy.deploy.repository import fetch_repository
from hostdeploy.logging_setup import log_success
from hostdeploy.provisioning.remote import provision_remote
from hostdeploy.provisioning.shell import run_shell_cmd
from hostdeploy.provisioning.ssh import check_ssh
from hostdeploy.provisioning.ssh_transport import RemoteTarget, make_run_cmd, sync_workspace
from hostdeploy.result import ExitCode, FatalError, StageResult
from hostdeploy.settings import Settings

logger = logging.getLogger(__name__)


class Stage(Enum):
    COLLECTING_PARAMS = "Parameter Collection"
    CLONING = "Repository Cloning"
    INSPECTING = "Validating Docker Files"
    TESTING_CONNECTION = "Testing SSH Connection"
    PROVISIONING = "Setting Up Remote Environment"
    DEPLOYING = "Deploying Application"
    CONFIGURING_PROXY = "Configuring Nginx Reverse Proxy"
    VALIDATING = "Validating Deployment"
    TEARDOWN = "Cleanup Mode"
    DONE = "Done"
    FAILED = "Failed"


DEPLOY_STAGES = [
    Stage.CLONING,
    Stage.INSPECTING,
    Stage.TESTING_CONNECTION,
    Stage.PROVISIONING,
    Stage.DEPLOYING,
    Stage.CONFIGURING_PROXY,
    Stage.VALIDATING,
]
CLEANUP_STAGES = [Stage.TEARDOWN]


@dataclass
class PipelineContext:
    """Run-scoped state handed from stage to stage."""

    settings: Settings
    cleanup: bool = False
    params: DeploymentParameters | None = None
    target: RemoteTarget | None = None
    workspace: str | None = None
    repo_path: str | None = None
    strategy: BuildStrategy | None = None
    services: list[str] = field(default_factory=list)
    run_remote: object = None


@dataclass
class RunOutcome:
    stage: Stage
    code: ExitCode = ExitCode.SUCCESS
    failed_stage: Stage | None = None
    message: str = ""
    warnings: list[str] = field(default_factory=list)


class Pipeline:
    """Drives one deployment (or cleanup) run.

    Args:
        settings: run settings
        collect: callable(cleanup: bool) -> DeploymentParameters; may raise FatalError
        cleanup: run the teardown chain instead of a deployment
        run_local: local command primitive, see provisioning.shell.run_shell_cmd
        remote_factory: callable(RemoteTarget, run_local) -> run_cmd
        http_probe: async callable(url) -> bool for the external endpoint check
    """

    def __init__(self, settings: Settings, collect, cleanup=False, run_local=run_shell_cmd,
                 remote_factory=make_run_cmd, http_probe=probe_external):
        self.ctx = PipelineContext(settings=settings, cleanup=cleanup)
        self.collect = collect
        self.run_local = run_local
        self.remote_factory = remote_factory
        self.http_probe = http_probe
        self.state = Stage.COLLECTING_PARAMS
        self._handlers = {
            Stage.COLLECTING_PARAMS: self._collect_params,
            Stage.CLONING: self._clone,
            Stage.INSPECTING: self._inspect,
            Stage.TESTING_CONNECTION: self._test_connection,
            Stage.PROVISIONING: self._provision,
            Stage.DEPLOYING: self._deploy,
            Stage.CONFIGURING_PROXY: self._configure_proxy,
            Stage.VALIDATING: self._validate,
            Stage.TEARDOWN: self._teardown,
        }

    async def run(self) -> RunOutcome:
        warnings = []
        stages = [Stage.COLLECTING_PARAMS] + (CLEANUP_STAGES if self.ctx.cleanup else DEPLOY_STAGES)
        try:
            for stage in stages:
                self.state = stage
                result = await self._run_stage(stage)
                warnings.extend(result.warnings)
                if not result.ok:
                    self.state = Stage.FAILED
                    logger.error(result.message)
                    return RunOutcome(Stage.FAILED, result.code, stage, result.message, warnings)
            self.state = Stage.DONE
            return RunOutcome(Stage.DONE, warnings=warnings)
        finally:
            self._remove_workspace()

    async def _run_stage(self, stage: Stage) -> StageResult:
        logger.info(f"===== {stage.value} =====")
        try:
            result = await self._handlers[stage]()
        except FatalError as e:
            return StageResult.from_error(e)
        except Exception as e:
            logger.exception(f"Unexpected error during {stage.value.lower()}")
            return StageResult.fatal(ExitCode.GENERAL, f"{stage.value} failed: {e}")
        return result or StageResult.success()

    def _remove_workspace(self):
        workspace = self.ctx.workspace
        if workspace and os.path.isdir(workspace):
            logger.info(f"Cleaning up temporary directory: {workspace}")
            shutil.rmtree(workspace, ignore_errors=True)
        self.ctx.workspace = None

    def _remote(self):
        if self.ctx.run_remote is None:
            self.ctx.run_remote = self.remote_factory(self.ctx.target, self.run_local)
        return self.ctx.run_remote

    # ── stages ──────────────────────────────────────────────────────

    async def _collect_params(self):
        params = self.collect(self.ctx.cleanup)
        check_deployment_name(params.name)
        self.ctx.params = params
        self.ctx.target = RemoteTarget(host=params.server, user=params.ssh_user, ssh_key=params.ssh_key)

    async def _clone(self):
        params = self.ctx.params
        if self.ctx.workspace is None:
            self.ctx.workspace = tempfile.mkdtemp(prefix="hostdeploy-")
            logger.info(f"Created temporary directory: {self.ctx.workspace}")
        dest = os.path.join(self.ctx.workspace, params.name)
        self.ctx.repo_path = await fetch_repository(
            params.repo_url, params.token, params.branch, dest, run_local=self.run_local
        )
        log_success(logger, f"Repository ready at: {self.ctx.repo_path}")

    async def _inspect(self):
        self.ctx.strategy = detect_strategy(self.ctx.repo_path)
        if self.ctx.strategy is BuildStrategy.COMPOSE:
            self.ctx.services = compose_services(self.ctx.repo_path)
            if self.ctx.services:
                logger.info(f"Compose services: {', '.join(self.ctx.services)}")

    async def _test_connection(self):
        target = self.ctx.target
        ok = await check_ssh(target, connect_timeout=self.ctx.settings.connect_timeout, run_local=self.run_local)
        if not ok:
            return StageResult.fatal(
                ExitCode.SSH_UNREACHABLE, f"Failed to establish SSH connection to {target.address}"
            )
        log_success(logger, f"SSH connection to {target.address} successful")

    async def _provision(self):
        warnings = await provision_remote(self._remote(), self.ctx.params.ssh_user)
        log_success(logger, "Remote environment setup complete")
        return StageResult.success(warnings)

    async def _deploy(self):
        params = self.ctx.params

        async def sync_files(remote_dir):
            return await sync_workspace(self.ctx.target, self.ctx.repo_path, remote_dir, run_local=self.run_local)

        await run_deploy(
            self._remote(),
            sync_files,
            params.name,
            params.remote_dir,
            self.ctx.strategy,
            params.app_port,
            settle_interval=self.ctx.settings.settle_interval,
        )
        log_success(logger, "Application deployed successfully")

    async def _configure_proxy(self):
        params = self.ctx.params
        await configure_proxy(self._remote(), params.name, params.server, params.app_port)
        log_success(logger, "Nginx configured successfully")

    async def _validate(self):
        params = self.ctx.params
        warnings = await validate_deployment(
            self._remote(),
            params.name,
            params.server,
            params.app_port,
            remote_dir=params.remote_dir,
            services=self.ctx.services,
            probe_delay=self.ctx.settings.external_probe_delay,
            http_probe=self.http_probe,
        )
        log_success(logger, "Deployment validation complete")
        return StageResult.success(warnings)

    async def _teardown(self):
        params = self.ctx.params
        await run_cleanup(self._remote(), params.name, params.remote_dir)
        log_success(logger, "Cleanup complete")
