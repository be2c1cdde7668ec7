"""Deploy library: parameters, repository checkout, build, proxy, validation."""

from hostdeploy.deploy.params import (
    DeploymentParameters,
    check_deployment_name,
    collect_parameters,
    deployment_name,
    remote_deploy_dir,
)
from hostdeploy.deploy.project import BuildStrategy, compose_services, detect_strategy
from hostdeploy.deploy.repository import authenticated_url, fetch_repository
from hostdeploy.deploy.nginx import configure_proxy, generate_site_conf, remove_site
from hostdeploy.deploy.orchestrate import run_cleanup, run_deploy, run_teardown
from hostdeploy.deploy.health import probe_external, validate_deployment

__all__ = [
    "DeploymentParameters",
    "check_deployment_name",
    "collect_parameters",
    "deployment_name",
    "remote_deploy_dir",
    "BuildStrategy",
    "compose_services",
    "detect_strategy",
    "authenticated_url",
    "fetch_repository",
    "configure_proxy",
    "generate_site_conf",
    "remove_site",
    "run_cleanup",
    "run_deploy",
    "run_teardown",
    "probe_external",
    "validate_deployment",
]
