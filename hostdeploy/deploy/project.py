"""Project inspection: pick the build strategy from the files in the checkout."""

import logging
import os
from enum import Enum

import yaml

from hostdeploy.result import ExitCode, FatalError

logger = logging.getLogger(__name__)

DOCKERFILE = "Dockerfile"
COMPOSE_FILES = ("docker-compose.yml", "docker-compose.yaml")


class BuildStrategy(Enum):
    SINGLE_IMAGE = "single-image"
    COMPOSE = "compose"


def detect_strategy(repo_path) -> BuildStrategy:
    """Dockerfile wins over a compose descriptor; neither is fatal."""
    if os.path.isfile(os.path.join(repo_path, DOCKERFILE)):
        logger.info("Dockerfile found")
        return BuildStrategy.SINGLE_IMAGE
    if find_compose_file(repo_path):
        logger.info("docker-compose.yml found")
        return BuildStrategy.COMPOSE
    raise FatalError(ExitCode.NO_BUILD_DESCRIPTOR, "No Dockerfile or docker-compose.yml found in repository")


def find_compose_file(repo_path) -> str | None:
    for name in COMPOSE_FILES:
        path = os.path.join(repo_path, name)
        if os.path.isfile(path):
            return path
    return None


def compose_services(repo_path) -> list[str]:
    """Service names declared in the compose descriptor, or [] if unreadable."""
    path = find_compose_file(repo_path)
    if path is None:
        return []
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Could not parse {os.path.basename(path)}: {e}")
        return []
    services = data.get("services") if isinstance(data, dict) else None
    if not isinstance(services, dict):
        logger.warning(f"No services declared in {os.path.basename(path)}")
        return []
    return sorted(services)
