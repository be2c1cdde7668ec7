"""Tests for build strategy detection and compose service discovery."""

import pytest

from hostdeploy.deploy.project import BuildStrategy, compose_services, detect_strategy
from hostdeploy.result import ExitCode, FatalError


def test_dockerfile_means_single_image(tmp_path):
    (tmp_path / "Dockerfile").write_text("FROM python:3.12\n")
    assert detect_strategy(str(tmp_path)) is BuildStrategy.SINGLE_IMAGE


def test_dockerfile_wins_over_compose(tmp_path):
    (tmp_path / "Dockerfile").write_text("FROM python:3.12\n")
    (tmp_path / "docker-compose.yml").write_text("services: {}\n")
    assert detect_strategy(str(tmp_path)) is BuildStrategy.SINGLE_IMAGE


@pytest.mark.parametrize("name", ["docker-compose.yml", "docker-compose.yaml"])
def test_compose_descriptor(tmp_path, name):
    (tmp_path / name).write_text("services:\n  web:\n    image: nginx\n")
    assert detect_strategy(str(tmp_path)) is BuildStrategy.COMPOSE


def test_no_descriptor_is_fatal(tmp_path):
    (tmp_path / "README.md").write_text("hello\n")
    with pytest.raises(FatalError) as exc:
        detect_strategy(str(tmp_path))
    assert exc.value.code == ExitCode.NO_BUILD_DESCRIPTOR


def test_lowercase_dockerfile_not_recognized(tmp_path):
    (tmp_path / "dockerfile").write_text("FROM python:3.12\n")
    if (tmp_path / "Dockerfile").exists():
        pytest.skip("case-insensitive filesystem")
    with pytest.raises(FatalError):
        detect_strategy(str(tmp_path))


def test_compose_services_listed(tmp_path):
    (tmp_path / "docker-compose.yml").write_text(
        "services:\n"
        "  web:\n    build: .\n    ports: ['3000:3000']\n"
        "  db:\n    image: postgres:16\n"
        "  cache:\n    image: redis:7\n"
    )
    assert compose_services(str(tmp_path)) == ["cache", "db", "web"]


def test_compose_services_unparseable(tmp_path):
    (tmp_path / "docker-compose.yaml").write_text("services: [unclosed\n")
    assert compose_services(str(tmp_path)) == []


def test_compose_services_without_services_key(tmp_path):
    (tmp_path / "docker-compose.yml").write_text("version: '3'\n")
    assert compose_services(str(tmp_path)) == []


def test_compose_services_no_file(tmp_path):
    assert compose_services(str(tmp_path)) == []
