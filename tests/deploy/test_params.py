"""Tests for deployment parameters: derived name and prompt collection."""

import pytest

from hostdeploy.deploy.params import (
    DeploymentParameters,
    check_deployment_name,
    collect_parameters,
    deployment_name,
    remote_deploy_dir,
)
from hostdeploy.redact import clear_secrets, redact_secrets
from hostdeploy.result import ExitCode, FatalError
from hostdeploy.settings import Settings


@pytest.fixture(autouse=True)
def _clean(monkeypatch):
    monkeypatch.delenv("GIT_TOKEN", raising=False)
    clear_secrets()
    yield
    clear_secrets()


class ScriptedInput:
    """Feeds prepared answers to input()/getpass() and records the prompts."""

    def __init__(self, answers):
        self.answers = list(answers)
        self.prompts = []

    def __call__(self, prompt=""):
        self.prompts.append(prompt)
        if not self.answers:
            raise EOFError
        return self.answers.pop(0)


def _collect(answers, token="ghp_testtoken123", settings=None, cleanup=False, interactive=True):
    reader = ScriptedInput(answers)
    secret = ScriptedInput([token])
    params = collect_parameters(settings or Settings(), cleanup=cleanup, input_fn=reader,
                                secret_fn=secret, interactive=interactive)
    return params, reader, secret


# ── deployment_name ─────────────────────────────────────────────


@pytest.mark.parametrize("url,name", [
    ("https://github.com/acme/shop-api.git", "shop-api"),
    ("https://github.com/acme/shop-api", "shop-api"),
    ("https://github.com/acme/shop-api/", "shop-api"),
    ("http://git.example.com:8080/team/web.app.git", "web.app"),
    ("https://gitlab.com/group/sub/worker.git?ref=x", "worker"),
    ("https://github.com/", "github.com"),
    ("https://github.com", "github.com"),
    ("https://github.com///", "github.com"),
    ("https://example.com/.git", ".git"),
])
def test_deployment_name(url, name):
    assert deployment_name(url) == name


@pytest.mark.parametrize("name", ["", ".", ".."])
def test_unusable_names_rejected(name):
    with pytest.raises(FatalError) as exc:
        check_deployment_name(name)
    assert exc.value.code == ExitCode.GENERAL


def test_url_naming_parent_directory_rejected_at_collection(ssh_key):
    with pytest.raises(FatalError) as exc:
        _collect(["https://example.com/acme/..", "main", "deploy", "203.0.113.10", ssh_key, "3000"])
    assert exc.value.code == ExitCode.GENERAL


def test_host_only_url_deploys_under_its_own_directory(ssh_key):
    params, _, _ = _collect(["https://github.com/", "deploy", "203.0.113.10", ssh_key], cleanup=True)
    assert params.remote_dir == "/home/deploy/deployments/github.com"


def test_remote_dir_and_name_properties(params):
    assert params.name == "shop-api"
    assert params.remote_dir == "/home/deploy/deployments/shop-api"
    assert remote_deploy_dir("ops", "web") == "/home/ops/deployments/web"


def test_repr_hides_token(params):
    assert "ghp_testtoken123" not in repr(params)


# ── collect_parameters ──────────────────────────────────────────


def test_collect_in_order(ssh_key):
    params, reader, secret = _collect([
        "https://github.com/acme/shop-api.git", "", "deploy", "203.0.113.10", ssh_key, "3000",
    ])
    assert params == DeploymentParameters(
        repo_url="https://github.com/acme/shop-api.git",
        token="ghp_testtoken123",
        branch="main",
        ssh_user="deploy",
        server="203.0.113.10",
        ssh_key=ssh_key,
        app_port=3000,
    )
    assert [p.split(" (")[0].rstrip(": ") for p in reader.prompts] == [
        "Enter Git Repository URL",
        "Enter branch name",
        "Enter SSH username",
        "Enter server IP address",
        "Enter SSH key path",
        "Enter application port",
    ]
    assert secret.prompts == ["Enter Personal Access Token (PAT): "]


def test_token_is_registered_for_redaction(ssh_key):
    _collect(["https://github.com/acme/app", "dev", "deploy", "1.2.3.4", ssh_key, "80"])
    assert redact_secrets("x ghp_testtoken123 y") == "x *** y"


def test_invalid_answers_reprompted(ssh_key, tmp_path):
    params, reader, _ = _collect([
        "github.com/acme/app", "https://github.com/acme/app",
        "feature",
        "deploy",
        "1.2.3", "10.0.0.5",
        str(tmp_path / "missing"), ssh_key,
        "0", "70000", "8080",
    ])
    assert params.repo_url == "https://github.com/acme/app"
    assert params.branch == "feature"
    assert params.server == "10.0.0.5"
    assert params.ssh_key == ssh_key
    assert params.app_port == 8080
    assert len(reader.prompts) == 11


def test_empty_token_is_fatal(ssh_key):
    with pytest.raises(FatalError) as exc:
        _collect(["https://github.com/acme/app"], token="")
    assert exc.value.code == ExitCode.EMPTY_TOKEN


def test_empty_username_is_fatal():
    with pytest.raises(FatalError) as exc:
        _collect(["https://github.com/acme/app", "main", ""])
    assert exc.value.code == ExitCode.EMPTY_USERNAME


def test_token_defaults_from_env(monkeypatch, ssh_key):
    monkeypatch.setenv("GIT_TOKEN", "ghp_fromenv999")
    params, _, _ = _collect(["https://github.com/acme/app", "", "deploy", "1.2.3.4", ssh_key, "80"], token="")
    assert params.token == "ghp_fromenv999"


def test_settings_defaults_accepted_with_enter(ssh_key):
    settings = Settings(defaults={
        "repo_url": "https://github.com/acme/app",
        "ssh_user": "ops",
        "server": "10.1.1.1",
        "ssh_key": ssh_key,
        "app_port": "5000",
        "branch": "release",
    })
    params, _, _ = _collect(["", "", "", "", "", ""], settings=settings)
    assert params.repo_url == "https://github.com/acme/app"
    assert params.branch == "release"
    assert params.ssh_user == "ops"
    assert params.server == "10.1.1.1"
    assert params.app_port == 5000


def test_ssh_key_tilde_expanded(tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path))
    (tmp_path / ".ssh").mkdir()
    (tmp_path / ".ssh" / "id_rsa").write_text("key")

    params, _, _ = _collect(["https://github.com/acme/app", "", "deploy", "1.2.3.4", "", "80"])
    assert params.ssh_key == str(tmp_path / ".ssh" / "id_rsa")


def test_non_interactive_gives_up_after_max_attempts():
    settings = Settings(max_prompt_attempts=2)
    with pytest.raises(FatalError) as exc:
        _collect(["nope", "still-nope", "https://github.com/acme/app"], settings=settings, interactive=False)
    assert exc.value.code == ExitCode.GENERAL


def test_eof_is_fatal():
    with pytest.raises(FatalError) as exc:
        _collect([])
    assert exc.value.code == ExitCode.GENERAL


def test_cleanup_mode_asks_four_questions(ssh_key):
    params, reader, secret = _collect(
        ["https://github.com/acme/shop-api.git", "deploy", "203.0.113.10", ssh_key], cleanup=True
    )
    assert len(reader.prompts) == 4
    assert secret.prompts == []
    assert params.token == ""
    assert params.name == "shop-api"
    assert params.remote_dir == "/home/deploy/deployments/shop-api"
