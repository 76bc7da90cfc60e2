"""Tests for the emudock command line."""

import pytest
from typer.testing import CliRunner

from emudock import bootstrap as bootstrap_module
from emudock.commands import stack as stack_cmd
from emudock.exceptions import ToolchainError
from emudock.main import app
from emudock.utils import docker as docker_module

runner = CliRunner()


@pytest.fixture
def no_docker(monkeypatch):
    monkeypatch.setattr(docker_module, "command_exists", lambda cmd: False)


def test_version():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert "emudock" in result.output


def test_render_default_stack():
    result = runner.invoke(app, ["render"])

    assert result.exit_code == 0
    assert "EXPOSE 4000" in result.output
    assert "EXPOSE 8080" in result.output
    assert "4000:4000" in result.output
    assert '"host": "0.0.0.0"' in result.output


def test_render_uses_descriptor_file_in_project_dir(tmp_path):
    (tmp_path / "emulators.yaml").write_text(
        "project_id: from-file\nservices:\n  auth: 9099\n"
    )

    result = runner.invoke(app, ["render"])

    assert result.exit_code == 0
    assert "EXPOSE 9099" in result.output
    assert "EXPOSE 8080" not in result.output
    assert "GCLOUD_PROJECT=from-file" in result.output


def test_render_write(tmp_path):
    result = runner.invoke(app, ["render", "--write"])

    assert result.exit_code == 0
    assert (tmp_path / "Dockerfile.emulators").exists()
    assert (tmp_path / "docker-compose.emulators.yml").exists()
    assert (tmp_path / "firebase.emulators.json").exists()


def test_render_duplicate_port_fails(tmp_path):
    descriptor_file = tmp_path / "dup.yaml"
    descriptor_file.write_text("services:\n  firestore: 8080\n  database: 8080\n")

    result = runner.invoke(app, ["render", "--file", str(descriptor_file), "--write"])

    assert result.exit_code == 1
    assert "8080" in result.output
    assert not (tmp_path / "Dockerfile.emulators").exists()


def test_render_missing_file(tmp_path):
    result = runner.invoke(app, ["render", "--file", str(tmp_path / "missing.yaml")])
    assert result.exit_code == 1


def test_up_without_docker_fails_cleanly(tmp_path, no_docker):
    result = runner.invoke(app, ["up"])

    assert result.exit_code == 1
    assert list(tmp_path.iterdir()) == []


def test_up_rejects_non_positive_timeout(no_docker):
    result = runner.invoke(app, ["up", "--timeout", "0"])
    assert result.exit_code == 1


def test_up_starts_bootstrapper(monkeypatch):
    started = {}

    def fake_start(self, build=True):
        started["build"] = build
        started["timeout"] = self.settings.readiness_timeout
        started["start_period"] = self.options.health_start_period

    monkeypatch.setattr(bootstrap_module.EnvironmentBootstrapper, "start", fake_start)

    result = runner.invoke(app, ["up", "--no-build", "--timeout", "12"])

    assert result.exit_code == 0
    assert started == {"build": False, "timeout": 12.0, "start_period": "12s"}
    assert "firestore" in result.output


def test_down_is_idempotent_without_docker(no_docker):
    first = runner.invoke(app, ["down"])
    second = runner.invoke(app, ["down"])

    assert first.exit_code == 0
    assert "Emulators stopped" in first.output
    assert second.exit_code == 0
    assert "Emulators stopped" in second.output


def test_status_without_compose_file():
    result = runner.invoke(app, ["status"])
    assert result.exit_code == 0
    assert "No emulator containers found" in result.output


def test_logs(monkeypatch):
    monkeypatch.setattr(
        bootstrap_module.EnvironmentBootstrapper,
        "logs",
        lambda self, follow=False, tail=None: ["firestore | Dev App Server is now running"],
    )

    result = runner.invoke(app, ["logs", "-n", "10"])

    assert result.exit_code == 0
    assert "Dev App Server is now running" in result.output


def test_logs_tail_zero_is_passed_through(monkeypatch):
    seen = {}

    def fake_logs(self, follow=False, tail=None):
        seen["tail"] = tail
        return []

    monkeypatch.setattr(bootstrap_module.EnvironmentBootstrapper, "logs", fake_logs)

    result = runner.invoke(app, ["logs", "-n", "0"])

    assert result.exit_code == 0
    assert seen == {"tail": 0}


def test_logs_negative_tail_rejected():
    result = runner.invoke(app, ["logs", "-n", "-1"])
    assert result.exit_code != 0


def test_logs_follow_failure_exits_non_zero(monkeypatch):
    def failing_logs(self, follow=False, tail=None):
        yield "first line"
        raise ToolchainError("'docker compose -f ...' exited with code 14", stderr="boom")

    monkeypatch.setattr(bootstrap_module.EnvironmentBootstrapper, "logs", failing_logs)

    result = runner.invoke(app, ["logs", "-f"])

    assert result.exit_code == 1
    assert "first line" in result.output
    assert "exited with code 14" in result.output


def test_env_exports():
    result = runner.invoke(app, ["env", "--host", "127.0.0.1"])

    assert result.exit_code == 0
    assert result.output.splitlines() == [
        "export FIRESTORE_EMULATOR_HOST=127.0.0.1:8080",
        "export GCLOUD_PROJECT=my-local-test-project",
    ]


def test_invalid_settings_reported(monkeypatch):
    monkeypatch.setenv("EMUDOCK_POLL_INTERVAL", "0")
    result = runner.invoke(app, ["render"])
    assert result.exit_code == 1


def test_load_builds_bootstrapper_from_project_settings(tmp_path):
    bootstrapper, stack = stack_cmd._load(None)

    assert bootstrapper.project_dir == tmp_path
    assert stack.descriptors.names() == ["firestore", "ui"]
