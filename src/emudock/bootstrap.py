"""
Environment bootstrapper: renders the artifacts for a descriptor set and
drives ``docker compose`` to build, start and remove the emulator container.
"""

import enum
import time
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from emudock.config import EmuDockSettings, get_logger, get_settings
from emudock.exceptions import ConfigError, ToolchainError
from emudock.render import (
    COMPOSE_FILE_NAME,
    RecipeOptions,
    RenderedArtifacts,
    render,
    render_emulator_config,
)
from emudock.services.models import DescriptorSet, validate_ports
from emudock.utils.common import port_responds
from emudock.utils.docker import ComposeManager

logger = get_logger("bootstrap")


class State(enum.Enum):
    """Lifecycle of the launched container."""

    NOT_STARTED = "not_started"
    RUNNING = "running"
    STOPPED = "stopped"


class EnvironmentBootstrapper:
    """Builds, starts and tears down the emulator container for one descriptor set."""

    def __init__(
        self,
        descriptors: DescriptorSet,
        settings: EmuDockSettings | None = None,
        options: RecipeOptions | None = None,
        compose: ComposeManager | None = None,
    ):
        """
        Initialize the bootstrapper.

        Args:
            descriptors: Services to run
            settings: Settings (cached settings when omitted)
            options: Rendering options (derived from settings when omitted)
            compose: Compose manager (one for the project directory when omitted)
        """
        self.descriptors = descriptors
        self.settings = settings or get_settings()
        self.options = options or RecipeOptions.from_settings(self.settings)
        self.project_dir = Path(self.settings.project_dir)
        self.compose = compose or ComposeManager(
            compose_file=self.project_dir / COMPOSE_FILE_NAME,
            project_name=self.settings.compose_project,
            project_dir=self.project_dir,
        )
        self.state = State.NOT_STARTED

    @property
    def artifact_paths(self) -> dict[str, Path]:
        """Where each rendered file is written."""
        return {
            "dockerfile": self.project_dir / self.options.dockerfile_name,
            "compose": self.compose.compose_file,
            "emulator_config": self.project_dir / self.options.emulator_config_name,
        }

    def render(self) -> RenderedArtifacts:
        """Render the build recipe and compose file for this descriptor set."""
        return render(self.descriptors, self.options)

    def write_artifacts(self) -> list[Path]:
        """Render and write all three files into the project directory.

        Returns:
            Paths written, in the order Dockerfile, compose file, emulator config
        """
        artifacts = self.render()
        contents = {
            "dockerfile": artifacts.dockerfile,
            "compose": artifacts.compose,
            "emulator_config": render_emulator_config(self.descriptors, self.options),
        }

        self.project_dir.mkdir(parents=True, exist_ok=True)
        written = []
        for key, text in contents.items():
            path = self.artifact_paths[key]
            path.write_text(text)
            written.append(path)
            logger.debug("Wrote artifact", path=str(path))
        return written

    def start(self, build: bool = True) -> None:
        """
        Build and launch the container, then wait until every emulator answers.

        Raises:
            ConfigError: If no service is enabled
            ValidationError: If two enabled services share a port
            ToolchainError: If docker is missing or incompatible, compose
                fails, or readiness times out
        """
        if self.state is State.RUNNING:
            logger.warning("Emulators already running", project=self.compose.project_name)
            return

        validate_ports(self.descriptors)
        if not self.descriptors.enabled():
            raise ConfigError("No enabled services to start")

        # Checked before anything is written so a missing toolchain leaves no trace
        version = self.compose.compose_version()
        logger.info("Using docker compose", version=version)

        self.write_artifacts()

        logger.info(
            "Starting emulators",
            project=self.compose.project_name,
            services=",".join(self.descriptors.names()),
            build=build,
        )
        # Blocks until the container healthcheck passes (emulators answer HTTP inside)
        self.compose.up(build=build, detach=True, wait_timeout=self.settings.readiness_timeout)
        self.state = State.RUNNING

        self.wait_until_ready()
        logger.info("Emulators ready", ports=self.descriptors.ports())

    def wait_until_ready(self, timeout: float | None = None) -> None:
        """
        Block until every enabled port answers HTTP on the endpoint host.

        Raises:
            ToolchainError: If some port is still closed when the timeout elapses
        """
        timeout = timeout if timeout is not None else self.settings.readiness_timeout
        host = self.options.endpoint_host
        pending = set(self.descriptors.ports())
        deadline = time.monotonic() + timeout

        while True:
            pending = {port for port in pending if not port_responds(host, port)}
            if not pending:
                return
            if time.monotonic() >= deadline:
                break
            time.sleep(self.settings.poll_interval)

        raise ToolchainError(
            f"Emulators not ready after {timeout}s; no response on "
            f"{', '.join(f'{host}:{p}' for p in sorted(pending))}"
        )

    def stop(self) -> None:
        """
        Stop and remove the container.

        Idempotent: a no-op when nothing is running.

        Raises:
            ToolchainError: If ``docker compose down`` fails
        """
        if self.state is not State.RUNNING and not self.compose.has_containers():
            logger.info("Nothing to stop", project=self.compose.project_name)
            return

        logger.info("Stopping emulators", project=self.compose.project_name)
        self.compose.down(remove_orphans=True)
        self.state = State.STOPPED

    def logs(self, follow: bool = False, tail: int | None = None) -> Iterable[str]:
        """Container log lines."""
        return self.compose.logs(tail=tail, follow=follow)

    def status(self) -> list[dict[str, Any]]:
        """Containers of the compose project, as reported by ``docker compose ps``."""
        if not self.compose.compose_file.exists():
            return []
        return self.compose.ps()
