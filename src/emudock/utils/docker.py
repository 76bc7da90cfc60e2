"""Docker utilities for driving ``docker compose`` from Python."""

import json
import math
import re
import subprocess
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from emudock.config import get_logger
from emudock.exceptions import ToolchainError
from emudock.utils.common import command_exists

logger = get_logger("docker")

# First compose release with "up --wait-timeout"
MIN_COMPOSE_VERSION = (2, 17)


class ComposeManager:
    """Runs ``docker compose`` commands against one compose file and project."""

    def __init__(self, compose_file: Path, project_name: str, project_dir: Path | None = None):
        """Initialize compose manager.

        Args:
            compose_file: Path to the compose file
            project_name: Compose project name (``-p``)
            project_dir: Working directory for compose commands
        """
        self.compose_file = Path(compose_file)
        self.project_name = project_name
        self.project_dir = Path(project_dir) if project_dir else self.compose_file.parent

    @property
    def docker_available(self) -> bool:
        """Whether the docker binary is on PATH."""
        return command_exists("docker")

    def _base_command(self) -> list[str]:
        return ["docker", "compose", "-f", str(self.compose_file), "-p", self.project_name]

    def _run(
        self,
        cmd: list[str],
        *,
        check: bool = True,
        timeout: float | None = None,
    ) -> subprocess.CompletedProcess:
        """Run a docker command and return the process result.

        Raises:
            ToolchainError: If the binary is missing, times out, or (with
                ``check``) exits non-zero
        """
        logger.debug("Running docker command", command=" ".join(cmd))
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                cwd=str(self.project_dir),
                timeout=timeout,
            )
        except FileNotFoundError as exc:
            logger.error("Docker binary not found", command=" ".join(cmd))
            raise ToolchainError(f"Command not found: {cmd[0]}", command=cmd) from exc
        except subprocess.TimeoutExpired as exc:
            logger.error("Docker command timed out", command=" ".join(cmd), timeout=timeout)
            raise ToolchainError(f"Command timed out after {timeout}s", command=cmd) from exc

        if check and result.returncode != 0:
            raise _command_failed(cmd, result.returncode, result.stderr)
        return result

    def compose_version(self) -> str:
        """Return the ``docker compose`` version string (e.g. ``2.24.5``).

        Raises:
            ToolchainError: If docker or the compose plugin is missing, or the
                compose version is older than 2.17
        """
        if not self.docker_available:
            raise ToolchainError("Docker is not available on this system (docker not on PATH)")

        result = self._run(["docker", "compose", "version", "--short"], timeout=15)
        version = result.stdout.strip().lstrip("v")

        match = re.match(r"(\d+)\.(\d+)", version)
        if not match:
            raise ToolchainError(f"Could not parse docker compose version: {version!r}")
        if (int(match.group(1)), int(match.group(2))) < MIN_COMPOSE_VERSION:
            required = ".".join(str(part) for part in MIN_COMPOSE_VERSION)
            raise ToolchainError(
                f"docker compose {version} is not supported; version {required} or newer is required"
            )
        return version

    def up(
        self,
        build: bool = True,
        detach: bool = True,
        wait_timeout: float | None = None,
    ) -> subprocess.CompletedProcess:
        """Build (optionally) and start the services.

        Args:
            build: Rebuild images first
            detach: Run in the background
            wait_timeout: When given, block until the containers report healthy,
                for at most this many seconds
        """
        cmd = [*self._base_command(), "up"]
        if detach:
            cmd.append("-d")
        if build:
            cmd.append("--build")
        if wait_timeout is not None:
            cmd.extend(["--wait", "--wait-timeout", str(math.ceil(wait_timeout))])
        return self._run(cmd)

    def down(self, remove_orphans: bool = True) -> subprocess.CompletedProcess:
        """Stop and remove the services. Named volumes are kept."""
        cmd = [*self._base_command(), "down"]
        if remove_orphans:
            cmd.append("--remove-orphans")
        return self._run(cmd)

    def has_containers(self) -> bool:
        """Check whether the project has any containers, running or stopped."""
        if not self.docker_available or not self.compose_file.exists():
            return False
        result = self._run([*self._base_command(), "ps", "--all", "-q"], check=False)
        if result.returncode != 0:
            return False
        return bool(result.stdout.strip())

    def ps(self) -> list[dict[str, Any]]:
        """List project containers as dictionaries from ``docker compose ps``."""
        result = self._run([*self._base_command(), "ps", "--all", "--format", "json"])
        return parse_ps_output(result.stdout)

    def logs(self, tail: int | None = None, follow: bool = False) -> Iterable[str]:
        """Stream service logs line by line."""
        cmd = [*self._base_command(), "logs", "--no-color"]
        if tail is not None:
            cmd.extend(["--tail", str(tail)])

        if not follow:
            result = self._run(cmd)
            return result.stdout.splitlines()

        cmd.append("-f")
        logger.debug("Following docker logs", command=" ".join(cmd))
        try:
            process = subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                cwd=str(self.project_dir),
            )
        except FileNotFoundError as exc:
            raise ToolchainError(f"Command not found: {cmd[0]}", command=cmd) from exc

        def _iterator():
            try:
                for line in process.stdout:
                    yield line.rstrip("\n")
                returncode = process.wait()
                if returncode != 0:
                    raise _command_failed(cmd, returncode, process.stderr.read())
            finally:
                # Consumer stopped early (Ctrl-C, closed generator)
                if process.poll() is None:
                    process.terminate()
                process.stdout.close()
                process.stderr.close()
                process.wait()

        return _iterator()


def _command_failed(cmd: list[str], returncode: int, stderr: str | None) -> ToolchainError:
    logger.error("Docker command failed", command=" ".join(cmd), exit_code=returncode)
    return ToolchainError(
        f"'{' '.join(cmd[:3])} ...' exited with code {returncode}",
        command=cmd,
        stderr=stderr,
    )


def parse_ps_output(output: str) -> list[dict[str, Any]]:
    """Parse ``docker compose ps --format json`` output.

    Older compose releases print one JSON array, newer ones one object per line.
    """
    output = output.strip()
    if not output:
        return []

    if output.startswith("["):
        try:
            return list(json.loads(output))
        except json.JSONDecodeError as exc:
            raise ToolchainError("Unreadable output from docker compose ps") from exc

    containers = []
    for line in output.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            containers.append(json.loads(line))
        except json.JSONDecodeError as exc:
            raise ToolchainError(f"Unreadable output from docker compose ps: {line}") from exc
    return containers
