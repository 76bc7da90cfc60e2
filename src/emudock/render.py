"""
Rendering of the container build recipe, the compose file and the emulator
configuration from a set of service descriptors.

All functions here are pure: they validate, build text and return it.
"""

import json
import math
from collections.abc import Iterable
from typing import Any, NamedTuple

import yaml
from jinja2 import StrictUndefined, Template
from pydantic import BaseModel, Field

from emudock.config import EmuDockSettings
from emudock.services.catalog import PROJECT_VARIABLE, client_variable
from emudock.services.models import ServiceDescriptor, validate_ports

DOCKERFILE_NAME = "Dockerfile.emulators"
COMPOSE_FILE_NAME = "docker-compose.emulators.yml"
EMULATOR_CONFIG_NAME = "firebase.emulators.json"

# Where firebase-tools caches the emulator jars it downloads
CACHE_DIR = "/root/.cache/firebase"

DOCKERFILE_TEMPLATE = """\
# Generated by emudock from the service descriptors; do not edit by hand.
FROM {{ options.base_image }}

# Java is required by the Firestore, Database and Pub/Sub emulators
RUN apk add --no-cache {{ options.system_packages | join(" ") }}

RUN npm install -g {{ options.cli_package }}

WORKDIR {{ options.workdir }}
COPY . {{ options.workdir }}

{% for port in ports %}
EXPOSE {{ port }}
{% endfor %}

CMD {{ command }}
"""


class RecipeOptions(BaseModel):
    """Everything besides the descriptors that shapes the rendered files."""

    project_id: str = "my-local-test-project"
    base_image: str = "node:20-alpine"
    system_packages: list[str] = Field(
        default_factory=lambda: ["openjdk11-jre", "bash", "curl", "openssl"]
    )
    cli_package: str = "firebase-tools"
    workdir: str = "/app"
    service_name: str = "firebase-emulators"
    cache_volume: str = "firebase-cache"
    endpoint_host: str = "localhost"
    container_host: str = "localhost"
    bind_host: str = "0.0.0.0"
    health_start_period: str = "60s"
    dockerfile_name: str = DOCKERFILE_NAME
    emulator_config_name: str = EMULATOR_CONFIG_NAME

    @classmethod
    def from_settings(
        cls, settings: EmuDockSettings, project_id: str | None = None
    ) -> "RecipeOptions":
        """Create options from settings; ``project_id`` overrides the settings value."""
        return cls(
            project_id=project_id or settings.project_id,
            base_image=settings.base_image,
            system_packages=list(settings.system_packages),
            cli_package=settings.cli_package,
            workdir=settings.workdir,
            service_name=settings.service_name,
            cache_volume=settings.cache_volume,
            endpoint_host=settings.endpoint_host,
            container_host=settings.container_host,
            health_start_period=f"{math.ceil(settings.readiness_timeout)}s",
        )


class HealthCheck(BaseModel):
    """Compose healthcheck for the emulator container."""

    test: list[str]
    interval: str = "2s"
    timeout: str = "5s"
    retries: int = 3
    start_period: str | None = None


class RenderedArtifacts(NamedTuple):
    """Rendered build recipe and orchestration recipe."""

    dockerfile: str
    compose: str


def launch_command(descriptors: list[ServiceDescriptor], options: RecipeOptions) -> list[str]:
    """The container's single foreground command, in exec form."""
    names = sorted(d.name for d in descriptors)
    return [
        "firebase",
        "emulators:start",
        "--only",
        ",".join(names),
        "--project",
        options.project_id,
        "--config",
        options.emulator_config_name,
    ]


def render_dockerfile(descriptors: list[ServiceDescriptor], options: RecipeOptions) -> str:
    """Render the build recipe for already-validated, enabled descriptors."""
    template = Template(
        DOCKERFILE_TEMPLATE,
        undefined=StrictUndefined,
        trim_blocks=True,
        keep_trailing_newline=True,
    )
    return template.render(
        options=options,
        ports=[d.port for d in descriptors],
        command=json.dumps(launch_command(descriptors, options)),
    )


def compose_environment(descriptors: list[ServiceDescriptor], options: RecipeOptions) -> list[str]:
    """``KEY=value`` lines: one per endpoint with a client variable, plus the project id."""
    environment = []
    for descriptor in descriptors:
        variable = client_variable(descriptor.name)
        if variable:
            environment.append(f"{variable}={options.container_host}:{descriptor.port}")
    environment.append(f"{PROJECT_VARIABLE}={options.project_id}")
    return environment


def healthcheck(descriptors: list[ServiceDescriptor], options: RecipeOptions) -> HealthCheck:
    """Healthy once every emulator answers HTTP from inside the container."""
    probes = [f"curl -s -o /dev/null http://127.0.0.1:{d.port}/" for d in descriptors]
    return HealthCheck(
        test=["CMD-SHELL", " && ".join(probes)],
        start_period=options.health_start_period,
    )


def render_compose(descriptors: list[ServiceDescriptor], options: RecipeOptions) -> str:
    """Render the orchestration recipe for already-validated, enabled descriptors."""
    service: dict[str, Any] = {
        "build": {"context": ".", "dockerfile": options.dockerfile_name},
        "ports": [d.port_mapping for d in descriptors],
        "environment": compose_environment(descriptors, options),
        "volumes": [
            f".:{options.workdir}",
            f"{options.cache_volume}:{CACHE_DIR}",
        ],
    }
    if descriptors:
        service["healthcheck"] = healthcheck(descriptors, options).model_dump(exclude_none=True)
    document = {
        "services": {options.service_name: service},
        "volumes": {options.cache_volume: {}},
    }
    return yaml.safe_dump(document, sort_keys=False, default_flow_style=False)


def _enabled_sorted(descriptors: Iterable[ServiceDescriptor]) -> list[ServiceDescriptor]:
    descriptors = list(descriptors)
    validate_ports(descriptors)
    return sorted((d for d in descriptors if d.enabled), key=lambda d: (d.port, d.name))


def render(
    descriptors: Iterable[ServiceDescriptor], options: RecipeOptions | None = None
) -> RenderedArtifacts:
    """
    Render the build recipe and the orchestration recipe.

    Args:
        descriptors: Service descriptors; disabled ones are ignored
        options: Rendering options (defaults when omitted)

    Returns:
        RenderedArtifacts(dockerfile, compose)

    Raises:
        ValidationError: If two enabled services share a port
    """
    options = options or RecipeOptions()
    enabled = _enabled_sorted(descriptors)
    return RenderedArtifacts(
        dockerfile=render_dockerfile(enabled, options),
        compose=render_compose(enabled, options),
    )


def render_emulator_config(
    descriptors: Iterable[ServiceDescriptor], options: RecipeOptions | None = None
) -> str:
    """
    Render the emulator configuration file.

    Every enabled emulator listens on ``options.bind_host`` so that published
    container ports reach it.

    Raises:
        ValidationError: If two enabled services share a port
    """
    options = options or RecipeOptions()
    emulators: dict[str, Any] = {}
    for descriptor in _enabled_sorted(descriptors):
        entry: dict[str, Any] = {"host": options.bind_host, "port": descriptor.port}
        if descriptor.name == "ui":
            entry = {"enabled": True, **entry}
        emulators[descriptor.name] = entry
    return json.dumps({"emulators": emulators}, indent=2) + "\n"
