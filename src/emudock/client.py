"""
Client-side wiring: point an SDK at the emulated endpoints.

The SDKs read the emulator host variables once, when they initialize. Callers
build a :class:`ClientConfig` and hand it to :func:`initialize_client`, which
applies the variables and only then runs the SDK initializer.
"""

import os
import shlex
from collections.abc import Callable, MutableMapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from emudock.config import get_logger
from emudock.exceptions import ConfigError
from emudock.services.catalog import PROJECT_VARIABLE, client_variable
from emudock.services.models import DescriptorSet

logger = get_logger("client")


class ClientConfig(BaseModel):
    """Emulator endpoints a client should use."""

    model_config = ConfigDict(frozen=True)

    project_id: str
    host: str = "localhost"
    endpoints: dict[str, int] = Field(default_factory=dict)

    @classmethod
    def from_descriptors(
        cls,
        descriptors: DescriptorSet,
        project_id: str,
        host: str = "localhost",
    ) -> "ClientConfig":
        """Build a client config from the enabled services of a descriptor set."""
        return cls(
            project_id=project_id,
            host=host,
            endpoints={d.name: d.port for d in descriptors.enabled()},
        )

    def environment(self) -> dict[str, str]:
        """Variables to set before SDK initialization."""
        env = {}
        for name, port in sorted(self.endpoints.items(), key=lambda item: item[1]):
            variable = client_variable(name)
            if variable:
                env[variable] = f"{self.host}:{port}"
        env[PROJECT_VARIABLE] = self.project_id
        return env


def _default_initializer() -> Callable[..., Any]:
    try:
        import firebase_admin
    except ImportError as exc:
        raise ConfigError(
            "firebase-admin is not installed; install emudock[client] or pass an initializer"
        ) from exc
    return firebase_admin.initialize_app


def initialize_client(
    config: ClientConfig,
    initializer: Callable[..., Any] | None = None,
    environ: MutableMapping[str, str] | None = None,
) -> Any:
    """
    Apply the emulator variables, then initialize the SDK.

    Args:
        config: Endpoints to use
        initializer: SDK initializer, called as ``initializer(options=...)``
            (default: ``firebase_admin.initialize_app``)
        environ: Environment to update (default: ``os.environ``)

    Returns:
        Whatever the initializer returns (the SDK app object)
    """
    initializer = initializer or _default_initializer()
    environ = os.environ if environ is None else environ

    env = config.environment()
    environ.update(env)
    logger.info("Emulator endpoints applied", variables=",".join(sorted(env)))

    return initializer(options={"projectId": config.project_id})


def export_lines(config: ClientConfig) -> list[str]:
    """Shell ``export`` lines for clients that are not Python processes."""
    return [f"export {key}={shlex.quote(value)}" for key, value in config.environment().items()]
