"""
Descriptor file loader.

Example ``emulators.yaml``:

    project_id: my-local-test-project
    services:
      firestore: 8080
      ui: {port: 4000}
      auth: {enabled: false}
"""

from pathlib import Path

import yaml

from emudock.config import get_logger
from emudock.exceptions import ConfigError
from emudock.services.models import DescriptorSet, ServiceDescriptor, StackDefinition

logger = get_logger("services")

# The two services of the stock recipe
DEFAULT_SERVICES = (
    ServiceDescriptor(name="firestore", port=8080),
    ServiceDescriptor(name="ui", port=4000),
)


def default_stack() -> StackDefinition:
    """Stack used when no descriptor file exists."""
    return StackDefinition(descriptors=DescriptorSet(DEFAULT_SERVICES))


def load_descriptors(path: str | Path) -> StackDefinition:
    """
    Load service descriptors from a YAML file.

    Args:
        path: Path to the descriptor file

    Returns:
        StackDefinition with the parsed descriptors and optional project id

    Raises:
        ConfigError: If the file is missing, unreadable, or malformed
    """
    path = Path(path)
    source = str(path)

    if not path.exists():
        raise ConfigError("Descriptor file not found", source=source)

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML: {exc}", source=source) from exc
    except OSError as exc:
        raise ConfigError(f"Could not read file: {exc}", source=source) from exc

    if not isinstance(data, dict):
        raise ConfigError(
            f"Descriptor file must contain a YAML mapping, got {type(data).__name__}",
            source=source,
        )

    if "services" not in data:
        raise ConfigError("Missing required section: 'services'", source=source)

    services = data["services"]
    if not services:
        raise ConfigError("No services defined", source=source)

    unknown = set(data) - {"services", "project_id"}
    if unknown:
        raise ConfigError(f"Unknown top-level key(s): {', '.join(sorted(unknown))}", source=source)

    project_id = data.get("project_id")
    if project_id is not None and (not isinstance(project_id, str) or not project_id.strip()):
        raise ConfigError("'project_id' must be a non-empty string", source=source)

    descriptors = DescriptorSet.from_mapping(services, source=source)
    logger.debug("Loaded descriptors", path=source, services=len(descriptors))

    return StackDefinition(
        descriptors=descriptors,
        project_id=project_id.strip() if project_id else None,
    )


def resolve_stack(
    path: str | Path | None = None, fallback: str | Path | None = None
) -> StackDefinition:
    """Pick the descriptor source.

    An explicit ``path`` must exist. Otherwise ``fallback`` is used when it
    exists, and the default stack when it does not.
    """
    if path is not None:
        return load_descriptors(path)
    if fallback is not None and Path(fallback).exists():
        return load_descriptors(fallback)
    logger.debug("No descriptor file found, using default stack")
    return default_stack()
