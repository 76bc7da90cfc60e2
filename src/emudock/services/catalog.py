"""
Catalog of the emulators in the Firebase Local Emulator Suite.

Maps each emulator to its default port and the environment variable client
SDKs read to find it.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class EmulatorSpec:
    """Static facts about one emulator."""

    name: str
    default_port: int
    client_variable: str | None = None


CATALOG: dict[str, EmulatorSpec] = {
    spec.name: spec
    for spec in (
        EmulatorSpec("ui", 4000),
        EmulatorSpec("hub", 4400, "FIREBASE_EMULATOR_HUB"),
        EmulatorSpec("hosting", 5000),
        EmulatorSpec("functions", 5001),
        EmulatorSpec("firestore", 8080, "FIRESTORE_EMULATOR_HOST"),
        EmulatorSpec("pubsub", 8085, "PUBSUB_EMULATOR_HOST"),
        EmulatorSpec("database", 9000, "FIREBASE_DATABASE_EMULATOR_HOST"),
        EmulatorSpec("auth", 9099, "FIREBASE_AUTH_EMULATOR_HOST"),
        EmulatorSpec("storage", 9199, "FIREBASE_STORAGE_EMULATOR_HOST"),
        EmulatorSpec("eventarc", 9299),
    )
}

# Variable carrying the project id the SDKs fall back to
PROJECT_VARIABLE = "GCLOUD_PROJECT"


def get_emulator(name: str) -> EmulatorSpec | None:
    """Look up an emulator by name."""
    return CATALOG.get(name)


def client_variable(name: str) -> str | None:
    """Return the client environment variable for an emulator, if it has one."""
    spec = CATALOG.get(name)
    return spec.client_variable if spec else None
