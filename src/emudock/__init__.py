"""
emudock: run the Firebase emulator suite in a container.

Renders the Dockerfile, compose file and emulator config for a declarative
service/port mapping, drives ``docker compose`` to build and start the
container, and points client SDKs at the emulated endpoints.
"""

# Version is read from package metadata (pyproject.toml is the single source of truth)
try:
    from importlib.metadata import version

    __version__ = version("emudock")
except Exception:
    __version__ = "0.0.0+unknown"
