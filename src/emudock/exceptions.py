"""
Custom exceptions for the emudock package.
"""


class EmuDockError(Exception):
    """Base exception for all emudock errors."""

    pass


class ValidationError(EmuDockError):
    """Raised when enabled services claim the same host port."""

    def __init__(self, port: int, services: list[str]):
        self.port = port
        self.services = list(services)
        super().__init__(
            f"Port {port} is claimed by more than one enabled service: {', '.join(self.services)}"
        )


class ToolchainError(EmuDockError):
    """Raised when the external container toolchain is missing or fails."""

    def __init__(self, message: str, command: list[str] | None = None, stderr: str | None = None):
        self.command = command
        self.stderr = (stderr or "").strip()

        if self.stderr:
            message = f"{message}: {self.stderr}"

        super().__init__(message)


class ConfigError(EmuDockError):
    """Raised when descriptor input or settings are missing or malformed."""

    def __init__(self, message: str, source: str | None = None):
        self.source = source

        if source:
            message = f"{source}: {message}"

        super().__init__(message)
