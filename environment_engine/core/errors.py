# environment_engine/core/errors.py

from typing import Optional, Sequence

# -----------------------------
# Base Errors
# -----------------------------

class EnvironmentEngineError(Exception):
    """Base class for all environment engine errors."""
    pass


# -----------------------------
# Precondition Errors
# -----------------------------

class PreconditionError(EnvironmentEngineError):
    """Missing argument, or target in the wrong place. Nothing was attempted."""
    pass


class EnvironmentNotCreatedError(PreconditionError):
    """No descriptor on disk; the environment was never initialized."""
    pass


class ServiceNotRunningError(PreconditionError):
    """A command needed a service container that is not running."""

    def __init__(self, service: str):
        super().__init__(f"Service '{service}' is not running. Start it first: wpdev up")
        self.service = service


class ConfigurationError(PreconditionError):
    """The .env file holds a value that fails validation."""

    def __init__(self, message: str, keys: Sequence[str] = ()):
        super().__init__(message)
        self.keys = list(keys)


class ArtifactExistsError(PreconditionError):
    pass


class ArtifactNotFoundError(PreconditionError):
    pass


# -----------------------------
# External Tool Errors
# -----------------------------

class ExternalToolError(EnvironmentEngineError):
    """Container runtime, git or wp-cli exited non-zero."""

    def __init__(
        self,
        message: str,
        *,
        command: Optional[Sequence[str]] = None,
        exit_code: Optional[int] = None,
        output: str = "",
    ):
        super().__init__(message)
        self.command = list(command) if command else []
        self.exit_code = exit_code
        self.output = output


# -----------------------------
# Timeout Errors
# -----------------------------

class ReadinessTimeoutError(EnvironmentEngineError):
    """Database never answered a trivial query within the wait window."""

    def __init__(self, timeout_seconds: float, recent_logs: str = ""):
        super().__init__(
            f"Database failed to start within {timeout_seconds:g} seconds"
        )
        self.timeout_seconds = timeout_seconds
        self.recent_logs = recent_logs


# -----------------------------
# Validation Errors
# -----------------------------

class BackupValidationError(EnvironmentEngineError):
    """Dump produced no data, even if the tool reported success."""
    pass


class BackupNotFoundError(EnvironmentEngineError):
    pass


# -----------------------------
# State Errors
# -----------------------------

class InvalidStateTransition(EnvironmentEngineError):
    pass
