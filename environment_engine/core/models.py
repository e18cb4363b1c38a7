"""Core domain models (environment lifecycle)."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class EnvironmentState(Enum):
    """Environment lifecycle state machine."""

    ABSENT = "ABSENT"
    CREATED = "CREATED"
    STOPPED = "STOPPED"
    STARTING = "STARTING"
    DEGRADED_WAIT = "DEGRADED_WAIT"
    READY = "READY"
    STOPPING = "STOPPING"


@dataclass
class Environment:
    """One local development environment, as seen by the orchestrator."""

    project_name: str
    state: EnvironmentState = EnvironmentState.ABSENT

    # Set once the database answered a trivial query after the latest `up`.
    database_ready: bool = False

    # Lifecycle timestamps
    created_at: Optional[datetime] = None
    last_up_at: Optional[datetime] = None
    database_ready_at: Optional[datetime] = None
    ready_at: Optional[datetime] = None
    stopped_at: Optional[datetime] = None

    # Incremented on every real transition
    version: int = 0

    def mark_database_ready(self, now: datetime) -> None:
        self.database_ready = True
        self.database_ready_at = now


# ============================================
# RUNTIME RESULTS
# ============================================

@dataclass(frozen=True)
class ExecResult:
    """Result of a command executed inside a service container."""
    exit_code: int
    output: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


@dataclass(frozen=True)
class ServiceStatus:
    """Container status for one compose service."""
    service: str
    status: str  # "running", "exited", "created", ...
    running: bool
    health: Optional[str] = None  # "healthy", "unhealthy", "starting"
    container_id: Optional[str] = None
