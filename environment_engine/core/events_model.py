"""Event models for the environment lifecycle."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from environment_engine.core.models import Environment, EnvironmentState


@dataclass
class LifecycleEvent:
    """Base lifecycle event."""

    event_type: str
    project_name: str
    timestamp: datetime
    metadata: Dict[str, Any]

    @staticmethod
    def state_changed(
        environment: Environment,
        previous: EnvironmentState,
        reason: Optional[str] = None,
    ):
        """Environment entered a new state."""
        return LifecycleEvent(
            event_type=f"environment.{environment.state.value.lower()}",
            project_name=environment.project_name,
            timestamp=datetime.now(timezone.utc),
            metadata={
                "previous_state": previous.value,
                "state": environment.state.value,
                "database_ready": environment.database_ready,
                "reason": reason,
            }
        )

    @staticmethod
    def database_ready(environment: Environment, attempts: int, elapsed: float):
        """Database answered the readiness query."""
        return LifecycleEvent(
            event_type="environment.database_ready",
            project_name=environment.project_name,
            timestamp=datetime.now(timezone.utc),
            metadata={
                "attempts": attempts,
                "elapsed_seconds": round(elapsed, 3),
            }
        )
