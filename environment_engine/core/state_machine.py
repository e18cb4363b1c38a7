#environment_engine\core\state_machine.py

from datetime import datetime, timezone

from environment_engine.core.errors import InvalidStateTransition
from environment_engine.core.models import Environment, EnvironmentState


ALLOWED_TRANSITIONS = {
    EnvironmentState.ABSENT: {
        EnvironmentState.CREATED,
    },
    EnvironmentState.CREATED: {
        EnvironmentState.STARTING,
        EnvironmentState.STOPPING,
    },
    EnvironmentState.STOPPED: {
        EnvironmentState.STARTING,
        EnvironmentState.STOPPING,
    },
    EnvironmentState.STARTING: {
        EnvironmentState.DEGRADED_WAIT,
        EnvironmentState.READY,
        EnvironmentState.STOPPING,
    },
    EnvironmentState.DEGRADED_WAIT: {
        EnvironmentState.STARTING,
        EnvironmentState.READY,
        EnvironmentState.STOPPING,
    },
    EnvironmentState.READY: {
        EnvironmentState.STARTING,
        EnvironmentState.STOPPING,
    },
    EnvironmentState.STOPPING: {
        EnvironmentState.STOPPED,
        # clean: containers and volumes gone, descriptor kept
        EnvironmentState.CREATED,
    },
}


class EnvironmentStateMachine:
    @staticmethod
    def can_transition(current: EnvironmentState, new_state: EnvironmentState) -> bool:
        if current == new_state:
            return True
        return new_state in ALLOWED_TRANSITIONS.get(current, set())

    @staticmethod
    def transition(
        environment: Environment,
        new_state: EnvironmentState,
        *,
        now: datetime | None = None,
    ) -> bool:
        """
        Move the environment to new_state.

        Returns False when the environment is already in new_state (no-op),
        True when a transition happened.
        """
        now = now or datetime.now(timezone.utc)

        current = environment.state

        if current == new_state:
            return False

        allowed = ALLOWED_TRANSITIONS.get(current, set())
        if new_state not in allowed:
            raise InvalidStateTransition(
                f"Cannot transition from {current.value} to {new_state.value}"
            )

        # Timestamp semantics
        if new_state == EnvironmentState.CREATED:
            environment.created_at = environment.created_at or now
            environment.database_ready = False

        elif new_state == EnvironmentState.STARTING:
            environment.last_up_at = now
            environment.database_ready = False
            environment.database_ready_at = None

        elif new_state == EnvironmentState.READY:
            environment.ready_at = now

        elif new_state == EnvironmentState.STOPPED:
            environment.stopped_at = now
            environment.database_ready = False

        environment.state = new_state
        environment.version += 1
        return True
