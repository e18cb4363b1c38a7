# environment_engine/infrastructure/memory/runtime.py

from datetime import datetime
from threading import Lock
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from environment_engine.core.errors import ExternalToolError, ServiceNotRunningError
from environment_engine.core.models import ExecResult, ServiceStatus
from environment_engine.core.runtime import ContainerRuntime


ExecHandler = Callable[[str, Tuple[str, ...]], ExecResult]

DEFAULT_SERVICES = ("wordpress", "db", "phpmyadmin", "wpcli")


class InMemoryRuntime(ContainerRuntime):
    """
    Scriptable runtime with no containers behind it.

    `exec_handler` decides the result of every exec; the default answers
    every command with exit code 0 and no output.
    """

    def __init__(
        self,
        services: Iterable[str] = DEFAULT_SERVICES,
        exec_handler: Optional[ExecHandler] = None,
    ):
        self.services: List[str] = list(services)
        self.running: set[str] = set()
        self.exec_handler = exec_handler
        self.logs_by_service: Dict[str, str] = {}
        self.calls: List[tuple] = []
        self.up_error: Optional[ExternalToolError] = None
        self.attach_exit_code = 0
        self.volumes_removed = False
        self._lock = Lock()

    def up(self) -> None:
        self.calls.append(("up",))
        if self.up_error:
            raise self.up_error
        with self._lock:
            self.running = set(self.services)

    def down(self, remove_volumes: bool = False) -> None:
        self.calls.append(("down", remove_volumes))
        with self._lock:
            self.running.clear()
            if remove_volumes:
                self.volumes_removed = True

    def exec(
        self,
        service: str,
        command: Sequence[str],
        user: Optional[str] = None,
    ) -> ExecResult:
        command = tuple(command)
        self.calls.append(("exec", service, command, user))
        if service not in self.running:
            raise ServiceNotRunningError(service)
        if self.exec_handler is None:
            return ExecResult(0)
        return self.exec_handler(service, command)

    def service_status(self) -> Dict[str, ServiceStatus]:
        statuses = {}
        for service in self.services:
            running = service in self.running
            statuses[service] = ServiceStatus(
                service=service,
                status="running" if running else "exited",
                running=running,
            )
        return statuses

    def logs(
        self,
        service: Optional[str] = None,
        tail: Optional[int] = None,
        since: Optional[datetime] = None,
    ) -> str:
        self.calls.append(("logs", service, tail))
        if service is None:
            text = "".join(self.logs_by_service.values())
        else:
            text = self.logs_by_service.get(service, "")
        if tail is not None:
            lines = text.splitlines(keepends=True)
            text = "".join(lines[-tail:]) if tail else ""
        return text

    def attach(self, args: Sequence[str]) -> int:
        self.calls.append(("attach", tuple(args)))
        return self.attach_exit_code

    # -------------------------
    # TEST HELPERS
    # -------------------------

    def exec_calls(self, service: Optional[str] = None) -> List[Tuple[str, ...]]:
        """Commands passed to exec, optionally for one service."""
        return [
            call[2] for call in self.calls
            if call[0] == "exec" and (service is None or call[1] == service)
        ]
