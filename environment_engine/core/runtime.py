# environment_engine/core/runtime.py

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, Optional, Sequence

from environment_engine.core.models import ExecResult, ServiceStatus


class ContainerRuntime(ABC):
    """
    Contract for the container runtime that runs the environment's services.
    """

    @abstractmethod
    def up(self) -> None:
        """
        Request every default service to start (detached).
        Raises ExternalToolError if the runtime rejects the request.
        """
        raise NotImplementedError

    @abstractmethod
    def down(self, remove_volumes: bool = False) -> None:
        """
        Stop and remove containers.
        Named volumes survive unless remove_volumes is True.
        """
        raise NotImplementedError

    @abstractmethod
    def exec(
        self,
        service: str,
        command: Sequence[str],
        user: Optional[str] = None,
    ) -> ExecResult:
        """
        Run a non-interactive command inside a running service.
        Raises ServiceNotRunningError if the service has no running container.
        """
        raise NotImplementedError

    @abstractmethod
    def service_status(self) -> Dict[str, ServiceStatus]:
        """
        Status of every container in the project, keyed by service name.
        """
        raise NotImplementedError

    def is_running(self, service: str) -> bool:
        status = self.service_status().get(service)
        return bool(status and status.running)

    @abstractmethod
    def logs(
        self,
        service: Optional[str] = None,
        tail: Optional[int] = None,
        since: Optional[datetime] = None,
    ) -> str:
        """
        Captured log output for one service, or all services when None.
        """
        raise NotImplementedError

    @abstractmethod
    def attach(self, args: Sequence[str]) -> int:
        """
        Run an interactive compose subcommand bound to the terminal.
        Returns its exit status.
        """
        raise NotImplementedError
