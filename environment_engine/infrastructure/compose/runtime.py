# environment_engine/infrastructure/compose/runtime.py
"""
Compose-backed container runtime.

Lifecycle commands (up/down/interactive) go through the compose CLI;
status, exec and logs talk to the Docker daemon through the SDK using
compose's project/service labels.
"""

import logging
import shutil
import subprocess
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import docker
from docker.errors import DockerException

from environment_engine.core.errors import ExternalToolError, ServiceNotRunningError
from environment_engine.core.models import ExecResult, ServiceStatus
from environment_engine.core.runtime import ContainerRuntime

logger = logging.getLogger(__name__)

PROJECT_LABEL = "com.docker.compose.project"
SERVICE_LABEL = "com.docker.compose.service"

REQUIRED_TOOLS = ("docker",)
OPTIONAL_TOOLS = ("git",)


def detect_compose_command() -> Optional[List[str]]:
    """
    Return the compose invocation available on this host.

    Prefers the standalone docker-compose binary, then the docker plugin.
    """
    if shutil.which("docker-compose"):
        return ["docker-compose"]

    if shutil.which("docker"):
        try:
            result = subprocess.run(
                ["docker", "compose", "version"],
                capture_output=True,
                text=True,
                timeout=15,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.debug(f"docker compose probe failed: {e}")
            return None
        if result.returncode == 0:
            return ["docker", "compose"]

    return None


def missing_dependencies() -> List[str]:
    """Host tools the environment cannot run without."""
    missing = [tool for tool in REQUIRED_TOOLS if shutil.which(tool) is None]
    if detect_compose_command() is None:
        missing.append("docker compose")
    return missing


def missing_optional_tools() -> List[str]:
    """Tools only some commands need (git for plugin/theme repositories)."""
    return [tool for tool in OPTIONAL_TOOLS if shutil.which(tool) is None]


class ComposeRuntime(ContainerRuntime):
    """
    Runs a compose project from a descriptor file on disk.
    """

    def __init__(
        self,
        project_name: str,
        compose_file: Path,
        compose_command: Optional[Sequence[str]] = None,
        client: Optional[docker.DockerClient] = None,
    ):
        """
        Args:
            project_name: Compose project (-p)
            compose_file: Path to docker-compose.yml (-f)
            compose_command: Compose invocation; detected when omitted
            client: Docker SDK client; created from the environment when omitted
        """
        self.project_name = project_name
        self.compose_file = Path(compose_file)
        self._compose_command = list(compose_command) if compose_command else None
        self._client = client

    # ============================================
    # CONNECTIONS
    # ============================================

    @property
    def compose_command(self) -> List[str]:
        if self._compose_command is None:
            detected = detect_compose_command()
            if detected is None:
                raise ExternalToolError(
                    "Docker Compose is not installed (tried docker-compose and docker compose)"
                )
            self._compose_command = detected
        return self._compose_command

    @property
    def client(self) -> docker.DockerClient:
        if self._client is None:
            try:
                self._client = docker.from_env()
                logger.debug("✅ Connected to Docker daemon")
            except DockerException as e:
                raise ExternalToolError(f"Cannot connect to Docker daemon: {e}") from e
        return self._client

    def _compose(self, *args: str) -> List[str]:
        return [
            *self.compose_command,
            "-p", self.project_name,
            "-f", str(self.compose_file),
            *args,
        ]

    def _run_compose(self, *args: str) -> None:
        command = self._compose(*args)
        logger.debug(f"Running: {' '.join(command)}")

        try:
            result = subprocess.run(
                command,
                cwd=self.compose_file.parent,
                capture_output=True,
                text=True,
            )
        except OSError as e:
            raise ExternalToolError(f"Failed to run compose: {e}", command=command) from e

        if result.returncode != 0:
            output = (result.stderr or result.stdout).strip()
            raise ExternalToolError(
                f"compose {args[0]} failed (exit {result.returncode}): {output}",
                command=command,
                exit_code=result.returncode,
                output=output,
            )

    def _containers(self, service: Optional[str] = None, running_only: bool = False):
        labels = [f"{PROJECT_LABEL}={self.project_name}"]
        if service:
            labels.append(f"{SERVICE_LABEL}={service}")

        try:
            return self.client.containers.list(
                all=not running_only,
                filters={"label": labels},
            )
        except DockerException as e:
            raise ExternalToolError(f"Docker API error: {e}") from e

    def _running_container(self, service: str):
        containers = self._containers(service, running_only=True)
        if not containers:
            raise ServiceNotRunningError(service)
        return containers[0]

    # ============================================
    # LIFECYCLE
    # ============================================

    def up(self) -> None:
        logger.info(f"🚀 Starting services for {self.project_name}")
        self._run_compose("up", "-d")

    def down(self, remove_volumes: bool = False) -> None:
        args = ["down"]
        if remove_volumes:
            args.append("-v")
        logger.info(f"Stopping services for {self.project_name}")
        self._run_compose(*args)

    # ============================================
    # INSPECTION
    # ============================================

    def exec(
        self,
        service: str,
        command: Sequence[str],
        user: Optional[str] = None,
    ) -> ExecResult:
        container = self._running_container(service)

        try:
            result = container.exec_run(list(command), user=user or "")
        except DockerException as e:
            raise ExternalToolError(
                f"exec in {service} failed: {e}", command=list(command)
            ) from e

        output = result.output.decode("utf-8", errors="replace") if result.output else ""
        return ExecResult(exit_code=result.exit_code, output=output)

    def service_status(self) -> Dict[str, ServiceStatus]:
        statuses: Dict[str, ServiceStatus] = {}

        for container in self._containers():
            service = container.labels.get(SERVICE_LABEL)
            if not service:
                continue

            state = container.attrs.get("State", {})
            health = (state.get("Health") or {}).get("Status")
            status = ServiceStatus(
                service=service,
                status=container.status,
                running=container.status == "running",
                health=health,
                container_id=container.short_id,
            )

            # Prefer a running container when a service has several
            current = statuses.get(service)
            if current is None or (status.running and not current.running):
                statuses[service] = status

        return statuses

    def logs(
        self,
        service: Optional[str] = None,
        tail: Optional[int] = None,
        since: Optional[datetime] = None,
    ) -> str:
        kwargs = {"stdout": True, "stderr": True}
        if tail is not None:
            kwargs["tail"] = tail
        if since is not None:
            kwargs["since"] = since

        chunks = []
        for container in self._containers(service):
            try:
                raw = container.logs(**kwargs)
            except DockerException as e:
                raise ExternalToolError(f"Failed to read logs: {e}") from e
            text = raw.decode("utf-8", errors="replace")
            if service is None:
                name = container.labels.get(SERVICE_LABEL, container.name)
                text = "".join(f"{name} | {line}\n" for line in text.splitlines())
            chunks.append(text)

        return "".join(chunks)

    def attach(self, args: Sequence[str]) -> int:
        command = self._compose(*args)
        logger.debug(f"Attaching: {' '.join(command)}")
        try:
            return subprocess.call(command, cwd=self.compose_file.parent)
        except OSError as e:
            raise ExternalToolError(f"Failed to run compose: {e}", command=command) from e
