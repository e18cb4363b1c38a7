#environment_engine\domain\models.py
"""Descriptor models: the declarative service topology of an environment."""

from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

import yaml
from pydantic import BaseModel, ConfigDict, Field


# ============================================
# ENUMS
# ============================================

class DependencyCondition(str, Enum):
    """What a dependent service waits for."""
    HEALTHY = "service_healthy"
    STARTED = "service_started"


# ============================================
# BUILDING BLOCKS
# ============================================

class HealthProbe(BaseModel):
    """Container health check."""
    model_config = ConfigDict(frozen=True)

    test: Tuple[str, ...] = Field(..., description="Probe command, compose exec form")
    interval_seconds: int = 10
    timeout_seconds: int = 5
    retries: int = 3
    start_period_seconds: int = 0

    def to_compose(self) -> Dict[str, Any]:
        return {
            "test": list(self.test),
            "interval": f"{self.interval_seconds}s",
            "timeout": f"{self.timeout_seconds}s",
            "retries": self.retries,
            "start_period": f"{self.start_period_seconds}s",
        }


class PortMapping(BaseModel):
    """Host port published to a container port."""
    model_config = ConfigDict(frozen=True)

    host: int = Field(..., ge=1, le=65535)
    container: int = Field(..., ge=1, le=65535)

    def to_compose(self) -> str:
        return f"{self.host}:{self.container}"


class VolumeMount(BaseModel):
    """Host path or named volume mounted into a container."""
    model_config = ConfigDict(frozen=True)

    source: str = Field(..., description="Host path (./dir) or named volume")
    target: str = Field(..., description="Path inside the container")
    read_only: bool = False

    @property
    def is_bind(self) -> bool:
        return self.source.startswith((".", "/"))

    def to_compose(self) -> str:
        spec = f"{self.source}:{self.target}"
        return f"{spec}:ro" if self.read_only else spec


class ServiceDependency(BaseModel):
    """Startup ordering edge."""
    model_config = ConfigDict(frozen=True)

    service: str
    condition: DependencyCondition = DependencyCondition.STARTED


# ============================================
# SERVICE / ENVIRONMENT
# ============================================

class ServiceDescriptor(BaseModel):
    """One managed service."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Compose service name")
    image: str = Field(..., description="Docker image (e.g., 'mariadb:11')")
    ports: Tuple[PortMapping, ...] = ()
    environment: Dict[str, str] = Field(default_factory=dict)
    volumes: Tuple[VolumeMount, ...] = ()
    networks: Tuple[str, ...] = ()
    healthcheck: Optional[HealthProbe] = None
    restart: Optional[str] = "unless-stopped"
    depends_on: Tuple[ServiceDependency, ...] = ()
    command: Optional[str] = None
    working_dir: Optional[str] = None
    user: Optional[str] = None
    profiles: Tuple[str, ...] = ()

    @property
    def optional(self) -> bool:
        """Profiled services are not started by a plain `up`."""
        return bool(self.profiles)

    def to_compose(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"image": self.image}
        if self.profiles:
            data["profiles"] = list(self.profiles)
        if self.working_dir:
            data["working_dir"] = self.working_dir
        if self.command:
            data["command"] = self.command
        if self.user:
            data["user"] = self.user
        if self.ports:
            data["ports"] = [port.to_compose() for port in self.ports]
        if self.environment:
            data["environment"] = dict(self.environment)
        if self.volumes:
            data["volumes"] = [volume.to_compose() for volume in self.volumes]
        if self.depends_on:
            data["depends_on"] = {
                dep.service: {"condition": dep.condition.value}
                for dep in self.depends_on
            }
        if self.restart:
            data["restart"] = self.restart
        if self.networks:
            data["networks"] = list(self.networks)
        if self.healthcheck:
            data["healthcheck"] = self.healthcheck.to_compose()
        return data


class EnvironmentDescriptor(BaseModel):
    """Full service topology, ready to be serialized for compose."""
    model_config = ConfigDict(frozen=True)

    project_name: str
    services: Tuple[ServiceDescriptor, ...]
    volumes: Tuple[str, ...] = ()
    networks: Tuple[str, ...] = ()

    def service(self, name: str) -> ServiceDescriptor:
        for service in self.services:
            if service.name == name:
                return service
        raise KeyError(name)

    @property
    def service_names(self) -> List[str]:
        return [service.name for service in self.services]

    @property
    def default_services(self) -> List[ServiceDescriptor]:
        return [service for service in self.services if not service.optional]

    def to_compose(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "name": self.project_name,
            "services": {
                service.name: service.to_compose() for service in self.services
            },
        }
        if self.volumes:
            data["volumes"] = {name: {"driver": "local"} for name in self.volumes}
        if self.networks:
            data["networks"] = {name: {"driver": "bridge"} for name in self.networks}
        return data

    def render(self) -> str:
        """Serialize to docker-compose YAML. Same descriptor, same bytes."""
        return yaml.dump(
            self.to_compose(),
            Dumper=_ComposeDumper,
            sort_keys=False,
            default_flow_style=False,
            allow_unicode=True,
            width=120,
        )


class _ComposeDumper(yaml.SafeDumper):
    """Safe dumper that writes multi-line strings as literal blocks."""


def _str_representer(dumper: yaml.SafeDumper, data: str):
    if "\n" in data:
        return dumper.represent_scalar("tag:yaml.org,2002:str", data, style="|")
    return dumper.represent_scalar("tag:yaml.org,2002:str", data)


_ComposeDumper.add_representer(str, _str_representer)
