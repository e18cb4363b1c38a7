#tests\conftest.py

"""Pytest configuration and fixtures."""

import pytest
from typing import Callable, List, Tuple

from environment_engine.config.secrets import SecretGenerator
from environment_engine.core.events import RecordingEventEmitter
from environment_engine.core.models import ExecResult
from environment_engine.domain.layout import ProjectLayout
from environment_engine.domain.service import ProjectScaffolder
from environment_engine.infrastructure.memory.runtime import InMemoryRuntime
from environment_engine.orchestrator.lifecycle_orchestrator import LifecycleOrchestrator


# ============================================
# TEST DOUBLES
# ============================================

class FakeClock:
    """Monotonic clock whose sleep just advances time."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeResponse:
    def __init__(self, status_code: int):
        self.status_code = status_code


class ExecScript:
    """
    Exec handler for InMemoryRuntime.

    Rules are checked in order; the first whose service matches and whose
    text appears in the joined command wins. Unmatched commands succeed.
    """

    def __init__(self):
        self.rules: List[Tuple[str, str, Callable[[], ExecResult]]] = []

    def when(self, service: str, text: str, result) -> "ExecScript":
        factory = result if callable(result) else (lambda: result)
        self.rules.insert(0, (service, text, factory))
        return self

    def __call__(self, service: str, command: Tuple[str, ...]) -> ExecResult:
        joined = " ".join(command)
        for rule_service, text, factory in self.rules:
            if rule_service == service and text in joined:
                return factory()
        return ExecResult(0)


# ============================================
# FIXTURES
# ============================================

@pytest.fixture
def generator():
    """Deterministic secrets."""
    return SecretGenerator(token_hex=lambda n: "ab" * n)


@pytest.fixture
def layout(tmp_path):
    """Empty project directory."""
    root = tmp_path / "site"
    root.mkdir()
    return ProjectLayout(root)


@pytest.fixture
def scaffolder(layout, generator):
    return ProjectScaffolder(layout, generator=generator)


@pytest.fixture
def scaffolded(scaffolder):
    """Project with .env, descriptor and directories in place."""
    return scaffolder.scaffold("test-site")


@pytest.fixture
def exec_script():
    return ExecScript()


@pytest.fixture
def runtime(exec_script):
    return InMemoryRuntime(exec_handler=exec_script)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def events():
    return RecordingEventEmitter()


@pytest.fixture
def http_calls():
    return []


@pytest.fixture
def http_get(http_calls):
    """requests.get replacement answering 200 for every URL."""
    def get(url, timeout=None):
        http_calls.append(url)
        return FakeResponse(200)
    return get


@pytest.fixture
def orchestrator(layout, runtime, scaffolder, events, http_get, clock):
    """Orchestrator over an in-memory runtime (project not yet scaffolded)."""
    return LifecycleOrchestrator(
        layout=layout,
        runtime=runtime,
        scaffolder=scaffolder,
        events=events,
        dependency_check=lambda: [],
        http_get=http_get,
        monotonic=clock,
        sleep=clock.sleep,
    )
