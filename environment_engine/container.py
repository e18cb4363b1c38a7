#environment_engine\container.py

"""Dependency injection container - wires all services together."""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from environment_engine.artifacts.manager import ArtifactManager
from environment_engine.backup.engine import BackupEngine
from environment_engine.config.settings import EnvironmentSettings
from environment_engine.core.events import LoggingEventEmitter, MultiEventEmitter
from environment_engine.core.runtime import ContainerRuntime
from environment_engine.domain.layout import ProjectLayout
from environment_engine.domain.service import ProjectScaffolder
from environment_engine.infrastructure.compose.runtime import ComposeRuntime, missing_dependencies
from environment_engine.infrastructure.git.client import GitClient
from environment_engine.orchestrator.lifecycle_orchestrator import LifecycleOrchestrator
from environment_engine.wordpress.cli import WordPressCli


@dataclass
class Services:
    layout: ProjectLayout
    settings: EnvironmentSettings
    runtime: ContainerRuntime
    orchestrator: LifecycleOrchestrator
    backups: BackupEngine
    artifacts: ArtifactManager
    wp: WordPressCli


def build_services(
    project_dir: Path,
    runtime: Optional[ContainerRuntime] = None,
    check_dependencies: bool = True,
) -> Services:
    """
    Build every service for the environment rooted at project_dir.

    Args:
        project_dir: Environment root
        runtime: Container runtime; ComposeRuntime over the project's descriptor when omitted
        check_dependencies: Let `init` verify host tools

    Returns:
        Services
    """
    # ============================================
    # CONFIGURATION
    # ============================================

    layout = ProjectLayout(Path(project_dir).resolve())
    settings = EnvironmentSettings.load(layout.env_file)

    # ============================================
    # INFRASTRUCTURE
    # ============================================

    if runtime is None:
        runtime = ComposeRuntime(
            project_name=settings.compose_project,
            compose_file=layout.compose_file,
        )

    wp = WordPressCli(runtime)
    git = GitClient()

    # ============================================
    # EVENTS
    # ============================================

    emitters = MultiEventEmitter([
        LoggingEventEmitter()
    ])

    # ============================================
    # SERVICES
    # ============================================

    scaffolder = ProjectScaffolder(layout)
    backups = BackupEngine(runtime, layout)
    artifacts = ArtifactManager(layout, runtime, git=git, wp=wp)

    orchestrator = LifecycleOrchestrator(
        layout=layout,
        runtime=runtime,
        scaffolder=scaffolder,
        backups=backups,
        wp=wp,
        events=emitters,
        dependency_check=missing_dependencies if check_dependencies else None,
    )

    return Services(
        layout=layout,
        settings=settings,
        runtime=runtime,
        orchestrator=orchestrator,
        backups=backups,
        artifacts=artifacts,
        wp=wp,
    )
