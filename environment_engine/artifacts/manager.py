# environment_engine/artifacts/manager.py
"""
Artifact Manager - plugins and themes developed as independent git repositories.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

from environment_engine.artifacts.templates import plugin_files, readme, theme_files
from environment_engine.core.errors import (
    ArtifactExistsError, ArtifactNotFoundError, EnvironmentEngineError,
    PreconditionError,
)
from environment_engine.core.results import OperationResult, SideEffect
from environment_engine.core.runtime import ContainerRuntime
from environment_engine.domain.layout import ProjectLayout
from environment_engine.domain.service import open_permissions
from environment_engine.infrastructure.git.client import GitClient
from environment_engine.wordpress.cli import WordPressCli

logger = logging.getLogger(__name__)

ACTIVATION = "activation"


class ArtifactKind(Enum):
    PLUGIN = "plugin"
    THEME = "theme"

    def directory(self, layout: ProjectLayout) -> Path:
        if self is ArtifactKind.PLUGIN:
            return layout.plugins_dir
        return layout.themes_dir

    def manifest(self, name: str) -> str:
        """File whose presence means the artifact exists."""
        if self is ArtifactKind.PLUGIN:
            return f"{name}.php"
        return "style.css"


class VcsState(Enum):
    UNTRACKED = "UNTRACKED"
    TRACKED_NO_REMOTE = "TRACKED_NO_REMOTE"
    TRACKED_WITH_REMOTE = "TRACKED_WITH_REMOTE"


class SyncState(Enum):
    UP_TO_DATE = "UP_TO_DATE"
    AHEAD = "AHEAD"
    BEHIND = "BEHIND"
    DIVERGED = "DIVERGED"
    UNKNOWN = "UNKNOWN"


@dataclass(frozen=True)
class ManagedArtifact:
    """One plugin or theme directory, as reported by `list`."""
    name: str
    kind: ArtifactKind
    path: Path
    vcs_state: VcsState
    sync_state: Optional[SyncState] = None
    remote_url: Optional[str] = None
    dirty: bool = False
    activation_status: Optional[str] = None


def derive_artifact_name(url: str) -> str:
    """
    Directory name for a cloned repository URL.

    https://host/user/my-plugin.git -> my-plugin
    """
    base = url.strip().rstrip("/")
    base = base.rsplit("/", 1)[-1].rsplit(":", 1)[-1]
    if base.endswith(".git"):
        base = base[: -len(".git")]
    return base


def _validate_name(name: str) -> str:
    name = (name or "").strip()
    if not name:
        raise PreconditionError("Artifact name is required")
    if "/" in name or "\\" in name or name in (".", ".."):
        raise PreconditionError(f"Invalid artifact name: {name!r}")
    return name


class ArtifactManager:
    """
    Scaffolds, versions and reports plugins and themes.
    """

    def __init__(
        self,
        layout: ProjectLayout,
        runtime: ContainerRuntime,
        git: GitClient | None = None,
        wp: WordPressCli | None = None,
    ):
        self._layout = layout
        self._runtime = runtime
        self._git = git or GitClient()
        self._wp = wp or WordPressCli(runtime)

    def path_for(self, kind: ArtifactKind, name: str) -> Path:
        return kind.directory(self._layout) / name

    # ============================================
    # CREATE
    # ============================================

    def create(self, kind: ArtifactKind, name: str) -> OperationResult:
        """
        Write a plugin or theme skeleton and try to activate it.

        Activation is a side effect; its failure does not fail the creation.

        Raises:
            PreconditionError: Invalid name
            ArtifactExistsError: The manifest file already exists
        """
        name = _validate_name(name)
        target = self.path_for(kind, name)

        if (target / kind.manifest(name)).exists():
            raise ArtifactExistsError(
                f"{kind.value.capitalize()} already exists: {target.relative_to(self._layout.root)}"
            )

        target.mkdir(parents=True, exist_ok=True)
        files = plugin_files(name) if kind is ArtifactKind.PLUGIN else theme_files(name)
        for filename, content in files.items():
            (target / filename).write_text(content, encoding="utf-8")

        open_permissions([target])
        logger.info(f"✅ {kind.value.capitalize()} created: {target}")

        result = OperationResult(
            succeeded=True,
            message=f"{kind.value.capitalize()} created: {target.relative_to(self._layout.root)}",
            data={"path": target},
        )
        result.side_effects.append(self._activate(kind, name))
        return result

    def _service_running(self, service: str) -> bool:
        """Runtime lookup that treats an unreachable runtime as stopped."""
        try:
            return self._runtime.is_running(service)
        except EnvironmentEngineError as e:
            logger.warning(f"⚠️  Could not query {service}: {e}")
            return False

    def _activate(self, kind: ArtifactKind, name: str) -> SideEffect:
        if not self._service_running(self._wp.service):
            return SideEffect.skipped(ACTIVATION, f"{self._wp.service} is not running")

        try:
            activation = self._wp.activate(kind.value, name)
        except EnvironmentEngineError as e:
            logger.warning(f"⚠️  {kind.value.capitalize()} {name} not activated: {e}")
            return SideEffect.failed(ACTIVATION, str(e))
        if activation.ok:
            logger.info(f"✅ {kind.value.capitalize()} activated: {name}")
            return SideEffect.ok(ACTIVATION)

        logger.warning(f"⚠️  {kind.value.capitalize()} {name} not activated")
        return SideEffect.failed(ACTIVATION, activation.output.strip())

    # ============================================
    # VERSION CONTROL
    # ============================================

    def _require_git(self) -> None:
        if not self._git.available:
            raise PreconditionError(
                f"{self._git.executable} is not installed; it is required for plugin and theme repositories"
            )

    def init_repo(self, kind: ArtifactKind, name: str) -> OperationResult:
        """
        Turn an existing artifact directory into its own git repository.

        Raises:
            ArtifactNotFoundError: The directory does not exist
            ExternalToolError: A git command failed
        """
        name = _validate_name(name)
        target = self.path_for(kind, name)

        if not target.is_dir():
            raise ArtifactNotFoundError(
                f"{kind.value.capitalize()} directory {target.relative_to(self._layout.root)} "
                f"doesn't exist. Create it first: wpdev {kind.value} {name}"
            )

        self._require_git()

        if self._git.is_repository(target):
            warning = f"Git repository already exists for {kind.value}: {name}"
            logger.warning(f"⚠️  {warning}")
            return OperationResult(succeeded=True, message=warning, warnings=[warning])

        self._git.init(target)
        (target / "README.md").write_text(readme(name, kind.value), encoding="utf-8")
        self._git.add_all(target)
        self._git.commit(target, f"Initial commit for {name} {kind.value}")

        logger.info(f"✅ Git repository initialized for {kind.value}: {name}")
        return OperationResult(
            succeeded=True,
            message=f"Git repository initialized for {kind.value}: {name}",
            data={"path": target},
        )

    def clone(self, kind: ArtifactKind, url: str, name: Optional[str] = None) -> OperationResult:
        """
        Clone a remote repository as a plugin or theme.

        Raises:
            PreconditionError: No usable URL or name
            ArtifactExistsError: The target directory exists; nothing is touched
            ExternalToolError: git clone failed
        """
        if not url or not url.strip():
            raise PreconditionError("Repository URL is required")

        name = _validate_name(name or derive_artifact_name(url))
        target = self.path_for(kind, name)

        if target.exists():
            raise ArtifactExistsError(
                f"{kind.value.capitalize()} directory {target.relative_to(self._layout.root)} already exists"
            )

        self._require_git()
        target.parent.mkdir(parents=True, exist_ok=True)
        logger.info(f"📦 Cloning {kind.value} repository {url}")
        self._git.clone(url, target)
        logger.info(f"✅ {kind.value.capitalize()} cloned: {target}")

        result = OperationResult(
            succeeded=True,
            message=f"{kind.value.capitalize()} cloned: {target.relative_to(self._layout.root)}",
            data={"path": target},
        )

        if self._service_running("wordpress"):
            result.side_effects.append(self._activate(kind, name))
        else:
            result.side_effects.append(SideEffect.skipped(ACTIVATION, "wordpress is not running"))
        return result

    # ============================================
    # LISTING
    # ============================================

    def list(self, kind: ArtifactKind) -> List[ManagedArtifact]:
        """
        Report every artifact directory with its version-control state.

        Read-only apart from a best-effort `git fetch` per remote-tracked repo.
        """
        base = kind.directory(self._layout)
        if not base.is_dir():
            return []

        statuses: Dict[str, str] = {}
        if self._service_running(self._wp.service):
            try:
                statuses = self._wp.list_status(kind.value)
            except EnvironmentEngineError as e:
                logger.warning(f"⚠️  Activation status unavailable: {e}")

        artifacts = []
        for path in sorted(base.iterdir()):
            if not path.is_dir() or path.name.startswith("."):
                continue
            artifacts.append(self._describe(kind, path, statuses.get(path.name)))
        return artifacts

    def _describe(
        self,
        kind: ArtifactKind,
        path: Path,
        activation_status: Optional[str],
    ) -> ManagedArtifact:
        if not self._git.is_repository(path):
            return ManagedArtifact(
                name=path.name,
                kind=kind,
                path=path,
                vcs_state=VcsState.UNTRACKED,
                activation_status=activation_status,
            )

        dirty = self._git.is_dirty(path)
        remotes = self._git.remotes(path)
        if not remotes:
            return ManagedArtifact(
                name=path.name,
                kind=kind,
                path=path,
                vcs_state=VcsState.TRACKED_NO_REMOTE,
                dirty=dirty,
                activation_status=activation_status,
            )

        remote = "origin" if "origin" in remotes else remotes[0]
        return ManagedArtifact(
            name=path.name,
            kind=kind,
            path=path,
            vcs_state=VcsState.TRACKED_WITH_REMOTE,
            sync_state=self._sync_state(path),
            remote_url=self._git.remote_url(path, remote),
            dirty=dirty,
            activation_status=activation_status,
        )

    def _sync_state(self, path: Path) -> SyncState:
        self._git.fetch(path)

        local = self._git.rev_parse(path, "@")
        upstream = self._git.rev_parse(path, "@{u}")
        if local is None or upstream is None:
            return SyncState.UNKNOWN

        if local == upstream:
            return SyncState.UP_TO_DATE

        base = self._git.merge_base(path, local, upstream)
        if base == local:
            return SyncState.BEHIND
        if base == upstream:
            return SyncState.AHEAD
        return SyncState.DIVERGED
