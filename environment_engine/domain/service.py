#environment_engine\domain\service.py

"""Project scaffolding - writes the files an environment is made of."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List

from environment_engine.config.secrets import SecretGenerator, create_environment_config
from environment_engine.config.settings import EnvironmentSettings
from environment_engine.domain.layout import ProjectLayout
from environment_engine.domain.models import EnvironmentDescriptor
from environment_engine.domain.templates import (
    GITIGNORE, build_descriptor, render_php_ini,
)

logger = logging.getLogger(__name__)

OPEN_MODE = 0o777


@dataclass
class ScaffoldResult:
    settings: EnvironmentSettings
    config_created: bool
    written: List[Path] = field(default_factory=list)


class ProjectScaffolder:
    """
    Creates and refreshes the on-disk artifacts of an environment.

    Generated files (descriptor, php.ini) are rewritten from settings;
    .env is only written once (see create_environment_config).
    """

    def __init__(self, layout: ProjectLayout, generator: SecretGenerator | None = None):
        self._layout = layout
        self._generator = generator

    @property
    def layout(self) -> ProjectLayout:
        return self._layout

    def scaffold(self, project_name: str, *, regenerate_secrets: bool = False) -> ScaffoldResult:
        """
        Create the directory layout and every generated file.

        Args:
            project_name: Compose project name for a new .env
            regenerate_secrets: Overwrite an existing .env with new secrets

        Returns:
            ScaffoldResult
        """
        layout = self._layout
        self.ensure_directories()

        creation = create_environment_config(
            layout,
            project_name,
            force=regenerate_secrets,
            generator=self._generator,
        )
        settings = creation.settings

        written = [layout.env_example_file]
        if creation.created:
            written.insert(0, layout.env_file)

        self.write_descriptor(settings)
        written.append(layout.compose_file)

        self.write_php_ini(settings)
        written.append(layout.php_ini)

        if not layout.gitignore.exists():
            layout.gitignore.write_text(GITIGNORE, encoding="utf-8")
            written.append(layout.gitignore)

        for keep_dir in (layout.plugins_dir, layout.themes_dir):
            (keep_dir / ".gitkeep").touch()

        open_permissions(layout.content_dirs)

        logger.info(f"✅ Environment scaffolded in {layout.root}")
        return ScaffoldResult(settings=settings, config_created=creation.created, written=written)

    def ensure_directories(self) -> None:
        layout = self._layout
        for directory in (
            *layout.content_dirs,
            layout.php_ini.parent,
            layout.mysql_init_dir,
            layout.mysql_logs_dir,
        ):
            directory.mkdir(parents=True, exist_ok=True)

    def load_settings(self) -> EnvironmentSettings:
        return EnvironmentSettings.load(self._layout.env_file)

    def descriptor(self, settings: EnvironmentSettings) -> EnvironmentDescriptor:
        return build_descriptor(settings)

    def write_descriptor(self, settings: EnvironmentSettings) -> bool:
        """
        Render the descriptor to docker-compose.yml.

        Returns True if the file content changed.
        """
        rendered = build_descriptor(settings).render()
        path = self._layout.compose_file

        if path.exists() and path.read_text(encoding="utf-8") == rendered:
            logger.debug(f"{path.name} unchanged")
            return False

        path.write_text(rendered, encoding="utf-8")
        logger.info(f"📝 Wrote {path.name}")
        return True

    def write_php_ini(self, settings: EnvironmentSettings) -> None:
        path = self._layout.php_ini
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(render_php_ini(settings), encoding="utf-8")


def open_permissions(paths: Iterable[Path]) -> List[Path]:
    """
    chmod 0777 every existing path, recursively.

    Dev-friendly permissions so both www-data and the host user can write.
    Returns the paths that could not be changed.
    """
    failed: List[Path] = []
    for root in paths:
        root = Path(root)
        if not root.exists():
            continue
        for path in _walk(root):
            try:
                os.chmod(path, OPEN_MODE)
            except OSError as e:
                logger.debug(f"chmod failed for {path}: {e}")
                failed.append(path)
    if failed:
        logger.warning(f"⚠️  Could not change permissions on {len(failed)} path(s)")
    return failed


def _walk(root: Path):
    yield root
    if root.is_dir() and not root.is_symlink():
        for dirpath, dirnames, filenames in os.walk(root):
            for name in dirnames + filenames:
                yield Path(dirpath) / name
