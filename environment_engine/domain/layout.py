"""Fixed on-disk layout of a development environment."""

from dataclasses import dataclass
from pathlib import Path
from typing import Tuple


# Paths inside the containers
CONTAINER_DOCROOT = "/var/www/html"
CONTAINER_BACKUPS = "/backups"


@dataclass(frozen=True)
class ProjectLayout:
    """Directory contract of one environment, rooted at `root`."""
    root: Path

    @property
    def wordpress_dir(self) -> Path:
        return self.root / "wordpress"

    @property
    def plugins_dir(self) -> Path:
        return self.root / "plugins"

    @property
    def themes_dir(self) -> Path:
        return self.root / "themes"

    @property
    def uploads_dir(self) -> Path:
        return self.root / "uploads"

    @property
    def backups_dir(self) -> Path:
        return self.root / "backups"

    @property
    def docker_dir(self) -> Path:
        return self.root / ".docker"

    @property
    def php_ini(self) -> Path:
        return self.docker_dir / "php" / "php.ini"

    @property
    def mysql_init_dir(self) -> Path:
        return self.docker_dir / "mysql-init"

    @property
    def mysql_logs_dir(self) -> Path:
        return self.docker_dir / "mysql-logs"

    @property
    def compose_file(self) -> Path:
        return self.root / "docker-compose.yml"

    @property
    def env_file(self) -> Path:
        return self.root / ".env"

    @property
    def env_example_file(self) -> Path:
        return self.root / ".env.example"

    @property
    def gitignore(self) -> Path:
        return self.root / ".gitignore"

    @property
    def content_dirs(self) -> Tuple[Path, ...]:
        """Directories opened up for both www-data and the host user."""
        return (
            self.wordpress_dir,
            self.plugins_dir,
            self.themes_dir,
            self.uploads_dir,
            self.backups_dir,
        )

    @property
    def generated_dirs(self) -> Tuple[Path, ...]:
        """Directories removed by `clean`; never includes backups."""
        return (
            self.wordpress_dir,
            self.plugins_dir,
            self.themes_dir,
            self.uploads_dir,
            self.docker_dir,
        )

    def contains(self, path: Path) -> bool:
        """True if path resolves to somewhere strictly below root."""
        try:
            resolved = Path(path).resolve()
            root = self.root.resolve()
        except OSError:
            return False
        return resolved != root and resolved.is_relative_to(root)
