#environment_engine\config\settings.py

import re
from pathlib import Path
from typing import Optional
from urllib.parse import urlsplit

from pydantic import ValidationError, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from environment_engine.core.errors import ConfigurationError


DEFAULT_PROJECT_NAME = "wordpress-dev"
SUPPORTED_PHP_VERSIONS = ("8.1", "8.2", "8.3", "8.4", "latest")


class EnvironmentSettings(BaseSettings):
    """Environment configuration read from the project's .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # Core
    compose_project_name: str = DEFAULT_PROJECT_NAME
    project_name: str = DEFAULT_PROJECT_NAME

    # Ports
    wp_port: int = 8080
    pma_port: int = 8081
    mailpit_http_port: int = 8025
    mailpit_smtp_port: int = 1025

    # URLs / Timezone
    wp_url: Optional[str] = None
    tz: str = "Europe/Paris"

    # PHP
    php_version: str = "8.4"
    php_upload_max_filesize: str = "128M"
    php_post_max_size: str = "128M"
    php_memory_limit: str = "512M"
    php_max_input_vars: int = 2000
    pma_upload_limit: str = "128M"

    # Database
    db_name: str = "wordpress"
    db_user: str = "wordpress"
    db_password: str = "wordpress"
    db_root_password: str = "root"

    # Host user mapping (for reference)
    host_uid: int = 1000
    host_gid: int = 1000

    # WordPress config
    wp_debug: bool = True
    wp_debug_log: bool = True
    wp_debug_display: bool = False
    disallow_file_edit: bool = True
    disable_wp_cron: bool = True

    # Readiness wait
    db_wait_timeout: float = 60
    db_wait_interval: float = 1.0
    db_log_tail: int = 20

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # The .env file is the single source; the shell environment is ignored.
        return (init_settings, dotenv_settings)

    @field_validator("php_version")
    @classmethod
    def _check_php_version(cls, value: str) -> str:
        value = value.strip()
        if value not in SUPPORTED_PHP_VERSIONS:
            raise ValueError(
                f"Unsupported PHP_VERSION {value!r} "
                f"(supported: {', '.join(SUPPORTED_PHP_VERSIONS)})"
            )
        return value

    @field_validator("wp_port", "pma_port", "mailpit_http_port", "mailpit_smtp_port")
    @classmethod
    def _check_port(cls, value: int) -> int:
        if not 1 <= value <= 65535:
            raise ValueError(f"Port out of range: {value}")
        return value

    # -------------------------
    # LOADING
    # -------------------------

    @classmethod
    def load(cls, env_file: Path) -> "EnvironmentSettings":
        """
        Load settings from env_file; a missing file yields pure defaults.

        Raises:
            ConfigurationError: A key in env_file has an invalid value
        """
        env_file = Path(env_file)
        try:
            return cls(_env_file=env_file if env_file.is_file() else None)
        except ValidationError as e:
            problems = []
            keys = []
            for error in e.errors():
                key = str(error["loc"][0]).upper() if error["loc"] else "?"
                keys.append(key)
                problems.append(f"{key}: {error['msg']}")
            raise ConfigurationError(
                f"Invalid configuration in {env_file.name}: {'; '.join(problems)}",
                keys=keys,
            ) from e

    # -------------------------
    # DERIVED VALUES
    # -------------------------

    @property
    def site_url(self) -> str:
        return self.wp_url or f"http://localhost:{self.wp_port}"

    @property
    def site_host(self) -> str:
        return urlsplit(self.site_url).hostname or "localhost"

    @property
    def admin_email(self) -> str:
        return f"admin@{self.site_host}.local"

    @property
    def phpmyadmin_url(self) -> str:
        return f"http://localhost:{self.pma_port}"

    @property
    def mailpit_url(self) -> str:
        return f"http://localhost:{self.mailpit_http_port}"

    @property
    def compose_project(self) -> str:
        """Project name normalized the way compose accepts it."""
        name = re.sub(r"[^a-z0-9_-]", "-", self.compose_project_name.lower())
        return name.lstrip("-_") or DEFAULT_PROJECT_NAME

    @property
    def cli_image_tag(self) -> str:
        if self.php_version == "latest":
            return "cli"
        return f"cli-php{self.php_version}"

    @property
    def wordpress_image_tag(self) -> str:
        if self.php_version == "latest":
            return "latest"
        return f"php{self.php_version}"
