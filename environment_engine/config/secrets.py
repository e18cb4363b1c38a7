"""Secret generation and redaction for the environment configuration."""

import logging
import os
import secrets
import string
from dataclasses import dataclass
from typing import Callable, Tuple

from environment_engine.config.envfile import write_env_file
from environment_engine.config.settings import EnvironmentSettings
from environment_engine.domain.layout import ProjectLayout

logger = logging.getLogger(__name__)


PASSWORD_PLACEHOLDER = "your_secure_password_here"
ROOT_PASSWORD_PLACEHOLDER = "your_secure_root_password_here"

ADMIN_PASSWORD_LENGTH = 16
_ADMIN_ALPHABET = string.ascii_letters + string.digits + "+/"


class SecretGenerator:
    """Produces database credentials for a new environment."""

    def __init__(self, token_hex: Callable[[int], str] = secrets.token_hex):
        self._token_hex = token_hex

    def generate(self) -> Tuple[str, str]:
        """Return (password, root_password)."""
        password = f"wordpress_secure_{self._token_hex(8)}"
        root_password = f"root_secure_{self._token_hex(8)}"
        return password, root_password


def generate_admin_password(length: int = ADMIN_PASSWORD_LENGTH) -> str:
    """Random WordPress administrator password, unrelated to DB credentials."""
    return "".join(secrets.choice(_ADMIN_ALPHABET) for _ in range(length))


def redact(settings: EnvironmentSettings) -> EnvironmentSettings:
    """Copy of settings with every generated secret replaced by a placeholder."""
    return settings.model_copy(
        update={
            "db_password": PASSWORD_PLACEHOLDER,
            "db_root_password": ROOT_PASSWORD_PLACEHOLDER,
        }
    )


@dataclass(frozen=True)
class ConfigCreation:
    settings: EnvironmentSettings
    created: bool


def create_environment_config(
    layout: ProjectLayout,
    project_name: str,
    *,
    force: bool = False,
    generator: SecretGenerator | None = None,
) -> ConfigCreation:
    """
    Write .env with fresh secrets unless it already exists.

    The redacted .env.example is rewritten from the live configuration on
    every call.

    Args:
        layout: Project layout
        project_name: Used for COMPOSE_PROJECT_NAME and PROJECT_NAME
        force: Regenerate secrets and overwrite an existing .env
        generator: Secret source

    Returns:
        ConfigCreation with the live settings and whether .env was written
    """
    generator = generator or SecretGenerator()

    if layout.env_file.exists() and not force:
        logger.warning(f"⚠️  {layout.env_file.name} already exists, skipping creation")
        settings = EnvironmentSettings.load(layout.env_file)
        created = False
    else:
        password, root_password = generator.generate()
        settings = EnvironmentSettings(
            _env_file=None,
            compose_project_name=project_name,
            project_name=project_name,
            db_password=password,
            db_root_password=root_password,
            host_uid=_host_id("getuid"),
            host_gid=_host_id("getgid"),
        )
        write_env_file(layout.env_file, settings)
        os.chmod(layout.env_file, 0o600)
        logger.info(f"✅ Created {layout.env_file.name} with secure random passwords")
        created = True

    write_env_file(layout.env_example_file, redact(settings))
    return ConfigCreation(settings=settings, created=created)


def _host_id(name: str) -> int:
    getter = getattr(os, name, None)
    # Windows has no uid/gid
    return getter() if getter else 1000
