"""Rendering of the line-oriented KEY=value configuration artifact."""

from pathlib import Path

from environment_engine.config.settings import EnvironmentSettings


def _flag(value: bool) -> str:
    return "true" if value else "false"


def render_env_file(settings: EnvironmentSettings) -> str:
    """Render settings as a commented .env file."""
    s = settings
    lines = [
        "# -------- Core --------",
        f"COMPOSE_PROJECT_NAME={s.compose_project_name}",
        f"PROJECT_NAME={s.project_name}",
        "",
        "# Ports (change here if needed)",
        f"WP_PORT={s.wp_port}",
        f"PMA_PORT={s.pma_port}",
        f"MAILPIT_HTTP_PORT={s.mailpit_http_port}",
        f"MAILPIT_SMTP_PORT={s.mailpit_smtp_port}",
        "",
        "# URLs / Timezone",
        "# NOTE: If you change WP_PORT, update WP_URL below",
        f"WP_URL={s.site_url}",
        f"TZ={s.tz}",
        "",
        "# PHP Version (supported: 8.1, 8.2, 8.3, 8.4, or latest)",
        f"PHP_VERSION={s.php_version}",
        "",
        "# Upload and Memory Limits",
        f"PHP_UPLOAD_MAX_FILESIZE={s.php_upload_max_filesize}",
        f"PHP_POST_MAX_SIZE={s.php_post_max_size}",
        f"PHP_MEMORY_LIMIT={s.php_memory_limit}",
        f"PHP_MAX_INPUT_VARS={s.php_max_input_vars}",
        f"PMA_UPLOAD_LIMIT={s.pma_upload_limit}",
        "",
        "# Database",
        f"DB_NAME={s.db_name}",
        f"DB_USER={s.db_user}",
        f"DB_PASSWORD={s.db_password}",
        f"DB_ROOT_PASSWORD={s.db_root_password}",
        "",
        "# Host user mapping (for reference)",
        f"HOST_UID={s.host_uid}",
        f"HOST_GID={s.host_gid}",
        "",
        "# WordPress Config",
        f"WP_DEBUG={_flag(s.wp_debug)}",
        f"WP_DEBUG_LOG={_flag(s.wp_debug_log)}",
        f"WP_DEBUG_DISPLAY={_flag(s.wp_debug_display)}",
        f"DISALLOW_FILE_EDIT={_flag(s.disallow_file_edit)}",
        f"DISABLE_WP_CRON={_flag(s.disable_wp_cron)}",
        "",
        "# Database readiness wait (seconds)",
        f"DB_WAIT_TIMEOUT={s.db_wait_timeout:g}",
        f"DB_WAIT_INTERVAL={s.db_wait_interval:g}",
        f"DB_LOG_TAIL={s.db_log_tail}",
    ]
    return "\n".join(lines) + "\n"


def write_env_file(path: Path, settings: EnvironmentSettings) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_env_file(settings), encoding="utf-8")
