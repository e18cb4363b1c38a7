#environment_engine\domain\templates\wordpress.py

"""WordPress development stack template."""

from environment_engine.config.settings import EnvironmentSettings
from environment_engine.domain.layout import CONTAINER_BACKUPS, CONTAINER_DOCROOT
from environment_engine.domain.models import (
    DependencyCondition, EnvironmentDescriptor, HealthProbe, PortMapping,
    ServiceDependency, ServiceDescriptor, VolumeMount,
)


NETWORK = "wp-network"
DB_VOLUME = "db_data"

MARIADB_IMAGE = "mariadb:11"
PHPMYADMIN_IMAGE = "phpmyadmin:latest"
MAILPIT_IMAGE = "axllent/mailpit:latest"

# www-data in the official images
WWW_DATA = "33:33"


def _secret(var: str, default: str) -> str:
    """Compose interpolation reference; the value itself stays in .env."""
    return "${" + var + ":-" + default + "}"


def _flag(value: bool) -> str:
    return "true" if value else "false"


DB_PASSWORD_REF = _secret("DB_PASSWORD", "wordpress")
DB_ROOT_PASSWORD_REF = _secret("DB_ROOT_PASSWORD", "root")


def _content_mounts() -> tuple:
    # Application state lives on the host so it survives container recreation.
    return (
        VolumeMount(source="./wordpress", target=CONTAINER_DOCROOT),
        VolumeMount(source="./plugins", target=f"{CONTAINER_DOCROOT}/wp-content/plugins"),
        VolumeMount(source="./themes", target=f"{CONTAINER_DOCROOT}/wp-content/themes"),
        VolumeMount(source="./uploads", target=f"{CONTAINER_DOCROOT}/wp-content/uploads"),
        VolumeMount(source="./backups", target=CONTAINER_BACKUPS),
    )


def _wordpress_config_extra(s: EnvironmentSettings) -> str:
    return "\n".join([
        f"define('WP_DEBUG_LOG', {_flag(s.wp_debug_log)});",
        f"define('WP_DEBUG_DISPLAY', {_flag(s.wp_debug_display)});",
        f"define('DISALLOW_FILE_EDIT', {_flag(s.disallow_file_edit)});",
        f"define('DISABLE_WP_CRON', {_flag(s.disable_wp_cron)});",
        "define('WP_MEMORY_LIMIT', '256M');",
        "define('WP_MAX_MEMORY_LIMIT', '512M');",
        "define('FORCE_SSL_ADMIN', false);",
        "",
    ])


def _wordpress(s: EnvironmentSettings) -> ServiceDescriptor:
    return ServiceDescriptor(
        name="wordpress",
        image=f"wordpress:{s.wordpress_image_tag}",
        ports=(PortMapping(host=s.wp_port, container=80),),
        environment={
            "WORDPRESS_DB_HOST": "db:3306",
            "WORDPRESS_DB_USER": s.db_user,
            "WORDPRESS_DB_PASSWORD": DB_PASSWORD_REF,
            "WORDPRESS_DB_NAME": s.db_name,
            "WORDPRESS_DEBUG": _flag(s.wp_debug),
            "PHP_UPLOAD_MAX_FILESIZE": s.php_upload_max_filesize,
            "PHP_POST_MAX_SIZE": s.php_post_max_size,
            "PHP_MEMORY_LIMIT": s.php_memory_limit,
            "WORDPRESS_CONFIG_EXTRA": _wordpress_config_extra(s),
        },
        volumes=_content_mounts() + (
            VolumeMount(
                source="./.docker/php/php.ini",
                target="/usr/local/etc/php/conf.d/z-dev-overrides.ini",
                read_only=True,
            ),
        ),
        depends_on=(ServiceDependency(service="db", condition=DependencyCondition.HEALTHY),),
        networks=(NETWORK,),
        healthcheck=HealthProbe(
            test=("CMD-SHELL", "curl -f http://localhost/ || exit 1"),
            interval_seconds=30,
            timeout_seconds=10,
            retries=3,
            start_period_seconds=60,
        ),
    )


def _database(s: EnvironmentSettings) -> ServiceDescriptor:
    return ServiceDescriptor(
        name="db",
        image=MARIADB_IMAGE,
        environment={
            "MYSQL_ROOT_PASSWORD": DB_ROOT_PASSWORD_REF,
            "MYSQL_DATABASE": s.db_name,
            "MYSQL_USER": s.db_user,
            "MYSQL_PASSWORD": DB_PASSWORD_REF,
            "TZ": s.tz,
            "MARIADB_AUTO_UPGRADE": "1",
            "MARIADB_DISABLE_UPGRADE_BACKUP": "1",
        },
        command=" ".join([
            "--character-set-server=utf8mb4",
            "--collation-server=utf8mb4_unicode_520_ci",
            "--innodb-buffer-pool-size=128M",
            "--innodb-log-file-size=64M",
            "--max_allowed_packet=64M",
            "--general-log=0",
            "--slow-query-log=1",
            "--slow-query-log-file=/var/log/mysql/slow.log",
            "--long_query_time=2",
        ]),
        volumes=(
            VolumeMount(source=DB_VOLUME, target="/var/lib/mysql"),
            VolumeMount(source="./backups", target=CONTAINER_BACKUPS),
            VolumeMount(source="./.docker/mysql-init", target="/docker-entrypoint-initdb.d", read_only=True),
            VolumeMount(source="./.docker/mysql-logs", target="/var/log/mysql"),
        ),
        networks=(NETWORK,),
        healthcheck=HealthProbe(
            test=("CMD-SHELL", "healthcheck.sh --connect --innodb_initialized || exit 1"),
            interval_seconds=10,
            timeout_seconds=5,
            retries=30,
            start_period_seconds=40,
        ),
    )


def _phpmyadmin(s: EnvironmentSettings) -> ServiceDescriptor:
    return ServiceDescriptor(
        name="phpmyadmin",
        image=PHPMYADMIN_IMAGE,
        ports=(PortMapping(host=s.pma_port, container=80),),
        environment={
            "PMA_HOST": "db",
            "PMA_USER": s.db_user,
            "PMA_PASSWORD": DB_PASSWORD_REF,
            "PMA_ARBITRARY": "1",
            "UPLOAD_LIMIT": s.pma_upload_limit,
            "MEMORY_LIMIT": "256M",
            "MAX_EXECUTION_TIME": "300",
        },
        depends_on=(ServiceDependency(service="db", condition=DependencyCondition.HEALTHY),),
        networks=(NETWORK,),
    )


def _wpcli(s: EnvironmentSettings) -> ServiceDescriptor:
    return ServiceDescriptor(
        name="wpcli",
        image=f"wordpress:{s.cli_image_tag}",
        working_dir=CONTAINER_DOCROOT,
        # Stays up so commands exec into it instead of creating containers
        command="tail -f /dev/null",
        user=WWW_DATA,
        environment={
            "WORDPRESS_DB_HOST": "db:3306",
            "WORDPRESS_DB_USER": s.db_user,
            "WORDPRESS_DB_PASSWORD": DB_PASSWORD_REF,
            "WORDPRESS_DB_NAME": s.db_name,
            "WP_CLI_PACKAGES_DIR": "/tmp/.wp-cli/packages",
            "WP_CLI_CACHE_DIR": "/tmp/.wp-cli/cache",
            "WP_CLI_CONFIG_PATH": "/tmp/.wp-cli/config.yml",
            "TZ": s.tz,
            "PAGER": "less",
        },
        volumes=_content_mounts(),
        depends_on=(
            ServiceDependency(service="db", condition=DependencyCondition.HEALTHY),
            ServiceDependency(service="wordpress", condition=DependencyCondition.STARTED),
        ),
        networks=(NETWORK,),
        restart=None,
    )


def _mailpit(s: EnvironmentSettings) -> ServiceDescriptor:
    return ServiceDescriptor(
        name="mailpit",
        image=MAILPIT_IMAGE,
        profiles=("dev",),
        ports=(
            PortMapping(host=s.mailpit_http_port, container=8025),
            PortMapping(host=s.mailpit_smtp_port, container=1025),
        ),
        environment={
            "MP_SMTP_AUTH_ACCEPT_ANY": "1",
            "MP_SMTP_AUTH_ALLOW_INSECURE": "1",
        },
        networks=(NETWORK,),
    )


def build_descriptor(settings: EnvironmentSettings) -> EnvironmentDescriptor:
    """Build the service topology for settings. Pure and deterministic."""
    return EnvironmentDescriptor(
        project_name=settings.compose_project,
        services=(
            _wordpress(settings),
            _database(settings),
            _phpmyadmin(settings),
            _wpcli(settings),
            _mailpit(settings),
        ),
        volumes=(DB_VOLUME,),
        networks=(NETWORK,),
    )
