"""Development php.ini overrides."""

from environment_engine.config.settings import EnvironmentSettings


def render_php_ini(settings: EnvironmentSettings) -> str:
    s = settings
    return f"""; Development PHP Configuration
; Generated from .env; edit there and run `wpdev restart`

; Memory and execution
memory_limit = {s.php_memory_limit}
max_execution_time = 300
max_input_time = 300

; File uploads
upload_max_filesize = {s.php_upload_max_filesize}
post_max_size = {s.php_post_max_size}
max_file_uploads = 50
max_input_vars = {s.php_max_input_vars}

; Error reporting and logging
display_errors = On
display_startup_errors = On
log_errors = On
error_reporting = E_ALL & ~E_DEPRECATED & ~E_STRICT
html_errors = On

; Session and timezone
session.gc_maxlifetime = 3600
date.timezone = {s.tz}

; OPcache for development
opcache.enable = 1
opcache.enable_cli = 0
opcache.memory_consumption = 256
opcache.max_accelerated_files = 10000
opcache.revalidate_freq = 0
opcache.validate_timestamps = 1

; Security (development settings)
expose_php = Off
allow_url_fopen = On
allow_url_include = Off

; Performance
realpath_cache_size = 4096K
realpath_cache_ttl = 600
"""
