# environment_engine/health_checker/checker.py
"""
Health Reporter - read-only sweep over a running environment.

Checks service containers, the database, WP-CLI, the HTTP endpoints,
recent error lines and the backup count. Nothing here changes state.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, List, Optional

import requests

from environment_engine.backup.engine import BackupEngine
from environment_engine.config.settings import EnvironmentSettings
from environment_engine.core.errors import EnvironmentEngineError
from environment_engine.core.runtime import ContainerRuntime
from environment_engine.domain.models import EnvironmentDescriptor
from environment_engine.wordpress.cli import WordPressCli

logger = logging.getLogger(__name__)

DB_QUERY = "SELECT 'DB OK', VERSION();"
ERROR_PATTERN = re.compile(r"error", re.IGNORECASE)
ERROR_WINDOW = timedelta(hours=1)


class CheckStatus(Enum):
    PASS = "PASS"
    FAIL = "FAIL"
    SKIPPED = "SKIPPED"
    INFO = "INFO"


@dataclass(frozen=True)
class HealthCheckResult:
    name: str
    status: CheckStatus
    required: bool
    detail: str = ""


@dataclass
class HealthReport:
    checks: List[HealthCheckResult] = field(default_factory=list)

    @property
    def healthy(self) -> bool:
        """True when every required check passed; a skipped required check does not count."""
        return all(
            check.status in (CheckStatus.PASS, CheckStatus.INFO)
            for check in self.checks
            if check.required
        )

    @property
    def failures(self) -> List[HealthCheckResult]:
        return [check for check in self.checks if check.status == CheckStatus.FAIL]

    def get(self, name: str) -> Optional[HealthCheckResult]:
        for check in self.checks:
            if check.name == name:
                return check
        return None


def database_probe_command() -> List[str]:
    """Trivial query run inside db with the container's own credentials."""
    return [
        "sh", "-c",
        f'mariadb -u"$MYSQL_USER" -p"$MYSQL_PASSWORD" -e "{DB_QUERY}"',
    ]


class HealthReporter:
    """
    Aggregates environment health into a HealthReport.
    """

    def __init__(
        self,
        runtime: ContainerRuntime,
        settings: EnvironmentSettings,
        descriptor: EnvironmentDescriptor,
        backups: BackupEngine,
        wp: WordPressCli | None = None,
        http_get: Callable[..., requests.Response] = requests.get,
        http_timeout: float = 5,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        """
        Args:
            runtime: Container runtime
            settings: Environment configuration (URLs)
            descriptor: Service topology
            backups: Backup engine (for the backup count)
            wp: WP-CLI wrapper
            http_get: HTTP GET function (requests.get)
            http_timeout: Seconds per HTTP probe
            clock: UTC time source for the error window
        """
        self._runtime = runtime
        self._settings = settings
        self._descriptor = descriptor
        self._backups = backups
        self._wp = wp or WordPressCli(runtime)
        self._http_get = http_get
        self._http_timeout = http_timeout
        self._clock = clock

    def check(self, database_gate: bool = True) -> HealthReport:
        """
        Run every check in order.

        Args:
            database_gate: False while an `up` is still waiting for the
                database; the query is not run and the check fails.

        Returns:
            HealthReport
        """
        report = HealthReport()
        statuses = self._runtime.service_status()

        for service in self._descriptor.services:
            status = statuses.get(service.name)
            running = bool(status and status.running)
            detail = status.status if status else "not created"
            if running:
                state = CheckStatus.PASS
            elif service.optional:
                state = CheckStatus.INFO
            else:
                state = CheckStatus.FAIL
            report.checks.append(
                HealthCheckResult(f"service:{service.name}", state, not service.optional, detail)
            )

        report.checks.append(self._check_database(database_gate))
        report.checks.append(self._check_wpcli())
        report.checks.append(self._check_http("http:wordpress", self._settings.site_url, True))
        report.checks.append(self._check_http("http:phpmyadmin", self._settings.phpmyadmin_url, False))
        report.checks.append(self._check_recent_errors())
        report.checks.append(
            HealthCheckResult("backups", CheckStatus.INFO, False, str(self._backups.count()))
        )

        for failure in report.failures:
            logger.warning(f"❌ {failure.name}: {failure.detail}")

        return report

    # -------------------------
    # INDIVIDUAL CHECKS
    # -------------------------

    def probe_database(self) -> bool:
        """One readiness probe: does db answer a trivial query?"""
        if not self._runtime.is_running("db"):
            return False
        try:
            return self._runtime.exec("db", database_probe_command()).ok
        except EnvironmentEngineError as e:
            logger.debug(f"Database probe failed: {e}")
            return False

    def _check_database(self, database_gate: bool) -> HealthCheckResult:
        if not database_gate:
            return HealthCheckResult(
                "database", CheckStatus.FAIL, True, "database has not answered since up"
            )

        if not self._runtime.is_running("db"):
            return HealthCheckResult("database", CheckStatus.FAIL, True, "db is not running")

        result = self._runtime.exec("db", database_probe_command())
        if result.ok:
            return HealthCheckResult("database", CheckStatus.PASS, True, "connection OK")
        return HealthCheckResult("database", CheckStatus.FAIL, True, result.output.strip())

    def _check_wpcli(self) -> HealthCheckResult:
        if not self._wp.available:
            return HealthCheckResult("wp-cli", CheckStatus.SKIPPED, False, "wpcli is not running")

        version = self._wp.core_version()
        if version:
            return HealthCheckResult("wp-cli", CheckStatus.PASS, True, f"WordPress {version}")
        return HealthCheckResult("wp-cli", CheckStatus.FAIL, True, "wp core version failed")

    def _check_http(self, name: str, url: str, required: bool) -> HealthCheckResult:
        try:
            response = self._http_get(url, timeout=self._http_timeout)
        except requests.exceptions.RequestException as e:
            logger.debug(f"HTTP check error for {url}: {e}")
            status = CheckStatus.FAIL if required else CheckStatus.INFO
            return HealthCheckResult(name, status, required, f"{url} unreachable")

        if 200 <= response.status_code < 400:
            return HealthCheckResult(name, CheckStatus.PASS, required, f"{url} ({response.status_code})")

        status = CheckStatus.FAIL if required else CheckStatus.INFO
        return HealthCheckResult(name, status, required, f"{url} returned {response.status_code}")

    def _check_recent_errors(self) -> HealthCheckResult:
        since = self._clock() - ERROR_WINDOW
        try:
            output = self._runtime.logs(since=since)
        except EnvironmentEngineError as e:
            return HealthCheckResult("recent-errors", CheckStatus.INFO, False, f"logs unavailable: {e}")

        count = sum(1 for line in output.splitlines() if ERROR_PATTERN.search(line))
        return HealthCheckResult("recent-errors", CheckStatus.INFO, False, str(count))
