# environment_engine/orchestrator/lifecycle_orchestrator.py
"""Lifecycle orchestrator - drives one environment through its states."""

import logging
import shutil
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence

import requests

from environment_engine.backup.engine import BackupEngine
from environment_engine.config.secrets import generate_admin_password
from environment_engine.config.settings import DEFAULT_PROJECT_NAME, EnvironmentSettings
from environment_engine.core.errors import (
    EnvironmentEngineError, EnvironmentNotCreatedError, PreconditionError,
    ReadinessTimeoutError,
)
from environment_engine.core.events import EventEmitter, LoggingEventEmitter
from environment_engine.core.events_model import LifecycleEvent
from environment_engine.core.models import Environment, EnvironmentState, ExecResult
from environment_engine.core.results import OperationResult, SideEffect
from environment_engine.core.runtime import ContainerRuntime
from environment_engine.core.state_machine import EnvironmentStateMachine
from environment_engine.core.waiting import WaitResult, wait_until
from environment_engine.domain.layout import CONTAINER_DOCROOT, ProjectLayout
from environment_engine.domain.service import ProjectScaffolder, open_permissions
from environment_engine.domain.templates import PHPINFO
from environment_engine.health_checker.checker import HealthReport, HealthReporter
from environment_engine.wordpress.cli import WordPressCli

logger = logging.getLogger(__name__)

ADMIN_USER = "admin"

# wp-config constants written by `install`, in order
CONFIG_FLAGS = (
    ("WP_DEBUG", "wp_debug"),
    ("WP_DEBUG_LOG", "wp_debug_log"),
    ("WP_DEBUG_DISPLAY", "wp_debug_display"),
    ("DISALLOW_FILE_EDIT", "disallow_file_edit"),
    ("DISABLE_WP_CRON", "disable_wp_cron"),
)

# Credentials come from the wpcli container's environment, never from the host.
_CONFIG_CREATE = (
    'wp config create '
    '--dbname="$WORDPRESS_DB_NAME" '
    '--dbuser="$WORDPRESS_DB_USER" '
    '--dbpass="$WORDPRESS_DB_PASSWORD" '
    '--dbhost="$WORDPRESS_DB_HOST" '
    '--skip-check --force'
)

_CONTAINER_PERMISSIONS = (
    f"install -d -m 0777 {CONTAINER_DOCROOT}/wp-content/plugins "
    f"{CONTAINER_DOCROOT}/wp-content/themes {CONTAINER_DOCROOT}/wp-content/uploads; "
    f"chmod -R 0777 {CONTAINER_DOCROOT}"
)

CONFIRM_TOKENS = ("y", "Y")


@dataclass
class InstallResult:
    site_url: str
    admin_user: str
    admin_email: str
    # None when WordPress was already installed
    admin_password: Optional[str] = None
    core_downloaded: bool = False
    installed: bool = False
    side_effects: List[SideEffect] = field(default_factory=list)


@dataclass
class CleanResult:
    cancelled: bool
    removed: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


class LifecycleOrchestrator:
    """
    Coordinates scaffolding, the container runtime, readiness and health.

    State is observed from disk and the runtime on first use, then tracked
    through EnvironmentStateMachine for the rest of the session.

    Flow of `up`:
    1. Re-render the descriptor
    2. Start services, state STARTING
    3. Poll the database (DEGRADED_WAIT after the first failed probe)
    4. Health sweep, state READY
    """

    def __init__(
        self,
        layout: ProjectLayout,
        runtime: ContainerRuntime,
        scaffolder: Optional[ProjectScaffolder] = None,
        backups: Optional[BackupEngine] = None,
        wp: Optional[WordPressCli] = None,
        events: Optional[EventEmitter] = None,
        dependency_check: Optional[Callable[[], List[str]]] = None,
        http_get: Callable[..., requests.Response] = requests.get,
        monotonic: Callable[[], float] = time.monotonic,
        sleep: Optional[Callable[[float], object]] = None,
        cancel_event: Optional[threading.Event] = None,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        """
        Args:
            layout: Project layout
            runtime: Container runtime for this project
            scaffolder: Writes generated files
            backups: Backup engine (health sweep backup count)
            wp: WP-CLI wrapper
            events: Lifecycle event emitter
            dependency_check: Returns missing host tools; checked by init
            http_get: HTTP GET used by health checks
            monotonic: Clock for the readiness wait
            sleep: Pause used by the readiness wait
            cancel_event: Aborts a readiness wait when set
            now: UTC clock for timestamps
        """
        self.layout = layout
        self._runtime = runtime
        self._scaffolder = scaffolder or ProjectScaffolder(layout)
        self._backups = backups or BackupEngine(runtime, layout)
        self._wp = wp or WordPressCli(runtime)
        self._events = events or LoggingEventEmitter()
        self._dependency_check = dependency_check
        self._http_get = http_get
        self._monotonic = monotonic
        self._sleep = sleep
        self._cancel_event = cancel_event
        self._now = now

        self._environment: Optional[Environment] = None
        # True between runtime.up() and the first successful database probe
        self._awaiting_database = False

    # ============================================
    # STATE
    # ============================================

    @property
    def settings(self) -> EnvironmentSettings:
        return self._scaffolder.load_settings()

    @property
    def environment(self) -> Environment:
        if self._environment is None:
            self._environment = self.observe_state()
        return self._environment

    @property
    def state(self) -> EnvironmentState:
        return self.environment.state

    def observe_state(self) -> Environment:
        """
        Derive the current state from disk and the runtime.

        No descriptor -> ABSENT; any service running -> STARTING (readiness
        unknown); otherwise CREATED.
        """
        settings = self.settings
        environment = Environment(project_name=settings.compose_project)

        if not self.layout.compose_file.exists():
            return environment

        statuses = self._runtime.service_status()
        if any(status.running for status in statuses.values()):
            environment.state = EnvironmentState.STARTING
        else:
            environment.state = EnvironmentState.CREATED
        logger.debug(f"Observed state {environment.state.value}")
        return environment

    def _transition(self, new_state: EnvironmentState, reason: Optional[str] = None) -> None:
        environment = self.environment
        previous = environment.state
        if EnvironmentStateMachine.transition(environment, new_state, now=self._now()):
            logger.info(f"{previous.value} -> {new_state.value}")
            self._events.emit([LifecycleEvent.state_changed(environment, previous, reason)])

    def health_reporter(self) -> HealthReporter:
        settings = self.settings
        return HealthReporter(
            runtime=self._runtime,
            settings=settings,
            descriptor=self._scaffolder.descriptor(settings),
            backups=self._backups,
            wp=self._wp,
            http_get=self._http_get,
        )

    # ============================================
    # CREATE
    # ============================================

    def init(self, project_name: Optional[str] = None, regenerate_secrets: bool = False) -> OperationResult:
        """
        Scaffold the environment (layout, .env, descriptor, php.ini).

        Raises:
            PreconditionError: Required host tools are missing
        """
        if self._dependency_check:
            missing = self._dependency_check()
            if missing:
                raise PreconditionError(
                    f"Missing required dependencies: {', '.join(missing)}"
                )

        environment = self.environment

        scaffold = self._scaffolder.scaffold(
            project_name or DEFAULT_PROJECT_NAME,
            regenerate_secrets=regenerate_secrets,
        )
        environment.project_name = scaffold.settings.compose_project

        if environment.state == EnvironmentState.ABSENT:
            self._transition(EnvironmentState.CREATED, "init")

        result = OperationResult(
            succeeded=True,
            message=f"Environment ready in {self.layout.root}",
            data={"settings": scaffold.settings, "written": scaffold.written},
        )
        if not scaffold.config_created:
            result.warnings.append(".env already exists, kept existing secrets")
        return result

    # ============================================
    # RUN
    # ============================================

    def up(self) -> OperationResult:
        """
        Start services and block until the database answers.

        Raises:
            EnvironmentNotCreatedError: No descriptor on disk
            ExternalToolError: The runtime rejected the start request
            ReadinessTimeoutError: Database not ready in time (state stays DEGRADED_WAIT)
        """
        if self.environment.state == EnvironmentState.ABSENT:
            raise EnvironmentNotCreatedError(
                f"No {self.layout.compose_file.name} in {self.layout.root}. Run: wpdev init"
            )

        settings = self.settings
        self._scaffolder.write_descriptor(settings)

        self._runtime.up()
        self._awaiting_database = True
        self._transition(EnvironmentState.STARTING, "up")

        wait = self.wait_for_database()

        report = self.health_reporter().check(database_gate=True)
        result = OperationResult(
            succeeded=True,
            message="Services are ready",
            data={"wait": wait, "health": report, "settings": settings},
        )
        for failure in report.failures:
            result.warnings.append(f"{failure.name}: {failure.detail}")

        self._transition(EnvironmentState.READY, "database ready")
        logger.info(f"✅ Services are ready at {settings.site_url}")
        return result

    def wait_for_database(self, timeout: Optional[float] = None) -> WaitResult:
        """
        Poll the database until it answers a trivial query.

        Raises:
            ReadinessTimeoutError: Not ready within timeout (or cancelled)
        """
        settings = self.settings
        timeout = settings.db_wait_timeout if timeout is None else timeout
        reporter = self.health_reporter()

        def probe() -> bool:
            if reporter.probe_database():
                return True
            if self.environment.state == EnvironmentState.STARTING:
                self._transition(EnvironmentState.DEGRADED_WAIT, "database not answering yet")
            return False

        logger.info("⏳ Waiting for database...")
        wait = wait_until(
            probe,
            timeout=timeout,
            interval=settings.db_wait_interval,
            cancel_event=self._cancel_event,
            clock=self._monotonic,
            sleep=self._sleep,
        )

        if not wait.succeeded:
            try:
                recent = self._runtime.logs("db", tail=settings.db_log_tail)
            except EnvironmentEngineError as e:
                recent = f"(logs unavailable: {e})"
            logger.error(f"❌ Database failed to start within {timeout:g} seconds")
            raise ReadinessTimeoutError(timeout, recent)

        self._awaiting_database = False
        self.environment.mark_database_ready(self._now())
        self._events.emit([
            LifecycleEvent.database_ready(self.environment, wait.attempts, wait.elapsed)
        ])
        logger.info(f"✅ Database is ready ({wait.attempts} probe(s))")
        return wait

    def down(self) -> OperationResult:
        """Stop and remove containers; volumes and bind mounts survive."""
        if self.environment.state == EnvironmentState.ABSENT:
            raise EnvironmentNotCreatedError(
                f"No {self.layout.compose_file.name} in {self.layout.root}. Run: wpdev init"
            )

        self._transition(EnvironmentState.STOPPING, "down")
        self._runtime.down(remove_volumes=False)
        self._awaiting_database = False
        self._transition(EnvironmentState.STOPPED, "down")
        return OperationResult(succeeded=True, message="Services stopped")

    def restart(self) -> OperationResult:
        self.down()
        return self.up()

    # ============================================
    # WORDPRESS
    # ============================================

    def install(self) -> InstallResult:
        """
        Download, configure and install WordPress.

        Idempotent: core download and core install are skipped when already done.
        The admin password is generated fresh and returned once.
        """
        if not self.environment.database_ready:
            self.up()

        settings = self.settings
        wp = self._wp
        result = InstallResult(
            site_url=settings.site_url,
            admin_user=ADMIN_USER,
            admin_email=settings.admin_email,
        )

        if wp.core_version() is None:
            logger.info("📦 Downloading WordPress core...")
            wp.core_download()
            result.core_downloaded = True

        logger.info("🔧 Creating wp-config.php...")
        wp.shell(_CONFIG_CREATE, check=True)
        for constant, attribute in CONFIG_FLAGS:
            value = "true" if getattr(settings, attribute) else "false"
            wp.wp(["config", "set", constant, value, "--raw"], check=True)

        if wp.is_installed():
            logger.info("WordPress already installed, skipping core install")
        else:
            password = generate_admin_password()
            logger.info("🔐 Installing WordPress with secure credentials...")
            wp.wp(
                [
                    "core", "install",
                    f"--url={settings.site_url}",
                    f"--title={settings.project_name} Site",
                    f"--admin_user={ADMIN_USER}",
                    f"--admin_password={password}",
                    f"--admin_email={settings.admin_email}",
                    "--skip-email",
                ],
                check=True,
            )
            result.admin_password = password
            result.installed = True
            logger.info("✅ WordPress installed successfully!")

        result.side_effects.extend(self.fix_permissions().side_effects)
        return result

    def fix_permissions(self) -> OperationResult:
        """Open content directories on the host and inside wordpress."""
        self._scaffolder.ensure_directories()
        failed = open_permissions(self.layout.content_dirs)

        result = OperationResult(succeeded=True, message="Permissions fixed")
        if failed:
            result.warnings.append(f"Could not change permissions on {len(failed)} path(s)")

        if not self._runtime.is_running("wordpress"):
            result.side_effects.append(SideEffect.skipped("container-permissions", "wordpress is not running"))
            return result

        container = self._runtime.exec("wordpress", ["bash", "-lc", _CONTAINER_PERMISSIONS])
        if container.ok:
            result.side_effects.append(SideEffect.ok("container-permissions"))
        else:
            logger.warning(f"⚠️  Container permission fix failed: {container.output.strip()}")
            result.side_effects.append(SideEffect.failed("container-permissions", container.output.strip()))
        return result

    def phpinfo(self) -> OperationResult:
        target = self.layout.wordpress_dir / "info.php"
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(PHPINFO, encoding="utf-8")
        logger.info(f"✅ Created {target}")
        return OperationResult(succeeded=True, message=f"Created {target.relative_to(self.layout.root)}")

    # ============================================
    # RESET
    # ============================================

    def clean(self, confirm: Callable[[], str]) -> CleanResult:
        """
        Remove containers, volumes and generated content.

        Args:
            confirm: Returns the operator's answer; only "y" or "Y" proceeds

        Keeps backups/, .env and the descriptor. Ends in CREATED.
        """
        answer = confirm() or ""
        if answer.rstrip("\r\n") not in CONFIRM_TOKENS:
            logger.info("Clean cancelled")
            return CleanResult(cancelled=True)

        was_created = self.environment.state != EnvironmentState.ABSENT
        if was_created:
            self._transition(EnvironmentState.STOPPING, "clean")
            self._runtime.down(remove_volumes=True)
            self._awaiting_database = False

        result = CleanResult(cancelled=False)
        for path in self.layout.generated_dirs:
            if not path.exists():
                continue
            if not self.layout.contains(path):
                raise PreconditionError(f"Refusing to remove {path}: outside {self.layout.root}")

            try:
                shutil.rmtree(path)
            except OSError as e:
                warning = f"Could not fully remove {path.name}: {e}"
                logger.warning(f"⚠️  {warning}")
                result.warnings.append(warning)
                continue
            result.removed.append(path.name)

        if was_created:
            self._transition(EnvironmentState.CREATED, "clean")

        logger.info("✅ Environment reset!")
        return result

    # ============================================
    # INSPECTION
    # ============================================

    def health(self) -> HealthReport:
        """Read-only health sweep."""
        return self.health_reporter().check(database_gate=not self._awaiting_database)

    def test(self) -> OperationResult:
        """Health sweep plus a WP-CLI probe."""
        report = self.health()

        result = OperationResult(succeeded=report.healthy, data={"health": report})
        if not self._wp.available:
            result.side_effects.append(SideEffect.skipped("wp-cli", "wpcli is not running"))
            return result

        version = self._wp.core_version()
        if version:
            result.side_effects.append(SideEffect.ok("wp-cli", f"WordPress {version}"))
        else:
            result.side_effects.append(SideEffect.failed("wp-cli", "wp core version failed"))
        return result

    # ============================================
    # INTERACTIVE
    # ============================================

    def shell(self) -> int:
        return self._runtime.attach(["exec", "wordpress", "bash"])

    def db_shell(self) -> int:
        return self._runtime.attach(["exec", "db", "bash"])

    def logs(self, service: Optional[str] = None, follow: bool = True) -> int:
        args: List[str] = ["logs"]
        if follow:
            args.append("-f")
        if service:
            args.append(service)
        return self._runtime.attach(args)

    def wp(self, args: Sequence[str]) -> ExecResult:
        """Run an arbitrary wp command in wpcli; the exit code is returned, not raised."""
        if not args:
            raise PreconditionError("Usage: wpdev wp <command...>")
        return self._wp.wp(args)

    def search_replace(self, old: str, new: str) -> ExecResult:
        if not old or not new:
            raise PreconditionError("Usage: wpdev sr <old-url> <new-url>")
        return self._wp.search_replace(old, new)

    def cron_run(self) -> ExecResult:
        return self._wp.cron_run()
