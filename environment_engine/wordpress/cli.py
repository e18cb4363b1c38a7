# environment_engine/wordpress/cli.py

"""
WP-CLI access through the persistent `wpcli` service.

Every wp invocation goes through WordPressCli.wp so callers never build
the exec call themselves.
"""

import json
import logging
from typing import Dict, Optional, Sequence

from environment_engine.core.errors import ExternalToolError
from environment_engine.core.models import ExecResult
from environment_engine.core.runtime import ContainerRuntime
from environment_engine.domain.layout import CONTAINER_DOCROOT

logger = logging.getLogger(__name__)

WPCLI_SERVICE = "wpcli"


class WordPressCli:
    """Runs wp commands inside the wpcli container."""

    def __init__(self, runtime: ContainerRuntime, service: str = WPCLI_SERVICE):
        self._runtime = runtime
        self.service = service

    @property
    def available(self) -> bool:
        return self._runtime.is_running(self.service)

    def wp(self, args: Sequence[str], check: bool = False) -> ExecResult:
        """
        Run `wp <args>` in the wpcli container.

        Args:
            args: Arguments after `wp`; a leading "wp" is dropped
            check: Raise ExternalToolError on a non-zero exit

        Returns:
            ExecResult

        Raises:
            ServiceNotRunningError: wpcli is not running
        """
        args = list(args)
        if args and args[0] == "wp":
            args = args[1:]

        command = ["wp", *args]
        result = self._runtime.exec(self.service, command)
        logger.debug(f"{' '.join(command)} -> exit {result.exit_code}")

        if check and not result.ok:
            raise ExternalToolError(
                f"wp {' '.join(args[:2])} failed (exit {result.exit_code}): {result.output.strip()}",
                command=command,
                exit_code=result.exit_code,
                output=result.output,
            )
        return result

    def shell(self, script: str, check: bool = False) -> ExecResult:
        """Run a shell script in wpcli (needed when arguments reference container env vars)."""
        result = self._runtime.exec(self.service, ["sh", "-c", script])
        if check and not result.ok:
            raise ExternalToolError(
                f"wpcli script failed (exit {result.exit_code}): {result.output.strip()}",
                command=["sh", "-c", script],
                exit_code=result.exit_code,
                output=result.output,
            )
        return result

    # -------------------------
    # CORE
    # -------------------------

    def core_version(self) -> Optional[str]:
        """Installed core version, or None when core files are absent."""
        result = self.wp(["core", "version"])
        if not result.ok:
            return None
        return result.output.strip() or None

    def core_download(self) -> ExecResult:
        return self.wp(
            ["core", "download", f"--path={CONTAINER_DOCROOT}", "--skip-content", "--force"],
            check=True,
        )

    def is_installed(self) -> bool:
        return self.wp(["core", "is-installed"]).ok

    # -------------------------
    # PLUGINS / THEMES
    # -------------------------

    def activate(self, kind: str, name: str) -> ExecResult:
        """`wp plugin activate <name>` or `wp theme activate <name>`."""
        return self.wp([kind, "activate", name])

    def list_status(self, kind: str) -> Dict[str, str]:
        """
        Name -> status ("active", "inactive", ...) for every plugin or theme.

        Returns an empty mapping if the command fails or its output is not JSON.
        """
        result = self.wp([kind, "list", "--fields=name,status", "--format=json"])
        if not result.ok:
            logger.debug(f"wp {kind} list failed: {result.output.strip()}")
            return {}

        try:
            items = json.loads(result.output.strip() or "[]")
        except json.JSONDecodeError:
            logger.debug(f"wp {kind} list returned non-JSON output")
            return {}

        return {
            item["name"]: item.get("status", "")
            for item in items
            if isinstance(item, dict) and "name" in item
        }

    # -------------------------
    # MAINTENANCE
    # -------------------------

    def search_replace(self, old: str, new: str) -> ExecResult:
        return self.wp(
            ["search-replace", old, new, "--all-tables", "--skip-columns=guid"],
            check=True,
        )

    def cron_run(self) -> ExecResult:
        return self.wp(["cron", "event", "run", "--due-now"], check=True)
