# environment_engine/infrastructure/git/client.py

"""Thin subprocess wrapper around the git CLI."""

import logging
import os
import shutil
import subprocess
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from environment_engine.core.errors import ExternalToolError

logger = logging.getLogger(__name__)


class GitClient:
    """Runs git commands against working trees on the host."""

    def __init__(self, executable: str = "git"):
        self.executable = executable

    @property
    def available(self) -> bool:
        return shutil.which(self.executable) is not None

    def _run(
        self,
        args: Sequence[str],
        cwd: Optional[Path] = None,
        check: bool = True,
        env: Optional[Dict[str, str]] = None,
    ) -> subprocess.CompletedProcess:
        command = [self.executable, *args]
        logger.debug(f"git {' '.join(args)} (cwd={cwd})")

        try:
            result = subprocess.run(
                command,
                cwd=cwd,
                capture_output=True,
                text=True,
                env=env,
            )
        except OSError as e:
            raise ExternalToolError(f"Failed to run git: {e}", command=command) from e

        if check and result.returncode != 0:
            output = (result.stderr or result.stdout).strip()
            raise ExternalToolError(
                f"git {args[0]} failed (exit {result.returncode}): {output}",
                command=command,
                exit_code=result.returncode,
                output=output,
            )
        return result

    # -------------------------
    # REPOSITORY SETUP
    # -------------------------

    def init(self, path: Path) -> None:
        self._run(["init", "--quiet"], cwd=path)

    def add_all(self, path: Path) -> None:
        self._run(["add", "."], cwd=path)

    def commit(self, path: Path, message: str) -> None:
        self._run(["commit", "--quiet", "-m", message], cwd=path)

    def clone(self, url: str, destination: Path) -> None:
        self._run(["clone", "--quiet", url, str(destination)])

    # -------------------------
    # INSPECTION
    # -------------------------

    def is_repository(self, path: Path) -> bool:
        return (Path(path) / ".git").exists()

    def remotes(self, path: Path) -> List[str]:
        result = self._run(["remote"], cwd=path)
        return [line for line in result.stdout.splitlines() if line.strip()]

    def remote_url(self, path: Path, remote: str) -> Optional[str]:
        result = self._run(["remote", "get-url", remote], cwd=path, check=False)
        if result.returncode != 0:
            return None
        return result.stdout.strip() or None

    def is_dirty(self, path: Path) -> bool:
        result = self._run(["status", "--porcelain"], cwd=path)
        return bool(result.stdout.strip())

    def fetch(self, path: Path) -> bool:
        """Quiet fetch; returns False instead of raising when it fails."""
        # Never wait on a credential prompt
        env = {**os.environ, "GIT_TERMINAL_PROMPT": "0"}
        result = self._run(["fetch", "--quiet"], cwd=path, check=False, env=env)
        if result.returncode != 0:
            logger.debug(f"git fetch failed in {path}: {result.stderr.strip()}")
            return False
        return True

    def rev_parse(self, path: Path, ref: str) -> Optional[str]:
        """Commit id for ref, or None when it does not resolve (e.g. no upstream)."""
        result = self._run(["rev-parse", "--verify", "--quiet", ref], cwd=path, check=False)
        if result.returncode != 0:
            return None
        return result.stdout.strip() or None

    def merge_base(self, path: Path, first: str, second: str) -> Optional[str]:
        result = self._run(["merge-base", first, second], cwd=path, check=False)
        if result.returncode != 0:
            return None
        return result.stdout.strip() or None
