# environment_engine/backup/engine.py
"""
Backup / Restore Engine.

Dump and restore run entirely inside the `db` container, with the
container's own MYSQL_* credentials. The host only sees the resulting
file through the shared backups/ bind mount.
"""

import logging
import shlex
import shutil
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath
from typing import Callable, List

from environment_engine.core.errors import (
    BackupNotFoundError, BackupValidationError, ExternalToolError,
    PreconditionError, ServiceNotRunningError,
)
from environment_engine.core.runtime import ContainerRuntime
from environment_engine.domain.layout import CONTAINER_BACKUPS, ProjectLayout

logger = logging.getLogger(__name__)

DB_SERVICE = "db"
BACKUP_GLOB = "*.sql*"
EMPTY_DUMP_EXIT = 3

# Runs in the db container; $MYSQL_* come from the container environment.
_DUMP_SCRIPT = """\
set -e
mkdir -p {backups}
RAW={raw}
FILE={file}
mariadb-dump -u"$MYSQL_USER" -p"$MYSQL_PASSWORD" \\
  --single-transaction --quick --routines \\
  --default-character-set=utf8mb4 "$MYSQL_DATABASE" > "$RAW"
if [ ! -s "$RAW" ]; then
  rm -f "$RAW"
  echo "dump produced no data" >&2
  exit {empty_exit}
fi
gzip -c "$RAW" > "$FILE"
rm -f "$RAW"
chmod 0666 "$FILE" || true
"""

_RESTORE_GZIP = 'gunzip -c {path} | mariadb -u"$MYSQL_USER" -p"$MYSQL_PASSWORD" "$MYSQL_DATABASE"'
_RESTORE_PLAIN = 'mariadb -u"$MYSQL_USER" -p"$MYSQL_PASSWORD" "$MYSQL_DATABASE" < {path}'


@dataclass(frozen=True)
class BackupRecord:
    """A backup file in the project's backups directory."""
    name: str
    path: Path
    size: int
    created_at: datetime


def backup_name(now: datetime) -> str:
    return f"backup-{now:%Y%m%d-%H%M%S}.sql.gz"


def resolve_backup_path(reference: str) -> str:
    """
    Map a user-supplied backup reference to a path inside the db container.

    /backups/x -> /backups/x
    /any/abs   -> /any/abs
    backups/x  -> /backups/x
    x          -> /backups/x
    """
    reference = reference.strip()
    if not reference:
        raise PreconditionError("No backup file given")

    path = PurePosixPath(reference)
    if path.is_absolute():
        return str(path)

    parts = path.parts
    if parts[0] == "backups":
        parts = parts[1:]
    if not parts:
        raise PreconditionError(f"Not a backup file: {reference}")

    return str(PurePosixPath(CONTAINER_BACKUPS, *parts))


class BackupEngine:
    """
    Creates, restores and lists database backups.
    """

    def __init__(
        self,
        runtime: ContainerRuntime,
        layout: ProjectLayout,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        """
        Args:
            runtime: Container runtime
            layout: Project layout (host side of the backups mount)
            clock: UTC time source for backup names
        """
        self._runtime = runtime
        self._layout = layout
        self._clock = clock

    def _require_db(self) -> None:
        if not self._runtime.is_running(DB_SERVICE):
            raise ServiceNotRunningError(DB_SERVICE)

    # ============================================
    # BACKUP
    # ============================================

    def backup(self) -> BackupRecord:
        """
        Dump the database to backups/backup-<timestamp>.sql.gz.

        Returns:
            BackupRecord for the new file

        Raises:
            ServiceNotRunningError: db is not running
            BackupValidationError: The dump produced no data
            ExternalToolError: The dump failed for any other reason
        """
        self._require_db()

        now = self._clock()
        name = backup_name(now)
        container_file = f"{CONTAINER_BACKUPS}/{name}"

        script = _DUMP_SCRIPT.format(
            backups=CONTAINER_BACKUPS,
            raw=shlex.quote(f"/tmp/{name}.raw"),
            file=shlex.quote(container_file),
            empty_exit=EMPTY_DUMP_EXIT,
        )

        logger.info(f"📦 Creating backup {name}")
        result = self._runtime.exec(DB_SERVICE, ["sh", "-c", script])

        if result.exit_code == EMPTY_DUMP_EXIT:
            raise BackupValidationError(f"Backup failed: database dump for {name} was empty")
        if not result.ok:
            raise ExternalToolError(
                f"Backup failed (exit {result.exit_code}): {result.output.strip()}",
                command=["mariadb-dump"],
                exit_code=result.exit_code,
                output=result.output,
            )

        host_file = self._layout.backups_dir / name
        if not host_file.is_file() or host_file.stat().st_size == 0:
            raise BackupValidationError(f"Backup failed: {host_file} is missing or empty")

        record = BackupRecord(
            name=name,
            path=host_file,
            size=host_file.stat().st_size,
            created_at=now,
        )
        logger.info(f"✅ Backup created: {host_file} ({record.size} bytes)")
        return record

    # ============================================
    # RESTORE
    # ============================================

    def restore(self, reference: str) -> str:
        """
        Load a dump into the database. Overwrites current data.

        Args:
            reference: File name, backups/<name>, or an absolute container path

        Returns:
            The container path that was restored

        Raises:
            ServiceNotRunningError: db is not running
            BackupNotFoundError: The file does not exist in the container
            ExternalToolError: The client exited non-zero
        """
        path = resolve_backup_path(reference)
        self._require_db()

        quoted = shlex.quote(path)
        probe = self._runtime.exec(DB_SERVICE, ["sh", "-c", f"test -f {quoted}"])
        if not probe.ok:
            raise BackupNotFoundError(f"Backup file not found in container: {path}")

        template = _RESTORE_GZIP if path.endswith(".gz") else _RESTORE_PLAIN
        logger.info(f"Restoring database from {path}")
        result = self._runtime.exec(DB_SERVICE, ["sh", "-c", template.format(path=quoted)])

        if not result.ok:
            raise ExternalToolError(
                f"Restore from {path} failed (exit {result.exit_code}): {result.output.strip()}",
                command=["mariadb"],
                exit_code=result.exit_code,
                output=result.output,
            )

        logger.info(f"✅ Database restored from {path}")
        return path

    def import_database(self, source: Path) -> str:
        """
        Copy a host dump into backups/ and restore it.

        Raises:
            PreconditionError: The file does not exist, or db is not running
        """
        source = Path(source)
        if not source.is_file():
            raise PreconditionError(f"File not found: {source}")
        self._require_db()

        target = self._layout.backups_dir / source.name
        target.parent.mkdir(parents=True, exist_ok=True)
        if source.resolve() != target.resolve():
            shutil.copyfile(source, target)
            logger.info(f"✅ Copied to backups/{source.name}")

        return self.restore(source.name)

    # ============================================
    # LISTING
    # ============================================

    def list_backups(self, limit: int = 20) -> List[BackupRecord]:
        """Backup files on the host, newest first."""
        directory = self._layout.backups_dir
        if not directory.is_dir():
            return []

        records = []
        for path in directory.glob(BACKUP_GLOB):
            if not path.is_file():
                continue
            stat = path.stat()
            records.append(
                BackupRecord(
                    name=path.name,
                    path=path,
                    size=stat.st_size,
                    created_at=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
                )
            )

        records.sort(key=lambda record: (record.created_at, record.name), reverse=True)
        return records[:limit]

    def count(self) -> int:
        directory = self._layout.backups_dir
        if not directory.is_dir():
            return 0
        return sum(1 for path in directory.glob(BACKUP_GLOB) if path.is_file())
