#tests\test_backup.py

"""Test database backup, restore and listing."""

import os
from datetime import datetime, timezone

import pytest

from environment_engine.backup.engine import BackupEngine, backup_name, resolve_backup_path
from environment_engine.core.errors import (
    BackupNotFoundError, BackupValidationError, ExternalToolError,
    PreconditionError, ServiceNotRunningError,
)
from environment_engine.core.models import ExecResult
from environment_engine.domain.layout import ProjectLayout


NOW = datetime(2024, 1, 16, 14, 30, 22, tzinfo=timezone.utc)
NAME = "backup-20240116-143022.sql.gz"


@pytest.fixture
def engine(runtime, layout):
    layout.backups_dir.mkdir()
    runtime.up()
    return BackupEngine(runtime, layout, clock=lambda: NOW)


class TestResolveBackupPath:
    """Test mapping user references to container paths."""

    @pytest.mark.parametrize("reference, expected", [
        ("x.sql.gz", "/backups/x.sql.gz"),
        ("backups/x.sql.gz", "/backups/x.sql.gz"),
        ("/backups/x.sql.gz", "/backups/x.sql.gz"),
        ("/tmp/dump.sql", "/tmp/dump.sql"),
        ("  x.sql  ", "/backups/x.sql"),
    ])
    def test_references(self, reference, expected):
        """Test each accepted reference form."""
        assert resolve_backup_path(reference) == expected

    @pytest.mark.parametrize("reference", ["", "   ", "backups"])
    def test_invalid(self, reference):
        """Test empty references are rejected."""
        with pytest.raises(PreconditionError):
            resolve_backup_path(reference)

    def test_backup_name(self):
        """Test the timestamped file name."""
        assert backup_name(NOW) == NAME


class TestBackup:
    """Test creating a backup."""

    def test_success(self, engine, runtime, exec_script, layout):
        """Test a dump that lands on the host is returned as a record."""
        def dump():
            (layout.backups_dir / NAME).write_bytes(b"\x1f\x8bdata")
            return ExecResult(0)
        exec_script.when("db", "mariadb-dump", dump)

        record = engine.backup()

        assert record.name == NAME
        assert record.path == layout.backups_dir / NAME
        assert record.size == 6
        assert record.created_at == NOW

        script = runtime.exec_calls("db")[-1][2]
        assert "--single-transaction" in script
        assert "$MYSQL_PASSWORD" in script
        assert f"/backups/{NAME}" in script

    def test_empty_dump_exit(self, engine, exec_script):
        """Test the empty-dump exit code is a validation error."""
        exec_script.when("db", "mariadb-dump", ExecResult(3, "dump produced no data"))

        with pytest.raises(BackupValidationError):
            engine.backup()

    def test_empty_host_file(self, engine, exec_script, layout):
        """Test a zero-byte file on the host is never reported as success."""
        def dump():
            (layout.backups_dir / NAME).write_bytes(b"")
            return ExecResult(0)
        exec_script.when("db", "mariadb-dump", dump)

        with pytest.raises(BackupValidationError):
            engine.backup()

    def test_missing_host_file(self, engine):
        """Test exit 0 with nothing on disk is a validation error."""
        with pytest.raises(BackupValidationError):
            engine.backup()

    def test_dump_failure(self, engine, exec_script):
        """Test other non-zero exits are tool errors."""
        exec_script.when("db", "mariadb-dump", ExecResult(2, "Access denied"))

        with pytest.raises(ExternalToolError) as exc_info:
            engine.backup()

        assert exc_info.value.exit_code == 2
        assert "Access denied" in str(exc_info.value)

    def test_db_not_running(self, engine, runtime):
        """Test backup needs the db container."""
        runtime.down()

        with pytest.raises(ServiceNotRunningError):
            engine.backup()


class TestRestore:
    """Test restoring a backup."""

    def test_gzip_restore(self, engine, runtime):
        """Test .gz files are piped through gunzip."""
        path = engine.restore(NAME)

        assert path == f"/backups/{NAME}"
        probe, restore = [command[2] for command in runtime.exec_calls("db")]
        assert probe == f"test -f /backups/{NAME}"
        assert restore.startswith(f"gunzip -c /backups/{NAME} | mariadb")

    def test_plain_restore(self, engine, runtime):
        """Test plain dumps are redirected into the client."""
        engine.restore("/tmp/dump.sql")

        restore = runtime.exec_calls("db")[-1][2]
        assert restore.endswith("< /tmp/dump.sql")
        assert "gunzip" not in restore

    def test_paths_are_quoted(self, engine, runtime):
        """Test file names cannot inject shell."""
        engine.restore("a b;c.sql")

        probe = runtime.exec_calls("db")[0][2]
        assert probe == "test -f '/backups/a b;c.sql'"

    def test_missing_file(self, engine, runtime, exec_script):
        """Test a missing file stops before the client runs."""
        exec_script.when("db", "test -f", ExecResult(1))

        with pytest.raises(BackupNotFoundError):
            engine.restore("nope.sql.gz")

        assert len(runtime.exec_calls("db")) == 1

    def test_client_failure(self, engine, exec_script):
        """Test a failing client is a tool error."""
        exec_script.when("db", "gunzip", ExecResult(1, "ERROR 1064"))

        with pytest.raises(ExternalToolError):
            engine.restore(NAME)

    def test_db_not_running(self, engine, runtime):
        """Test restore needs the db container."""
        runtime.down()

        with pytest.raises(ServiceNotRunningError):
            engine.restore(NAME)

    def test_import_copies_into_backups(self, engine, runtime, tmp_path, layout):
        """Test import copies a host dump and restores it."""
        source = tmp_path / "dump.sql"
        source.write_text("CREATE TABLE t (id INT);\n")

        path = engine.import_database(source)

        assert path == "/backups/dump.sql"
        assert (layout.backups_dir / "dump.sql").read_text() == source.read_text()

    def test_import_missing_file(self, engine, tmp_path):
        """Test import of a missing file fails early."""
        with pytest.raises(PreconditionError):
            engine.import_database(tmp_path / "missing.sql")


class TestListBackups:
    """Test listing backups."""

    def _write(self, layout, name, mtime):
        path = layout.backups_dir / name
        path.write_bytes(b"data")
        os.utime(path, (mtime, mtime))
        return path

    def test_newest_first(self, engine, layout):
        """Test ordering by modification time."""
        self._write(layout, "backup-a.sql.gz", 1000)
        self._write(layout, "backup-c.sql.gz", 3000)
        self._write(layout, "backup-b.sql", 2000)
        self._write(layout, "notes.txt", 4000)

        names = [record.name for record in engine.list_backups()]

        assert names == ["backup-c.sql.gz", "backup-b.sql", "backup-a.sql.gz"]
        assert engine.count() == 3

    def test_limit(self, engine, layout):
        """Test at most `limit` entries are returned."""
        for i in range(5):
            self._write(layout, f"backup-{i}.sql.gz", 1000 + i)

        records = engine.list_backups(limit=2)

        assert [record.name for record in records] == ["backup-4.sql.gz", "backup-3.sql.gz"]

    def test_no_directory(self, runtime, tmp_path):
        """Test a missing backups directory lists nothing."""
        engine = BackupEngine(runtime, ProjectLayout(tmp_path / "empty"))

        assert engine.list_backups() == []
        assert engine.count() == 0
