#tests\test_artifacts.py

"""Test plugin and theme management."""

import json
import shutil
import subprocess

import pytest

from environment_engine.artifacts.manager import (
    ArtifactKind, ArtifactManager, SyncState, VcsState, derive_artifact_name,
)
from environment_engine.core.errors import (
    ArtifactExistsError, ArtifactNotFoundError, ExternalToolError, PreconditionError,
)
from environment_engine.core.models import ExecResult
from environment_engine.infrastructure.git import client as git_client
from environment_engine.infrastructure.git.client import GitClient
from environment_engine.infrastructure.memory.runtime import InMemoryRuntime
from environment_engine.core.results import SideEffectStatus


requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")


@pytest.fixture
def manager(layout, runtime):
    return ArtifactManager(layout, runtime)


@pytest.fixture
def git_identity(monkeypatch):
    """Commits need an author even on machines without git config."""
    for prefix in ("GIT_AUTHOR", "GIT_COMMITTER"):
        monkeypatch.setenv(f"{prefix}_NAME", "Dev Team")
        monkeypatch.setenv(f"{prefix}_EMAIL", "dev@example.com")


def git(*args, cwd=None):
    return subprocess.run(["git", *args], cwd=cwd, check=True, capture_output=True, text=True)


class UnreachableRuntime(InMemoryRuntime):
    """Runtime whose daemon cannot be reached."""

    def service_status(self):
        raise ExternalToolError("Cannot connect to the Docker daemon")


class TestDeriveArtifactName:
    """Test directory names for cloned URLs."""

    @pytest.mark.parametrize("url, expected", [
        ("https://github.com/user/my-plugin.git", "my-plugin"),
        ("https://github.com/user/my-plugin", "my-plugin"),
        ("https://github.com/user/my-plugin/", "my-plugin"),
        ("git@github.com:user/my-theme.git", "my-theme"),
        ("git@host:my-theme.git", "my-theme"),
    ])
    def test_names(self, url, expected):
        """Test the last path segment without .git."""
        assert derive_artifact_name(url) == expected


class TestCreate:
    """Test scaffolding plugins and themes."""

    def test_plugin(self, manager, layout):
        """Test a plugin gets its main file."""
        result = manager.create(ArtifactKind.PLUGIN, "my-plugin")

        main = layout.plugins_dir / "my-plugin" / "my-plugin.php"
        assert result.succeeded
        assert "Plugin Name: my-plugin" in main.read_text()
        assert 'defined("ABSPATH")' in main.read_text()

    def test_theme(self, manager, layout):
        """Test a theme gets style.css, functions.php and index.php."""
        manager.create(ArtifactKind.THEME, "my-theme")

        theme = layout.themes_dir / "my-theme"
        assert sorted(p.name for p in theme.iterdir()) == ["functions.php", "index.php", "style.css"]
        assert "Theme Name: my-theme" in (theme / "style.css").read_text()

    def test_existing_is_not_overwritten(self, manager, layout):
        """Test a second create fails and keeps the user's edits."""
        manager.create(ArtifactKind.PLUGIN, "my-plugin")
        main = layout.plugins_dir / "my-plugin" / "my-plugin.php"
        main.write_text("<?php // edited\n")

        with pytest.raises(ArtifactExistsError):
            manager.create(ArtifactKind.PLUGIN, "my-plugin")

        assert main.read_text() == "<?php // edited\n"

    @pytest.mark.parametrize("name", ["", "  ", "a/b", "..", "a\\b"])
    def test_invalid_name(self, manager, name):
        """Test names that are empty or escape the directory."""
        with pytest.raises(PreconditionError):
            manager.create(ArtifactKind.PLUGIN, name)

    def test_activation_skipped_when_stopped(self, manager, runtime):
        """Test creation succeeds without containers."""
        result = manager.create(ArtifactKind.PLUGIN, "my-plugin")

        assert result.succeeded
        assert result.side_effect("activation").status == SideEffectStatus.SKIPPED
        assert runtime.exec_calls() == []

    def test_activation_ok(self, manager, runtime):
        """Test the new plugin is activated through wp-cli."""
        runtime.up()

        result = manager.create(ArtifactKind.PLUGIN, "my-plugin")

        assert result.side_effect("activation").status == SideEffectStatus.OK
        assert runtime.exec_calls("wpcli") == [("wp", "plugin", "activate", "my-plugin")]

    def test_activation_failure_is_reported(self, manager, runtime, exec_script):
        """Test a failed activation does not fail the creation."""
        runtime.up()
        exec_script.when("wpcli", "theme activate", ExecResult(1, "Error: broken theme"))

        result = manager.create(ArtifactKind.THEME, "my-theme")

        effect = result.side_effect("activation")
        assert result.succeeded
        assert effect.status == SideEffectStatus.FAILED
        assert effect.detail == "Error: broken theme"

    def test_unreachable_runtime_skips_activation(self, layout):
        """Test files are created when the container runtime is down."""
        manager = ArtifactManager(layout, UnreachableRuntime())

        result = manager.create(ArtifactKind.PLUGIN, "my-plugin")

        assert result.succeeded
        assert (layout.plugins_dir / "my-plugin" / "my-plugin.php").exists()
        assert result.side_effect("activation").status == SideEffectStatus.SKIPPED

    def test_activation_error_is_reported(self, manager, runtime, exec_script):
        """Test an exec error during activation keeps the created files."""
        runtime.up()

        def broken():
            raise ExternalToolError("exec failed")

        exec_script.when("wpcli", "plugin activate", broken)

        result = manager.create(ArtifactKind.PLUGIN, "my-plugin")

        effect = result.side_effect("activation")
        assert result.succeeded
        assert effect.status == SideEffectStatus.FAILED
        assert effect.detail == "exec failed"


class TestGitUnavailable:
    """Test repository commands without a git executable."""

    @pytest.fixture
    def no_git(self, layout, runtime):
        return ArtifactManager(layout, runtime, git=GitClient(executable="no-such-git-binary"))

    def test_init_repo(self, no_git, layout):
        """Test init-repo names the missing tool and leaves the artifact alone."""
        no_git.create(ArtifactKind.PLUGIN, "my-plugin")

        with pytest.raises(PreconditionError) as exc_info:
            no_git.init_repo(ArtifactKind.PLUGIN, "my-plugin")

        assert "no-such-git-binary is not installed" in str(exc_info.value)
        assert not (layout.plugins_dir / "my-plugin" / "README.md").exists()

    def test_clone(self, no_git, layout):
        """Test clone fails before creating the target."""
        with pytest.raises(PreconditionError):
            no_git.clone(ArtifactKind.THEME, "https://example.com/user/my-theme.git")

        assert not (layout.themes_dir / "my-theme").exists()


class TestGitFetch:
    """Test fetch never blocks on credentials."""

    def test_terminal_prompt_disabled(self, tmp_path, monkeypatch):
        """Test fetch runs with GIT_TERMINAL_PROMPT=0."""
        calls = []

        def run(command, **kwargs):
            calls.append((command, kwargs))
            return subprocess.CompletedProcess(command, 128, stdout="", stderr="auth required")

        monkeypatch.setattr(git_client.subprocess, "run", run)

        assert GitClient().fetch(tmp_path) is False

        command, kwargs = calls[0]
        assert command == ["git", "fetch", "--quiet"]
        assert kwargs["env"]["GIT_TERMINAL_PROMPT"] == "0"


class TestInitRepo:
    """Test putting an artifact under version control."""

    def test_missing_directory(self, manager):
        """Test init-repo needs the artifact first."""
        with pytest.raises(ArtifactNotFoundError):
            manager.init_repo(ArtifactKind.PLUGIN, "ghost")

    @requires_git
    def test_initial_commit(self, manager, layout, git_identity):
        """Test a repository with README and one commit."""
        manager.create(ArtifactKind.PLUGIN, "my-plugin")

        result = manager.init_repo(ArtifactKind.PLUGIN, "my-plugin")

        path = layout.plugins_dir / "my-plugin"
        assert result.succeeded
        assert (path / "README.md").exists()
        log = git("log", "--format=%s", cwd=path).stdout.strip()
        assert log == "Initial commit for my-plugin plugin"

    @requires_git
    def test_second_init_warns(self, manager, git_identity):
        """Test an existing repository is left alone."""
        manager.create(ArtifactKind.THEME, "my-theme")
        manager.init_repo(ArtifactKind.THEME, "my-theme")

        result = manager.init_repo(ArtifactKind.THEME, "my-theme")

        assert result.succeeded
        assert result.warnings


class TestCloneAndList:
    """Test cloning repositories and reporting their state."""

    @pytest.fixture
    def remote(self, tmp_path, git_identity):
        """Bare repository with one commit."""
        work = tmp_path / "work"
        work.mkdir()
        git("init", "--quiet", cwd=work)
        (work / "shop-plugin.php").write_text("<?php\n")
        git("add", ".", cwd=work)
        git("commit", "--quiet", "-m", "first", cwd=work)

        bare = tmp_path / "shop-plugin.git"
        git("clone", "--quiet", "--bare", str(work), str(bare))
        return bare

    @requires_git
    def test_clone_uses_derived_name(self, manager, layout, remote):
        """Test the clone lands in plugins/<repo name>."""
        result = manager.clone(ArtifactKind.PLUGIN, str(remote))

        assert (layout.plugins_dir / "shop-plugin" / "shop-plugin.php").exists()
        assert result.side_effect("activation").status == SideEffectStatus.SKIPPED

    @requires_git
    def test_clone_into_existing_directory(self, manager, layout, remote):
        """Test an existing target is never touched."""
        target = layout.plugins_dir / "shop-plugin"
        target.mkdir(parents=True)
        (target / "keep.txt").write_text("mine")

        with pytest.raises(ArtifactExistsError):
            manager.clone(ArtifactKind.PLUGIN, str(remote))

        assert [p.name for p in target.iterdir()] == ["keep.txt"]

    def test_clone_requires_url(self, manager):
        """Test an empty URL is rejected."""
        with pytest.raises(PreconditionError):
            manager.clone(ArtifactKind.PLUGIN, "  ")

    @requires_git
    def test_list_states(self, manager, layout, remote):
        """Test untracked, local-only and remote-tracked artifacts."""
        manager.create(ArtifactKind.PLUGIN, "plain")
        manager.create(ArtifactKind.PLUGIN, "local")
        manager.init_repo(ArtifactKind.PLUGIN, "local")
        manager.clone(ArtifactKind.PLUGIN, str(remote))

        artifacts = {artifact.name: artifact for artifact in manager.list(ArtifactKind.PLUGIN)}

        assert sorted(artifacts) == ["local", "plain", "shop-plugin"]
        assert artifacts["plain"].vcs_state == VcsState.UNTRACKED
        assert artifacts["local"].vcs_state == VcsState.TRACKED_NO_REMOTE
        cloned = artifacts["shop-plugin"]
        assert cloned.vcs_state == VcsState.TRACKED_WITH_REMOTE
        assert cloned.sync_state == SyncState.UP_TO_DATE
        assert cloned.remote_url == str(remote)
        assert cloned.dirty is False

    @requires_git
    def test_list_ahead_and_dirty(self, manager, layout, remote):
        """Test a local commit shows AHEAD and edits show dirty."""
        manager.clone(ArtifactKind.PLUGIN, str(remote))
        path = layout.plugins_dir / "shop-plugin"
        (path / "extra.php").write_text("<?php\n")
        git("add", ".", cwd=path)
        git("commit", "--quiet", "-m", "local work", cwd=path)
        (path / "scratch.txt").write_text("wip")

        [artifact] = manager.list(ArtifactKind.PLUGIN)

        assert artifact.sync_state == SyncState.AHEAD
        assert artifact.dirty is True

    def push_upstream_commit(self, remote, tmp_path):
        other = tmp_path / "other"
        git("clone", "--quiet", str(remote), str(other))
        (other / "upstream.php").write_text("<?php\n")
        git("add", ".", cwd=other)
        git("commit", "--quiet", "-m", "upstream work", cwd=other)
        git("push", "--quiet", cwd=other)

    @requires_git
    def test_list_behind(self, manager, remote, tmp_path):
        """Test a newer upstream commit shows BEHIND."""
        manager.clone(ArtifactKind.PLUGIN, str(remote))
        self.push_upstream_commit(remote, tmp_path)

        [artifact] = manager.list(ArtifactKind.PLUGIN)

        assert artifact.sync_state == SyncState.BEHIND
        assert artifact.dirty is False

    @requires_git
    def test_list_diverged(self, manager, layout, remote, tmp_path):
        """Test commits on both sides show DIVERGED."""
        manager.clone(ArtifactKind.PLUGIN, str(remote))
        self.push_upstream_commit(remote, tmp_path)
        path = layout.plugins_dir / "shop-plugin"
        (path / "local.php").write_text("<?php\n")
        git("add", ".", cwd=path)
        git("commit", "--quiet", "-m", "local work", cwd=path)

        [artifact] = manager.list(ArtifactKind.PLUGIN)

        assert artifact.sync_state == SyncState.DIVERGED

    @requires_git
    def test_list_remote_without_upstream(self, manager, layout, remote):
        """Test a remote with no tracking branch shows UNKNOWN."""
        manager.create(ArtifactKind.PLUGIN, "local")
        manager.init_repo(ArtifactKind.PLUGIN, "local")
        git("remote", "add", "origin", str(remote), cwd=layout.plugins_dir / "local")

        [artifact] = manager.list(ArtifactKind.PLUGIN)

        assert artifact.vcs_state == VcsState.TRACKED_WITH_REMOTE
        assert artifact.sync_state == SyncState.UNKNOWN

    def test_list_with_unreachable_runtime(self, layout):
        """Test listing works without activation status when the runtime is down."""
        (layout.plugins_dir / "plain").mkdir(parents=True)

        [artifact] = ArtifactManager(layout, UnreachableRuntime()).list(ArtifactKind.PLUGIN)

        assert artifact.name == "plain"
        assert artifact.activation_status is None

    def test_list_skips_hidden_and_reports_activation(self, manager, layout, runtime, exec_script):
        """Test dot-directories are ignored and wp-cli status is attached."""
        runtime.up()
        exec_script.when(
            "wpcli", "plugin list",
            ExecResult(0, json.dumps([{"name": "plain", "status": "active"}])),
        )
        (layout.plugins_dir / ".cache").mkdir(parents=True)
        (layout.plugins_dir / "plain").mkdir()

        [artifact] = manager.list(ArtifactKind.PLUGIN)

        assert artifact.name == "plain"
        assert artifact.activation_status == "active"

    def test_list_without_directory(self, manager):
        """Test a missing themes directory lists nothing."""
        assert manager.list(ArtifactKind.THEME) == []
