#tests\test_cli.py

"""Test the wpdev command line."""

import pytest
from pydantic import ValidationError
from typer.testing import CliRunner

from environment_engine.cli import CliState, app
from environment_engine.container import build_services
from environment_engine.core.models import ExecResult
from environment_engine.infrastructure.memory.runtime import InMemoryRuntime


@pytest.fixture
def cli_runtime(exec_script):
    return InMemoryRuntime(exec_handler=exec_script)


@pytest.fixture
def invoke(layout, cli_runtime):
    """Run wpdev against the test project with an in-memory runtime."""
    runner = CliRunner()

    def run(*args, input=None):
        services = build_services(layout.root, runtime=cli_runtime, check_dependencies=False)
        state = CliState(project_dir=layout.root, services=services)
        return runner.invoke(app, list(args), obj=state, input=input)

    return run


class TestLifecycleCommands:
    """Test init, up and clean through the CLI."""

    def test_init(self, invoke, layout):
        """Test init scaffolds the project."""
        result = invoke("init", "test-site")

        assert result.exit_code == 0
        assert layout.compose_file.is_file()
        assert "COMPOSE_PROJECT_NAME=test-site" in layout.env_file.read_text()

    def test_up_without_init(self, invoke, cli_runtime):
        """Test errors become a reason line and exit status 1."""
        result = invoke("up")

        assert result.exit_code == 1
        assert "No docker-compose.yml" in result.output
        assert cli_runtime.calls == []

    def test_clean_declined(self, invoke, layout):
        """Test answering no cancels and exits 0."""
        invoke("init", "test-site")

        result = invoke("clean", input="n\n")

        assert result.exit_code == 0
        assert "cancelled" in result.output
        assert layout.wordpress_dir.is_dir()

    def test_clean_confirmed(self, invoke, layout, cli_runtime):
        """Test answering y resets the environment."""
        invoke("init", "test-site")

        result = invoke("clean", input="y\n")

        assert result.exit_code == 0
        assert not layout.wordpress_dir.exists()
        assert cli_runtime.volumes_removed

    def test_clean_has_no_bypass(self, invoke, layout):
        """Test clean cannot skip the confirmation prompt."""
        invoke("init", "test-site")

        result = invoke("clean", "--yes")

        assert result.exit_code == 2
        assert layout.wordpress_dir.is_dir()

    def test_invalid_configuration(self, layout):
        """Test a bad .env value is a reason line, not a traceback."""
        layout.env_file.write_text("PHP_VERSION=7.4\n")

        result = CliRunner().invoke(app, ["-C", str(layout.root), "list-backups"])

        assert result.exit_code == 1
        assert "PHP_VERSION" in result.output
        assert not isinstance(result.exception, ValidationError)


class TestArtifactCommands:
    """Test plugin and theme commands."""

    def test_plugin(self, invoke, layout):
        """Test plugin creation without running containers."""
        result = invoke("plugin", "my-plugin")

        assert result.exit_code == 0
        assert (layout.plugins_dir / "my-plugin" / "my-plugin.php").exists()
        assert "activation: skipped" in result.output

    def test_plugin_exists(self, invoke):
        """Test a second create fails."""
        invoke("plugin", "my-plugin")

        result = invoke("plugin", "my-plugin")

        assert result.exit_code == 1
        assert "already exists" in result.output

    def test_theme_list_empty(self, invoke):
        """Test listing with no themes."""
        result = invoke("theme-list")

        assert result.exit_code == 0
        assert "No themes found" in result.output


class TestDatabaseCommands:
    """Test backup commands."""

    def test_list_backups_empty(self, invoke):
        """Test the empty listing."""
        result = invoke("list-backups")

        assert result.exit_code == 0
        assert "No backups found" in result.output

    def test_backup_needs_db(self, invoke):
        """Test backup fails while db is stopped."""
        result = invoke("backup")

        assert result.exit_code == 1
        assert "db" in result.output


class TestPassthroughCommands:
    """Test wp, logs and shell passthrough."""

    def test_wp_output_and_exit_code(self, invoke, cli_runtime, exec_script):
        """Test wp prints output and exits with the command's status."""
        cli_runtime.up()
        exec_script.when("wpcli", "wp plugin list", ExecResult(0, "akismet\n"))
        exec_script.when("wpcli", "wp no-such", ExecResult(1, "Error: not a command\n"))

        ok = invoke("wp", "plugin", "list", "--format=csv")
        failed = invoke("wp", "no-such")

        assert ok.exit_code == 0
        assert "akismet" in ok.output
        assert ("wp", "plugin", "list", "--format=csv") in cli_runtime.exec_calls("wpcli")
        assert failed.exit_code == 1
        assert "not a command" in failed.output

    def test_wp_without_arguments(self, invoke):
        """Test wp needs a command."""
        result = invoke("wp")

        assert result.exit_code == 1

    def test_logs(self, invoke, cli_runtime):
        """Test logs attaches with the right arguments and exit code."""
        cli_runtime.attach_exit_code = 130

        result = invoke("logs", "db", "--no-follow")

        assert result.exit_code == 130
        assert ("attach", ("logs", "db")) in cli_runtime.calls

    def test_shell(self, invoke, cli_runtime):
        """Test shell opens bash in wordpress."""
        result = invoke("shell")

        assert result.exit_code == 0
        assert ("attach", ("exec", "wordpress", "bash")) in cli_runtime.calls
