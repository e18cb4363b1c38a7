"""Typer command line for the WordPress development environment (``wpdev``)."""

import functools
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

import typer
from rich.console import Console
from rich.table import Table

from environment_engine.artifacts.manager import ArtifactKind, ManagedArtifact
from environment_engine.container import Services, build_services
from environment_engine.core.errors import EnvironmentEngineError, ReadinessTimeoutError
from environment_engine.core.models import ExecResult
from environment_engine.core.results import OperationResult, SideEffectStatus
from environment_engine.health_checker.checker import CheckStatus, HealthReport
from environment_engine.infrastructure.compose.runtime import missing_optional_tools

console = Console()

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="WordPress development environment: containers, backups, plugins and themes.",
)

PASSTHROUGH = {"allow_extra_args": True, "ignore_unknown_options": True}


@dataclass
class CliState:
    project_dir: Path
    verbose: bool = False
    services: Optional[Services] = None


def _services(ctx: typer.Context) -> Services:
    state: CliState = ctx.obj
    if state.services is None:
        state.services = build_services(state.project_dir)
    return state.services


def _fail(message: str) -> None:
    console.print(f"[red]❌ {message}[/red]")


def guarded(func: Callable) -> Callable:
    """Turn EnvironmentEngineError into a reason line and exit status 1."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except ReadinessTimeoutError as e:
            _fail(str(e))
            if e.recent_logs:
                console.print("[bold]Recent database logs:[/bold]")
                console.print(e.recent_logs, markup=False, highlight=False)
            raise typer.Exit(code=1)
        except EnvironmentEngineError as e:
            _fail(str(e))
            raise typer.Exit(code=1)

    return wrapper


def _print_result(result: OperationResult) -> None:
    console.print(f"[green]✅ {result.message}[/green]")
    for warning in result.warnings:
        console.print(f"[yellow]⚠️  {warning}[/yellow]")
    for effect in result.side_effects:
        if effect.status == SideEffectStatus.OK:
            console.print(f"   {effect.name}: ok")
        elif effect.status == SideEffectStatus.SKIPPED:
            console.print(f"   {effect.name}: skipped ({effect.detail})")
        else:
            console.print(f"[yellow]⚠️  {effect.name} failed: {effect.detail}[/yellow]")


def _print_output(result: ExecResult) -> None:
    if result.output:
        console.print(result.output.rstrip("\n"), markup=False, highlight=False)


def _print_health(report: HealthReport) -> None:
    table = Table(title="🏥 Service health")
    table.add_column("Check")
    table.add_column("Status")
    table.add_column("Required")
    table.add_column("Detail", overflow="fold")

    colors = {
        CheckStatus.PASS: "green",
        CheckStatus.FAIL: "red",
        CheckStatus.SKIPPED: "yellow",
        CheckStatus.INFO: "cyan",
    }
    for check in report.checks:
        color = colors[check.status]
        table.add_row(
            check.name,
            f"[{color}]{check.status.value}[/{color}]",
            "yes" if check.required else "no",
            check.detail,
        )
    console.print(table)

    if report.healthy:
        console.print("[green]🎉 Environment is healthy![/green]")
    else:
        _fail("Environment has issues")


def _print_artifacts(kind: ArtifactKind, artifacts: List[ManagedArtifact]) -> None:
    if not artifacts:
        console.print(f"No {kind.value}s found")
        return

    table = Table(title=f"📦 Local {kind.value}s")
    table.add_column("Name")
    table.add_column("Git")
    table.add_column("Remote", overflow="fold")
    table.add_column("Sync")
    table.add_column("Changes")
    table.add_column("WordPress")

    for artifact in artifacts:
        table.add_row(
            artifact.name,
            artifact.vcs_state.value,
            artifact.remote_url or "-",
            artifact.sync_state.value if artifact.sync_state else "-",
            "uncommitted" if artifact.dirty else "-",
            artifact.activation_status or "-",
        )
    console.print(table)


# ============================================
# ROOT
# ============================================

@app.callback()
def _root(
    ctx: typer.Context,
    project_dir: Path = typer.Option(
        Path("."),
        "--project-dir",
        "-C",
        file_okay=False,
        help="Environment root directory.",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log progress to stderr."),
) -> None:
    """Entry point callback invoked for every CLI execution."""
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format=LOG_FORMAT,
    )
    if ctx.obj is None:
        ctx.obj = CliState(project_dir=project_dir, verbose=verbose)


# ============================================
# LIFECYCLE
# ============================================

@app.command()
@guarded
def init(
    ctx: typer.Context,
    project_name: Optional[str] = typer.Argument(None, help="Compose project name."),
    regenerate_secrets: bool = typer.Option(
        False, "--regenerate-secrets", help="Overwrite .env with new database passwords."
    ),
) -> None:
    """Scaffold the environment in the project directory."""
    services = _services(ctx)
    result = services.orchestrator.init(project_name, regenerate_secrets=regenerate_secrets)
    _print_result(result)
    for tool in missing_optional_tools():
        console.print(f"[yellow]⚠️  {tool} not found; plugin and theme repository commands will not work[/yellow]")
    console.print("💡 Next: wpdev up && wpdev install")


@app.command()
@guarded
def up(ctx: typer.Context) -> None:
    """Start containers and wait for the database."""
    orchestrator = _services(ctx).orchestrator
    result = orchestrator.up()
    _print_result(result)
    settings = result.data["settings"]
    console.print(f"🌐 WordPress: {settings.site_url}")
    console.print(f"🗄️  phpMyAdmin: {settings.phpmyadmin_url}")
    console.print(f"📧 Mailpit (profile dev): {settings.mailpit_url}")


@app.command()
@guarded
def down(ctx: typer.Context) -> None:
    """Stop containers (data is kept)."""
    _print_result(_services(ctx).orchestrator.down())


@app.command()
@guarded
def restart(ctx: typer.Context) -> None:
    """Stop, then start containers."""
    _print_result(_services(ctx).orchestrator.restart())


@app.command("wait-db")
@guarded
def wait_db(ctx: typer.Context) -> None:
    """Wait until the database answers."""
    wait = _services(ctx).orchestrator.wait_for_database()
    console.print(f"[green]✅ Database is ready ({wait.elapsed:.1f}s)[/green]")


@app.command()
@guarded
def install(ctx: typer.Context) -> None:
    """Download, configure and install WordPress."""
    result = _services(ctx).orchestrator.install()

    if result.installed:
        console.print("[green]✅ WordPress installed successfully![/green]")
        console.print(f"🌐 URL: {result.site_url}")
        console.print(f"👤 Username: {result.admin_user}")
        console.print(f"🔑 Password: {result.admin_password}", markup=False)
        console.print(f"📧 Email: {result.admin_email}")
    else:
        console.print("[green]✅ WordPress was already installed; configuration refreshed[/green]")
        console.print(f"🌐 URL: {result.site_url}")


@app.command()
@guarded
def clean(ctx: typer.Context) -> None:
    """Reset everything: containers, volumes and generated content."""
    console.print("[yellow]⚠️  This will delete ALL data including database and uploads![/yellow]")

    def confirm() -> str:
        return typer.prompt("Are you sure? (y/N)", default="", show_default=False)

    result = _services(ctx).orchestrator.clean(confirm)
    if result.cancelled:
        console.print("❌ Operation cancelled")
        return

    for warning in result.warnings:
        console.print(f"[yellow]⚠️  {warning}[/yellow]")
    console.print("[green]✅ Environment reset![/green]")


@app.command("fix-permissions")
@guarded
def fix_permissions(ctx: typer.Context) -> None:
    """Open content directories for www-data and the host user."""
    _print_result(_services(ctx).orchestrator.fix_permissions())


@app.command()
@guarded
def phpinfo(ctx: typer.Context) -> None:
    """Create wordpress/info.php."""
    _print_result(_services(ctx).orchestrator.phpinfo())


# ============================================
# INSPECTION
# ============================================

@app.command()
@guarded
def health(ctx: typer.Context) -> None:
    """Check services, database, WP-CLI and HTTP endpoints."""
    report = _services(ctx).orchestrator.health()
    _print_health(report)
    if not report.healthy:
        raise typer.Exit(code=1)


@app.command("test")
@guarded
def test_command(ctx: typer.Context) -> None:
    """Run health checks plus a WP-CLI probe."""
    result = _services(ctx).orchestrator.test()
    _print_health(result.data["health"])

    effect = result.side_effect("wp-cli")
    if effect and effect.status == SideEffectStatus.OK:
        console.print(f"[green]✅ WP-CLI working ({effect.detail})[/green]")
    else:
        _fail("WP-CLI failed")

    if not result.succeeded:
        raise typer.Exit(code=1)


# ============================================
# INTERACTIVE
# ============================================

@app.command()
@guarded
def shell(ctx: typer.Context) -> None:
    """Open a shell in the wordpress container."""
    raise typer.Exit(code=_services(ctx).orchestrator.shell())


@app.command("db-shell")
@guarded
def db_shell(ctx: typer.Context) -> None:
    """Open a shell in the db container."""
    raise typer.Exit(code=_services(ctx).orchestrator.db_shell())


@app.command("logs")
@guarded
def logs_command(
    ctx: typer.Context,
    service: Optional[str] = typer.Argument(None, help="Service name (all when omitted)."),
    follow: bool = typer.Option(True, "--follow/--no-follow", help="Stream new log lines."),
) -> None:
    """Show container logs."""
    raise typer.Exit(code=_services(ctx).orchestrator.logs(service, follow=follow))


# ============================================
# DATABASE
# ============================================

@app.command()
@guarded
def backup(ctx: typer.Context) -> None:
    """Dump the database into backups/."""
    record = _services(ctx).backups.backup()
    console.print(f"[green]✅ Backup created: backups/{record.name} ({record.size} bytes)[/green]")


@app.command()
@guarded
def restore(
    ctx: typer.Context,
    file: str = typer.Argument(..., help="backup.sql[.gz], backups/<file> or an absolute container path."),
) -> None:
    """Restore the database from a backup (overwrites current data)."""
    path = _services(ctx).backups.restore(file)
    console.print(f"[green]✅ Database restored from {path}[/green]")


@app.command("db-import")
@guarded
def db_import(
    ctx: typer.Context,
    path: Path = typer.Argument(..., help="SQL dump on the host."),
) -> None:
    """Copy a host dump into backups/ and restore it."""
    restored = _services(ctx).backups.import_database(path)
    console.print(f"[green]✅ Database restored from {restored}[/green]")


@app.command("list-backups")
@guarded
def list_backups(
    ctx: typer.Context,
    limit: int = typer.Option(20, "--limit", "-n", help="Maximum number of backups to show."),
) -> None:
    """List available backups, newest first."""
    records = _services(ctx).backups.list_backups(limit=limit)
    if not records:
        console.print("No backups found")
        return

    table = Table(title="📁 Available backups")
    table.add_column("File")
    table.add_column("Size", justify="right")
    table.add_column("Modified (UTC)")
    for record in records:
        table.add_row(record.name, str(record.size), record.created_at.strftime("%Y-%m-%d %H:%M:%S"))
    console.print(table)


# ============================================
# PLUGINS / THEMES
# ============================================

def _create(ctx: typer.Context, kind: ArtifactKind, name: str) -> None:
    result = _services(ctx).artifacts.create(kind, name)
    _print_result(result)
    console.print(f"💡 Next step: wpdev {kind.value}-repo {name} to initialize git repository")


def _init_repo(ctx: typer.Context, kind: ArtifactKind, name: str) -> None:
    result = _services(ctx).artifacts.init_repo(kind, name)
    if result.warnings:
        for warning in result.warnings:
            console.print(f"[yellow]⚠️  {warning}[/yellow]")
        return
    _print_result(result)
    console.print("💡 Next steps:")
    console.print(f"   cd {kind.value}s/{name}")
    console.print(f"   git remote add origin https://github.com/username/{name}.git")
    console.print("   git push -u origin main")


def _clone(ctx: typer.Context, kind: ArtifactKind, url: str, name: Optional[str]) -> None:
    _print_result(_services(ctx).artifacts.clone(kind, url, name))


def _list(ctx: typer.Context, kind: ArtifactKind) -> None:
    _print_artifacts(kind, _services(ctx).artifacts.list(kind))


@app.command()
@guarded
def plugin(ctx: typer.Context, name: str = typer.Argument(..., help="Plugin slug.")) -> None:
    """Create a plugin skeleton and try to activate it."""
    _create(ctx, ArtifactKind.PLUGIN, name)


@app.command("plugin-repo")
@guarded
def plugin_repo(ctx: typer.Context, name: str = typer.Argument(..., help="Plugin slug.")) -> None:
    """Initialize a plugin as its own git repository."""
    _init_repo(ctx, ArtifactKind.PLUGIN, name)


@app.command("plugin-clone")
@guarded
def plugin_clone(
    ctx: typer.Context,
    url: str = typer.Argument(..., help="Repository URL."),
    name: Optional[str] = typer.Argument(None, help="Directory name (defaults to the repository name)."),
) -> None:
    """Clone an existing plugin repository."""
    _clone(ctx, ArtifactKind.PLUGIN, url, name)


@app.command("plugin-list")
@guarded
def plugin_list(ctx: typer.Context) -> None:
    """List plugins with their git and activation status."""
    _list(ctx, ArtifactKind.PLUGIN)


@app.command()
@guarded
def theme(ctx: typer.Context, name: str = typer.Argument(..., help="Theme slug.")) -> None:
    """Create a theme skeleton and try to activate it."""
    _create(ctx, ArtifactKind.THEME, name)


@app.command("theme-repo")
@guarded
def theme_repo(ctx: typer.Context, name: str = typer.Argument(..., help="Theme slug.")) -> None:
    """Initialize a theme as its own git repository."""
    _init_repo(ctx, ArtifactKind.THEME, name)


@app.command("theme-clone")
@guarded
def theme_clone(
    ctx: typer.Context,
    url: str = typer.Argument(..., help="Repository URL."),
    name: Optional[str] = typer.Argument(None, help="Directory name (defaults to the repository name)."),
) -> None:
    """Clone an existing theme repository."""
    _clone(ctx, ArtifactKind.THEME, url, name)


@app.command("theme-list")
@guarded
def theme_list(ctx: typer.Context) -> None:
    """List themes with their git and activation status."""
    _list(ctx, ArtifactKind.THEME)


# ============================================
# WP-CLI
# ============================================

@app.command("wp", context_settings=PASSTHROUGH)
@guarded
def wp_command(ctx: typer.Context) -> None:
    """Run a WP-CLI command (e.g. wpdev wp plugin list)."""
    result = _services(ctx).orchestrator.wp(ctx.args)
    _print_output(result)
    if not result.ok:
        raise typer.Exit(code=result.exit_code)


@app.command("sr")
@guarded
def search_replace(
    ctx: typer.Context,
    old: str = typer.Argument(..., help="Old URL."),
    new: str = typer.Argument(..., help="New URL."),
) -> None:
    """Search-replace a URL across all tables."""
    result = _services(ctx).orchestrator.search_replace(old, new)
    _print_output(result)


@app.command("cron-run")
@guarded
def cron_run(ctx: typer.Context) -> None:
    """Run due WordPress cron events."""
    result = _services(ctx).orchestrator.cron_run()
    _print_output(result)


def main() -> None:
    """Console script entry point."""
    app()


if __name__ == "__main__":
    main()
