import click
import sys
import asyncio
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional
import uvicorn
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from productivity_tracker.config.logging_config import setup_logging
from productivity_tracker.config.settings import settings
from productivity_tracker.main import ProductivityTracker
from productivity_tracker.services.calculator import ProductivityCalculator
from productivity_tracker.services.database import DatabaseManager
from productivity_tracker.services.errors import ConfigError, DatabaseError, TrackingError
from productivity_tracker.services.tracking import TransitionResult

# Set up logging
logger = logging.getLogger(__name__)

# Initialize console
console = Console()

def _tracker(ctx: click.Context) -> ProductivityTracker:
    db = DatabaseManager(ctx.obj["db_path"])
    tracker = ProductivityTracker(db=db)
    ctx.call_on_close(tracker.close)
    return tracker

def _report(tracker: ProductivityTracker, action: str, result: TransitionResult):
    tracker.display.show_result(action, result)
    try:
        result.raise_for_outcome()
    except TrackingError:
        sys.exit(1)

def _resolve_session(db: DatabaseManager, session_id: str):
    """Find a session by full id or unique prefix"""
    session = db.get_session(session_id)
    if session:
        return session
    matches = [s for s in db.fetch_sessions() if s.id.startswith(session_id)]
    if len(matches) == 1:
        return matches[0]
    if matches:
        raise click.BadParameter(f"'{session_id}' matches {len(matches)} sessions")
    raise click.BadParameter(f"No session matching '{session_id}'")

@click.group()
@click.option('--db', 'db_path', type=click.Path(dir_okay=False, path_type=Path),
              default=None, help='Path to the sqlite database')
@click.option('--debug', is_flag=True, help='Enable debug output')
@click.pass_context
def cli(ctx, db_path, debug):
    """Productivity Tracker - focus sessions and interruptions"""
    settings.validate_paths()
    setup_logging(logging.DEBUG if debug else logging.WARNING)
    ctx.ensure_object(dict)
    ctx.obj["db_path"] = db_path or settings.DEFAULT_DB_PATH

@cli.command()
@click.pass_context
def start(ctx):
    """Start a focus session"""
    tracker = _tracker(ctx)
    _report(tracker, "Start session", tracker.machine.start_session())

@cli.command()
@click.option('--reason', default=None, help='What interrupted you')
@click.pass_context
def interrupt(ctx, reason):
    """Log the start of an interruption"""
    tracker = _tracker(ctx)
    _report(tracker, "Start interruption", tracker.machine.start_interruption(reason))

@cli.command()
@click.pass_context
def resume(ctx):
    """End the current interruption"""
    tracker = _tracker(ctx)
    _report(tracker, "End interruption", tracker.machine.end_interruption())

@cli.command()
@click.option('--reason', default=None, help='Record that the session was interrupted, and why')
@click.pass_context
def stop(ctx, reason):
    """End the current session"""
    tracker = _tracker(ctx)
    _report(tracker, "End session", tracker.machine.end_session(reason))

@cli.command()
@click.pass_context
def toggle(ctx):
    """Start a session if idle, otherwise end it"""
    tracker = _tracker(ctx)
    _report(tracker, "Toggle session", tracker.machine.toggle_session())

@cli.command()
@click.pass_context
def hotkey(ctx):
    """Act like the global shortcut: start, interrupt or resume"""
    tracker = _tracker(ctx)
    _report(tracker, "Shortcut", tracker.shortcuts.handle_toggle())

@cli.command()
@click.pass_context
def status(ctx):
    """Show the current state and today's progress"""
    tracker = _tracker(ctx)
    tracker.display.console.print(tracker.render())

@cli.command()
@click.pass_context
def today(ctx):
    """Show today's productivity metrics"""
    tracker = _tracker(ctx)
    now = tracker.clock()
    sessions = tracker.metrics.sessions_for_date(now.date())
    summary = ProductivityCalculator.calculate(sessions, tracker.metrics.penalty_minutes(), now)
    tracker.display.console.print(tracker.display.render_metrics(summary, title=f"Today ({now:%Y-%m-%d})"))

@cli.command()
@click.pass_context
def week(ctx):
    """Show productivity for the last seven days"""
    tracker = _tracker(ctx)
    now = tracker.clock()
    penalty = tracker.metrics.penalty_minutes()
    sessions = tracker.db.fetch_sessions()
    tracker.display.show_week(
        ProductivityCalculator.weekly_breakdown(sessions, penalty, now),
        ProductivityCalculator.calculate_weekly_average(sessions, penalty, now)
    )

@cli.command()
@click.option('--date', 'day', type=click.DateTime(formats=["%Y-%m-%d"]), default=None,
              help='Only show sessions from this day (YYYY-MM-DD)')
@click.pass_context
def history(ctx, day: Optional[datetime]):
    """List recorded sessions grouped by day"""
    tracker = _tracker(ctx)
    if day:
        sessions = tracker.db.fetch_sessions_for_date(day.date())
    else:
        sessions = tracker.db.fetch_sessions()
    tracker.display.show_history(sessions, tracker.metrics.penalty_minutes(), tracker.clock())

@cli.command()
@click.argument('session_id')
@click.pass_context
def timeline(ctx, session_id):
    """Show the focus / interruption / recovery timeline of a session"""
    tracker = _tracker(ctx)
    session = _resolve_session(tracker.db, session_id)
    tracker.display.show_timeline(session, tracker.metrics.timeline(session))

@cli.command()
@click.argument('session_id')
@click.option('--yes', is_flag=True, help='Do not ask for confirmation')
@click.pass_context
def delete(ctx, session_id, yes):
    """Delete a session and its interruptions"""
    tracker = _tracker(ctx)
    session = _resolve_session(tracker.db, session_id)
    if not yes:
        click.confirm(f"Delete session {session.id[:8]} from {session.start_time:%Y-%m-%d %H:%M}?", abort=True)
    _report(tracker, "Delete session", tracker.machine.delete_session(session.id))

@cli.group(name="settings")
def settings_group():
    """View or change preferences"""
    pass

@settings_group.command(name="show")
@click.pass_context
def settings_show(ctx):
    """Show current preferences"""
    tracker = _tracker(ctx)
    tracker.display.show_settings(tracker.db.get_settings())

@settings_group.command(name="set")
@click.option('--penalty', type=int, default=None, help='Penalty minutes per interruption')
@click.option('--notifications/--no-notifications', default=None, help='Toggle notifications')
@click.option('--show-time/--no-show-time', default=None, help='Toggle the running session time')
@click.pass_context
def settings_set(ctx, penalty, notifications, show_time):
    """Change preferences"""
    tracker = _tracker(ctx)
    changes = {
        key: value for key, value in {
            "penalty_per_interruption_minutes": penalty,
            "enable_notifications": notifications,
            "show_time_in_menu_bar": show_time,
        }.items() if value is not None
    }
    if not changes:
        console.print("[yellow]Nothing to change[/yellow]")
        return
    try:
        updated = tracker.db.update_settings(**changes)
    except ConfigError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)
    tracker.display.show_settings(updated)

@cli.command()
@click.pass_context
def watch(ctx):
    """Live status view, refreshed every second"""
    tracker = _tracker(ctx)
    try:
        asyncio.run(tracker.run())
    except Exception as e:
        logger.error(f"Watch failed: {e}", exc_info=True)
        sys.exit(1)

@cli.command()
@click.option('--host', default=settings.WEB_HOST, help='Host to bind to')
@click.option('--port', default=settings.WEB_PORT, help='Port to bind to')
@click.pass_context
def web(ctx, host: str, port: int):
    """Start the web dashboard"""
    from productivity_tracker.web.app import create_app

    click.echo(f"Starting web interface on http://{host}:{port}")
    uvicorn.run(create_app(DatabaseManager(ctx.obj["db_path"])), host=host, port=port)

@cli.group()
def db():
    """Database management commands"""
    pass

@db.command()
@click.pass_context
def stats(ctx):
    """Show database statistics"""
    try:
        manager = DatabaseManager(ctx.obj["db_path"])
        try:
            stats = manager.get_database_stats()
        finally:
            manager.close()

        table = Table(title="Database Tables")
        table.add_column("Table", style="cyan")
        table.add_column("Rows", justify="right", style="green")
        for table_name, info in stats['tables'].items():
            table.add_row(table_name, str(info['row_count']))
        console.print(table)

        time_range = stats['time_range']
        if time_range['oldest'] and time_range['newest']:
            oldest = datetime.fromisoformat(time_range['oldest'])
            newest = datetime.fromisoformat(time_range['newest'])
            console.print(Panel(
                f"[green]Oldest Session:[/green] {oldest.strftime('%Y-%m-%d %H:%M')}\n"
                f"[green]Newest Session:[/green] {newest.strftime('%Y-%m-%d %H:%M')}\n"
                f"[yellow]Total Sessions:[/yellow] {time_range['total_records']:,}\n"
                f"[yellow]Active Sessions:[/yellow] {stats['active_sessions']}",
                title="Data Overview"
            ))
        console.print(f"\nDatabase Size: [green]{stats['database_size_mb']:.1f}MB[/green]")
    except DatabaseError as e:
        logger.error(f"Failed to get database stats: {e}")
        console.print(f"[red]Failed to get database stats: {e}[/red]")
        sys.exit(1)

@db.command()
@click.pass_context
def verify(ctx):
    """Verify database integrity"""
    try:
        manager = DatabaseManager(ctx.obj["db_path"])
        try:
            is_healthy = manager.verify_database_integrity()
        finally:
            manager.close()
    except DatabaseError as e:
        logger.error(f"Integrity check failed: {e}")
        sys.exit(1)

    if is_healthy:
        console.print("[green]Database integrity check passed[/green]")
    else:
        console.print("[red]Database integrity check failed![/red]")
        sys.exit(1)

if __name__ == '__main__':
    cli()
