from datetime import datetime
from itertools import groupby
from typing import List, Optional
from rich.console import Console, Group
from rich.table import Table
from rich.panel import Panel
from rich.text import Text

from productivity_tracker.models.app_settings import AppSettings
from productivity_tracker.models.metrics import DayProductivity, ProductivityMetrics
from productivity_tracker.models.timeline import SegmentType, TimelineSegment
from productivity_tracker.models.work_session import WorkSession
from productivity_tracker.services.tracking import TrackingState, TransitionResult

SEGMENT_STYLES = {
    SegmentType.FOCUS: "blue",
    SegmentType.PENALTY: "magenta",
    SegmentType.INTERRUPTION: "dark_orange",
}

STATE_LABELS = {
    TrackingState.IDLE: ("⏸  Idle", "dim"),
    TrackingState.TRACKING: ("🎯 Tracking", "bold green"),
    TrackingState.INTERRUPTED: ("⚡ Interrupted", "bold yellow"),
}

class TerminalDisplay:
    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def render_timeline(self, segments: List[TimelineSegment], width: int = 60) -> Text:
        """Proportional coloured bar, one block character per cell"""
        bar = Text()
        total = sum(s.duration_seconds for s in segments)
        if total <= 0:
            return bar

        used = 0
        for index, segment in enumerate(segments):
            if index == len(segments) - 1:
                cells = width - used
            else:
                cells = round(segment.duration_seconds / total * width)
            cells = max(0, min(cells, width - used))
            bar.append("█" * cells, style=SEGMENT_STYLES[segment.type])
            used += cells
        return bar

    def render_legend(self) -> Text:
        legend = Text()
        for label, kind in (("Focused", SegmentType.FOCUS),
                            ("Recovery", SegmentType.PENALTY),
                            ("Interruption", SegmentType.INTERRUPTION)):
            legend.append("● ", style=SEGMENT_STYLES[kind])
            legend.append(f"{label}  ", style="dim")
        return legend

    def render_metrics(self, metrics: ProductivityMetrics, title: str = "Today's Progress") -> Panel:
        stats = Text()
        stats.append(f"Focused: {metrics.focused_time_formatted}\n", style="bold")
        stats.append(f"Sessions: {metrics.session_count}\n", style="dim")
        stats.append(f"Interruptions: {metrics.interruption_count}", style="dim")
        stats.append(f" ({metrics.interruption_duration_minutes:.0f}m)\n", style="dim")
        stats.append(f"Penalty: {metrics.penalty_minutes:.0f}m\n", style="dim")
        stats.append(f"Productivity: {metrics.productivity_percentage:.0f}% ", style="bold green")
        stats.append(f"[{metrics.grade}]", style="bold cyan")
        return Panel(stats, title=title, expand=False)

    def render_status(self, state: TrackingState, session: Optional[WorkSession],
                      metrics: ProductivityMetrics, segments: List[TimelineSegment],
                      now: Optional[datetime] = None, show_time: bool = True) -> Group:
        now = now or datetime.now()
        label, style = STATE_LABELS[state]

        header = Text()
        header.append("📊 Productivity Tracker\n", style="bold cyan")
        header.append(label, style=style)
        if session and show_time:
            header.append(f"  {session.duration_formatted(now)}", style="bold")
            header.append(f"  (since {session.start_time.strftime('%H:%M')})", style="dim")

        parts = [Panel(header, expand=False)]
        if session:
            parts.append(self.render_timeline(segments))
            parts.append(self.render_legend())
        parts.append(self.render_metrics(metrics))
        return Group(*parts)

    def show_status(self, *args, **kwargs):
        self.console.print(self.render_status(*args, **kwargs))

    def show_result(self, action: str, result: TransitionResult):
        if result.ok:
            self.console.print(f"[green]{action}: {result.state.value}[/green]")
        else:
            self.console.print(f"[yellow]{action} ignored: {result.message}[/yellow]")
        if not result.persisted:
            self.console.print("[red]Warning: change could not be saved; it is kept in memory only[/red]")

    def show_history(self, sessions: List[WorkSession], penalty_minutes: int,
                     now: Optional[datetime] = None):
        """Sessions grouped by day, most recent first"""
        now = now or datetime.now()
        if not sessions:
            self.console.print("[yellow]No work sessions recorded[/yellow]")
            return

        ordered = sorted(sessions, key=lambda s: s.start_time, reverse=True)
        for day, day_sessions in groupby(ordered, key=lambda s: s.start_time.date()):
            table = Table(title=day.strftime("%a %d %b %Y"))
            table.add_column("ID", style="dim")
            table.add_column("Start", style="cyan")
            table.add_column("Duration", justify="right", style="green")
            table.add_column("Interruptions", justify="right", style="yellow")
            table.add_column("Penalty", justify="right", style="magenta")
            table.add_column("Reason", style="dim")

            for session in day_sessions:
                table.add_row(
                    session.id[:8],
                    session.start_time.strftime("%H:%M"),
                    session.duration_formatted(now) + (" ▶" if session.is_active else ""),
                    str(session.interruption_count),
                    f"{session.interruption_count * penalty_minutes}m",
                    session.interruption_reason or ""
                )
            self.console.print(table)

    def show_week(self, days: List[DayProductivity], average: float):
        table = Table(title="Last 7 Days")
        table.add_column("Day", style="cyan")
        table.add_column("Productivity", justify="right")
        table.add_column("", justify="left")
        for day in days:
            table.add_row(
                f"{day.day} {day.date.strftime('%d/%m')}",
                f"{day.productivity:.0f}%",
                Text("▇" * int(day.productivity / 5), style="green")
            )
        self.console.print(table)
        self.console.print(f"Weekly average: [bold green]{average * 100:.0f}%[/bold green]")

    def show_timeline(self, session: WorkSession, segments: List[TimelineSegment]):
        table = Table(title=f"Session {session.id[:8]}")
        table.add_column("Type")
        table.add_column("From", style="cyan")
        table.add_column("To", style="cyan")
        table.add_column("Duration", justify="right")
        for segment in segments:
            table.add_row(
                Text(segment.type.value, style=SEGMENT_STYLES[segment.type]),
                segment.start_time.strftime("%H:%M:%S"),
                segment.end_time.strftime("%H:%M:%S"),
                segment.duration_string
            )
        self.console.print(self.render_timeline(segments))
        self.console.print(self.render_legend())
        self.console.print(table)

    def show_settings(self, app_settings: AppSettings):
        self.console.print(Panel(
            f"[cyan]Penalty per interruption:[/cyan] {app_settings.penalty_per_interruption_minutes}m\n"
            f"[cyan]Notifications:[/cyan] {'on' if app_settings.enable_notifications else 'off'}\n"
            f"[cyan]Show session time:[/cyan] {'on' if app_settings.show_time_in_menu_bar else 'off'}\n"
            f"[dim]Last modified: {app_settings.last_modified.strftime('%Y-%m-%d %H:%M')}[/dim]",
            title="Settings",
            expand=False
        ))
