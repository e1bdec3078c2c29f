"""Review commands.

    recallforge add <item-id> [--subject S --book B --chapter C]
    recallforge record <item-id> <score>
    recallforge due [--today]
    recallforge upcoming [--limit N] [--within-days D]
    recallforge reactivate <item-id>
    recallforge stats
    recallforge session            (interactive, supports undo)
"""

from __future__ import annotations

from datetime import datetime, timedelta
from pathlib import Path
from typing import List, Optional

import typer
from rich.panel import Panel
from rich.table import Table

from recallforge.cli.console import tip
from recallforge.cli.core.command_base import RecallForgeCommand
from recallforge.core.exceptions import InvalidScoreError, RecallForgeError
from recallforge.study.models import ReviewItem, SubjectFilter, SubjectPath, format_stage
from recallforge.study.scheduler import end_of_day
from recallforge.study.service import ReviewService, local_now
from recallforge.study.stats import StudyStats

# Rows shown before truncating a listing
MAX_ROWS = 50


def _format_when(when: datetime, now: datetime) -> str:
    if when <= now:
        return "now"
    if when.date() == now.date():
        return when.strftime("today %H:%M")
    return when.strftime("%Y-%m-%d %H:%M")


class ReviewCommand(RecallForgeCommand):
    """Shared display helpers for review commands."""

    def display_items(
        self, title: str, items: List[ReviewItem], now: datetime
    ) -> None:
        table = Table(title=title, show_lines=False)
        table.add_column("#", style="cyan", width=4)
        table.add_column("Item", style="yellow")
        table.add_column("Subject", style="blue")
        table.add_column("Stage", style="green")
        table.add_column("EF", style="magenta", width=6)
        table.add_column("Reviews", width=8)
        table.add_column("Next review")

        for idx, item in enumerate(items[:MAX_ROWS], 1):
            table.add_row(
                str(idx),
                item.id,
                str(item.subject_path) or "-",
                format_stage(item.interval_stage),
                f"{item.ease_factor:.2f}",
                str(item.review_count),
                _format_when(item.next_review_at, now),
            )

        self.console.print(table)
        if len(items) > MAX_ROWS:
            self.console.print(f"\n... and {len(items) - MAX_ROWS} more items")


class AddCommand(ReviewCommand):
    """Start tracking a wrong note."""

    def execute(
        self,
        item_id: str,
        subject_path: SubjectPath,
        project: Optional[Path] = None,
    ) -> int:
        try:
            service = self.build_service(project)
            item = service.add_item(item_id, subject_path=subject_path)
            self.print_success(f"Tracking {item.id}; due now")
            return 0
        except RecallForgeError as e:
            return self.handle_error(e, "Could not add review item")


class RecordCommand(ReviewCommand):
    """Record one review."""

    def execute(
        self,
        item_id: str,
        score: int,
        time_spent: int,
        project: Optional[Path] = None,
    ) -> int:
        try:
            service = self.build_service(project)
            now = local_now()
            outcome = service.record_review(
                item_id, score, now=now, time_spent_seconds=time_spent
            )
        except (RecallForgeError, ValueError) as e:
            return self.handle_error(e, "Could not record review")

        if outcome.is_completed:
            self.print_success(f"{item_id} graduated after {outcome.review_count} reviews")
            return 0

        self.print_success(
            f"{item_id}: {format_stage(outcome.previous_stage)} → "
            f"{format_stage(outcome.new_stage)}, EF {outcome.new_ease_factor:.2f}, "
            f"next review {_format_when(outcome.next_review_at, now)}"
        )
        return 0


class DueCommand(ReviewCommand):
    """List items due for review."""

    def execute(
        self,
        subject_filter: Optional[SubjectFilter],
        today: bool = False,
        project: Optional[Path] = None,
    ) -> int:
        try:
            service = self.build_service(project)
            now = local_now()
            cutoff = end_of_day(now) if today else now
            items = service.due_today(cutoff, subject_filter)
        except RecallForgeError as e:
            return self.handle_error(e, "Could not list due items")

        if not items:
            self.print_info("Nothing due for review")
            return 0

        label = "Due Today" if today else "Due Now"
        self.display_items(f"{label}: {len(items)}", items, now)
        if not today:
            tip("Use --today to include items due later today")
        return 0


class UpcomingCommand(ReviewCommand):
    """List the next scheduled items."""

    def execute(
        self,
        subject_filter: Optional[SubjectFilter],
        limit: Optional[int] = None,
        within_days: Optional[float] = None,
        project: Optional[Path] = None,
    ) -> int:
        within = timedelta(days=within_days) if within_days is not None else None
        try:
            service = self.build_service(project)
            now = local_now()
            items = service.upcoming(
                now, limit=limit, subject_filter=subject_filter, within=within
            )
        except (RecallForgeError, ValueError) as e:
            return self.handle_error(e, "Could not list upcoming items")

        if not items:
            self.print_info("No upcoming reviews")
            return 0

        self.display_items("Upcoming Reviews", items, now)
        return 0


class ReactivateCommand(ReviewCommand):
    """Put a graduated item back into review."""

    def execute(self, item_id: str, project: Optional[Path] = None) -> int:
        try:
            service = self.build_service(project)
            was_completed = service.get_item(item_id).is_completed
            service.reactivate(item_id)
        except RecallForgeError as e:
            return self.handle_error(e, "Could not reactivate item")

        if was_completed:
            self.print_success(f"{item_id} reactivated; due now")
        else:
            self.print_info(f"{item_id} is already active")
        return 0


class StatsCommand(ReviewCommand):
    """Show study statistics."""

    def execute(self, project: Optional[Path] = None) -> int:
        try:
            stats = self.build_service(project).statistics()
        except RecallForgeError as e:
            return self.handle_error(e, "Could not compute statistics")

        self._display_stats(stats)
        return 0

    def _display_stats(self, stats: StudyStats) -> None:
        overview = Panel(
            f"Items tracked: {stats.total_items}\n"
            f"Active: {stats.active_items}\n"
            f"Graduated: {stats.graduated_items}\n"
            f"Due now: {stats.due_now}\n"
            f"Average ease factor: {stats.average_ease:.2f}\n"
            f"Reviews: {stats.total_reviews} ({stats.reviewed_today} today)\n"
            f"Accuracy: {stats.accuracy:.1f}%\n"
            f"Streak: {stats.streak_days} days",
            title="Overview",
            border_style="cyan",
        )
        self.console.print(overview)

        if stats.subjects:
            table = Table(title="By Subject")
            table.add_column("Subject", style="blue")
            table.add_column("Items")
            table.add_column("Due")
            table.add_column("Graduated")
            table.add_column("EF", style="magenta")
            for subject in stats.subjects:
                table.add_row(
                    subject.name or "(none)",
                    str(subject.total_items),
                    str(subject.due_items),
                    str(subject.graduated_items),
                    f"{subject.average_ease:.2f}",
                )
            self.console.print(table)


class SessionCommand(ReviewCommand):
    """Walk through due items interactively, with undo."""

    PROMPT = "Score 1-5 (u = undo, q = quit)"

    def execute(self, project: Optional[Path] = None) -> int:
        try:
            service = self.build_service(project)
            queue = service.due_today()
        except RecallForgeError as e:
            return self.handle_error(e, "Could not start review session")

        if not queue:
            self.print_info("Nothing due for review")
            return 0

        try:
            self._run(service, queue)
        except RecallForgeError as e:
            return self.handle_error(e, "Review session stopped")

        session = service.tracker.get_session_stats()
        self.print_success(
            f"Reviewed {session['items_reviewed']} items, "
            f"accuracy {session['accuracy']:.1f}%"
        )
        return 0

    def _run(self, service: ReviewService, queue: List[ReviewItem]) -> None:
        position = 0
        while position < len(queue):
            item = queue[position]
            self.console.print(
                f"\n[bold]{item.id}[/bold] [dim]{item.subject_path}[/dim] "
                f"({format_stage(item.interval_stage)})"
            )
            answer = typer.prompt(self.PROMPT).strip().lower()

            if answer == "q":
                return
            if answer == "u":
                position = self._undo(service, queue, position)
                continue

            try:
                score = int(answer)
                service.record_review(item.id, score)
            except (ValueError, InvalidScoreError):
                self.print_warning("Enter a whole number from 1 to 5")
                continue
            position += 1

    def _undo(self, service: ReviewService, queue: List[ReviewItem], position: int) -> int:
        restored = service.undo_last_review()
        if restored is None:
            self.print_warning("Nothing to undo")
            return position
        self.print_info(f"Undid last review of {restored.id}")
        position = max(position - 1, 0)
        queue[position] = restored
        return position


def _subject_filter(
    subject: Optional[str], book: Optional[str], chapter: Optional[str]
) -> Optional[SubjectFilter]:
    subject_filter = SubjectFilter(subject=subject, book=book, chapter=chapter)
    return None if subject_filter.is_empty else subject_filter


def _exit(code: int) -> None:
    if code != 0:
        raise typer.Exit(code=code)


ProjectOption = typer.Option(None, "--project", "-p", help="Project directory")
SubjectOption = typer.Option(None, "--subject", "-s", help="Filter by subject")
BookOption = typer.Option(None, "--book", "-b", help="Filter by book")
ChapterOption = typer.Option(None, "--chapter", "-c", help="Filter by chapter")


def add_command(
    item_id: str = typer.Argument(..., help="Identifier of the wrong note"),
    subject: str = typer.Option("", "--subject", "-s", help="Subject"),
    book: str = typer.Option("", "--book", "-b", help="Book"),
    chapter: str = typer.Option("", "--chapter", "-c", help="Chapter"),
    project: Optional[Path] = ProjectOption,
) -> None:
    """Start tracking a wrong note. It is due immediately.

    Examples:
        recallforge add q-17 --subject math --book algebra --chapter 3
    """
    path = SubjectPath(subject=subject, book=book, chapter=chapter)
    _exit(AddCommand().execute(item_id, path, project))


def record_command(
    item_id: str = typer.Argument(..., help="Identifier of the wrong note"),
    score: int = typer.Argument(..., help="Performance score, 1 (forgot) to 5 (perfect)"),
    time_spent: int = typer.Option(
        60, "--time-spent", "-t", min=0, help="Seconds spent on the review"
    ),
    project: Optional[Path] = ProjectOption,
) -> None:
    """Record a review and show when the item is due next.

    Scores below 3 send the item back to a short retry; 3 and above climb
    the 1 → 3 → 7 → 14 → 30 day ladder. Scores of 4 or more graduate the
    item unless graduation is disabled in recallforge.yaml.

    Examples:
        recallforge record q-17 4
    """
    _exit(RecordCommand().execute(item_id, score, time_spent, project))


def due_command(
    today: bool = typer.Option(
        False, "--today", help="Include items due later today"
    ),
    subject: Optional[str] = SubjectOption,
    book: Optional[str] = BookOption,
    chapter: Optional[str] = ChapterOption,
    project: Optional[Path] = ProjectOption,
) -> None:
    """Show items due for review, earliest first."""
    subject_filter = _subject_filter(subject, book, chapter)
    _exit(DueCommand().execute(subject_filter, today, project))


def upcoming_command(
    limit: Optional[int] = typer.Option(
        None, "--limit", "-n", min=0, help="Maximum items (default from config)"
    ),
    within_days: Optional[float] = typer.Option(
        None, "--within-days", "-w", min=0, help="Only items due within this many days"
    ),
    subject: Optional[str] = SubjectOption,
    book: Optional[str] = BookOption,
    chapter: Optional[str] = ChapterOption,
    project: Optional[Path] = ProjectOption,
) -> None:
    """Show the next scheduled reviews."""
    subject_filter = _subject_filter(subject, book, chapter)
    _exit(UpcomingCommand().execute(subject_filter, limit, within_days, project))


def reactivate_command(
    item_id: str = typer.Argument(..., help="Identifier of the wrong note"),
    project: Optional[Path] = ProjectOption,
) -> None:
    """Put a graduated item back into review, due now."""
    _exit(ReactivateCommand().execute(item_id, project))


def stats_command(project: Optional[Path] = ProjectOption) -> None:
    """Show study statistics."""
    _exit(StatsCommand().execute(project))


def session_command(project: Optional[Path] = ProjectOption) -> None:
    """Review every due item interactively. Enter u to undo the last score."""
    _exit(SessionCommand().execute(project))


def register(app: typer.Typer) -> None:
    """Attach the review commands to the top-level app."""
    app.command("add")(add_command)
    app.command("record")(record_command)
    app.command("due")(due_command)
    app.command("upcoming")(upcoming_command)
    app.command("reactivate")(reactivate_command)
    app.command("stats")(stats_command)
    app.command("session")(session_command)
