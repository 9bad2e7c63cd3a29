"""
Progress Tracker Module

Wraps the rich library for a progress bar around batch analysis runs.

Example Usage:
    from scholar_matcher.utils.progress_tracker import ProgressTracker

    tracker = ProgressTracker()
    tracker.start_phase("Analyzing researchers", total_items=12)
    tracker.increment()
    tracker.complete_phase(failed=1)
"""

from typing import Optional

from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)


class ProgressTracker:
    """Manages a single rich progress bar for one batch at a time."""

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console()
        self.progress: Optional[Progress] = None
        self.task_id: Optional[TaskID] = None
        self.phase_name: str = ""
        self.total_items: int = 0
        self.completed_items: int = 0

    def start_phase(self, phase_name: str, total_items: int) -> None:
        """
        Start a progress bar.

        Args:
            phase_name: Label shown next to the bar
            total_items: Number of records in the batch
        """
        if self.progress is not None:
            self.progress.stop()

        self.phase_name = phase_name
        self.total_items = total_items
        self.completed_items = 0

        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
            TextColumn("({task.completed}/{task.total})"),
            TimeElapsedColumn(),
            console=self.console,
        )
        self.progress.start()
        self.task_id = self.progress.add_task(description=phase_name, total=total_items)

    def increment(self, amount: int = 1) -> None:
        """Advance the bar by a relative amount."""
        if self.progress is None or self.task_id is None:
            return

        self.completed_items += amount
        self.progress.update(self.task_id, advance=amount)

    def complete_phase(self, failed: int = 0) -> None:
        """
        Stop the bar and print a summary line.

        Displays:
            "{phase} complete: {total} researchers processed, {failed} failed"
        """
        if self.progress is None or self.task_id is None:
            return

        if self.completed_items < self.total_items:
            self.progress.update(self.task_id, completed=self.total_items)

        self.progress.stop()

        style = "bold red" if failed else "bold green"
        self.console.print(
            f"[{style}]{self.phase_name} complete:[/{style}] "
            f"{self.total_items} researchers processed, {failed} failed"
        )

        self.progress = None
        self.task_id = None
        self.phase_name = ""
        self.total_items = 0
        self.completed_items = 0

