"""Terminal progress helpers with Rich-based rendering."""

from __future__ import annotations

from dataclasses import dataclass
from threading import Lock

from rich.console import Console
from rich.errors import LiveError
from rich.progress import (
    BarColumn,
    Progress,
    ProgressColumn,
    Task,
    TaskID,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
    SpinnerColumn,
)
from rich.status import Status
from rich.text import Text


@dataclass
class ProgressState:
    total: int
    success: int = 0
    failed: int = 0
    current: str | None = None

    @property
    def completed(self) -> int:
        return self.success + self.failed


class RateColumn(ProgressColumn):
    """Pages processed per second."""

    def render(self, task: Task) -> Text:
        speed = task.finished_speed or task.speed
        if speed is None:
            return Text("", style="progress.percentage")
        return Text(f"{speed:.1f} page/s", style="progress.percentage")


class ProgressReporter:
    """Render job progress on stderr and keep success/failure counters.

    Counters are maintained even when rendering is disabled or the stream
    is not a terminal.
    """

    def __init__(self, enabled: bool = True, console: Console | None = None) -> None:
        self.enabled = enabled
        self._console = console
        self._progress: Progress | None = None
        self._task_id: TaskID | None = None
        self._lock = Lock()
        self.state: ProgressState | None = None
        self._label: str = "districts"

    def set_label(self, label: str) -> None:
        self._label = label

    def start(self, total: int) -> None:
        self.state = ProgressState(total=total)
        if not self.enabled:
            return
        if self._console is None:
            self._console = Console(stderr=True)
        if not self._console.is_terminal:
            self.enabled = False
            return
        self._progress = Progress(
            SpinnerColumn(style="cyan"),
            TextColumn("[bold blue]{task.fields[label]:<12}", justify="left"),
            BarColumn(bar_width=None, complete_style="green", finished_style="green"),
            TaskProgressColumn(show_speed=False),
            TimeElapsedColumn(),
            RateColumn(),
            TextColumn("[green]✓{task.fields[success]:>4}", justify="right"),
            TextColumn("[red]✗{task.fields[failed]:>4}", justify="right"),
            TextColumn("[dim]{task.fields[current]}", justify="left"),
            console=self._console,
            transient=True,
            refresh_per_second=12,
            expand=True,
        )
        try:
            self._progress.__enter__()
        except LiveError:
            # another live display already owns the console
            self.enabled = False
            self._progress = None
            return
        self._task_id = self._progress.add_task(
            "crawl", total=total, label=self._label, success=0, failed=0, current="…"
        )

    def advance(self, success: bool = False, failed: bool = False, current: str | None = None) -> None:
        if not self.state:
            raise RuntimeError("ProgressReporter.start must be called before advance")
        with self._lock:
            if current:
                self.state.current = current
            if success:
                self.state.success += 1
            if failed:
                self.state.failed += 1
            if self._progress is not None and self._task_id is not None:
                self._progress.update(
                    self._task_id,
                    advance=1,
                    success=self.state.success,
                    failed=self.state.failed,
                    current=(self.state.current or "")[:40],
                )

    def close(self) -> None:
        if self._progress is not None:
            try:
                self._progress.stop()
            finally:
                self._progress.__exit__(None, None, None)
            self._progress = None
        self._task_id = None

    def summary(self) -> dict[str, int]:
        if not self.state:
            return {"success": 0, "failed": 0}
        return {"success": self.state.success, "failed": self.state.failed}


class ProgressActivity:
    """Spinner shown while the total amount of work is still unknown."""

    def __init__(self, enabled: bool = True, console: Console | None = None) -> None:
        self.enabled = enabled
        self._console = console or Console(stderr=True)
        self._status: Status | None = None

    def start(self, message: str) -> None:
        if not self.enabled or not self._console.is_terminal:
            return
        self._status = self._console.status(message, spinner="dots")
        try:
            self._status.start()
        except LiveError:
            self._status = None

    def close(self) -> None:
        if self._status is not None:
            self._status.stop()
            self._status = None


__all__ = ["ProgressActivity", "ProgressReporter", "ProgressState"]
