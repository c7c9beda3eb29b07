"""Live terminal view of the selected attempt."""

import asyncio
from enum import Enum
from typing import Optional

from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..core.controller import AttemptController
from ..core.models import ExecutionProcess, ProcessStatus

STATUS_STYLES = {
    ProcessStatus.RUNNING: "bold yellow",
    ProcessStatus.COMPLETED: "green",
    ProcessStatus.FAILED: "red",
    ProcessStatus.KILLED: "dim red",
}


def _tag_text(value) -> str:
    # Unknown run reasons and statuses arrive as plain strings
    return value.value if isinstance(value, Enum) else str(value)


class AttemptWatchView:
    """Renders controller snapshots until the attempt stops running."""

    def __init__(self, controller: AttemptController, console: Optional[Console] = None):
        self.controller = controller
        self.console = console or Console()

    def _process_row(self, process: ExecutionProcess):
        data = self.controller.attempt_data
        profile = data.profile_for(process.id)
        detail = data.running_process_details.get(process.id)
        started = process.started_at.strftime("%H:%M:%S") if process.started_at else "-"
        return (
            process.id[:8],
            _tag_text(process.run_reason),
            Text(_tag_text(process.status), style=STATUS_STYLES.get(process.status, "")),
            profile.label if profile else "-",
            started,
            "yes" if detail is not None else "",
        )

    def render_processes(self) -> Table:
        table = Table(expand=True)
        table.add_column("Process", style="cyan", no_wrap=True)
        table.add_column("Reason")
        table.add_column("Status")
        table.add_column("Profile")
        table.add_column("Started")
        table.add_column("Detail")

        for process in self.controller.attempt_data.processes:
            table.add_row(*self._process_row(process))
        return table

    def render(self) -> Panel:
        snapshot = self.controller.snapshot()
        attempt_id = snapshot.attempt.id if snapshot.attempt else "-"

        header = Text()
        header.append(f"Attempt {attempt_id}", style="bold cyan")
        if snapshot.is_stopping:
            header.append("  stopping", style="bold red")
        elif snapshot.is_attempt_running:
            header.append("  running", style="bold yellow")
        else:
            header.append("  idle", style="green")
        header.append(f"  default variant: {snapshot.default_follow_up_variant or '-'}", style="dim")

        body = [header, self.render_processes()]
        if not snapshot.attempt_data.processes:
            body.append(Text("No execution processes yet", style="dim"))
        return Panel(Group(*body), title="attempt-sync", border_style="blue")

    async def run(self, refresh_interval: float = 0.5, until_idle: bool = True):
        """Refresh the view while the controller polls in the background.

        Args:
            refresh_interval: Seconds between redraws
            until_idle: Return once the attempt is no longer running
        """
        with Live(self.render(), console=self.console, refresh_per_second=4) as live:
            while True:
                live.update(self.render())
                if until_idle and not self.controller.is_attempt_running:
                    break
                await asyncio.sleep(refresh_interval)
