"""Rich console summary of a sync run."""

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from epic_sync.models import SyncReport


def print_summary(report: SyncReport, console: Console | None = None) -> None:
    """Print per-date status and totals for *report*."""
    console = console or Console()

    table = Table(box=box.SIMPLE_HEAVY, padding=(0, 2))
    table.add_column("Date", style="bold", width=12)
    table.add_column("Images", justify="right")
    table.add_column("Downloaded", justify="right")
    table.add_column("Skipped", justify="right")
    table.add_column("Failed", justify="right")
    table.add_column("Status", justify="center")

    for d in report.dates:
        if d.error is not None:
            table.add_row(d.date, "-", "-", "-", "-", "[red]manifest failed[/red]")
            continue
        downloaded = sum(1 for r in d.images if r.ok and not r.skipped)
        skipped = sum(1 for r in d.images if r.skipped)
        failed = sum(1 for r in d.images if not r.ok)
        status = "[green]OK[/green]" if d.ok else "[yellow]partial[/yellow]"
        table.add_row(
            d.date, str(len(d.images)), str(downloaded), str(skipped),
            f"[red]{failed}[/red]" if failed else "0", status,
        )

    if report.dates:
        console.print(table)

    totals = Table(box=box.SIMPLE, show_header=False, padding=(0, 2))
    totals.add_column("Label", style="bold")
    totals.add_column("Value")
    totals.add_row("Catalog dates", str(report.remote_count))
    totals.add_row("Mirror dates", str(report.local_count))
    totals.add_row("Missing dates", str(len(report.missing)))
    totals.add_row("Dates processed", str(len(report.dates)))
    totals.add_row("Images downloaded", f"[green]{len(report.downloaded)}[/green]")
    totals.add_row("Images skipped", str(len(report.skipped)))
    totals.add_row(
        "Failures",
        f"[red]{len(report.failures)}[/red]" if report.failures else "[green]0[/green]",
    )
    console.print(Panel(totals, title="Sync summary", box=box.ROUNDED))

    for label, error in report.failures:
        console.print(f"  [red]{label}[/red]: {error}")
