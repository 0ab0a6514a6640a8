from typing import Any, Optional

from rich.console import Console
from rich.table import Table

from plumbline.plan.refs import describe
from plumbline.plan.types import StepStatus

console = Console()

_STATUS_STYLE = {
    StepStatus.PASSED: "green",
    StepStatus.FAILED: "red",
    StepStatus.ERRORED: "magenta",
    StepStatus.INACTIVE: "dim",
    StepStatus.PLANNED: "dim",
}


def report_success(msg: str, out: Optional[Console] = None):
    (out or console).print(f"[bold green]✅ {msg}[/bold green]")


def report_failure(msg: str, out: Optional[Console] = None):
    (out or console).print(f"[bold red]❌ {msg}[/bold red]")


def _flag(value: Optional[bool]) -> str:
    if value is None:
        return "—"
    return "●" if value else "○"


def _fraction(value: Optional[float]) -> str:
    return "" if value is None else f"{value:.2f}"


def print_report(agent: Any, out: Optional[Console] = None) -> None:
    """Compact console summary of an interrogated agent."""
    out = out or console
    title = f"Validation: {agent.tbl_name}" if agent.tbl_name else "Validation"
    if agent.label:
        title += f" ({agent.label})"

    table = Table(title=title)
    table.add_column("", justify="right")
    table.add_column("step_id", style="cyan")
    table.add_column("assertion")
    table.add_column("columns")
    table.add_column("values")
    table.add_column("units", justify="right")
    table.add_column("pass", justify="right")
    table.add_column("fail", justify="right")
    table.add_column("W", justify="center", style="yellow")
    table.add_column("S", justify="center", style="red")
    table.add_column("N", justify="center", style="blue")

    rows = agent.validation_set if agent.interrogated else agent.steps
    for r in rows:
        style = _STATUS_STYLE.get(r.status, "")
        values = r.values
        table.add_row(
            str(r.i),
            r.step_id,
            f"[{style}]{r.assertion_type.value}[/{style}]" if style else r.assertion_type.value,
            describe(r.column),
            "" if values is None else str(values),
            "" if r.n is None else str(r.n),
            _fraction(r.f_passed),
            _fraction(r.f_failed),
            _flag(r.warn),
            _flag(r.stop),
            _flag(r.notify),
        )
    out.print(table)

    if not agent.interrogated:
        return
    errored = [r for r in rows if r.status == StepStatus.ERRORED]
    for r in errored:
        out.print(f"[magenta]step {r.step_id}: {r.error.kind} error: {r.error.message}[/magenta]")
    if agent.all_passed():
        report_success(f"All {len(rows)} step(s) passed.", out)
    else:
        failed = sum(1 for r in rows if r.status == StepStatus.FAILED)
        report_failure(f"{failed} failed and {len(errored)} errored of {len(rows)} step(s).", out)
