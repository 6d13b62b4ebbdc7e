"""Colorized console output for helm-overlays commands.

Thin wrapper around :mod:`rich` that degrades gracefully when stdout
is not a TTY (piped, CI).  User-facing status lines flow through this
module; ``logger.*`` calls stay for diagnostics.
"""

from __future__ import annotations

from typing import Iterable

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from helm_overlays.state.drift import DriftCheck, DriftStatus
from helm_overlays.state.models import CheckResult, CheckStatus

console = Console(stderr=False, force_terminal=None)

# ── Symbols ────────────────────────────────────────────────────────────────

_PASS = "[bold green]✓[/]"
_FAIL = "[bold red]✗[/]"
_WARN = "[bold yellow]⚠[/]"
_ARROW = "[bold cyan]›[/]"
_DOT = "[dim]·[/]"

# ── Phase headers ──────────────────────────────────────────────────────────


def phase(title: str) -> None:
    """Print a bold phase header (e.g. ``RENDER``, ``VALIDATE``)."""
    console.print()
    console.print(f"[bold blue]── {title} ──[/]")


# ── Status lines ───────────────────────────────────────────────────────────


def ok(msg: str) -> None:
    """Green checkmark + message."""
    console.print(f"  {_PASS} {msg}")


def fail(msg: str) -> None:
    """Red cross + message."""
    console.print(f"  {_FAIL} [red]{msg}[/]")


def warn(msg: str) -> None:
    """Yellow warning + message."""
    console.print(f"  {_WARN} [yellow]{msg}[/]")


def info(msg: str) -> None:
    console.print(f"  {_DOT} [dim]{msg}[/]")


def raw(text: str) -> None:
    """Print *text* verbatim (JSON, YAML) without markup or highlighting."""
    console.print(text, markup=False, highlight=False, soft_wrap=True)


# ── Reports ────────────────────────────────────────────────────────────────


def check_line(check: CheckResult) -> None:
    """One validation check as a status line, remediation underneath."""
    if check.status == CheckStatus.PASS:
        ok(check.id)
        return
    if check.status == CheckStatus.WARN:
        warn(check.id)
    else:
        fail(check.id)
    if check.remediation:
        info(check.remediation)


def check_summary(checks: Iterable[CheckResult]) -> None:
    """Print the non-passing checks, or a single line when all pass."""
    noisy = [c for c in checks if c.status != CheckStatus.PASS]
    if not noisy:
        ok("All checks passed")
        return
    for check in noisy:
        check_line(check)


def drift_table(checks: Iterable[DriftCheck]) -> None:
    """Tabulate drift checks that are not OK."""
    table = Table(show_header=True, header_style="bold")
    table.add_column("Check")
    table.add_column("Status")
    table.add_column("Expected", overflow="fold")
    table.add_column("Actual", overflow="fold")
    styles = {DriftStatus.DRIFTED: "yellow", DriftStatus.ERROR: "red"}
    rows = 0
    for check in checks:
        if check.status == DriftStatus.OK:
            continue
        style = styles.get(check.status, "")
        table.add_row(
            check.id,
            f"[{style}]{check.status.value}[/]",
            check.expected[:12],
            check.actual[:12] or check.error,
        )
        rows += 1
    if rows:
        console.print(table)


# ── Banners / panels ──────────────────────────────────────────────────────


def success_panel(title: str, body: str) -> None:
    """Green-bordered success panel."""
    console.print()
    console.print(
        Panel(
            body,
            title=f"[bold green]{title}[/]",
            border_style="green",
            padding=(1, 2),
        )
    )


def error_panel(title: str, body: str) -> None:
    """Red-bordered error panel."""
    console.print()
    console.print(
        Panel(
            body,
            title=f"[bold red]{title}[/]",
            border_style="red",
            padding=(1, 2),
        )
    )
