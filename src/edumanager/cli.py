# src/edumanager/cli.py
"""Operator command line: create tables, register accounts, print reports, ask the assistant."""
from __future__ import annotations

import asyncio
from datetime import date, datetime
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from edumanager.analytics import (
    attendance_stats,
    performance_stats,
    weekly_attendance_series,
)
from edumanager.auth.context import CallerContext
from edumanager.integrations.assistant import AssistantService, OpenAIResponder
from edumanager.observability import setup_logging
from edumanager.repositories import RepositoryFactory
from edumanager.schemas.enums import Role
from edumanager.settings import get_settings

app = typer.Typer(help="EduManager operator commands")
console = Console()


@app.callback()
def main(log_level: Optional[str] = typer.Option(None, help="Override EDUMANAGER_LOG_LEVEL")):
    setup_logging(level=log_level)


async def _sign_in(factory: RepositoryFactory, email: str, password: str) -> CallerContext:
    result = await factory.identity.sign_in(email, password)
    if not result.ok:
        console.print(f"[red]Sign-in failed:[/red] {result.error.message}")
        raise typer.Exit(code=1)
    return result.data


@app.command("init-db")
def init_db():
    """Create any missing tables in the configured database."""
    from edumanager.db.session import create_engine, init_models

    async def _run():
        engine = create_engine(get_settings().DATABASE_URL)
        try:
            await init_models(engine)
        finally:
            await engine.dispose()

    asyncio.run(_run())
    console.print("[green]Database tables ensured[/green]")


@app.command()
def register(
    email: str = typer.Option(...),
    password: str = typer.Option(..., prompt=True, hide_input=True),
    full_name: str = typer.Option(..., "--full-name"),
    role: Role = typer.Option(Role.STUDENT),
):
    """Register an account directly in the record store."""

    async def _run():
        factory = RepositoryFactory.from_settings()
        try:
            return await factory.identity.sign_up(
                email, password, {"full_name": full_name, "role": role}
            )
        finally:
            await factory.dispose()

    result = asyncio.run(_run())
    if not result.ok:
        console.print(f"[red]Registration failed:[/red] {result.error.message}")
        raise typer.Exit(code=1)
    console.print(f"Registered {result.data.role.value} [bold]{result.data.email}[/bold] ({result.data.id})")


@app.command()
def report(
    email: str = typer.Option(...),
    password: str = typer.Option(..., prompt=True, hide_input=True),
    week_of: Optional[datetime] = typer.Option(None, formats=["%Y-%m-%d"], help="Any day in the week"),
):
    """Attendance and performance statistics for the rows the caller can see."""

    async def _run():
        factory = RepositoryFactory.from_settings()
        try:
            caller = await _sign_in(factory, email, password)
            attendance = await factory.attendance.fetch(caller)
            performance = await factory.performance.fetch(caller)
            return attendance, performance
        finally:
            await factory.dispose()

    attendance, performance = asyncio.run(_run())
    for label, result in (("attendance", attendance), ("performance", performance)):
        if not result.ok:
            console.print(f"[red]Could not load {label}:[/red] {result.error.message}")
            raise typer.Exit(code=1)

    stats = attendance_stats(attendance.data)
    console.print(
        Panel(
            f"Days recorded: {stats.total_days}\n"
            f"Present: {stats.present_days}  Late: {stats.late_days}  "
            f"Absent: {stats.absent_days}  Excused: {stats.excused_days}\n"
            f"Attendance rate: [bold]{stats.attendance_rate}%[/bold]",
            title="Attendance",
        )
    )

    anchor = week_of.date() if week_of else date.today()
    week = Table(title=f"Week of {anchor.isoformat()}")
    for column in ("Day", "Date", "Present", "Late", "Absent", "Excused"):
        week.add_column(column)
    for bucket in weekly_attendance_series(attendance.data, anchor):
        week.add_row(
            bucket.label,
            bucket.date.isoformat(),
            str(bucket.present),
            str(bucket.late),
            str(bucket.absent),
            str(bucket.excused),
        )
    console.print(week)

    perf = performance_stats(performance.data)
    subjects = Table(title=f"Performance (average {perf.average_score}%, recent grade {perf.recent_grade})")
    subjects.add_column("Subject")
    subjects.add_column("Records", justify="right")
    subjects.add_column("Average %", justify="right")
    for name, stat in sorted(perf.subject_stats.items()):
        subjects.add_row(name, str(stat.count), f"{stat.average:.1f}")
    console.print(subjects)


@app.command()
def ask(
    prompt: str = typer.Argument(..., help="Question for the assistant"),
    email: str = typer.Option(...),
    password: str = typer.Option(..., prompt=True, hide_input=True),
):
    """Ask the assistant a question; the exchange is saved to the caller's log."""

    async def _run():
        factory = RepositoryFactory.from_settings()
        try:
            caller = await _sign_in(factory, email, password)
            service = AssistantService(OpenAIResponder(factory.settings), factory.assistant_logs)
            return await service.ask(caller, prompt)
        finally:
            await factory.dispose()

    result = asyncio.run(_run())
    if not result.ok:
        console.print(f"[red]Assistant failed:[/red] {result.error.message}")
        raise typer.Exit(code=1)
    console.print(Panel(result.data, title="Assistant"))


if __name__ == "__main__":
    app()
