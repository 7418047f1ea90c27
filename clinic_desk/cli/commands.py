"""CLI commands for Clinic Desk."""

import asyncio
import json
from datetime import date, datetime
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from clinic_desk.config import get_settings

app = typer.Typer(
    name="clinic-desk",
    help="Clinic appointment booking and staff dashboards",
    add_completion=False,
)
console = Console()


def _parse_day(value: str) -> date:
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        console.print(f"[red]Invalid date: {value}. Use YYYY-MM-DD[/red]")
        raise typer.Exit(1)


def _load_schedule(schedule_file: Optional[Path]):
    from pydantic import ValidationError

    from clinic_desk.scheduling.models import DoctorSchedule

    if schedule_file is None:
        return DoctorSchedule.default()
    if not schedule_file.exists():
        console.print(f"[red]Schedule file not found: {schedule_file}[/red]")
        raise typer.Exit(1)
    try:
        return DoctorSchedule.model_validate(json.loads(schedule_file.read_text()))
    except (json.JSONDecodeError, ValidationError) as e:
        console.print(f"[red]Invalid schedule file: {e}[/red]")
        raise typer.Exit(1)


def _resolver(interval: Optional[int]):
    from clinic_desk.scheduling.availability import AvailabilityResolver

    settings = get_settings()
    return AvailabilityResolver(
        slot_interval_minutes=interval or settings.slot_interval_minutes,
        booking_window_months=settings.booking_window_months,
    )


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", "-h", help="Host to bind to (default: API_HOST)"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Port to bind to (default: API_PORT)"),
    reload: bool = typer.Option(False, "--reload", help="Enable auto-reload"),
):
    """Start the REST API server."""
    import uvicorn

    settings = get_settings()
    host = host or settings.api_host
    port = port or settings.api_port
    console.print(f"Starting Clinic Desk API server on {host}:{port}")
    uvicorn.run(
        "clinic_desk.api.app:create_app",
        host=host,
        port=port,
        reload=reload,
        factory=True,
    )


@app.command()
def init_db():
    """Create database tables and seed the first staff account."""
    from clinic_desk.core.database import init_db as _init_db

    asyncio.run(_init_db())
    console.print("[green]Database initialized.[/green]")


@app.command()
def create_staff(
    email: str = typer.Argument(..., help="Login email"),
    name: str = typer.Option(..., "--name", "-n", help="Display name"),
    password: str = typer.Option(..., "--password", prompt=True, hide_input=True),
    role: str = typer.Option("receptionist", "--role", "-r", help="Role: doctor, receptionist"),
    specialization: Optional[str] = typer.Option(None, "--specialization", help="Doctor specialization"),
):
    """Create a staff login; doctors also get a doctor profile."""
    from clinic_desk.core.models import StaffRole

    try:
        role_enum = StaffRole(role)
    except ValueError:
        console.print(f"[red]Invalid role: {role}. Use doctor or receptionist[/red]")
        raise typer.Exit(1)

    if len(password) < 8:
        console.print("[red]Password must be at least 8 characters[/red]")
        raise typer.Exit(1)

    user_id = asyncio.run(
        _create_staff(email.strip().lower(), name, password, role_enum, specialization)
    )
    if user_id is None:
        console.print(f"[yellow]Staff user already exists: {email}[/yellow]")
        raise typer.Exit(1)
    console.print(f"[green]Created {role_enum.value} {email} ({user_id})[/green]")


async def _create_staff(email, name, password, role, specialization):
    from clinic_desk.core.auth import hash_password
    from clinic_desk.core.database import _get_session_factory
    from clinic_desk.core.models import StaffRole
    from clinic_desk.core.repository import DoctorRepository, ScheduleRepository, StaffRepository

    async with _get_session_factory()() as session:
        staff = StaffRepository(session)
        if await staff.get_active_by_email(email):
            return None

        doctor_id = None
        if role == StaffRole.doctor:
            doctors = DoctorRepository(session)
            doctor = await doctors.get_by_email(email)
            if doctor is None:
                doctor = await doctors.create(name=name, email=email, specialization=specialization)
            await ScheduleRepository(session).get_or_create_default(doctor.id)
            doctor_id = doctor.id

        user = await staff.create(
            name=name,
            email=email,
            role=role.value,
            password_hash=hash_password(password),
            doctor_id=doctor_id,
        )
        await session.commit()
        return user.id


@app.command()
def slots(
    day: str = typer.Argument(..., help="Date (YYYY-MM-DD)"),
    schedule_file: Optional[Path] = typer.Option(
        None, "--schedule", "-s", help="JSON file with a doctor schedule (default schedule if omitted)"
    ),
    booked: Optional[str] = typer.Option(None, "--booked", "-b", help="Comma-separated booked times"),
    interval: Optional[int] = typer.Option(None, "--interval", "-i", help="Slot length in minutes"),
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Show the free slots for a schedule on a date."""
    from clinic_desk.scheduling.availability import NO_SLOTS_MESSAGE
    from clinic_desk.scheduling.timeslots import format_display

    target = _parse_day(day)
    schedule = _load_schedule(schedule_file)
    booked_times = [t.strip() for t in booked.split(",") if t.strip()] if booked else []

    result = _resolver(interval).resolve_day(target, schedule, booked_times)

    if output_json:
        console.print_json(result.model_dump_json())
        return

    if not result.available:
        console.print(f"[yellow]{result.reason or NO_SLOTS_MESSAGE}[/yellow]")
        return

    table = Table(title=f"Free slots on {target.isoformat()}")
    table.add_column("Time")
    table.add_column("Display")
    for slot in result.slots:
        table.add_row(slot, format_display(slot))
    console.print(table)


@app.command()
def check_date(
    day: str = typer.Argument(..., help="Date (YYYY-MM-DD)"),
    schedule_file: Optional[Path] = typer.Option(
        None, "--schedule", "-s", help="JSON file with a doctor schedule (default schedule if omitted)"
    ),
):
    """Explain whether a date can be booked."""
    target = _parse_day(day)
    schedule = _load_schedule(schedule_file)

    verdict = _resolver(None).check_date(target, schedule)
    if verdict.available:
        console.print(Panel.fit(f"[green]{target.isoformat()} is available[/green]"))
    else:
        console.print(Panel.fit(f"[red]{target.isoformat()} is unavailable[/red]\n{verdict.reason}"))
        raise typer.Exit(2)


@app.command()
def version():
    """Show version information."""
    from clinic_desk import __version__

    console.print(f"Clinic Desk v{__version__}")
