"""
Role dashboards and the few write actions they expose.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from sqlalchemy import update

from src.access import AccessPolicy
from src.config import (
    APPOINTMENT_STATUSES,
    DASHBOARD_PENDING_REQUESTS_LIMIT,
    DASHBOARD_RECENT_SERVICES_LIMIT,
    DASHBOARD_UPCOMING_LIMIT,
    REQUEST_APPROVED,
    REQUEST_PENDING,
    REQUEST_REJECTED,
    ROLE_ADMIN,
    ROLE_CLINICIAN,
)
from src.database import execute_write
from src.errors import AccessDenied, RecordNotFound
from src.models import DashboardStats
from src.queries import (
    count_rows,
    count_services_on,
    fetch_access_requests,
    fetch_appointment,
    fetch_appointments,
    fetch_links,
    fetch_services,
)
from src.schema import cita_medica, historia_clinica, paciente, solicitud
from src.stats import compute_appointment_stats, load_appointment_frame, status_breakdown


def greeting(hour: int) -> str:
    if hour < 12:
        return "Buenos días"
    if hour < 18:
        return "Buenas tardes"
    return "Buenas noches"


def _day_window(now: datetime):
    start = datetime(now.year, now.month, now.day)
    return start, start + timedelta(days=1)


# ── Patient ──────────────────────────────────────────────────────────

def patient_dashboard(engine, policy: AccessPolicy, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Upcoming appointments and recent services for the actor's linked patients."""
    now = now or datetime.now()
    empty = {"upcoming_appointments": [], "recent_services": []}
    if not policy.person_ids:
        return empty

    patient_ids = [link.patient_id for link in fetch_links(engine, person_ids=policy.person_ids)]
    if not patient_ids:
        return empty

    upcoming = fetch_appointments(
        engine, patient_ids=patient_ids, since=now, ascending=True,
        limit=DASHBOARD_UPCOMING_LIMIT, step="upcoming_appointments",
    )
    all_appointments = fetch_appointments(engine, patient_ids=patient_ids, step="patient_appointments")
    recent = fetch_services(
        engine, [a.appointment_id for a in all_appointments], limit=DASHBOARD_RECENT_SERVICES_LIMIT,
    )
    return {"upcoming_appointments": upcoming, "recent_services": recent}


# ── Clinician ────────────────────────────────────────────────────────

def clinician_dashboard(engine, policy: AccessPolicy, now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or datetime.now()
    start, end = _day_window(now)

    todays = fetch_appointments(
        engine, clinician_id=policy.clinician_id, since=start, until=end,
        ascending=True, step="today_appointments",
    )
    df = load_appointment_frame(engine, clinician_id=policy.clinician_id)
    counts = compute_appointment_stats(df, now.date())
    services_today = (
        count_services_on(engine, now.date(), [a.appointment_id for a in todays]) if todays else 0
    )
    stats = DashboardStats(
        total_appointments=counts["total"],
        appointments_today=counts["today"],
        completed_appointments=counts["completed"],
        scheduled_appointments=counts["scheduled"],
        services_today=services_today,
    )
    return {
        "today_appointments": todays,
        "stats": stats,
        "status_breakdown": status_breakdown(df),
    }


# ── Admin ────────────────────────────────────────────────────────────

def admin_dashboard(engine, now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or datetime.now()
    pending = fetch_access_requests(engine, status=REQUEST_PENDING, limit=DASHBOARD_PENDING_REQUESTS_LIMIT)

    df = load_appointment_frame(engine)
    counts = compute_appointment_stats(df, now.date())
    stats = DashboardStats(
        total_appointments=counts["total"],
        appointments_today=counts["today"],
        completed_appointments=counts["completed"],
        scheduled_appointments=counts["scheduled"],
        total_patients=count_rows(engine, paciente),
        total_histories=count_rows(engine, historia_clinica),
        pending_requests=count_rows(engine, solicitud, solicitud.c.estado_solicitud == REQUEST_PENDING),
        services_today=count_services_on(engine, now.date()),
    )
    return {
        "pending_requests": pending,
        "stats": stats,
        "status_breakdown": status_breakdown(df),
    }


def build_dashboard(engine, policy: AccessPolicy, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Dashboard payload for the policy's role; unknown roles get the patient view."""
    if policy.role == ROLE_ADMIN:
        content = admin_dashboard(engine, now)
    elif policy.role == ROLE_CLINICIAN:
        content = clinician_dashboard(engine, policy, now)
    else:
        content = patient_dashboard(engine, policy, now)
    return {"role": policy.role, **content}


# ── Write actions ────────────────────────────────────────────────────

def _set_request_status(engine, policy: AccessPolicy, request_id: int, status: str) -> None:
    if not policy.is_admin:
        raise AccessDenied("Only administrators can resolve access requests.")
    stmt = (
        update(solicitud)
        .where(solicitud.c.id_solicitud == request_id)
        .values(estado_solicitud=status)
    )
    if execute_write(engine, "access_request_status", stmt) == 0:
        raise RecordNotFound(f"Access request {request_id} not found.")
    print(f"[query] access request {request_id} -> {status}")


def approve_request(engine, policy: AccessPolicy, request_id: int) -> None:
    _set_request_status(engine, policy, request_id, REQUEST_APPROVED)


def reject_request(engine, policy: AccessPolicy, request_id: int) -> None:
    _set_request_status(engine, policy, request_id, REQUEST_REJECTED)


def update_appointment_status(engine, policy: AccessPolicy, appointment_id: int, status: str) -> None:
    """Set an appointment's status; clinicians may only touch their own appointments."""
    if status not in APPOINTMENT_STATUSES:
        raise ValueError(f"Unsupported appointment status '{status}'.")

    appointment = fetch_appointment(engine, appointment_id)
    if appointment is None:
        raise RecordNotFound(f"Appointment {appointment_id} not found.")

    if policy.role == ROLE_CLINICIAN:
        if appointment.clinician_id != policy.clinician_id:
            raise AccessDenied("Clinicians can only update their own appointments.")
    elif not policy.is_admin:
        raise AccessDenied("Only clinicians and administrators can update appointments.")

    stmt = (
        update(cita_medica)
        .where(cita_medica.c.id_cita_medica == appointment_id)
        .values(estado=status)
    )
    execute_write(engine, "appointment_status", stmt)
    print(f"[query] appointment {appointment_id} -> {status}")
