"""
Centralised configuration constants and environment helpers.
"""

import os
import sys

from dotenv import load_dotenv

load_dotenv()

# ── Roles ────────────────────────────────────────────────────────────
ROLE_PATIENT = "patient"
ROLE_CLINICIAN = "clinician"
ROLE_ADMIN = "admin"

# The records store still says "medical" for clinicians.
ROLE_ALIASES = {"medical": ROLE_CLINICIAN, "medico": ROLE_CLINICIAN}

# ── Clinical history status vocabulary ───────────────────────────────
HISTORY_STATUS_NAMES = {
    "activa": "Active",
    "inactiva": "Inactive",
    "en revisión": "UnderReview",
    "en revision": "UnderReview",
}
UNKNOWN_STATUS_LABEL = "Desconocido"

# ── Appointment / access request vocabulary ──────────────────────────
APPOINTMENT_SCHEDULED = "Programada"
APPOINTMENT_IN_PROGRESS = "En Progreso"
APPOINTMENT_COMPLETED = "Completada"
APPOINTMENT_CANCELLED = "Cancelada"
APPOINTMENT_STATUSES = (
    APPOINTMENT_SCHEDULED,
    APPOINTMENT_IN_PROGRESS,
    APPOINTMENT_COMPLETED,
    APPOINTMENT_CANCELLED,
)

REQUEST_PENDING = "Pendiente"
REQUEST_APPROVED = "Aprobada"
REQUEST_REJECTED = "Rechazada"

# ── Placeholder identity (admin view of orphaned histories) ──────────
PLACEHOLDER_NAME = "Información no disponible"
PLACEHOLDER_NATIONAL_ID = "N/A"

# ── Dashboard limits ─────────────────────────────────────────────────
DASHBOARD_UPCOMING_LIMIT = 5
DASHBOARD_RECENT_SERVICES_LIMIT = 5
DASHBOARD_PENDING_REQUESTS_LIMIT = 5
MAX_PREVIEW_ROWS = 20

# ── Messages ─────────────────────────────────────────────────────────
RESTRICTED_ACCESS_MESSAGE = "No tienes permisos para acceder a las historias clínicas."
FETCH_FAILED_MESSAGE = "Error al cargar las historias clínicas"

# ── API server ───────────────────────────────────────────────────────
SECRET_KEY = os.getenv("JWT_SECRET_KEY", "dev-secret-key-change-in-production")
TOKEN_EXPIRY_HOURS = 24


def get_env(name: str) -> str:
    """Return an environment variable or exit with an error message."""
    value = os.getenv(name)
    if not value:
        print(f"ERROR: env var {name} is not set", file=sys.stderr)
        sys.exit(1)
    return value
