"""
Appointment statistics for the dashboards, computed over a pandas DataFrame.
"""

import sys
from datetime import date
from typing import Dict, Optional

import pandas as pd
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from src.config import APPOINTMENT_COMPLETED, APPOINTMENT_SCHEDULED
from src.errors import QueryFailure
from src.schema import cita_medica

APPOINTMENT_COLUMNS = ["id_cita_medica", "id_paciente", "id_personal_medico",
                       "fecha_hora_programada", "estado"]


def load_appointment_frame(engine, clinician_id: Optional[int] = None) -> pd.DataFrame:
    """Read appointments (optionally one clinician's) into a DataFrame."""
    stmt = select(*[cita_medica.c[name] for name in APPOINTMENT_COLUMNS])
    if clinician_id is not None:
        stmt = stmt.where(cita_medica.c.id_personal_medico == clinician_id)
    try:
        with engine.connect() as conn:
            df = pd.read_sql_query(stmt, conn)
    except SQLAlchemyError as e:
        print(f"[ERROR] query step 'appointment_frame' failed: {e}", file=sys.stderr)
        raise QueryFailure("appointment_frame", e) from e
    return df


def compute_appointment_stats(df: pd.DataFrame, today: date) -> Dict[str, int]:
    """
    Totals used by the dashboards.
    Returns total / today / completed / scheduled counts.
    """
    if df.empty:
        return {"total": 0, "today": 0, "completed": 0, "scheduled": 0}

    scheduled_at = pd.to_datetime(df["fecha_hora_programada"], errors="coerce")
    status = df["estado"].fillna("")
    return {
        "total": int(len(df)),
        "today": int((scheduled_at.dt.date == today).sum()),
        "completed": int((status == APPOINTMENT_COMPLETED).sum()),
        "scheduled": int((status == APPOINTMENT_SCHEDULED).sum()),
    }


def status_breakdown(df: pd.DataFrame) -> Dict[str, int]:
    """Appointment count per status, most frequent first."""
    if df.empty:
        return {}
    counts = df["estado"].dropna().value_counts()
    return {str(k): int(v) for k, v in counts.items()}
