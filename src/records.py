"""
Record assembly – joining resolved histories with person and profile data,
plus the search filter, age arithmetic and the single-history detail view.
"""

from datetime import date
from typing import Dict, List, Optional

from src.access import AccessPolicy
from src.errors import RecordNotFound
from src.models import (
    HistoryDetail,
    HistoryRecord,
    HistoryVisit,
    MedicalService,
    ResolvedHistories,
    placeholder_person,
)
from src.queries import fetch_appointments, fetch_persons, fetch_services
from src.visibility import check_history_access, owner_links, resolve_visible_histories


# ── Assembly ─────────────────────────────────────────────────────────

def assemble_records(resolved: ResolvedHistories, policy: AccessPolicy) -> List[HistoryRecord]:
    """
    Flatten resolved histories into display records, keeping resolver order.

    A history whose owner cannot be joined is dropped, except for admins,
    who get it back with a placeholder identity.
    """
    records = []
    for history_id in resolved.history_ids:
        history = resolved.histories.get(history_id)
        if history is None:
            continue
        person_id = resolved.owners.get(history_id)
        person = resolved.persons.get(person_id) if person_id is not None else None
        if person is None:
            if not policy.is_admin:
                continue
            person = placeholder_person()
        records.append(HistoryRecord(
            history_id=history_id,
            person=person,
            status=history.status,
            status_label=history.status_label,
            created_at=history.created_at,
            profile=history.profile,
        ))
    return records


def list_history_records(engine, policy: AccessPolicy, term: Optional[str] = None) -> List[HistoryRecord]:
    records = assemble_records(resolve_visible_histories(engine, policy), policy)
    return filter_records(records, term)


# ── Search / derivations ─────────────────────────────────────────────

def filter_records(records: List[HistoryRecord], term: Optional[str]) -> List[HistoryRecord]:
    """Case-insensitive match on full name, or substring match on national id."""
    if not term or not term.strip():
        return list(records)
    needle = term.strip().lower()
    matched = []
    for record in records:
        person = record.person
        if person.is_placeholder:
            continue
        if needle in person.full_name.lower() or needle in person.national_id.lower():
            matched.append(record)
    return matched


def compute_age(birth_date: date, reference: Optional[date] = None) -> int:
    """Whole years between birth_date and reference (today by default)."""
    reference = reference or date.today()
    age = reference.year - birth_date.year
    if (reference.month, reference.day) < (birth_date.month, birth_date.day):
        age -= 1
    return age


# ── Detail view ──────────────────────────────────────────────────────

def get_history_detail(engine, policy: AccessPolicy, history_id: int) -> HistoryDetail:
    """One history with its visits, after re-checking access independently of any list."""
    history, links = check_history_access(engine, policy, history_id)

    owner = owner_links(links).get(history_id)
    person = fetch_persons(engine, [owner.person_id]).get(owner.person_id) if owner else None
    if person is None:
        if not policy.is_admin:
            raise RecordNotFound(f"Clinical history {history_id} has no resolvable patient.")
        person = placeholder_person()

    record = HistoryRecord(
        history_id=history.history_id,
        person=person,
        status=history.status,
        status_label=history.status_label,
        created_at=history.created_at,
        profile=history.profile,
    )

    if owner is None:
        return HistoryDetail(record=record)

    # visits belong to the owning patient only
    appointments = fetch_appointments(engine, patient_ids=[owner.patient_id], step="history_appointments")
    services = fetch_services(engine, [a.appointment_id for a in appointments])
    by_appointment: Dict[int, List[MedicalService]] = {}
    for service in services:
        by_appointment.setdefault(service.appointment_id, []).append(service)

    visits = [
        HistoryVisit(appointment=a, services=by_appointment.get(a.appointment_id, []))
        for a in appointments
    ]
    return HistoryDetail(record=record, visits=visits)
