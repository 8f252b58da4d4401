"""
Visibility resolution – which clinical histories an actor may see.

Each resolution is a short pipeline of dependent reads (scope, histories,
persons). A failure in any step raises QueryFailure and nothing is returned.
"""

from typing import Dict, List, Tuple

from src.access import AccessPolicy
from src.config import ROLE_CLINICIAN, ROLE_PATIENT
from src.errors import AccessDenied, RecordNotFound
from src.models import Appointment, ClinicalHistory, PatientLink, ResolvedHistories
from src.queries import (
    fetch_clinician_appointments,
    fetch_histories,
    fetch_links,
    fetch_persons,
)


def fetch_scope(engine, policy: AccessPolicy) -> Tuple[List[PatientLink], List[Appointment]]:
    """Patient links (and, for clinicians, appointments) the policy is evaluated against."""
    if policy.is_admin:
        return fetch_links(engine), []

    if policy.role == ROLE_PATIENT:
        if not policy.person_ids:
            return [], []
        return fetch_links(engine, person_ids=policy.person_ids), []

    if policy.role == ROLE_CLINICIAN and policy.clinician_id is not None:
        appointments = fetch_clinician_appointments(engine, policy.clinician_id)
        patient_ids = {a.patient_id for a in appointments if a.patient_id is not None}
        if not patient_ids:
            return [], appointments
        return fetch_links(engine, patient_ids=patient_ids), appointments

    return [], []


def owner_links(links: List[PatientLink]) -> Dict[int, PatientLink]:
    """The link with the lowest patient id (and a person) owns each history."""
    owners: Dict[int, PatientLink] = {}
    for link in sorted(links, key=lambda l: l.patient_id):
        if link.history_id is None or link.person_id is None:
            continue
        owners.setdefault(link.history_id, link)
    return owners


def owners_by_history(links: List[PatientLink]) -> Dict[int, int]:
    return {h: link.person_id for h, link in owner_links(links).items()}


def resolve_visible_histories(engine, policy: AccessPolicy) -> ResolvedHistories:
    """Resolve the ordered list of histories the policy allows, newest first."""
    if policy.restricted:
        print(f"[query] role '{policy.role}' is restricted; no histories resolved")
        return ResolvedHistories()

    links, appointments = fetch_scope(engine, policy)

    if policy.is_admin:
        histories = fetch_histories(engine)
    else:
        scoped = {link.history_id for link in links if link.history_id is not None}
        if not scoped:
            return ResolvedHistories()
        histories = fetch_histories(engine, scoped)

    visible = policy.visible_history_ids((h.history_id for h in histories), links, appointments)
    covered = policy.covered_links(links, appointments)
    owners = {h: p for h, p in owners_by_history(covered).items() if h in visible}
    persons = fetch_persons(engine, owners.values())

    resolved = ResolvedHistories(
        history_ids=[h.history_id for h in histories if h.history_id in visible],
        persons=persons,
        owners=owners,
        histories={h.history_id: h for h in histories if h.history_id in visible},
    )
    print(f"[query] role={policy.role} resolved {len(resolved.history_ids)} histories")
    return resolved


def check_history_access(engine, policy: AccessPolicy,
                         history_id: int) -> Tuple[ClinicalHistory, List[PatientLink]]:
    """Re-validate access to one history with fresh rows.

    Returns the history and the links of it the policy covers, so the owner is
    picked from the same rows as in the list view.

    Raises RecordNotFound when the history does not exist and AccessDenied when
    it exists but the policy does not cover it.
    """
    if policy.restricted:
        raise AccessDenied(f"Role '{policy.role}' cannot open clinical histories.")

    found = fetch_histories(engine, [history_id])
    if not found:
        raise RecordNotFound(f"Clinical history {history_id} not found.")

    links = fetch_links(engine, history_ids=[history_id])
    appointments: List[Appointment] = []
    if policy.role == ROLE_CLINICIAN and policy.clinician_id is not None:
        patient_ids = {link.patient_id for link in links}
        if patient_ids:
            appointments = fetch_clinician_appointments(engine, policy.clinician_id, patient_ids)

    if not policy.can_open(history_id, links, appointments):
        raise AccessDenied(f"Access to clinical history {history_id} denied.")
    return found[0], policy.covered_links(links, appointments)
