"""
Tests for history visibility resolution and the single-history access check.
"""

import pytest
from sqlalchemy import insert

from src.access import build_policy
from src.errors import AccessDenied, QueryFailure, RecordNotFound
from src.models import Actor
from src.schema import cita_medica
from src.visibility import check_history_access, owners_by_history, resolve_visible_histories

from conftest import new_engine


def test_admin_resolves_every_history_newest_first(engine, policy_for):
    resolved = resolve_visible_histories(engine, policy_for("key-admin"))
    assert resolved.history_ids == [5, 4, 3, 2, 1]
    assert set(resolved.histories) == {1, 2, 3, 4, 5}
    # history 4's person row is missing, history 5 has no patient link
    assert resolved.owners == {1: 1, 2: 2, 3: 3, 4: 99}
    assert set(resolved.persons) == {1, 2, 3}


def test_patient_resolves_own_and_family_histories(engine, policy_for):
    resolved = resolve_visible_histories(engine, policy_for("key-patient"))
    assert resolved.history_ids == [3, 1]
    assert resolved.persons[1].full_name == "Ana Torres Quispe"


def test_patient_without_profiles_resolves_empty(engine, policy_for):
    resolved = resolve_visible_histories(engine, policy_for("key-no-profiles"))
    assert resolved.history_ids == []
    assert resolved.persons == {}


def test_clinician_resolves_patients_with_appointments(engine, policy_for):
    assert resolve_visible_histories(engine, policy_for("key-clinician")).history_ids == [1]
    assert resolve_visible_histories(engine, policy_for("key-clinician-2")).history_ids == [4, 2]


def test_clinician_without_appointments_then_one_appointment(engine, policy_for):
    policy = policy_for("key-clinician-idle")
    assert resolve_visible_histories(engine, policy).history_ids == []

    with engine.begin() as conn:
        conn.execute(insert(cita_medica).values(
            id_cita_medica=50, id_paciente=3, id_personal_medico=3, estado="Programada",
        ))
    assert resolve_visible_histories(engine, policy).history_ids == [3]


def test_restricted_role_resolves_empty(engine, policy_for):
    resolved = resolve_visible_histories(engine, policy_for("key-nurse"))
    assert resolved.history_ids == []


def test_resolution_is_idempotent(engine, policy_for):
    policy = policy_for("key-admin")
    first = resolve_visible_histories(engine, policy)
    second = resolve_visible_histories(engine, policy)
    assert set(first.history_ids) == set(second.history_ids)


def test_query_failure_aborts_resolution():
    broken = new_engine()   # no tables at all
    policy = build_policy(Actor(user_id=1, display_name="A", role="admin", person_ids=frozenset()))
    with pytest.raises(QueryFailure) as e:
        resolve_visible_histories(broken, policy)
    assert e.value.step == "patient_links"


def test_owners_by_history_takes_first_patient_link():
    from src.models import PatientLink
    links = [
        PatientLink(patient_id=9, person_id=900, history_id=1),
        PatientLink(patient_id=2, person_id=200, history_id=1),
        PatientLink(patient_id=3, person_id=None, history_id=2),
    ]
    assert owners_by_history(links) == {1: 200}


# ── Detail access check ──────────────────────────────────────────────

def test_clinician_cannot_open_unrelated_patient(engine, policy_for):
    policy = policy_for("key-clinician")
    assert resolve_visible_histories(engine, policy).history_ids == [1]
    with pytest.raises(AccessDenied):
        check_history_access(engine, policy, 2)


def test_clinician_can_open_related_patient(engine, policy_for):
    history, links = check_history_access(engine, policy_for("key-clinician"), 1)
    assert history.history_id == 1
    assert [link.patient_id for link in links] == [1]


def test_missing_history_is_not_found_not_denied(engine, policy_for):
    with pytest.raises(RecordNotFound):
        check_history_access(engine, policy_for("key-patient"), 999)


def test_patient_cannot_open_someone_elses_history(engine, policy_for):
    with pytest.raises(AccessDenied):
        check_history_access(engine, policy_for("key-patient"), 2)


def test_restricted_role_cannot_open(engine, policy_for):
    with pytest.raises(AccessDenied):
        check_history_access(engine, policy_for("key-nurse"), 1)
