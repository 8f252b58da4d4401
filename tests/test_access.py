"""
Unit tests for access – actor loading and policy building.
"""

import pytest

from src.access import AccessPolicy, build_policy, load_actor, normalize_role
from src.config import get_env
from src.errors import AuthenticationError
from src.models import Actor, Appointment, PatientLink


def _actor(role, person_ids=(), clinician_id=None):
    return Actor(user_id=1, display_name="X", role=role,
                 person_ids=frozenset(person_ids), clinician_id=clinician_id)


def _link(patient_id, person_id, history_id):
    return PatientLink(patient_id=patient_id, person_id=person_id, history_id=history_id)


def _appt(patient_id, clinician_id):
    return Appointment(appointment_id=patient_id * 10 + clinician_id, scheduled_at=None,
                       status="Programada", patient_id=patient_id, clinician_id=clinician_id)


LINKS = [_link(1, 100, 11), _link(2, 200, 12), _link(3, 300, 13)]


# ── Tests: get_env ───────────────────────────────────────────────────

def test_get_env_ok(monkeypatch):
    monkeypatch.setenv("X", "123")
    assert get_env("X") == "123"


def test_get_env_missing_exits(monkeypatch, capsys):
    monkeypatch.delenv("MISSING_ENV", raising=False)
    with pytest.raises(SystemExit) as e:
        get_env("MISSING_ENV")
    assert e.value.code == 1
    err = capsys.readouterr().err
    assert "ERROR: env var MISSING_ENV is not set" in err


# ── Tests: load_actor ────────────────────────────────────────────────

def test_normalize_role_maps_medical_to_clinician():
    assert normalize_role(" Medical ") == "clinician"
    assert normalize_role("ADMIN") == "admin"
    assert normalize_role(None) == ""


def test_load_actor_patient_includes_family_profiles(engine):
    actor = load_actor(engine, "key-patient")
    assert actor.role == "patient"
    assert actor.person_id == 1
    assert actor.person_ids == frozenset({1, 3})
    assert actor.clinician_id is None


def test_load_actor_clinician_resolves_clinician_id(engine):
    actor = load_actor(engine, "key-clinician")
    assert actor.role == "clinician"
    assert actor.clinician_id == 1


def test_load_actor_invalid_key(engine):
    with pytest.raises(AuthenticationError, match="Invalid key"):
        load_actor(engine, "bad")


def test_load_actor_inactive_user_rejected(engine):
    with pytest.raises(AuthenticationError):
        load_actor(engine, "key-inactive")


def test_load_actor_keeps_unknown_role(engine):
    actor = load_actor(engine, "key-nurse")
    assert actor.role == "nurse"
    assert build_policy(actor).restricted


# ── Tests: build_policy ──────────────────────────────────────────────

def test_build_policy_clinician_requires_clinician_id():
    with pytest.raises(ValueError, match="personal_medico"):
        build_policy(_actor("clinician"))


def test_build_policy_admin_ok():
    policy = build_policy(_actor("admin"))
    assert policy.is_admin
    assert not policy.restricted


def test_build_policy_unknown_role_is_restricted():
    policy = build_policy(_actor("receptionist", person_ids={1}))
    assert policy.restricted
    assert policy.person_ids == frozenset()


# ── Tests: AccessPolicy ──────────────────────────────────────────────

def test_patient_without_persons_sees_nothing():
    policy = build_policy(_actor("patient"))
    assert policy.visible_history_ids([11, 12, 13], LINKS) == set()


def test_patient_sees_only_linked_persons():
    policy = build_policy(_actor("patient", person_ids={100, 300}))
    assert policy.visible_history_ids([11, 12, 13], LINKS) == {11, 13}


def test_admin_sees_everything_regardless_of_persons():
    policy = build_policy(_actor("admin", person_ids={100}))
    assert policy.visible_history_ids([11, 12, 13, 14], []) == {11, 12, 13, 14}


def test_clinician_without_appointments_sees_nothing():
    policy = build_policy(_actor("clinician", clinician_id=7))
    assert policy.visible_history_ids([11, 12, 13], LINKS, []) == set()


def test_clinician_one_appointment_adds_exactly_that_history():
    policy = build_policy(_actor("clinician", clinician_id=7))
    appointments = [_appt(2, 7)]
    assert policy.visible_history_ids([11, 12, 13], LINKS, appointments) == {12}
    appointments.append(_appt(3, 8))   # someone else's appointment
    assert policy.visible_history_ids([11, 12, 13], LINKS, appointments) == {12}


def test_clinician_can_open_only_patients_with_appointments():
    policy = build_policy(_actor("clinician", clinician_id=7))
    appointments = [_appt(1, 7)]
    assert policy.can_open(11, LINKS, appointments)
    assert not policy.can_open(12, LINKS, appointments)


def test_restricted_policy_sees_nothing():
    policy = AccessPolicy(role="guest", person_ids=frozenset({100}), clinician_id=None, notes="")
    assert policy.visible_history_ids([11], LINKS) == set()
    assert not policy.can_open(11, LINKS)


def test_covered_links_keep_only_the_actors_own_links():
    shared = LINKS + [_link(0, 999, 11)]
    patient = build_policy(_actor("patient", person_ids={100}))
    assert [l.patient_id for l in patient.covered_links(shared)] == [1]

    clinician = build_policy(_actor("clinician", clinician_id=7))
    assert [l.patient_id for l in clinician.covered_links(shared, [_appt(1, 7)])] == [1]

    admin = build_policy(_actor("admin"))
    assert len(admin.covered_links(shared)) == 4
