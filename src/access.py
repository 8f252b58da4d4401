"""
Role-based access – loading the signed-in actor and building their access policy.
"""

from dataclasses import dataclass
from typing import FrozenSet, Iterable, List, Optional, Set

from sqlalchemy import select, true

from src.config import ROLE_ADMIN, ROLE_ALIASES, ROLE_CLINICIAN, ROLE_PATIENT
from src.database import fetch_all
from src.errors import AuthenticationError
from src.models import Actor, Appointment, PatientLink
from src.schema import personal_medico, portal_user_profiles, portal_users

KNOWN_ROLES = {ROLE_PATIENT, ROLE_CLINICIAN, ROLE_ADMIN}


def normalize_role(raw: Optional[str]) -> str:
    role = str(raw or "").strip().lower()
    return ROLE_ALIASES.get(role, role)


def load_actor(engine, api_key: str) -> Actor:
    """Look up a user by API key and return the Actor they sign in as."""
    stmt = (
        select(portal_users.c.id, portal_users.c.display_name, portal_users.c.role,
               portal_users.c.id_persona)
        .where(portal_users.c.api_key == api_key, portal_users.c.is_active == true())
        .limit(1)
    )
    rows = fetch_all(engine, "portal_user", stmt)
    if not rows:
        raise AuthenticationError("Invalid key or user inactive (no match in portal_users).")
    row = rows[0]

    role = normalize_role(row["role"])
    own_person = row["id_persona"]

    stmt = select(portal_user_profiles.c.id_persona).where(portal_user_profiles.c.user_id == row["id"])
    person_ids = {r["id_persona"] for r in fetch_all(engine, "portal_user_profiles", stmt)}
    if own_person is not None:
        person_ids.add(own_person)

    clinician_id = None
    if role == ROLE_CLINICIAN and own_person is not None:
        stmt = (
            select(personal_medico.c.id_personal_medico)
            .where(personal_medico.c.id_persona == own_person)
            .order_by(personal_medico.c.id_personal_medico)
            .limit(1)
        )
        found = fetch_all(engine, "clinician_profile", stmt)
        if found:
            clinician_id = found[0]["id_personal_medico"]

    return Actor(
        user_id=int(row["id"]),
        display_name=str(row["display_name"]),
        role=role,
        person_ids=frozenset(person_ids),
        person_id=own_person,
        clinician_id=clinician_id,
    )


@dataclass(frozen=True)
class AccessPolicy:
    """What one actor may see, computed once at sign-in.

    The methods are pure: callers hand in freshly fetched rows and get back
    the ids the actor is entitled to.
    """
    role: str
    person_ids: FrozenSet[int]
    clinician_id: Optional[int]
    notes: str

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @property
    def restricted(self) -> bool:
        return self.role not in KNOWN_ROLES

    def covered_links(self, links: Iterable[PatientLink],
                      appointments: Iterable[Appointment] = ()) -> List[PatientLink]:
        """Patient links the actor is entitled to, out of the rows handed in."""
        links = [link for link in links if link.history_id is not None]
        if self.is_admin:
            return links
        if self.role == ROLE_PATIENT:
            return [link for link in links if link.person_id in self.person_ids]
        if self.role == ROLE_CLINICIAN and self.clinician_id is not None:
            seen = {a.patient_id for a in appointments if a.clinician_id == self.clinician_id}
            return [link for link in links if link.patient_id in seen]
        return []

    def visible_history_ids(self, history_ids: Iterable[int],
                            links: Iterable[PatientLink],
                            appointments: Iterable[Appointment] = ()) -> Set[int]:
        candidates = set(history_ids)
        if self.is_admin:
            return candidates
        return candidates & {link.history_id for link in self.covered_links(links, appointments)}

    def can_open(self, history_id: int, links: Iterable[PatientLink],
                 appointments: Iterable[Appointment] = ()) -> bool:
        return history_id in self.visible_history_ids([history_id], links, appointments)


def build_policy(actor: Actor) -> AccessPolicy:
    """Derive an AccessPolicy from an Actor."""

    if actor.role == ROLE_PATIENT:
        return AccessPolicy(
            role=ROLE_PATIENT,
            person_ids=actor.person_ids,
            clinician_id=None,
            notes="Patient sees their own history and those of linked family profiles.",
        )

    if actor.role == ROLE_CLINICIAN:
        if actor.clinician_id is None:
            raise ValueError("Clinician user must be linked to a personal_medico record.")
        return AccessPolicy(
            role=ROLE_CLINICIAN,
            person_ids=actor.person_ids,
            clinician_id=actor.clinician_id,
            notes="Clinician sees histories of patients they have at least one appointment with.",
        )

    if actor.role == ROLE_ADMIN:
        return AccessPolicy(
            role=ROLE_ADMIN,
            person_ids=actor.person_ids,
            clinician_id=None,
            notes="Admin can see every clinical history.",
        )

    return AccessPolicy(
        role=actor.role,
        person_ids=frozenset(),
        clinician_id=None,
        notes=f"Role '{actor.role}' has no access to clinical histories.",
    )
