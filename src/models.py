"""
Domain dataclasses used across the application.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Dict, FrozenSet, List, Optional

from src.config import PLACEHOLDER_NAME, PLACEHOLDER_NATIONAL_ID


@dataclass(frozen=True)
class Actor:
    """The signed-in user: role plus the persons they act for."""
    user_id: int
    display_name: str
    role: str                           # "patient", "clinician", "admin" (or anything else = no access)
    person_ids: FrozenSet[int]          # own person + linked family profiles
    person_id: Optional[int] = None
    clinician_id: Optional[int] = None  # personal_medico id, clinicians only


@dataclass
class Person:
    person_id: Optional[int]
    given_names: str
    paternal_surname: str
    maternal_surname: str
    national_id: str
    birth_date: Optional[date] = None
    sex: Optional[str] = None
    address: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    emergency_phone: Optional[str] = None

    @property
    def full_name(self) -> str:
        parts = [self.given_names, self.paternal_surname, self.maternal_surname]
        return " ".join(p for p in parts if p)

    @property
    def is_placeholder(self) -> bool:
        return self.person_id is None


def placeholder_person() -> Person:
    """Identity shown to admins for histories whose owner cannot be resolved."""
    return Person(
        person_id=None,
        given_names=PLACEHOLDER_NAME,
        paternal_surname="",
        maternal_surname="",
        national_id=PLACEHOLDER_NATIONAL_ID,
    )


@dataclass
class MedicalProfile:
    attended_at: Optional[date] = None
    blood_group: Optional[str] = None
    residence_environment: Optional[str] = None
    sexual_orientation: Optional[str] = None
    sexually_active: Optional[bool] = None   # None = not stated


@dataclass
class ClinicalHistory:
    history_id: int
    created_at: Optional[datetime]
    status: str          # Active / Inactive / UnderReview / Unknown
    status_label: str    # name as stored, or "Desconocido"
    profile: MedicalProfile = field(default_factory=MedicalProfile)


@dataclass
class PatientLink:
    """Joins a Person to their ClinicalHistory."""
    patient_id: int
    person_id: Optional[int]
    history_id: Optional[int]
    insurance_type: Optional[str] = None
    legal_status: Optional[str] = None
    is_alive: Optional[bool] = None
    life_stage: Optional[str] = None


@dataclass
class Appointment:
    appointment_id: int
    scheduled_at: Optional[datetime]
    status: str
    patient_id: Optional[int]
    clinician_id: Optional[int]
    clinician_name: Optional[str] = None
    specialty: Optional[str] = None
    patient_name: Optional[str] = None


@dataclass
class Consultation:
    service_type: str
    reason: Optional[str] = None


@dataclass
class Diagnosis:
    description: Optional[str]
    morbidity_code: Optional[str] = None
    morbidity_name: Optional[str] = None


@dataclass
class MedicationItem:
    name: str
    dose: Optional[str] = None
    frequency: Optional[str] = None


@dataclass
class Treatment:
    description: Optional[str]
    medications: List[MedicationItem] = field(default_factory=list)


@dataclass
class Exam:
    exam_type: str
    result: Optional[str] = None


@dataclass
class MedicalService:
    service_id: int
    appointment_id: int
    service_date: Optional[date]
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    clinician_name: Optional[str] = None
    specialty: Optional[str] = None
    consultations: List[Consultation] = field(default_factory=list)
    diagnoses: List[Diagnosis] = field(default_factory=list)
    treatments: List[Treatment] = field(default_factory=list)
    exams: List[Exam] = field(default_factory=list)


@dataclass
class AccessRequest:
    request_id: int
    requester: Person
    reason: Optional[str]
    description: Optional[str]
    requested_at: Optional[datetime]
    status: str


@dataclass
class ResolvedHistories:
    """Output of the visibility resolver, input of the record assembler."""
    history_ids: List[int] = field(default_factory=list)
    persons: Dict[int, Person] = field(default_factory=dict)
    owners: Dict[int, int] = field(default_factory=dict)            # history_id -> person_id
    histories: Dict[int, ClinicalHistory] = field(default_factory=dict)


@dataclass
class HistoryRecord:
    history_id: int
    person: Person
    status: str
    status_label: str
    created_at: Optional[datetime]
    profile: MedicalProfile


@dataclass
class HistoryVisit:
    """An appointment on a history together with the services performed."""
    appointment: Appointment
    services: List[MedicalService] = field(default_factory=list)


@dataclass
class HistoryDetail:
    record: HistoryRecord
    visits: List[HistoryVisit] = field(default_factory=list)


@dataclass
class DashboardStats:
    total_appointments: int = 0
    appointments_today: int = 0
    completed_appointments: int = 0
    scheduled_appointments: int = 0
    total_patients: int = 0
    total_histories: int = 0
    pending_requests: int = 0
    services_today: int = 0
