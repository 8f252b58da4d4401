"""
Read steps against the records store, each returning domain dataclasses.

Every function issues exactly one query through ``fetch_all`` so a failure
surfaces as a single ``QueryFailure`` naming the step.
"""

from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional

from sqlalchemy import and_, func, select

from src.config import HISTORY_STATUS_NAMES, UNKNOWN_STATUS_LABEL
from src.database import fetch_all, fetch_scalar
from src.models import (
    AccessRequest,
    Appointment,
    ClinicalHistory,
    Consultation,
    Diagnosis,
    Exam,
    MedicalProfile,
    MedicalService,
    MedicationItem,
    PatientLink,
    Person,
    Treatment,
)
from src.schema import (
    cita_medica,
    consulta_medica,
    diagnostico,
    especialidad,
    estado_historia_clinica,
    examen,
    historia_clinica,
    medicamento_tratamiento,
    morbilidad,
    paciente,
    perfil_medico,
    persona,
    personal_medico,
    servicio_medico,
    solicitud,
    tipo_servicio,
    tratamiento,
)

clinician_persona = persona.alias("clinician_persona")
patient_persona = persona.alias("patient_persona")
appointment_patient = paciente.alias("appointment_patient")


# ── Row mappers ──────────────────────────────────────────────────────

def _join_name(*parts: Optional[str]) -> Optional[str]:
    name = " ".join(p for p in parts if p)
    return name or None


def person_from_row(row: Mapping[str, Any]) -> Person:
    return Person(
        person_id=row["id_persona"],
        given_names=row["prenombres"] or "",
        paternal_surname=row["primer_apellido"] or "",
        maternal_surname=row["segundo_apellido"] or "",
        national_id=row["dni_idcarnet"] or "",
        birth_date=row.get("fecha_nacimiento"),
        sex=row.get("sexo"),
        address=row.get("direccion_legal"),
        email=row.get("correo_electronico"),
        phone=row.get("numero_celular_personal"),
        emergency_phone=row.get("numero_celular_emergencia"),
    )


def status_from_name(name: Optional[str]):
    """Map a stored status name to (status, label); unset or unknown names are 'Unknown'."""
    if not name or not name.strip():
        return "Unknown", UNKNOWN_STATUS_LABEL
    status = HISTORY_STATUS_NAMES.get(name.strip().lower())
    if status is None:
        return "Unknown", name
    return status, name


def history_from_row(row: Mapping[str, Any]) -> ClinicalHistory:
    status, label = status_from_name(row["nombre_estado"])
    return ClinicalHistory(
        history_id=row["id_historia"],
        created_at=row["fecha_creacion"],
        status=status,
        status_label=label,
        profile=MedicalProfile(
            attended_at=row["fecha_atencion"],
            blood_group=row["grupo_sanguineo"],
            residence_environment=row["ambiente_residencia"],
            sexual_orientation=row["orientacion_sexual"],
            sexually_active=row["vida_sexual_activa"],
        ),
    )


def link_from_row(row: Mapping[str, Any]) -> PatientLink:
    return PatientLink(
        patient_id=row["id_paciente"],
        person_id=row["id_persona"],
        history_id=row["id_historia"],
        insurance_type=row["tipo_seguro"],
        legal_status=row["situacion_juridica"],
        is_alive=row["esta_vivo"],
        life_stage=row["etapa_vida"],
    )


def appointment_from_row(row: Mapping[str, Any]) -> Appointment:
    return Appointment(
        appointment_id=row["id_cita_medica"],
        scheduled_at=row["fecha_hora_programada"],
        status=row["estado"],
        patient_id=row["id_paciente"],
        clinician_id=row["id_personal_medico"],
        clinician_name=_join_name(
            row.get("clinician_prenombres"),
            row.get("clinician_primer_apellido"),
            row.get("clinician_segundo_apellido"),
        ),
        specialty=row.get("especialidad"),
        patient_name=_join_name(
            row.get("patient_prenombres"),
            row.get("patient_primer_apellido"),
            row.get("patient_segundo_apellido"),
        ),
    )


# ── Patient links ────────────────────────────────────────────────────

def fetch_links(engine, *, person_ids: Optional[Iterable[int]] = None,
                patient_ids: Optional[Iterable[int]] = None,
                history_ids: Optional[Iterable[int]] = None) -> List[PatientLink]:
    """Patient links, narrowed by whichever id sets are given (none = all links)."""
    stmt = select(paciente).order_by(paciente.c.id_paciente)
    if person_ids is not None:
        stmt = stmt.where(paciente.c.id_persona.in_(list(person_ids)))
    if patient_ids is not None:
        stmt = stmt.where(paciente.c.id_paciente.in_(list(patient_ids)))
    if history_ids is not None:
        stmt = stmt.where(paciente.c.id_historia.in_(list(history_ids)))
    return [link_from_row(r) for r in fetch_all(engine, "patient_links", stmt)]


# ── Clinical histories and persons ───────────────────────────────────

def fetch_histories(engine, history_ids: Optional[Iterable[int]] = None) -> List[ClinicalHistory]:
    """Histories with status and medical profile, newest first."""
    stmt = (
        select(
            historia_clinica.c.id_historia,
            historia_clinica.c.fecha_creacion,
            estado_historia_clinica.c.nombre_estado,
            perfil_medico.c.fecha_atencion,
            perfil_medico.c.grupo_sanguineo,
            perfil_medico.c.ambiente_residencia,
            perfil_medico.c.orientacion_sexual,
            perfil_medico.c.vida_sexual_activa,
        )
        .select_from(
            historia_clinica
            .outerjoin(estado_historia_clinica,
                       historia_clinica.c.id_estado == estado_historia_clinica.c.id_estado)
            .outerjoin(perfil_medico,
                       historia_clinica.c.id_perfil_medico == perfil_medico.c.id_perfil_medico)
        )
        .order_by(historia_clinica.c.fecha_creacion.desc(), historia_clinica.c.id_historia.desc())
    )
    if history_ids is not None:
        stmt = stmt.where(historia_clinica.c.id_historia.in_(list(history_ids)))
    return [history_from_row(r) for r in fetch_all(engine, "clinical_histories", stmt)]


def fetch_persons(engine, person_ids: Iterable[int]) -> Dict[int, Person]:
    ids = sorted(set(person_ids))
    if not ids:
        return {}
    stmt = select(persona).where(persona.c.id_persona.in_(ids))
    return {r["id_persona"]: person_from_row(r) for r in fetch_all(engine, "persons", stmt)}


# ── Appointments ─────────────────────────────────────────────────────

def _appointment_listing():
    return (
        select(
            cita_medica.c.id_cita_medica,
            cita_medica.c.fecha_hora_programada,
            cita_medica.c.estado,
            cita_medica.c.id_paciente,
            cita_medica.c.id_personal_medico,
            clinician_persona.c.prenombres.label("clinician_prenombres"),
            clinician_persona.c.primer_apellido.label("clinician_primer_apellido"),
            clinician_persona.c.segundo_apellido.label("clinician_segundo_apellido"),
            especialidad.c.descripcion.label("especialidad"),
            patient_persona.c.prenombres.label("patient_prenombres"),
            patient_persona.c.primer_apellido.label("patient_primer_apellido"),
            patient_persona.c.segundo_apellido.label("patient_segundo_apellido"),
        )
        .select_from(
            cita_medica
            .outerjoin(personal_medico,
                       cita_medica.c.id_personal_medico == personal_medico.c.id_personal_medico)
            .outerjoin(clinician_persona,
                       personal_medico.c.id_persona == clinician_persona.c.id_persona)
            .outerjoin(especialidad,
                       personal_medico.c.id_especialidad == especialidad.c.id_especialidad)
            .outerjoin(appointment_patient,
                       cita_medica.c.id_paciente == appointment_patient.c.id_paciente)
            .outerjoin(patient_persona,
                       appointment_patient.c.id_persona == patient_persona.c.id_persona)
        )
    )


def fetch_appointments(engine, *, patient_ids: Optional[Iterable[int]] = None,
                       clinician_id: Optional[int] = None,
                       since: Optional[datetime] = None,
                       until: Optional[datetime] = None,
                       ascending: bool = False,
                       limit: Optional[int] = None,
                       step: str = "appointments") -> List[Appointment]:
    stmt = _appointment_listing()
    if patient_ids is not None:
        stmt = stmt.where(cita_medica.c.id_paciente.in_(list(patient_ids)))
    if clinician_id is not None:
        stmt = stmt.where(cita_medica.c.id_personal_medico == clinician_id)
    if since is not None:
        stmt = stmt.where(cita_medica.c.fecha_hora_programada >= since)
    if until is not None:
        stmt = stmt.where(cita_medica.c.fecha_hora_programada < until)
    order = cita_medica.c.fecha_hora_programada
    stmt = stmt.order_by(order.asc() if ascending else order.desc(), cita_medica.c.id_cita_medica)
    if limit is not None:
        stmt = stmt.limit(limit)
    return [appointment_from_row(r) for r in fetch_all(engine, step, stmt)]


def fetch_clinician_appointments(engine, clinician_id: int,
                                 patient_ids: Optional[Iterable[int]] = None) -> List[Appointment]:
    """Bare appointment rows of one clinician, used for scoping."""
    stmt = select(cita_medica).where(cita_medica.c.id_personal_medico == clinician_id)
    if patient_ids is not None:
        stmt = stmt.where(cita_medica.c.id_paciente.in_(list(patient_ids)))
    stmt = stmt.order_by(cita_medica.c.id_cita_medica)
    return [appointment_from_row(r) for r in fetch_all(engine, "clinician_appointments", stmt)]


def fetch_appointment(engine, appointment_id: int) -> Optional[Appointment]:
    stmt = select(cita_medica).where(cita_medica.c.id_cita_medica == appointment_id)
    rows = fetch_all(engine, "appointment", stmt)
    return appointment_from_row(rows[0]) if rows else None


# ── Medical services ─────────────────────────────────────────────────

def fetch_services(engine, appointment_ids: Iterable[int], *,
                   limit: Optional[int] = None) -> List[MedicalService]:
    """Services for the given appointments, newest first, with their clinical entries."""
    ids = list(appointment_ids)
    if not ids:
        return []
    stmt = (
        select(
            servicio_medico.c.id_servicio_medico,
            servicio_medico.c.id_cita_medica,
            servicio_medico.c.fecha_servicio,
            servicio_medico.c.hora_inicio_servicio,
            servicio_medico.c.hora_fin_servicio,
            clinician_persona.c.prenombres.label("clinician_prenombres"),
            clinician_persona.c.primer_apellido.label("clinician_primer_apellido"),
            clinician_persona.c.segundo_apellido.label("clinician_segundo_apellido"),
            especialidad.c.descripcion.label("especialidad"),
        )
        .select_from(
            servicio_medico
            .join(cita_medica, servicio_medico.c.id_cita_medica == cita_medica.c.id_cita_medica)
            .outerjoin(personal_medico,
                       cita_medica.c.id_personal_medico == personal_medico.c.id_personal_medico)
            .outerjoin(clinician_persona,
                       personal_medico.c.id_persona == clinician_persona.c.id_persona)
            .outerjoin(especialidad,
                       personal_medico.c.id_especialidad == especialidad.c.id_especialidad)
        )
        .where(servicio_medico.c.id_cita_medica.in_(ids))
        .order_by(servicio_medico.c.fecha_servicio.desc(), servicio_medico.c.id_servicio_medico.desc())
    )
    if limit is not None:
        stmt = stmt.limit(limit)

    services = [
        MedicalService(
            service_id=r["id_servicio_medico"],
            appointment_id=r["id_cita_medica"],
            service_date=r["fecha_servicio"],
            start_time=r["hora_inicio_servicio"],
            end_time=r["hora_fin_servicio"],
            clinician_name=_join_name(
                r["clinician_prenombres"], r["clinician_primer_apellido"], r["clinician_segundo_apellido"],
            ),
            specialty=r["especialidad"],
        )
        for r in fetch_all(engine, "medical_services", stmt)
    ]
    if services:
        _attach_clinical_entries(engine, services)
    return services


def _attach_clinical_entries(engine, services: List[MedicalService]) -> None:
    by_id = {s.service_id: s for s in services}
    ids = list(by_id)

    stmt = (
        select(consulta_medica.c.id_servicio_medico, consulta_medica.c.motivo_consulta,
               tipo_servicio.c.nombre)
        .select_from(consulta_medica.outerjoin(
            tipo_servicio, consulta_medica.c.id_tipo_servicio == tipo_servicio.c.id_tipo_servicio))
        .where(consulta_medica.c.id_servicio_medico.in_(ids))
        .order_by(consulta_medica.c.id_consulta_medica)
    )
    for r in fetch_all(engine, "consultations", stmt):
        by_id[r["id_servicio_medico"]].consultations.append(
            Consultation(service_type=r["nombre"] or "Consulta Médica", reason=r["motivo_consulta"])
        )

    stmt = (
        select(diagnostico.c.id_servicio_medico, diagnostico.c.detalle,
               morbilidad.c.codigo_cie10, morbilidad.c.descripcion)
        .select_from(diagnostico.outerjoin(
            morbilidad, diagnostico.c.id_morbilidad == morbilidad.c.id_morbilidad))
        .where(diagnostico.c.id_servicio_medico.in_(ids))
        .order_by(diagnostico.c.id_diagnostico)
    )
    for r in fetch_all(engine, "diagnoses", stmt):
        by_id[r["id_servicio_medico"]].diagnoses.append(
            Diagnosis(description=r["detalle"], morbidity_code=r["codigo_cie10"],
                      morbidity_name=r["descripcion"])
        )

    stmt = (
        select(tratamiento.c.id_tratamiento, tratamiento.c.id_servicio_medico, tratamiento.c.descripcion)
        .where(tratamiento.c.id_servicio_medico.in_(ids))
        .order_by(tratamiento.c.id_tratamiento)
    )
    treatments: Dict[int, Treatment] = {}
    for r in fetch_all(engine, "treatments", stmt):
        t = Treatment(description=r["descripcion"])
        treatments[r["id_tratamiento"]] = t
        by_id[r["id_servicio_medico"]].treatments.append(t)

    if treatments:
        stmt = (
            select(medicamento_tratamiento)
            .where(medicamento_tratamiento.c.id_tratamiento.in_(list(treatments)))
            .order_by(medicamento_tratamiento.c.id_medicamento_tratamiento)
        )
        for r in fetch_all(engine, "medication_items", stmt):
            treatments[r["id_tratamiento"]].medications.append(
                MedicationItem(name=r["nombre_medicamento"], dose=r["dosis"], frequency=r["frecuencia"])
            )

    stmt = (
        select(examen.c.id_servicio_medico, examen.c.tipo_examen, examen.c.resultado)
        .where(examen.c.id_servicio_medico.in_(ids))
        .order_by(examen.c.id_examen)
    )
    for r in fetch_all(engine, "exams", stmt):
        by_id[r["id_servicio_medico"]].exams.append(Exam(exam_type=r["tipo_examen"], result=r["resultado"]))


# ── Access requests ──────────────────────────────────────────────────

def fetch_access_requests(engine, status: Optional[str] = None,
                          limit: Optional[int] = None) -> List[AccessRequest]:
    stmt = (
        select(solicitud, persona.c.prenombres, persona.c.primer_apellido,
               persona.c.segundo_apellido, persona.c.dni_idcarnet)
        .select_from(solicitud.outerjoin(persona, solicitud.c.id_persona == persona.c.id_persona))
        .order_by(solicitud.c.fecha_solicitud.desc(), solicitud.c.id_solicitud.desc())
    )
    if status is not None:
        stmt = stmt.where(solicitud.c.estado_solicitud == status)
    if limit is not None:
        stmt = stmt.limit(limit)
    return [
        AccessRequest(
            request_id=r["id_solicitud"],
            requester=person_from_row(r),
            reason=r["motivo"],
            description=r["descripcion"],
            requested_at=r["fecha_solicitud"],
            status=r["estado_solicitud"],
        )
        for r in fetch_all(engine, "access_requests", stmt)
    ]


# ── Counts ───────────────────────────────────────────────────────────

def count_rows(engine, table, *criteria) -> int:
    stmt = select(func.count()).select_from(table)
    if criteria:
        stmt = stmt.where(and_(*criteria))
    return int(fetch_scalar(engine, f"count_{table.name}", stmt) or 0)


def count_services_on(engine, day: date, appointment_ids: Optional[Iterable[int]] = None) -> int:
    criteria = [servicio_medico.c.fecha_servicio == day]
    if appointment_ids is not None:
        criteria.append(servicio_medico.c.id_cita_medica.in_(list(appointment_ids)))
    return count_rows(engine, servicio_medico, *criteria)
