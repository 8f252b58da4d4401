"""
Shared fixtures: an in-memory SQLite records store with a small, known data set.
"""

from datetime import date, datetime, time

import pytest
from sqlalchemy import create_engine, insert
from sqlalchemy.pool import StaticPool

from src.access import build_policy, load_actor
from src.database import create_schema
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
    portal_user_profiles,
    portal_users,
    servicio_medico,
    solicitud,
    tipo_servicio,
    tratamiento,
)

# Reference "now" for dashboard tests: the morning of appointment 1.
NOW = datetime(2024, 5, 1, 9, 0)


def _person(pid, given, paternal, maternal, dni, birth):
    return {
        "id_persona": pid, "prenombres": given, "primer_apellido": paternal,
        "segundo_apellido": maternal, "dni_idcarnet": dni, "sexo": "F",
        "fecha_nacimiento": birth, "correo_electronico": f"p{pid}@example.com",
    }


def new_engine():
    return create_engine(
        "sqlite://", future=True,
        poolclass=StaticPool, connect_args={"check_same_thread": False},
    )


def seed(engine):
    """
    Persons 1-3 are patients (Ana, Luis, Carla), 4-6 clinicians.
    History 4 belongs to a patient whose person row is missing, history 5 has no patient.
    """
    create_schema(engine)
    with engine.begin() as conn:
        conn.execute(insert(persona), [
            _person(1, "Ana", "Torres", "Quispe", "45678912", date(2000, 6, 15)),
            _person(2, "Luis", "Paredes", "Rojas", "70123456", date(1985, 2, 1)),
            _person(3, "Carla", "Torres", "Quispe", "71234567", date(2015, 9, 30)),
            _person(4, "Jorge", "Medina", "Salas", "40000001", date(1970, 1, 1)),
            _person(5, "Rosa", "Vega", "Luna", "40000002", date(1975, 1, 1)),
            _person(6, "Pedro", "Ramos", "Díaz", "40000003", date(1980, 1, 1)),
        ])
        conn.execute(insert(estado_historia_clinica), [
            {"id_estado": 1, "nombre_estado": "Activa"},
            {"id_estado": 2, "nombre_estado": "Inactiva"},
        ])
        conn.execute(insert(perfil_medico), [
            {"id_perfil_medico": 1, "fecha_atencion": date(2024, 1, 10), "grupo_sanguineo": "O+",
             "ambiente_residencia": "Urbano", "orientacion_sexual": None, "vida_sexual_activa": None},
        ])
        conn.execute(insert(historia_clinica), [
            {"id_historia": 1, "id_estado": 1, "id_perfil_medico": 1, "fecha_creacion": datetime(2024, 1, 10)},
            {"id_historia": 2, "id_estado": 2, "id_perfil_medico": None, "fecha_creacion": datetime(2024, 2, 10)},
            {"id_historia": 3, "id_estado": None, "id_perfil_medico": None, "fecha_creacion": datetime(2024, 3, 10)},
            {"id_historia": 4, "id_estado": 1, "id_perfil_medico": None, "fecha_creacion": datetime(2024, 4, 10)},
            {"id_historia": 5, "id_estado": 1, "id_perfil_medico": None, "fecha_creacion": datetime(2024, 5, 10)},
        ])
        conn.execute(insert(paciente), [
            {"id_paciente": 1, "id_persona": 1, "id_historia": 1},
            {"id_paciente": 2, "id_persona": 2, "id_historia": 2},
            {"id_paciente": 3, "id_persona": 3, "id_historia": 3},
            {"id_paciente": 4, "id_persona": 99, "id_historia": 4},
        ])
        conn.execute(insert(especialidad), [
            {"id_especialidad": 1, "descripcion": "Medicina General"},
        ])
        conn.execute(insert(personal_medico), [
            {"id_personal_medico": 1, "id_persona": 4, "id_especialidad": 1},
            {"id_personal_medico": 2, "id_persona": 5, "id_especialidad": 1},
            {"id_personal_medico": 3, "id_persona": 6, "id_especialidad": 1},
        ])
        conn.execute(insert(cita_medica), [
            {"id_cita_medica": 1, "id_paciente": 1, "id_personal_medico": 1,
             "fecha_hora_programada": datetime(2024, 5, 1, 10, 0), "estado": "Completada"},
            {"id_cita_medica": 2, "id_paciente": 1, "id_personal_medico": 1,
             "fecha_hora_programada": datetime(2099, 1, 1, 8, 0), "estado": "Programada"},
            {"id_cita_medica": 3, "id_paciente": 2, "id_personal_medico": 2,
             "fecha_hora_programada": datetime(2024, 6, 1, 11, 0), "estado": "Programada"},
            {"id_cita_medica": 4, "id_paciente": 4, "id_personal_medico": 2,
             "fecha_hora_programada": datetime(2024, 3, 1, 11, 0), "estado": "Cancelada"},
        ])
        conn.execute(insert(servicio_medico), [
            {"id_servicio_medico": 1, "id_cita_medica": 1, "fecha_servicio": date(2024, 5, 1),
             "hora_inicio_servicio": time(10, 0), "hora_fin_servicio": time(10, 30)},
        ])
        conn.execute(insert(tipo_servicio), [{"id_tipo_servicio": 1, "nombre": "Control"}])
        conn.execute(insert(consulta_medica), [
            {"id_consulta_medica": 1, "id_servicio_medico": 1, "id_tipo_servicio": 1,
             "motivo_consulta": "Dolor de garganta"},
        ])
        conn.execute(insert(morbilidad), [
            {"id_morbilidad": 1, "codigo_cie10": "J06.9",
             "descripcion": "Infección aguda de las vías respiratorias superiores"},
        ])
        conn.execute(insert(diagnostico), [
            {"id_diagnostico": 1, "id_servicio_medico": 1, "id_morbilidad": 1, "detalle": "Faringitis"},
        ])
        conn.execute(insert(tratamiento), [
            {"id_tratamiento": 1, "id_servicio_medico": 1, "descripcion": "Sintomático"},
        ])
        conn.execute(insert(medicamento_tratamiento), [
            {"id_medicamento_tratamiento": 1, "id_tratamiento": 1, "nombre_medicamento": "Paracetamol",
             "dosis": "500 mg", "frecuencia": "Cada 8 horas"},
        ])
        conn.execute(insert(examen), [
            {"id_examen": 1, "id_servicio_medico": 1, "tipo_examen": "Hemograma", "resultado": "Normal"},
        ])
        conn.execute(insert(solicitud), [
            {"id_solicitud": 1, "id_persona": 2, "motivo": "Acceso", "descripcion": "Copia de historia",
             "fecha_solicitud": datetime(2024, 4, 20), "estado_solicitud": "Pendiente"},
            {"id_solicitud": 2, "id_persona": 1, "motivo": "Acceso", "descripcion": "Ya resuelta",
             "fecha_solicitud": datetime(2024, 4, 1), "estado_solicitud": "Aprobada"},
        ])
        conn.execute(insert(portal_users), [
            {"id": 1, "display_name": "Ana Torres", "role": "patient", "id_persona": 1,
             "api_key": "key-patient", "is_active": True},
            {"id": 2, "display_name": "Dr. Jorge Medina", "role": "medical", "id_persona": 4,
             "api_key": "key-clinician", "is_active": True},
            {"id": 3, "display_name": "Administrador", "role": "admin", "id_persona": None,
             "api_key": "key-admin", "is_active": True},
            {"id": 4, "display_name": "Enfermera", "role": "nurse", "id_persona": None,
             "api_key": "key-nurse", "is_active": True},
            {"id": 5, "display_name": "Old Account", "role": "patient", "id_persona": 2,
             "api_key": "key-inactive", "is_active": False},
            {"id": 6, "display_name": "Dra. Rosa Vega", "role": "clinician", "id_persona": 5,
             "api_key": "key-clinician-2", "is_active": True},
            {"id": 7, "display_name": "Dr. Pedro Ramos", "role": "medical", "id_persona": 6,
             "api_key": "key-clinician-idle", "is_active": True},
            {"id": 8, "display_name": "Sin Perfil", "role": "patient", "id_persona": None,
             "api_key": "key-no-profiles", "is_active": True},
        ])
        conn.execute(insert(portal_user_profiles), [
            {"user_id": 1, "id_persona": 3},
        ])
    return engine


@pytest.fixture
def engine():
    return seed(new_engine())


@pytest.fixture
def policy_for(engine):
    """Build the policy a given API key signs in with."""
    def _policy(api_key):
        return build_policy(load_actor(engine, api_key))
    return _policy
