"""
Populate a records database with fake demo data.

    DB_URI=sqlite:///demo.db python -m scripts.seed_demo_data
"""

import random
from datetime import datetime, timedelta, time

from faker import Faker
from sqlalchemy import insert

from src.config import APPOINTMENT_STATUSES, REQUEST_PENDING, get_env
from src.database import create_schema, init_engine
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
from scripts.generate_api_key import generate_api_key

# --------------------------------------------------------------------
# CONFIG
# --------------------------------------------------------------------
NUM_CLINICIANS = 6
NUM_PATIENTS = 40

# min, max per patient / per service
APPOINTMENTS_PER_PATIENT = (0, 4)
DIAGNOSES_PER_SERVICE = (0, 2)
TREATMENTS_PER_SERVICE = (0, 2)
MEDICATIONS_PER_TREATMENT = (1, 3)
EXAMS_PER_SERVICE = (0, 2)

STATUSES = ["Activa", "Inactiva", "En revisión"]
SPECIALTIES = ["Medicina General", "Pediatría", "Cardiología", "Dermatología", "Ginecología"]
SERVICE_TYPES = ["Consulta Médica", "Control", "Emergencia", "Teleconsulta"]
MORBIDITIES = [
    ("J06.9", "Infección aguda de las vías respiratorias superiores"),
    ("I10", "Hipertensión esencial"),
    ("E11.9", "Diabetes mellitus tipo 2"),
    ("K29.7", "Gastritis, no especificada"),
    ("M54.5", "Lumbago no especificado"),
]
MEDICATIONS = ["Paracetamol", "Ibuprofeno", "Amoxicilina", "Losartán", "Metformina", "Omeprazol"]
EXAM_TYPES = ["Hemograma", "Glucosa", "Perfil lipídico", "Radiografía de tórax", "Examen de orina"]

fake = Faker("es_ES")
random.seed(42)
Faker.seed(42)


def _person_row():
    return {
        "prenombres": fake.first_name(),
        "primer_apellido": fake.last_name(),
        "segundo_apellido": fake.last_name(),
        "dni_idcarnet": fake.unique.numerify("########"),
        "sexo": random.choice(["M", "F"]),
        "fecha_nacimiento": fake.date_of_birth(minimum_age=1, maximum_age=90),
        "direccion_legal": fake.street_address(),
        "correo_electronico": fake.email(),
        "numero_celular_personal": fake.numerify("9########"),
        "numero_celular_emergencia": fake.numerify("9########"),
    }


def _insert(conn, table, row) -> int:
    return conn.execute(insert(table).values(**row)).inserted_primary_key[0]


def seed(engine):
    create_schema(engine)
    now = datetime.now()
    keys = {}

    with engine.begin() as conn:
        status_ids = [_insert(conn, estado_historia_clinica, {"nombre_estado": s}) for s in STATUSES]
        specialty_ids = [_insert(conn, especialidad, {"descripcion": s}) for s in SPECIALTIES]
        service_type_ids = [_insert(conn, tipo_servicio, {"nombre": s}) for s in SERVICE_TYPES]
        morbidity_ids = [
            _insert(conn, morbilidad, {"codigo_cie10": code, "descripcion": name})
            for code, name in MORBIDITIES
        ]

        clinicians = []
        for _ in range(NUM_CLINICIANS):
            person_id = _insert(conn, persona, _person_row())
            clinician_id = _insert(conn, personal_medico, {
                "id_persona": person_id,
                "id_especialidad": random.choice(specialty_ids),
            })
            clinicians.append((clinician_id, person_id))

        patients = []
        for _ in range(NUM_PATIENTS):
            person_id = _insert(conn, persona, _person_row())
            profile_id = _insert(conn, perfil_medico, {
                "fecha_atencion": fake.date_between(start_date="-2y", end_date="today"),
                "grupo_sanguineo": random.choice(["O+", "O-", "A+", "A-", "B+", "AB+"]),
                "ambiente_residencia": random.choice(["Urbano", "Rural"]),
                "orientacion_sexual": random.choice(["Heterosexual", "Homosexual", "Bisexual", None]),
                "vida_sexual_activa": random.choice([True, False, None]),
            })
            history_id = _insert(conn, historia_clinica, {
                "id_estado": random.choice(status_ids + [None]),
                "id_perfil_medico": profile_id,
                "fecha_creacion": now - timedelta(days=random.randint(0, 900)),
            })
            patient_id = _insert(conn, paciente, {
                "id_persona": person_id,
                "id_historia": history_id,
                "tipo_seguro": random.choice(["SIS", "EsSalud", "Privado"]),
                "situacion_juridica": "Regular",
                "esta_vivo": True,
                "etapa_vida": random.choice(["Niño", "Adolescente", "Adulto", "Adulto mayor"]),
            })
            patients.append((patient_id, person_id))

        for patient_id, _person in patients:
            for _ in range(random.randint(*APPOINTMENTS_PER_PATIENT)):
                clinician_id, _ = random.choice(clinicians)
                scheduled = now + timedelta(days=random.randint(-120, 30), hours=random.randint(-4, 4))
                status = "Completada" if scheduled < now else random.choice(APPOINTMENT_STATUSES)
                appointment_id = _insert(conn, cita_medica, {
                    "id_paciente": patient_id,
                    "id_personal_medico": clinician_id,
                    "fecha_hora_programada": scheduled,
                    "estado": status,
                })
                if status != "Completada":
                    continue
                service_id = _insert(conn, servicio_medico, {
                    "id_cita_medica": appointment_id,
                    "fecha_servicio": scheduled.date(),
                    "hora_inicio_servicio": time(scheduled.hour, 0),
                    "hora_fin_servicio": time(scheduled.hour, 30),
                })
                _insert(conn, consulta_medica, {
                    "id_servicio_medico": service_id,
                    "id_tipo_servicio": random.choice(service_type_ids),
                    "motivo_consulta": fake.sentence(nb_words=6),
                })
                for _ in range(random.randint(*DIAGNOSES_PER_SERVICE)):
                    _insert(conn, diagnostico, {
                        "id_servicio_medico": service_id,
                        "id_morbilidad": random.choice(morbidity_ids),
                        "detalle": fake.sentence(nb_words=8),
                    })
                for _ in range(random.randint(*TREATMENTS_PER_SERVICE)):
                    treatment_id = _insert(conn, tratamiento, {
                        "id_servicio_medico": service_id,
                        "descripcion": fake.sentence(nb_words=5),
                    })
                    for _ in range(random.randint(*MEDICATIONS_PER_TREATMENT)):
                        _insert(conn, medicamento_tratamiento, {
                            "id_tratamiento": treatment_id,
                            "nombre_medicamento": random.choice(MEDICATIONS),
                            "dosis": f"{random.choice([250, 500, 850])} mg",
                            "frecuencia": random.choice(["Cada 8 horas", "Cada 12 horas", "Una vez al día"]),
                        })
                for _ in range(random.randint(*EXAMS_PER_SERVICE)):
                    _insert(conn, examen, {
                        "id_servicio_medico": service_id,
                        "tipo_examen": random.choice(EXAM_TYPES),
                        "resultado": random.choice(["Normal", "Alterado", None]),
                    })

        for person_id in random.sample([p for _, p in patients], 5):
            _insert(conn, solicitud, {
                "id_persona": person_id,
                "motivo": "Acceso a historia clínica",
                "descripcion": fake.sentence(nb_words=10),
                "fecha_solicitud": now - timedelta(days=random.randint(0, 30)),
                "estado_solicitud": REQUEST_PENDING,
            })

        # ── Portal users ─────────────────────────────────────────────
        keys["admin"] = generate_api_key()
        _insert(conn, portal_users, {"display_name": "Administrador", "role": "admin",
                                     "id_persona": None, "api_key": keys["admin"], "is_active": True})

        keys["medical"] = generate_api_key()
        _insert(conn, portal_users, {"display_name": "Dr. Demo", "role": "medical",
                                     "id_persona": clinicians[0][1], "api_key": keys["medical"],
                                     "is_active": True})

        keys["patient"] = generate_api_key()
        user_id = _insert(conn, portal_users, {"display_name": "Paciente Demo", "role": "patient",
                                               "id_persona": patients[0][1], "api_key": keys["patient"],
                                               "is_active": True})
        _insert(conn, portal_user_profiles, {"user_id": user_id, "id_persona": patients[1][1]})

    return keys


if __name__ == "__main__":
    engine = init_engine(get_env("DB_URI"))
    keys = seed(engine)
    print(f"[seed] {NUM_PATIENTS} patients, {NUM_CLINICIANS} clinicians created.")
    for role, key in keys.items():
        print(f"  {role:8s} {key}")
