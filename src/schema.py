"""
Table definitions for the clinical records store.

Names follow the hosted database; everything above this module speaks English.
"""

from sqlalchemy import (
    Boolean, Column, Date, DateTime, ForeignKey, Integer, MetaData, String, Table, Text, Time,
)

metadata = MetaData()

persona = Table(
    "persona", metadata,
    Column("id_persona", Integer, primary_key=True),
    Column("prenombres", String(120), nullable=False),
    Column("primer_apellido", String(80), nullable=False),
    Column("segundo_apellido", String(80)),
    Column("dni_idcarnet", String(20), nullable=False),
    Column("sexo", String(1)),
    Column("fecha_nacimiento", Date),
    Column("direccion_legal", String(200)),
    Column("correo_electronico", String(120)),
    Column("numero_celular_personal", String(20)),
    Column("numero_celular_emergencia", String(20)),
)

estado_historia_clinica = Table(
    "estado_historia_clinica", metadata,
    Column("id_estado", Integer, primary_key=True),
    Column("nombre_estado", String(40), nullable=False),
    Column("descripcion", String(200)),
)

perfil_medico = Table(
    "perfil_medico", metadata,
    Column("id_perfil_medico", Integer, primary_key=True),
    Column("fecha_atencion", Date),
    Column("grupo_sanguineo", String(5)),
    Column("ambiente_residencia", String(40)),
    Column("orientacion_sexual", String(40)),
    Column("vida_sexual_activa", Boolean),
)

historia_clinica = Table(
    "historia_clinica", metadata,
    Column("id_historia", Integer, primary_key=True),
    Column("id_estado", Integer, ForeignKey("estado_historia_clinica.id_estado")),
    Column("id_perfil_medico", Integer, ForeignKey("perfil_medico.id_perfil_medico")),
    Column("fecha_creacion", DateTime),
)

paciente = Table(
    "paciente", metadata,
    Column("id_paciente", Integer, primary_key=True),
    Column("id_persona", Integer, ForeignKey("persona.id_persona")),
    Column("id_historia", Integer, ForeignKey("historia_clinica.id_historia")),
    Column("tipo_seguro", String(40)),
    Column("situacion_juridica", String(40)),
    Column("esta_vivo", Boolean),
    Column("etapa_vida", String(20)),
)

especialidad = Table(
    "especialidad", metadata,
    Column("id_especialidad", Integer, primary_key=True),
    Column("descripcion", String(100), nullable=False),
)

personal_medico = Table(
    "personal_medico", metadata,
    Column("id_personal_medico", Integer, primary_key=True),
    Column("id_persona", Integer, ForeignKey("persona.id_persona"), nullable=False),
    Column("id_especialidad", Integer, ForeignKey("especialidad.id_especialidad")),
)

cita_medica = Table(
    "cita_medica", metadata,
    Column("id_cita_medica", Integer, primary_key=True),
    Column("id_paciente", Integer, ForeignKey("paciente.id_paciente"), nullable=False),
    Column("id_personal_medico", Integer, ForeignKey("personal_medico.id_personal_medico")),
    Column("fecha_hora_programada", DateTime),
    Column("estado", String(20), nullable=False, default="Programada"),
)

servicio_medico = Table(
    "servicio_medico", metadata,
    Column("id_servicio_medico", Integer, primary_key=True),
    Column("id_cita_medica", Integer, ForeignKey("cita_medica.id_cita_medica"), nullable=False),
    Column("fecha_servicio", Date),
    Column("hora_inicio_servicio", Time),
    Column("hora_fin_servicio", Time),
)

tipo_servicio = Table(
    "tipo_servicio", metadata,
    Column("id_tipo_servicio", Integer, primary_key=True),
    Column("nombre", String(80), nullable=False),
)

consulta_medica = Table(
    "consulta_medica", metadata,
    Column("id_consulta_medica", Integer, primary_key=True),
    Column("id_servicio_medico", Integer, ForeignKey("servicio_medico.id_servicio_medico"), nullable=False),
    Column("id_tipo_servicio", Integer, ForeignKey("tipo_servicio.id_tipo_servicio")),
    Column("motivo_consulta", Text),
)

morbilidad = Table(
    "morbilidad", metadata,
    Column("id_morbilidad", Integer, primary_key=True),
    Column("codigo_cie10", String(10), nullable=False),
    Column("descripcion", String(200)),
)

diagnostico = Table(
    "diagnostico", metadata,
    Column("id_diagnostico", Integer, primary_key=True),
    Column("id_servicio_medico", Integer, ForeignKey("servicio_medico.id_servicio_medico"), nullable=False),
    Column("id_morbilidad", Integer, ForeignKey("morbilidad.id_morbilidad")),
    Column("detalle", Text),
)

tratamiento = Table(
    "tratamiento", metadata,
    Column("id_tratamiento", Integer, primary_key=True),
    Column("id_servicio_medico", Integer, ForeignKey("servicio_medico.id_servicio_medico"), nullable=False),
    Column("descripcion", Text),
)

medicamento_tratamiento = Table(
    "medicamento_tratamiento", metadata,
    Column("id_medicamento_tratamiento", Integer, primary_key=True),
    Column("id_tratamiento", Integer, ForeignKey("tratamiento.id_tratamiento"), nullable=False),
    Column("nombre_medicamento", String(120), nullable=False),
    Column("dosis", String(60)),
    Column("frecuencia", String(60)),
)

examen = Table(
    "examen", metadata,
    Column("id_examen", Integer, primary_key=True),
    Column("id_servicio_medico", Integer, ForeignKey("servicio_medico.id_servicio_medico"), nullable=False),
    Column("tipo_examen", String(80), nullable=False),
    Column("resultado", Text),
)

solicitud = Table(
    "solicitud", metadata,
    Column("id_solicitud", Integer, primary_key=True),
    Column("id_persona", Integer, ForeignKey("persona.id_persona")),
    Column("motivo", String(120)),
    Column("descripcion", Text),
    Column("fecha_solicitud", DateTime),
    Column("estado_solicitud", String(20), nullable=False, default="Pendiente"),
)

portal_users = Table(
    "portal_users", metadata,
    Column("id", Integer, primary_key=True),
    Column("display_name", String(120), nullable=False),
    Column("role", String(20), nullable=False),
    Column("id_persona", Integer, ForeignKey("persona.id_persona")),
    Column("api_key", String(80), nullable=False, unique=True),
    Column("is_active", Boolean, nullable=False, default=True),
)

# Family members a user may act for (the user's own person is implied).
portal_user_profiles = Table(
    "portal_user_profiles", metadata,
    Column("user_id", Integer, ForeignKey("portal_users.id"), primary_key=True),
    Column("id_persona", Integer, ForeignKey("persona.id_persona"), primary_key=True),
)
