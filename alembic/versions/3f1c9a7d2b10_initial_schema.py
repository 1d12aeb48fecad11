"""initial schema: casos, sugerencias, resoluciones, notificaciones

Revision ID: 3f1c9a7d2b10
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '3f1c9a7d2b10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


app_role = postgresql.ENUM('admin', 'medico', 'medico_jefe', name='app_role', create_type=False)
estado_caso = postgresql.ENUM('pendiente', 'aceptado', 'rechazado', 'derivado', name='estado_caso', create_type=False)
estado_aseguradora = postgresql.ENUM('pendiente', 'pendiente_envio', 'aceptada', 'rechazada', name='estado_aseguradora', create_type=False)
sugerencia_tipo = postgresql.ENUM('aceptar', 'rechazar', 'incierto', name='sugerencia_tipo', create_type=False)
decision_tipo = postgresql.ENUM('aceptado', 'rechazado', name='decision_tipo', create_type=False)
tipo_notificacion = postgresql.ENUM('caso_derivado', 'caso_resuelto', name='tipo_notificacion', create_type=False)

_ENUMS = (app_role, estado_caso, estado_aseguradora, sugerencia_tipo, decision_tipo, tipo_notificacion)


def upgrade() -> None:
    bind = op.get_bind()
    for enum_type in _ENUMS:
        enum_type.create(bind, checkfirst=True)

    op.create_table('user_roles',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('user_id', sa.UUID(), nullable=False, comment='ID del usuario en el proveedor de identidad (claim sub)'),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('nombre', sa.String(length=200), nullable=False),
        sa.Column('role', app_role, nullable=False),
        sa.Column('especialidad', sa.String(length=100), nullable=True),
        sa.Column('hospital', sa.String(length=200), nullable=True),
        sa.Column('genero', sa.String(length=20), nullable=True, comment='masculino, femenino u otro'),
        sa.Column('telefono', sa.String(length=30), nullable=True),
        sa.Column('last_access_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_user_roles_user_id', 'user_roles', ['user_id'], unique=True)

    op.create_table('casos',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('episodio', sa.String(length=50), nullable=False, comment='Número de episodio hospitalario. No es único.'),
        sa.Column('center', sa.String(length=200), nullable=True),
        sa.Column('admitted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('patient_name', sa.String(length=200), nullable=False),
        sa.Column('patient_age', sa.Integer(), nullable=False),
        sa.Column('patient_sex', sa.String(length=10), nullable=False),
        sa.Column('patient_email', sa.String(length=255), nullable=False),
        sa.Column('prevision', sa.String(length=50), nullable=True, comment='Familia de aseguradora: Fonasa, Isapre, etc.'),
        sa.Column('insurer_name', sa.String(length=100), nullable=True, comment='Nombre de la Isapre (solo si prevision=Isapre)'),
        sa.Column('primary_diagnosis', sa.Text(), nullable=False),
        sa.Column('symptoms', sa.Text(), nullable=True),
        sa.Column('clinical_history', sa.Text(), nullable=True),
        sa.Column('additional_description', sa.Text(), nullable=True),
        sa.Column('systolic_bp', sa.Integer(), nullable=True),
        sa.Column('diastolic_bp', sa.Integer(), nullable=True),
        sa.Column('mean_arterial_pressure', sa.Integer(), nullable=True),
        sa.Column('heart_rate', sa.Integer(), nullable=True),
        sa.Column('respiratory_rate', sa.Integer(), nullable=True),
        sa.Column('temperature_c', sa.Float(), nullable=True),
        sa.Column('spo2', sa.Integer(), nullable=True),
        sa.Column('glasgow', sa.Integer(), nullable=True),
        sa.Column('triage', sa.String(length=10), nullable=True),
        sa.Column('bed_type', sa.String(length=50), nullable=True),
        sa.Column('mechanical_ventilation', sa.Boolean(), nullable=True),
        sa.Column('vasoactive_drugs', sa.Boolean(), nullable=True),
        sa.Column('altered_consciousness', sa.Boolean(), nullable=True),
        sa.Column('altered_ecg', sa.Boolean(), nullable=True),
        sa.Column('altered_troponins', sa.Boolean(), nullable=True),
        sa.Column('estado', estado_caso, nullable=False),
        sa.Column('treating_physician_id', sa.UUID(), nullable=False, comment='Médico tratante que creó el caso (inmutable)'),
        sa.Column('chief_physician_id', sa.UUID(), nullable=True, comment='Médico jefe que tomó o resolvió el caso'),
        sa.Column('insurer_resolution_state', estado_aseguradora, nullable=True, comment='Solo significativo cuando estado=aceptado'),
        sa.Column('suggestion_version', sa.Integer(), nullable=False, comment='Versión de la sugerencia vigente en sugerencia_ia'),
        sa.Column('ai_analyzed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('edited_after_decision', sa.Boolean(), nullable=False, comment='Aviso: datos clínicos editados después de la evaluación'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_casos_episodio', 'casos', ['episodio'])
    op.create_index('ix_casos_treating_physician_id', 'casos', ['treating_physician_id'])
    op.create_index('ix_casos_chief_physician_id', 'casos', ['chief_physician_id'])
    op.create_index('idx_casos_estado', 'casos', ['estado'])
    op.create_index('idx_casos_episodio_estado', 'casos', ['episodio', 'estado'])
    op.create_index('idx_casos_created', 'casos', ['created_at'])

    op.create_table('sugerencia_ia',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('case_id', sa.UUID(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('sugerencia', sugerencia_tipo, nullable=False),
        sa.Column('confianza', sa.Integer(), nullable=False, comment='Confianza 0-100'),
        sa.Column('explicacion', sa.Text(), nullable=True),
        sa.Column('method', sa.String(length=50), nullable=False, comment='Generador que produjo la sugerencia'),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['case_id'], ['casos.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('case_id', 'version', name='uq_sugerencia_caso_version'),
    )
    op.create_index('ix_sugerencia_ia_case_id', 'sugerencia_ia', ['case_id'])

    op.create_table('resolucion_caso',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('case_id', sa.UUID(), nullable=False),
        sa.Column('decision_medico', decision_tipo, nullable=True),
        sa.Column('comentario_medico', sa.Text(), nullable=True),
        sa.Column('fecha_decision_medico', sa.DateTime(timezone=True), nullable=True),
        sa.Column('decision_final', decision_tipo, nullable=True, comment='Presente exactamente cuando el caso está aceptado o rechazado'),
        sa.Column('comentario_final', sa.Text(), nullable=True),
        sa.Column('fecha_decision_medico_jefe', sa.DateTime(timezone=True), nullable=True),
        sa.Column('comentario_email', sa.Text(), nullable=True, comment='Comentario adicional enviado al paciente'),
        sa.ForeignKeyConstraint(['case_id'], ['casos.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('case_id'),
    )

    op.create_table('notificaciones',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('user_id', sa.UUID(), nullable=True, comment='Destinatario. Nulo = pool de médicos jefe'),
        sa.Column('case_id', sa.UUID(), nullable=True),
        sa.Column('tipo', tipo_notificacion, nullable=False),
        sa.Column('titulo', sa.String(length=200), nullable=False),
        sa.Column('mensaje', sa.Text(), nullable=False),
        sa.Column('leido', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('read_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['case_id'], ['casos.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_notificaciones_user_created', 'notificaciones', ['user_id', 'created_at'])

    op.create_table('comunicaciones_paciente',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('case_id', sa.UUID(), nullable=False),
        sa.Column('resultado', decision_tipo, nullable=False),
        sa.Column('explicacion', sa.Text(), nullable=False),
        sa.Column('recipient_email', sa.String(length=255), nullable=True),
        sa.Column('enviada', sa.Boolean(), nullable=False),
        sa.Column('fecha_envio', sa.DateTime(timezone=True), nullable=True),
        sa.Column('provider_message_id', sa.String(length=100), nullable=True),
        sa.Column('created_by', sa.UUID(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['case_id'], ['casos.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_comunicaciones_paciente_case_id', 'comunicaciones_paciente', ['case_id'])

    op.create_table('caso_edicion_snapshot',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('case_id', sa.UUID(), nullable=False),
        sa.Column('case_data', postgresql.JSONB(astext_type=sa.Text()), nullable=False, comment='Campos clínicos previos a la edición'),
        sa.Column('suggestion_data', postgresql.JSONB(astext_type=sa.Text()), nullable=True, comment='Sugerencia vigente antes de la edición'),
        sa.Column('created_by', sa.UUID(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['case_id'], ['casos.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('case_id'),
    )

    op.create_table('audit_log',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('user_id', sa.UUID(), nullable=True),
        sa.Column('entity', sa.String(length=50), nullable=False, comment='Nombre de la entidad: case, resolution, user, etc.'),
        sa.Column('entity_id', sa.String(length=36), nullable=False, comment='UUID del registro afectado'),
        sa.Column('action', sa.String(length=30), nullable=False, comment='create, update, decide, escalate, cancel_edit, delete, etc.'),
        sa.Column('old_data', postgresql.JSONB(astext_type=sa.Text()), nullable=True, comment='Snapshot del registro antes del cambio'),
        sa.Column('new_data', postgresql.JSONB(astext_type=sa.Text()), nullable=True, comment='Snapshot del registro después del cambio'),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_audit_log_user_id', 'audit_log', ['user_id'])
    op.create_index('ix_audit_log_entity', 'audit_log', ['entity'])
    op.create_index('ix_audit_log_action', 'audit_log', ['action'])


def downgrade() -> None:
    op.drop_table('audit_log')
    op.drop_table('caso_edicion_snapshot')
    op.drop_table('comunicaciones_paciente')
    op.drop_table('notificaciones')
    op.drop_table('resolucion_caso')
    op.drop_table('sugerencia_ia')
    op.drop_table('casos')
    op.drop_table('user_roles')

    bind = op.get_bind()
    for enum_type in reversed(_ENUMS):
        enum_type.drop(bind, checkfirst=True)
