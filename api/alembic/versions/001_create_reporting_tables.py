"""create_reporting_tables

Revision ID: 001
Revises:
Create Date: 2026-10-05 09:12:40.118204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _uuid_pk() -> sa.Column:
    return sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False)


def _timestamps() -> list:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    ]


def _text_columns(*names: str) -> list:
    return [sa.Column(name, sa.Text(), nullable=True) for name in names]


def _money_columns(*names: str) -> list:
    return [sa.Column(name, sa.Numeric(14, 2), nullable=True) for name in names]


def _jsonb_columns(*names: str) -> list:
    return [sa.Column(name, postgresql.JSONB(), nullable=True) for name in names]


def upgrade() -> None:
    """Upgrade schema."""
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    if not inspector.has_table('entrepreneurs'):
        op.create_table('entrepreneurs',
        _uuid_pk(),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('folder_id', sa.String(length=255), nullable=True),
        sa.Column('program', sa.String(length=50), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_entrepreneurs_name'), 'entrepreneurs', ['name'], unique=False)

    if not inspector.has_table('mentors'):
        op.create_table('mentors',
        _uuid_pk(),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_mentors_email'), 'mentors', ['email'], unique=True)

    if not inspector.has_table('sessions'):
        op.create_table('sessions',
        _uuid_pk(),
        sa.Column('mentor_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('entrepreneur_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('program', sa.String(length=50), nullable=False),
        sa.Column('session_number', sa.Integer(), nullable=False),
        sa.Column('session_date', sa.Date(), nullable=True),
        sa.Column('status', sa.String(length=50), server_default='completed', nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['mentor_id'], ['mentors.id']),
        sa.ForeignKeyConstraint(['entrepreneur_id'], ['entrepreneurs.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('mentor_id', 'entrepreneur_id', 'program', 'session_number',
                            name='uq_sessions_mentor_entrepreneur_program_number')
        )

    if not inspector.has_table('reports'):
        op.create_table('reports',
        _uuid_pk(),
        sa.Column('program', sa.String(length=50), nullable=False),
        sa.Column('mentor_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('entrepreneur_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('session_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('session_number', sa.Integer(), nullable=True),
        sa.Column('session_date', sa.Date(), nullable=True),
        sa.Column('submission_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('status', sa.String(length=50), nullable=True),
        sa.Column('source', sa.String(length=50), nullable=True),
        sa.Column('sheets_row_number', sa.Integer(), nullable=True),
        sa.Column('mentor_email', sa.String(length=255), nullable=True),
        sa.Column('premis_dilawat', sa.Boolean(), nullable=True),
        sa.Column('folder_id', sa.String(length=255), nullable=True),
        *_text_columns(
            'nama_usahawan', 'nama_mentee', 'nama_syarikat', 'nama_bisnes', 'nama_mentor',
            'mod_sesi', 'lokasi_f2f', 'masa_mula', 'masa_tamat',
            'mia_status', 'mia_reason', 'mia_proof_url',
            'rumusan', 'kemaskini_inisiatif', 'produk_servis', 'pautan_media_sosial',
            'lokasi_bisnes', 'no_telefon', 'latarbelakang_usahawan',
            'refleksi_mentor_perasaan', 'refleksi_mentor_komitmen', 'refleksi_mentor_lain',
            'status_perniagaan', 'rumusan_langkah_kehadapan',
            'doc_url', 'google_doc_url',
        ),
        *_jsonb_columns(
            'inisiatif', 'jualan_terkini', 'refleksi', 'gw_skor', 'image_urls',
            'data_kewangan_bulanan', 'mentoring_findings',
        ),
        *_timestamps(),
        sa.ForeignKeyConstraint(['mentor_id'], ['mentors.id']),
        sa.ForeignKeyConstraint(['entrepreneur_id'], ['entrepreneurs.id']),
        sa.ForeignKeyConstraint(['session_id'], ['sessions.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('program', 'sheets_row_number', name='uq_reports_program_row')
        )
        op.create_index(op.f('ix_reports_program'), 'reports', ['program'], unique=False)

    if not inspector.has_table('upward_mobility_reports'):
        op.create_table('upward_mobility_reports',
        _uuid_pk(),
        sa.Column('entrepreneur_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('mentor_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('sesi_mentoring', sa.Text(), nullable=False),
        sa.Column('report_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('sheets_row_number', sa.Integer(), nullable=True),
        sa.Column('source', sa.String(length=50), nullable=True),
        sa.Column('tarikh_lawatan', sa.Date(), nullable=True),
        sa.Column('pekerjaan_sebelum', sa.Integer(), nullable=True),
        sa.Column('pekerjaan_selepas', sa.Integer(), nullable=True),
        *_text_columns(
            'program', 'batch', 'jenis_perniagaan', 'status_penglibatan',
            'upward_mobility_status', 'kriteria_improvement',
            'penggunaan_akaun_semasa', 'penggunaan_bimb_biz', 'buka_akaun_al_awfar',
            'penggunaan_bimb_merchant', 'lain_lain_fasiliti', 'langgan_mesin_kira',
            'ulasan_pendapatan', 'ulasan_pekerjaan', 'ulasan_aset', 'ulasan_simpanan',
            'ulasan_zakat', 'ulasan_digital', 'ulasan_online_sales',
        ),
        *_money_columns(
            'pendapatan_sebelum', 'pendapatan_selepas',
            'aset_bukan_tunai_sebelum', 'aset_bukan_tunai_selepas',
            'aset_tunai_sebelum', 'aset_tunai_selepas',
            'simpanan_sebelum', 'simpanan_selepas',
            'zakat_sebelum', 'zakat_selepas',
        ),
        *_jsonb_columns('digital_sebelum', 'digital_selepas', 'online_sales_sebelum', 'online_sales_selepas'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['mentor_id'], ['mentors.id']),
        sa.ForeignKeyConstraint(['entrepreneur_id'], ['entrepreneurs.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('entrepreneur_id', 'sesi_mentoring', name='uq_um_entrepreneur_sesi')
        )

    if not inspector.has_table('dual_write_logs'):
        op.create_table('dual_write_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('operation_type', sa.String(length=50), nullable=False),
        sa.Column('table_name', sa.String(length=100), nullable=False),
        sa.Column('record_id', sa.Text(), nullable=True),
        sa.Column('program', sa.String(length=50), nullable=True),
        sa.Column('user_email', sa.String(length=255), nullable=True),
        sa.Column('sheets_success', sa.Boolean(), nullable=True),
        sa.Column('sheets_error', sa.Text(), nullable=True),
        sa.Column('supabase_success', sa.Boolean(), nullable=True),
        sa.Column('supabase_error', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_dual_write_logs_id'), 'dual_write_logs', ['id'], unique=False)
        op.create_index(op.f('ix_dual_write_logs_table_name'), 'dual_write_logs', ['table_name'], unique=False)
        op.create_index(op.f('ix_dual_write_logs_created_at'), 'dual_write_logs', ['created_at'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    for table in ('dual_write_logs', 'upward_mobility_reports', 'reports', 'sessions', 'mentors', 'entrepreneurs'):
        if inspector.has_table(table):
            op.drop_table(table)
