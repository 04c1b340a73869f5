"""
Modelos de base de datos (ORM) de las tablas destino.

El pipeline escribe con psycopg directamente; estos modelos existen para
Alembic (DDL de entornos locales y de test) y documentan las claves
naturales que el Upserter asume.
"""
from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func


Base = declarative_base()


def _uuid_pk() -> Column:
    return Column(UUID(as_uuid=True), primary_key=True, server_default=text("gen_random_uuid()"))


class EntrepreneurModel(Base):
    """Emprendedor canonico (lo crea un proceso externo)."""

    __tablename__ = "entrepreneurs"

    id = _uuid_pk()
    name = Column(String(255), nullable=False, index=True)
    email = Column(String(255), nullable=True)
    folder_id = Column(String(255), nullable=True)
    program = Column(String(50), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<Entrepreneur(id={self.id}, name={self.name})>"


class MentorModel(Base):
    """Mentor canonico (lo crea un proceso externo)."""

    __tablename__ = "mentors"

    id = _uuid_pk()
    name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<Mentor(id={self.id}, email={self.email})>"


class SessionModel(Base):
    """
    Sesion de mentoria. Una por (mentor, emprendedor, programa, numero);
    el pipeline la crea si no existe.
    """

    __tablename__ = "sessions"
    __table_args__ = (
        UniqueConstraint(
            "mentor_id", "entrepreneur_id", "program", "session_number",
            name="uq_sessions_mentor_entrepreneur_program_number",
        ),
    )

    id = _uuid_pk()
    mentor_id = Column(UUID(as_uuid=True), ForeignKey("mentors.id"), nullable=False)
    entrepreneur_id = Column(UUID(as_uuid=True), ForeignKey("entrepreneurs.id"), nullable=False)
    program = Column(String(50), nullable=False)
    session_number = Column(Integer, nullable=False)
    session_date = Column(Date, nullable=True)
    status = Column(String(50), nullable=False, server_default="completed")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class ReportModel(Base):
    """Reportes Bangkit y Maju (mismo esquema ancho, columnas por variante)."""

    __tablename__ = "reports"
    __table_args__ = (
        UniqueConstraint("program", "sheets_row_number", name="uq_reports_program_row"),
    )

    id = _uuid_pk()
    program = Column(String(50), nullable=False, index=True)
    mentor_id = Column(UUID(as_uuid=True), ForeignKey("mentors.id"), nullable=True)
    entrepreneur_id = Column(UUID(as_uuid=True), ForeignKey("entrepreneurs.id"), nullable=True)
    session_id = Column(UUID(as_uuid=True), ForeignKey("sessions.id"), nullable=True)
    session_number = Column(Integer, nullable=True)
    session_date = Column(Date, nullable=True)
    submission_date = Column(DateTime(timezone=True), nullable=True)
    status = Column(String(50), nullable=True)
    source = Column(String(50), nullable=True)
    sheets_row_number = Column(Integer, nullable=True)

    # Identidad desnormalizada
    nama_usahawan = Column(Text, nullable=True)
    nama_mentee = Column(Text, nullable=True)
    nama_syarikat = Column(Text, nullable=True)
    nama_bisnes = Column(Text, nullable=True)
    nama_mentor = Column(Text, nullable=True)
    mentor_email = Column(String(255), nullable=True)

    # Sesion
    mod_sesi = Column(Text, nullable=True)
    lokasi_f2f = Column(Text, nullable=True)
    masa_mula = Column(Text, nullable=True)
    masa_tamat = Column(Text, nullable=True)
    mia_status = Column(Text, nullable=True)
    mia_reason = Column(Text, nullable=True)
    mia_proof_url = Column(Text, nullable=True)
    premis_dilawat = Column(Boolean, nullable=True)

    # Contenido
    rumusan = Column(Text, nullable=True)
    kemaskini_inisiatif = Column(Text, nullable=True)
    produk_servis = Column(Text, nullable=True)
    pautan_media_sosial = Column(Text, nullable=True)
    lokasi_bisnes = Column(Text, nullable=True)
    no_telefon = Column(Text, nullable=True)
    latarbelakang_usahawan = Column(Text, nullable=True)
    refleksi_mentor_perasaan = Column(Text, nullable=True)
    refleksi_mentor_komitmen = Column(Text, nullable=True)
    refleksi_mentor_lain = Column(Text, nullable=True)
    status_perniagaan = Column(Text, nullable=True)
    rumusan_langkah_kehadapan = Column(Text, nullable=True)

    # Subestructuras JSONB
    inisiatif = Column(JSONB, nullable=True)
    jualan_terkini = Column(JSONB, nullable=True)
    refleksi = Column(JSONB, nullable=True)
    gw_skor = Column(JSONB, nullable=True)
    image_urls = Column(JSONB, nullable=True)
    data_kewangan_bulanan = Column(JSONB, nullable=True)
    mentoring_findings = Column(JSONB, nullable=True)

    # Documento generado de forma asincrona (ver backfill)
    folder_id = Column(String(255), nullable=True)
    doc_url = Column(Text, nullable=True)
    google_doc_url = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<Report(id={self.id}, program={self.program}, row={self.sheets_row_number})>"


class UpwardMobilityReportModel(Base):
    """Reportes UM: uno por (emprendedor, sesi_mentoring)."""

    __tablename__ = "upward_mobility_reports"
    __table_args__ = (
        UniqueConstraint("entrepreneur_id", "sesi_mentoring", name="uq_um_entrepreneur_sesi"),
    )

    id = _uuid_pk()
    entrepreneur_id = Column(UUID(as_uuid=True), ForeignKey("entrepreneurs.id"), nullable=False)
    mentor_id = Column(UUID(as_uuid=True), ForeignKey("mentors.id"), nullable=True)
    sesi_mentoring = Column(Text, nullable=False)
    report_date = Column(DateTime(timezone=True), nullable=True)
    sheets_row_number = Column(Integer, nullable=True)
    source = Column(String(50), nullable=True)

    program = Column(Text, nullable=True)
    batch = Column(Text, nullable=True)
    jenis_perniagaan = Column(Text, nullable=True)
    status_penglibatan = Column(Text, nullable=True)
    upward_mobility_status = Column(Text, nullable=True)
    kriteria_improvement = Column(Text, nullable=True)
    tarikh_lawatan = Column(Date, nullable=True)

    penggunaan_akaun_semasa = Column(Text, nullable=True)
    penggunaan_bimb_biz = Column(Text, nullable=True)
    buka_akaun_al_awfar = Column(Text, nullable=True)
    penggunaan_bimb_merchant = Column(Text, nullable=True)
    lain_lain_fasiliti = Column(Text, nullable=True)
    langgan_mesin_kira = Column(Text, nullable=True)

    pendapatan_sebelum = Column(Numeric(14, 2), nullable=True)
    pendapatan_selepas = Column(Numeric(14, 2), nullable=True)
    ulasan_pendapatan = Column(Text, nullable=True)
    pekerjaan_sebelum = Column(Integer, nullable=True)
    pekerjaan_selepas = Column(Integer, nullable=True)
    ulasan_pekerjaan = Column(Text, nullable=True)
    aset_bukan_tunai_sebelum = Column(Numeric(14, 2), nullable=True)
    aset_bukan_tunai_selepas = Column(Numeric(14, 2), nullable=True)
    aset_tunai_sebelum = Column(Numeric(14, 2), nullable=True)
    aset_tunai_selepas = Column(Numeric(14, 2), nullable=True)
    ulasan_aset = Column(Text, nullable=True)
    simpanan_sebelum = Column(Numeric(14, 2), nullable=True)
    simpanan_selepas = Column(Numeric(14, 2), nullable=True)
    ulasan_simpanan = Column(Text, nullable=True)
    zakat_sebelum = Column(Numeric(14, 2), nullable=True)
    zakat_selepas = Column(Numeric(14, 2), nullable=True)
    ulasan_zakat = Column(Text, nullable=True)
    digital_sebelum = Column(JSONB, nullable=True)
    digital_selepas = Column(JSONB, nullable=True)
    ulasan_digital = Column(Text, nullable=True)
    online_sales_sebelum = Column(JSONB, nullable=True)
    online_sales_selepas = Column(JSONB, nullable=True)
    ulasan_online_sales = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class DualWriteLogModel(Base):
    """Registro append-only de escrituras que no llegaron a ambos lados."""

    __tablename__ = "dual_write_logs"

    id = Column(Integer, primary_key=True, index=True)
    operation_type = Column(String(50), nullable=False)
    table_name = Column(String(100), nullable=False, index=True)
    record_id = Column(Text, nullable=True)
    program = Column(String(50), nullable=True)
    user_email = Column(String(255), nullable=True)
    sheets_success = Column(Boolean, nullable=True)
    sheets_error = Column(Text, nullable=True)
    supabase_success = Column(Boolean, nullable=True)
    supabase_error = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
