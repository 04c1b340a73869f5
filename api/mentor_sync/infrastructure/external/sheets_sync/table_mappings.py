"""
Layout de columnas por variante de reporte (Sheets -> Postgres).

Aqui se controla:
- que columna logica corresponde a que header/posicion de la pestana
- que columnas planas se copian a Postgres y con que transformacion
- que columnas forman la identidad obligatoria de una fila

Cada ColumnSpec declara la posicion esperada y aliases priorizados; el
ColumnAccessor resuelve la columna real en cada corrida, asi un header
renombrado o con sufijos no rompe el mapeo.
"""

from __future__ import annotations

from mentor_sync.core.config import Settings
from mentor_sync.shared.constants.sync_constants import Program, Table

from .field_parsers import (
    parse_integer,
    parse_local_date,
    parse_numeric,
    split_multi_value,
)
from .sync_config import ReportSyncConfig
from .types import ColumnSpec, FieldMapping

MONTHS = ("Jan", "Feb", "Mac", "Apr", "Mei", "Jun", "Jul", "Ogos", "Sep", "Okt", "Nov", "Dis")


def _text(value):
    return value or None


# ---------------------------------------------------------------------------
# Bangkit (pestana V8): layout posicional con headers cortos
# ---------------------------------------------------------------------------
class BangkitColumns:
    TIMESTAMP = ColumnSpec("Timestamp", 0)
    MENTOR_EMAIL = ColumnSpec("Emai", 1, ("Email", "Email Address", "Emel"))
    STATUS_SESI = ColumnSpec("Status Sesi", 2)
    SESI_LAPORAN = ColumnSpec("Sesi Laporan", 3)
    TARIKH_SESI = ColumnSpec("Tarikh Sesi", 4)
    MASA_SESI = ColumnSpec("Masa Sesi", 5)
    MOD_SESI = ColumnSpec("Mod Sesi", 6)
    NAMA_USAHAWAN = ColumnSpec("Nama Usahawan", 7)
    NAMA_BISNES = ColumnSpec("Nama Bisnes", 8)
    NAMA_MENTOR = ColumnSpec("Nama Mentor", 9)
    KEMASKINI_INISIATIF = ColumnSpec("Update Keputusan Terdahulu 1", 10)
    RINGKASAN_SESI = ColumnSpec("Ringkasan Sesi", 11)
    LINK_GAMBAR = ColumnSpec("Link Gambar", 36)
    PRODUK_SERVIS = ColumnSpec("Produk/Servis", 37)
    PAUTAN_MEDIA_SOSIAL = ColumnSpec("Pautan Media Sosial", 38)
    LINK_GROWTHWHEEL = ColumnSpec("Link_Carta_GrowthWheel", 39)
    LINK_BUKTI_MIA = ColumnSpec("Link_Bukti_MIA", 40)
    PANDUAN_PEMERHATIAN = ColumnSpec("Panduan_Pemerhatian_Mentor", 41)
    REFLEKSI_PERASAAN = ColumnSpec("Refleksi_Perasaan", 42)
    REFLEKSI_SKOR = ColumnSpec("Refleksi_Skor", 43)
    REFLEKSI_ALASAN_SKOR = ColumnSpec("Refleksi_Alasan_Skor", 44)
    REFLEKSI_ELIMINATE = ColumnSpec("Refleksi_Eliminate", 45)
    REFLEKSI_RAISE = ColumnSpec("Refleksi_Raise", 46)
    REFLEKSI_REDUCE = ColumnSpec("Refleksi_Reduce", 47)
    REFLEKSI_CREATE = ColumnSpec("Refleksi_Create", 48)
    LINK_PROFIL = ColumnSpec("Link_Gambar_Profil", 49)
    LINK_PREMIS = ColumnSpec("Link_Gambar_Premis", 50)
    PREMIS_DILAWAT = ColumnSpec("Premis_Dilawat_Checked", 51)
    DOC_URL = ColumnSpec("DOC_URL", 53, ("Doc_URL", "Google Doc URL"))

    GW_SCORE_PREFIX = "GW_Skor"
    GW_SCORE_START = 54

    INITIATIVE_START = 12
    INITIATIVE_BLOCKS = 4
    SALES_START = 24

    @classmethod
    def initiative(cls, n: int) -> tuple[ColumnSpec, ColumnSpec, ColumnSpec]:
        """Bloque n (1..4): Fokus Area, Keputusan, Cadangan Tindakan."""
        base = cls.INITIATIVE_START + (n - 1) * 3
        return (
            ColumnSpec(f"Fokus Area {n}", base),
            ColumnSpec(f"Keputusan {n}", base + 1),
            ColumnSpec(f"Cadangan Tindakan {n}", base + 2, (f"Pelan Tindakan {n}",)),
        )

    @classmethod
    def monthly_sales(cls) -> tuple[ColumnSpec, ...]:
        return tuple(
            ColumnSpec(f"Jualan {month}", cls.SALES_START + i)
            for i, month in enumerate(MONTHS)
        )


BANGKIT_FIELD_MAPPINGS: list[FieldMapping] = [
    FieldMapping(BangkitColumns.NAMA_USAHAWAN, "nama_usahawan", _text),
    FieldMapping(BangkitColumns.NAMA_BISNES, "nama_syarikat", _text),
    FieldMapping(BangkitColumns.NAMA_BISNES, "nama_bisnes", _text),
    FieldMapping(BangkitColumns.NAMA_MENTOR, "nama_mentor", _text),
    FieldMapping(BangkitColumns.MENTOR_EMAIL, "mentor_email", _text),
    FieldMapping(BangkitColumns.MOD_SESI, "mod_sesi", _text),
    FieldMapping(BangkitColumns.MASA_SESI, "masa_mula", _text),
    FieldMapping(BangkitColumns.RINGKASAN_SESI, "rumusan", _text),
    FieldMapping(BangkitColumns.KEMASKINI_INISIATIF, "kemaskini_inisiatif", _text),
    FieldMapping(BangkitColumns.PRODUK_SERVIS, "produk_servis", _text),
    FieldMapping(BangkitColumns.PAUTAN_MEDIA_SOSIAL, "pautan_media_sosial", _text),
    FieldMapping(BangkitColumns.DOC_URL, "doc_url", _text),
    FieldMapping(BangkitColumns.DOC_URL, "google_doc_url", _text),
]


# ---------------------------------------------------------------------------
# Maju (pestana LaporanMaju): headers en MAYUSCULAS generados por el backend
# ---------------------------------------------------------------------------
class MajuColumns:
    TIMESTAMP = ColumnSpec("Timestamp", 0)
    NAMA_MENTOR = ColumnSpec("NAMA_MENTOR", 1)
    EMAIL_MENTOR = ColumnSpec("EMAIL_MENTOR", 2)
    NAMA_MENTEE = ColumnSpec("NAMA_MENTEE", 3)
    NAMA_BISNES = ColumnSpec("NAMA_BISNES", 4)
    LOKASI_BISNES = ColumnSpec("LOKASI_BISNES", 5)
    PRODUK_SERVIS = ColumnSpec("PRODUK_SERVIS", 6)
    NO_TELEFON = ColumnSpec("NO_TELEFON", 7)
    TARIKH_SESI = ColumnSpec("TARIKH_SESI", 8)
    SESI_NUMBER = ColumnSpec("SESI_NUMBER", 9)
    MOD_SESI = ColumnSpec("MOD_SESI", 10)
    LOKASI_F2F = ColumnSpec("LOKASI_F2F", 11)
    MASA_MULA = ColumnSpec("MASA_MULA", 12)
    MASA_TAMAT = ColumnSpec("MASA_TAMAT", 13)
    LATARBELAKANG_USAHAWAN = ColumnSpec("LATARBELAKANG_USAHAWAN", 14)
    DATA_KEWANGAN = ColumnSpec("DATA_KEWANGAN_BULANAN_JSON", 15)
    MENTORING_FINDINGS = ColumnSpec("MENTORING_FINDINGS_JSON", 16)
    REFLEKSI_PERASAAN = ColumnSpec("REFLEKSI_MENTOR_PERASAAN", 17)
    REFLEKSI_KOMITMEN = ColumnSpec("REFLEKSI_MENTOR_KOMITMEN", 18)
    REFLEKSI_LAIN = ColumnSpec("REFLEKSI_MENTOR_LAIN", 19)
    STATUS_PERNIAGAAN = ColumnSpec("STATUS_PERNIAGAAN_KESELURUHAN", 20)
    RUMUSAN_LANGKAH = ColumnSpec("RUMUSAN_DAN_LANGKAH_KEHADAPAN", 21)
    GAMBAR_PREMIS = ColumnSpec("URL_GAMBAR_PREMIS_JSON", 22)
    GAMBAR_SESI = ColumnSpec("URL_GAMBAR_SESI_JSON", 23)
    GAMBAR_GW360 = ColumnSpec("URL_GAMBAR_GW360", 24)
    MENTEE_FOLDER_ID = ColumnSpec("Mentee_Folder_ID", 25)
    DOC_ID = ColumnSpec("Laporan_Maju_Doc_ID", 26)
    MIA_STATUS = ColumnSpec("MIA_STATUS", 27)
    MIA_REASON = ColumnSpec("MIA_REASON", 28)
    MIA_PROOF_URL = ColumnSpec("MIA_PROOF_URL", 29)


MAJU_FIELD_MAPPINGS: list[FieldMapping] = [
    FieldMapping(MajuColumns.NAMA_MENTEE, "nama_mentee", _text),
    FieldMapping(MajuColumns.NAMA_MENTEE, "nama_usahawan", _text),
    FieldMapping(MajuColumns.NAMA_BISNES, "nama_bisnes", _text),
    FieldMapping(MajuColumns.NAMA_BISNES, "nama_syarikat", _text),
    FieldMapping(MajuColumns.NAMA_MENTOR, "nama_mentor", _text),
    FieldMapping(MajuColumns.EMAIL_MENTOR, "mentor_email", _text),
    FieldMapping(MajuColumns.LOKASI_BISNES, "lokasi_bisnes", _text),
    FieldMapping(MajuColumns.PRODUK_SERVIS, "produk_servis", _text),
    FieldMapping(MajuColumns.NO_TELEFON, "no_telefon", _text),
    FieldMapping(MajuColumns.MOD_SESI, "mod_sesi", _text),
    FieldMapping(MajuColumns.LOKASI_F2F, "lokasi_f2f", _text),
    FieldMapping(MajuColumns.MASA_MULA, "masa_mula", _text),
    FieldMapping(MajuColumns.MASA_TAMAT, "masa_tamat", _text),
    FieldMapping(MajuColumns.LATARBELAKANG_USAHAWAN, "latarbelakang_usahawan", _text),
    FieldMapping(MajuColumns.REFLEKSI_PERASAAN, "refleksi_mentor_perasaan", _text),
    FieldMapping(MajuColumns.REFLEKSI_KOMITMEN, "refleksi_mentor_komitmen", _text),
    FieldMapping(MajuColumns.REFLEKSI_LAIN, "refleksi_mentor_lain", _text),
    FieldMapping(MajuColumns.STATUS_PERNIAGAAN, "status_perniagaan", _text),
    FieldMapping(MajuColumns.RUMUSAN_LANGKAH, "rumusan_langkah_kehadapan", _text),
    FieldMapping(MajuColumns.MENTEE_FOLDER_ID, "folder_id", _text),
    FieldMapping(MajuColumns.DOC_ID, "doc_url", _text),
    FieldMapping(MajuColumns.DOC_ID, "google_doc_url", _text),
]


# ---------------------------------------------------------------------------
# Upward Mobility (pestana UM): headers de Google Forms con sufijos largos
# ---------------------------------------------------------------------------
class UMColumns:
    TIMESTAMP = ColumnSpec("Timestamp", 0)
    EMAIL = ColumnSpec("Email Address", 1, ("Email",))
    PROGRAM = ColumnSpec("Program", 2)
    BATCH = ColumnSpec("Batch", 3)
    SESI_MENTORING = ColumnSpec("Sesi Mentoring", 4)
    NAMA_MENTOR = ColumnSpec("Nama Mentor", 5)
    NAMA_USAHAWAN = ColumnSpec("Nama Penuh Usahawan", 6)
    NAMA_PERNIAGAAN = ColumnSpec("Nama Penuh Perniagaan", 7)
    JENIS_PERNIAGAAN = ColumnSpec("Jenis Perniagaan", 8)
    ALAMAT_PERNIAGAAN = ColumnSpec("Alamat Perniagaan", 9)
    NOMBOR_TELEFON = ColumnSpec("Nombor Telefon", 10)
    STATUS_PENGLIBATAN = ColumnSpec("Status Penglibatan", 11)
    UPWARD_MOBILITY_STATUS = ColumnSpec("Upward Mobility Status", 12)
    KRITERIA_IMPROVEMENT = ColumnSpec("Jika G1 atau G2 atau G3", 13, ("Kriteria Improvement",))
    TARIKH_LAWATAN = ColumnSpec("Tarikh lawatan ke premis", 14)
    AKAUN_SEMASA = ColumnSpec("1. Penggunaan Akaun Semasa", 15, ("Penggunaan Akaun Semasa",))
    BIMB_BIZ = ColumnSpec("2. Penggunaan BIMB Biz", 16, ("Penggunaan BIMB Biz",))
    AL_AWFAR = ColumnSpec("3. Buka akaun Al-Awfar", 17, ("Buka akaun Al-Awfar",))
    BIMB_MERCHANT = ColumnSpec("4. Penggunaan BIMB Merchant", 18, ("Penggunaan BIMB Merchant",))
    LAIN_LAIN_FASILITI = ColumnSpec("5. Lain-lain Fasiliti", 19, ("Lain-lain Fasiliti",))
    MESIN_KIRA = ColumnSpec(
        "6. Melanggan aplikasi MesinKira", 20, ("Langgan aplikasi MesinKira",)
    )
    PENDAPATAN_SEBELUM = ColumnSpec("Jumlah Pendapatan (Sebelum)", 21)
    PENDAPATAN_SELEPAS = ColumnSpec("Jumlah Pendapatan (Selepas)", 22)
    ULASAN_PENDAPATAN = ColumnSpec("Ulasan Mentor (Jumlah Pendapatan)", 23)
    PEKERJAAN_SEBELUM = ColumnSpec("Peluang Pekerjaan (Sebelum)", 24)
    PEKERJAAN_SELEPAS = ColumnSpec("Peluang Pekerjaan (Selepas)", 25)
    ULASAN_PEKERJAAN = ColumnSpec("Ulasan Mentor (Peluang Pekerjaan)", 26)
    ASET_BUKAN_TUNAI_SEBELUM = ColumnSpec("Nilai Aset Bukan Tunai (Sebelum)", 27)
    ASET_BUKAN_TUNAI_SELEPAS = ColumnSpec("Nilai Aset Bukan Tunai (Selepas)", 28)
    ASET_TUNAI_SEBELUM = ColumnSpec("Nilai Aset Bentuk Tunai (Sebelum)", 29)
    ASET_TUNAI_SELEPAS = ColumnSpec("Nilai Aset Bentuk Tunai (Selepas)", 30)
    ULASAN_ASET = ColumnSpec("Ulasan Mentor (Nilai Aset)", 31)
    SIMPANAN_SEBELUM = ColumnSpec(
        "Simpanan Perniagaan (Savings). (Sebelum)", 32, ("Simpanan Perniagaan (Sebelum)",)
    )
    SIMPANAN_SELEPAS = ColumnSpec(
        "Simpanan Perniagaan (Savings). (Selepas)", 33, ("Simpanan Perniagaan (Selepas)",)
    )
    ULASAN_SIMPANAN = ColumnSpec("Ulasan Mentor (Simpanan)", 34)
    ZAKAT_SEBELUM = ColumnSpec(
        "Pembayaran Zakat Perniagaan. (Sebelum)", 35, ("Pembayaran Zakat Perniagaan (Sebelum)",)
    )
    ZAKAT_SELEPAS = ColumnSpec(
        "Pembayaran Zakat Perniagaan. (Selepas)", 36, ("Pembayaran Zakat Perniagaan (Selepas)",)
    )
    ULASAN_ZAKAT = ColumnSpec("Ulasan Mentor (Pembayaran Zakat", 37)
    DIGITAL_SEBELUM = ColumnSpec("Penggunaan Digital (Digitalization) - Sebelum", 38)
    DIGITAL_SELEPAS = ColumnSpec("Penggunaan Digital (Digitalization) - Selepas", 39)
    ULASAN_DIGITAL = ColumnSpec("Ulasan Mentor (Penggunaan Digital)", 40)
    ONLINE_SALES_SEBELUM = ColumnSpec(
        "Jualan dan Pemasaran Dalam Talian (Online Sales/Marketing) - Sebelum", 41
    )
    ONLINE_SALES_SELEPAS = ColumnSpec(
        "Jualan dan Pemasaran Dalam Talian (Online Sales/Marketing) - Selepas", 42
    )
    ULASAN_ONLINE_SALES = ColumnSpec("Ulasan Mentor (Jualan dan Pemasaran", 43)


UM_FIELD_MAPPINGS: list[FieldMapping] = [
    FieldMapping(UMColumns.PROGRAM, "program", _text, default="iTEKAD BangKIT"),
    FieldMapping(UMColumns.BATCH, "batch", _text),
    FieldMapping(UMColumns.JENIS_PERNIAGAAN, "jenis_perniagaan", _text),
    FieldMapping(UMColumns.STATUS_PENGLIBATAN, "status_penglibatan", _text),
    FieldMapping(UMColumns.UPWARD_MOBILITY_STATUS, "upward_mobility_status", _text),
    FieldMapping(UMColumns.KRITERIA_IMPROVEMENT, "kriteria_improvement", _text),
    FieldMapping(UMColumns.TARIKH_LAWATAN, "tarikh_lawatan", parse_local_date),
    # Fasilidades bancarias: texto Ya/Tidak tal cual
    FieldMapping(UMColumns.AKAUN_SEMASA, "penggunaan_akaun_semasa", _text),
    FieldMapping(UMColumns.BIMB_BIZ, "penggunaan_bimb_biz", _text),
    FieldMapping(UMColumns.AL_AWFAR, "buka_akaun_al_awfar", _text),
    FieldMapping(UMColumns.BIMB_MERCHANT, "penggunaan_bimb_merchant", _text),
    FieldMapping(UMColumns.LAIN_LAIN_FASILITI, "lain_lain_fasiliti", _text),
    FieldMapping(UMColumns.MESIN_KIRA, "langgan_mesin_kira", _text),
    # Metricas antes/despues
    FieldMapping(UMColumns.PENDAPATAN_SEBELUM, "pendapatan_sebelum", parse_numeric),
    FieldMapping(UMColumns.PENDAPATAN_SELEPAS, "pendapatan_selepas", parse_numeric),
    FieldMapping(UMColumns.ULASAN_PENDAPATAN, "ulasan_pendapatan", _text),
    FieldMapping(UMColumns.PEKERJAAN_SEBELUM, "pekerjaan_sebelum", parse_integer),
    FieldMapping(UMColumns.PEKERJAAN_SELEPAS, "pekerjaan_selepas", parse_integer),
    FieldMapping(UMColumns.ULASAN_PEKERJAAN, "ulasan_pekerjaan", _text),
    FieldMapping(UMColumns.ASET_BUKAN_TUNAI_SEBELUM, "aset_bukan_tunai_sebelum", parse_numeric),
    FieldMapping(UMColumns.ASET_BUKAN_TUNAI_SELEPAS, "aset_bukan_tunai_selepas", parse_numeric),
    FieldMapping(UMColumns.ASET_TUNAI_SEBELUM, "aset_tunai_sebelum", parse_numeric),
    FieldMapping(UMColumns.ASET_TUNAI_SELEPAS, "aset_tunai_selepas", parse_numeric),
    FieldMapping(UMColumns.ULASAN_ASET, "ulasan_aset", _text),
    FieldMapping(UMColumns.SIMPANAN_SEBELUM, "simpanan_sebelum", parse_numeric),
    FieldMapping(UMColumns.SIMPANAN_SELEPAS, "simpanan_selepas", parse_numeric),
    FieldMapping(UMColumns.ULASAN_SIMPANAN, "ulasan_simpanan", _text),
    FieldMapping(UMColumns.ZAKAT_SEBELUM, "zakat_sebelum", parse_numeric),
    FieldMapping(UMColumns.ZAKAT_SELEPAS, "zakat_selepas", parse_numeric),
    FieldMapping(UMColumns.ULASAN_ZAKAT, "ulasan_zakat", _text),
    FieldMapping(UMColumns.DIGITAL_SEBELUM, "digital_sebelum", split_multi_value),
    FieldMapping(UMColumns.DIGITAL_SELEPAS, "digital_selepas", split_multi_value),
    FieldMapping(UMColumns.ULASAN_DIGITAL, "ulasan_digital", _text),
    FieldMapping(UMColumns.ONLINE_SALES_SEBELUM, "online_sales_sebelum", split_multi_value),
    FieldMapping(UMColumns.ONLINE_SALES_SELEPAS, "online_sales_selepas", split_multi_value),
    FieldMapping(UMColumns.ULASAN_ONLINE_SALES, "ulasan_online_sales", _text),
]


# Claves para pg_try_advisory_lock (una por job)
LOCK_KEYS = {
    Program.BANGKIT: 74_310_001,
    Program.MAJU: 74_310_002,
    Program.UPWARD_MOBILITY: 74_310_003,
}


def get_report_sync_config(program: Program, settings: Settings) -> ReportSyncConfig:
    """
    Retorna la configuracion de sync para la variante indicada.

    Los IDs de spreadsheet y nombres de pestana vienen de Settings; el layout
    de columnas es fijo por variante.
    """
    if program is Program.BANGKIT:
        return ReportSyncConfig(
            program=program,
            spreadsheet_id=settings.GOOGLE_SHEETS_REPORT_ID,
            tab_name=settings.BANGKIT_SHEET_NAME,
            target_table=Table.REPORTS,
            identity_columns=(
                BangkitColumns.TIMESTAMP,
                BangkitColumns.NAMA_USAHAWAN,
                BangkitColumns.MENTOR_EMAIL,
                BangkitColumns.SESI_LAPORAN,
            ),
            doc_url_column=BangkitColumns.DOC_URL,
            lock_key=LOCK_KEYS[program],
            session_number_column=BangkitColumns.SESI_LAPORAN,
        )
    if program is Program.MAJU:
        return ReportSyncConfig(
            program=program,
            spreadsheet_id=settings.maju_spreadsheet_id,
            tab_name=settings.MAJU_SHEET_NAME,
            target_table=Table.REPORTS,
            identity_columns=(
                MajuColumns.TIMESTAMP,
                MajuColumns.NAMA_MENTEE,
                MajuColumns.EMAIL_MENTOR,
                MajuColumns.SESI_NUMBER,
            ),
            doc_url_column=MajuColumns.DOC_ID,
            lock_key=LOCK_KEYS[program],
            session_number_column=MajuColumns.SESI_NUMBER,
        )
    if program is Program.UPWARD_MOBILITY:
        return ReportSyncConfig(
            program=program,
            spreadsheet_id=settings.um_spreadsheet_id,
            tab_name=settings.UM_SHEET_NAME,
            target_table=Table.UPWARD_MOBILITY_REPORTS,
            identity_columns=(
                UMColumns.TIMESTAMP,
                UMColumns.EMAIL,
                UMColumns.NAMA_USAHAWAN,
                UMColumns.SESI_MENTORING,
            ),
            doc_url_column=None,
            lock_key=LOCK_KEYS[program],
        )
    raise ValueError(f"Programa no soportado: {program}")
