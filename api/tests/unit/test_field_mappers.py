"""
Tests de los FieldMappers por variante (Bangkit, Maju, UM).
"""
from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from conftest import (
    bangkit_record,
    bangkit_specs,
    maju_record,
    maju_specs,
    sheet_values,
    um_record,
    um_specs,
)
from mentor_sync.core.config import Settings
from mentor_sync.infrastructure.external.sheets_sync.field_mappers import (
    find_missing_identity,
    get_mapper,
    map_bangkit_row,
    map_maju_row,
    map_um_row,
    require_identity,
)
from mentor_sync.infrastructure.external.sheets_sync.records import (
    BangkitReport,
    MajuReport,
    UpwardMobilityReport,
)
from mentor_sync.infrastructure.external.sheets_sync.table_mappings import get_report_sync_config
from mentor_sync.infrastructure.external.sheets_sync.types import build_rows
from mentor_sync.shared.constants.sync_constants import MiaStatus, Program
from mentor_sync.shared.exceptions.sync import RowIncompleteError

GW_HEADERS = {54: "GW_Skor_1", 55: "GW_Skor_2", 56: "GW_Skor_3"}


def _bangkit_row(**overrides):
    values = sheet_values(bangkit_specs(), [bangkit_record(**overrides)], extra_headers=GW_HEADERS)
    return build_rows(values)[0]


def _maju_row(**overrides):
    return build_rows(sheet_values(maju_specs(), [maju_record(**overrides)]))[0]


def _um_row(**overrides):
    return build_rows(sheet_values(um_specs(), [um_record(**overrides)]))[0]


# ---------------------------------------------------------------------------
# Bangkit
# ---------------------------------------------------------------------------
def test_map_bangkit_row_basic_fields() -> None:
    report = map_bangkit_row(_bangkit_row())

    assert isinstance(report, BangkitReport)
    assert report.program is Program.BANGKIT
    assert report.position == 2
    assert report.entrepreneur_name == "Siti Aminah"
    assert report.mentor_email == "Mentor.A@Example.com"
    assert report.session_number == 2
    assert report.session_date == date(2025, 3, 4)
    assert report.submitted_at.astimezone(timezone.utc) == datetime(2025, 3, 5, 6, 30, tzinfo=timezone.utc)
    assert report.mia is MiaStatus.NOT_MIA
    assert report.malformed_fields == []

    record = report.base_record()
    assert record["program"] == "Bangkit"
    assert record["sheets_row_number"] == 2
    assert record["nama_usahawan"] == "Siti Aminah"
    assert record["nama_syarikat"] == "Kedai Siti"
    assert record["rumusan"] == "Perbincangan jualan"
    assert record["mia_status"] == "Selesai"
    assert record["mia_proof_url"] is None
    assert record["doc_url"] == record["google_doc_url"] == "https://docs.google.com/document/d/abc"
    assert record["source"] == "sheets_sync"


def test_map_bangkit_row_documents() -> None:
    row = _bangkit_row(
        **{
            "Fokus Area 1": "Jualan",
            "Keputusan 1": "Tambah stok",
            "Cadangan Tindakan 1": "Beli dari pembekal",
            "Jualan Jan": "RM 1,000",
            "Jualan Feb": "500",
            "GW_Skor_1": "7",
            "GW_Skor_2": "8",
            "Link Gambar": '["https://img/1", "https://img/2"]',
            "Premis_Dilawat_Checked": "TRUE",
        }
    )
    record = map_bangkit_row(row).base_record()

    assert record["inisiatif"] == [
        {"focusArea": "Jualan", "keputusan": "Tambah stok", "pelanTindakan": "Beli dari pembekal"}
    ]
    assert record["jualan_terkini"] == [1000.0, 500.0] + [0.0] * 10
    assert record["gw_skor"] == [7.0, 8.0]
    assert record["image_urls"] == {"sesi": ["https://img/1", "https://img/2"]}
    assert record["premis_dilawat"] is True
    # La reflexion solo existe en la sesion 1
    assert record["refleksi"] is None


def test_map_bangkit_row_empty_documents_are_null() -> None:
    record = map_bangkit_row(_bangkit_row()).base_record()

    assert record["inisiatif"] is None
    assert record["jualan_terkini"] is None
    assert record["gw_skor"] is None
    assert record["image_urls"] is None
    assert record["premis_dilawat"] is False


def test_map_bangkit_row_reflection_on_first_session() -> None:
    row = _bangkit_row(
        **{
            "Sesi Laporan": "Sesi #1",
            "Refleksi_Perasaan": "Gembira",
            "Refleksi_Skor": "8",
        }
    )
    refleksi = map_bangkit_row(row).base_record()["refleksi"]

    assert refleksi["perasaan"] == "Gembira"
    assert refleksi["skor"] == 8
    assert refleksi["eliminate"] is None


def test_map_bangkit_row_mia_with_proof() -> None:
    row = _bangkit_row(**{"Status Sesi": "MIA", "Link_Bukti_MIA": "https://proof/1"})
    report = map_bangkit_row(row)

    assert report.is_mia
    assert report.columns["mia_status"] == "MIA"
    assert report.columns["mia_proof_url"] == "https://proof/1"


def test_map_bangkit_row_blank_status_defaults_to_selesai() -> None:
    report = map_bangkit_row(_bangkit_row(**{"Status Sesi": ""}))

    assert report.mia is MiaStatus.NOT_MIA
    assert report.columns["mia_status"] == "Selesai"


def test_map_bangkit_row_malformed_sales_keeps_rest_of_row() -> None:
    report = map_bangkit_row(_bangkit_row(**{"Jualan Mac": "banyak", "Jualan Jan": "100"}))

    assert "jualan_terkini" in report.malformed_fields
    record = report.base_record()
    assert record["jualan_terkini"][0] == 100.0
    assert record["jualan_terkini"][2] == 0.0
    assert record["nama_usahawan"] == "Siti Aminah"


def test_map_bangkit_row_tolerates_moved_email_column() -> None:
    values = sheet_values(bangkit_specs(), [bangkit_record()])
    # El header de email se renombro y la columna quedo en otra posicion
    values[0][1] = "Catatan"
    values[0].append("Email Address")
    values[1].append("otro.mentor@example.com")

    report = map_bangkit_row(build_rows(values)[0])
    assert report.mentor_email == "otro.mentor@example.com"


# ---------------------------------------------------------------------------
# Maju
# ---------------------------------------------------------------------------
def test_map_maju_row_basic_fields() -> None:
    report = map_maju_row(_maju_row())

    assert isinstance(report, MajuReport)
    assert report.program is Program.MAJU
    assert report.entrepreneur_name == "Ali Bakar"
    assert report.session_number == 1
    assert report.session_date == date(2025, 3, 5)
    assert report.mia is MiaStatus.NOT_MIA

    record = report.base_record()
    assert record["nama_mentee"] == record["nama_usahawan"] == "Ali Bakar"
    assert record["data_kewangan_bulanan"] == [{"bulan": "Jan", "jualan": 1200}]
    assert record["mentoring_findings"] is None
    assert record["folder_id"] == "folder-from-row"
    assert record["mia_status"] == "Tidak MIA"
    assert record["mia_reason"] is None
    assert record["doc_url"] == "https://docs.google.com/document/d/maju"


def test_map_maju_row_malformed_json_degrades_to_null() -> None:
    report = map_maju_row(_maju_row(MENTORING_FINDINGS_JSON="{not json"))

    assert report.malformed_fields == ["mentoring_findings"]
    record = report.base_record()
    assert record["mentoring_findings"] is None
    assert record["data_kewangan_bulanan"] == [{"bulan": "Jan", "jualan": 1200}]
    assert record["nama_mentee"] == "Ali Bakar"


def test_map_maju_row_image_urls() -> None:
    row = _maju_row(
        URL_GAMBAR_SESI_JSON='["https://s/1"]',
        URL_GAMBAR_PREMIS_JSON="https://p/1",
        URL_GAMBAR_GW360='["https://gw/1"]',
    )
    record = map_maju_row(row).base_record()

    assert record["image_urls"] == {
        "sesi": ["https://s/1"],
        "premis": ["https://p/1"],
        "growthwheel": "https://gw/1",
    }


def test_map_maju_row_mia_reason_only_when_mia() -> None:
    row = _maju_row(MIA_STATUS="MIA", MIA_REASON="Tidak dapat dihubungi", MIA_PROOF_URL="https://proof")
    report = map_maju_row(row)

    assert report.is_mia
    assert report.columns["mia_reason"] == "Tidak dapat dihubungi"
    assert report.columns["mia_proof_url"] == "https://proof"


# ---------------------------------------------------------------------------
# Upward Mobility
# ---------------------------------------------------------------------------
def test_map_um_row_metrics() -> None:
    report = map_um_row(_um_row())

    assert isinstance(report, UpwardMobilityReport)
    assert report.session_label == "Sesi 2"
    assert report.session_number is None
    assert report.mentor_email == "mentor.a@example.com"

    record = report.base_record()
    assert record["sesi_mentoring"] == "Sesi 2"
    assert record["program"] == "iTEKAD Maju"
    assert record["pendapatan_sebelum"] == 1000.0
    assert record["pendapatan_selepas"] == 2500.5
    assert record["pekerjaan_sebelum"] == 1
    assert record["pekerjaan_selepas"] == 3
    assert record["digital_sebelum"] == ["Whatsapp", "Facebook"]
    assert record["digital_selepas"] is None
    assert report.natural_key == ("entrepreneur_id", "sesi_mentoring")


def test_map_um_row_defaults_program() -> None:
    record = map_um_row(_um_row(Program="")).base_record()
    assert record["program"] == "iTEKAD BangKIT"


def test_map_um_row_malformed_numeric_is_flagged() -> None:
    report = map_um_row(_um_row(**{"Jumlah Pendapatan (Selepas)": "tidak pasti"}))

    assert report.malformed_fields == ["pendapatan_selepas"]
    assert report.base_record()["pendapatan_selepas"] is None


def test_map_um_row_tolerates_form_header_suffixes() -> None:
    values = sheet_values(um_specs(), [um_record()])
    values[0][6] = "Nama Penuh Usahawan.\n(seperti dalam kad pengenalan)"
    values[0][21] = "Jumlah Pendapatan (Sebelum)\nSila isi dalam RM"

    report = map_um_row(build_rows(values)[0])
    assert report.entrepreneur_name == "Siti Aminah"
    assert report.columns["pendapatan_sebelum"] == 1000.0


# ---------------------------------------------------------------------------
# Identidad
# ---------------------------------------------------------------------------
def test_find_missing_identity(settings: Settings) -> None:
    config = get_report_sync_config(Program.BANGKIT, settings)

    assert find_missing_identity(_bangkit_row(), config) == []
    assert find_missing_identity(_bangkit_row(**{"Nama Usahawan": ""}), config) == ["Nama Usahawan"]
    assert find_missing_identity(_bangkit_row(**{"Sesi Laporan": "Sesi"}), config) == [
        "Sesi Laporan (sin numero)"
    ]


def test_require_identity_raises_row_incomplete(settings: Settings) -> None:
    config = get_report_sync_config(Program.BANGKIT, settings)

    require_identity(_bangkit_row(), config)
    with pytest.raises(RowIncompleteError) as exc:
        require_identity(_bangkit_row(**{"Nama Usahawan": ""}), config)

    assert exc.value.position == 2
    assert exc.value.missing == ["Nama Usahawan"]
    assert not exc.value.fatal


def test_get_mapper_per_program() -> None:
    assert get_mapper(Program.BANGKIT) is map_bangkit_row
    assert get_mapper(Program.MAJU) is map_maju_row
    assert get_mapper(Program.UPWARD_MOBILITY) is map_um_row
