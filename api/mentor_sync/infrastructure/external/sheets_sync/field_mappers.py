"""
FieldMappers: SourceRow -> NormalizedReport, una funcion pura por variante.

No hacen I/O ni llaman al resolver. Los subcampos que no parsean quedan en
None y se listan en `malformed_fields`; el resto de la fila se mapea normal.
"""

from __future__ import annotations

from typing import Any, Callable, Optional

from mentor_sync.shared.constants.sync_constants import MiaStatus, Program
from mentor_sync.shared.exceptions.sync import RowIncompleteError

from .field_parsers import (
    first_url,
    is_checked,
    parse_integer,
    parse_json_field,
    parse_local_date,
    parse_local_datetime,
    parse_mia_status,
    parse_numeric,
    parse_session_number,
    parse_url_list,
)
from .records import (
    BangkitReport,
    GrowthWheelScores,
    ImageUrls,
    Initiative,
    InitiativeList,
    JsonDocument,
    MajuReport,
    MonthlySales,
    NormalizedReport,
    Reflection,
    UpwardMobilityReport,
)
from .sync_config import ReportSyncConfig
from .table_mappings import (
    BANGKIT_FIELD_MAPPINGS,
    MAJU_FIELD_MAPPINGS,
    UM_FIELD_MAPPINGS,
    BangkitColumns,
    MajuColumns,
    UMColumns,
)
from .types import ColumnAccessor, FieldMapping, SourceRow

RowMapper = Callable[[SourceRow], NormalizedReport]

# Tope de columnas GW_Skor cuando la pestana no trae headers con prefijo
_MAX_GW_SCORES = 20


def apply_field_mappings(
    accessor: ColumnAccessor,
    mappings: list[FieldMapping],
    malformed: list[str],
) -> dict[str, Any]:
    """
    Aplica mapeos planos. Una celda con texto cuyo transform retorna None
    se registra como mal formada.
    """
    columns: dict[str, Any] = {}
    for m in mappings:
        raw = accessor.raw(m.column)
        if not raw:
            columns[m.pg_column] = m.default
            continue
        value = m.transform(raw) if m.transform else raw
        if value is None:
            malformed.append(m.pg_column)
        columns[m.pg_column] = value
    return columns


def _parsed(accessor: ColumnAccessor, spec, parser, field: str, malformed: list[str]):
    raw = accessor.raw(spec)
    if not raw:
        return None
    value = parser(raw)
    if value is None:
        malformed.append(field)
    return value


def find_missing_identity(row: SourceRow, config: ReportSyncConfig) -> list[str]:
    """Nombres de las columnas de identidad vacias (o sin numero de sesion valido)."""
    accessor = ColumnAccessor(row)
    missing = [spec.name for spec in config.identity_columns if not accessor.raw(spec)]

    if config.session_number_column is not None:
        raw = accessor.raw(config.session_number_column)
        if raw and parse_session_number(raw) is None:
            missing.append(f"{config.session_number_column.name} (sin numero)")
    return missing


def require_identity(row: SourceRow, config: ReportSyncConfig) -> None:
    """Lanza RowIncompleteError si la fila no tiene su identidad completa."""
    missing = find_missing_identity(row, config)
    if missing:
        raise RowIncompleteError(row.position, missing)


# ---------------------------------------------------------------------------
# Bangkit
# ---------------------------------------------------------------------------
def _bangkit_initiatives(accessor: ColumnAccessor) -> InitiativeList:
    items = []
    for n in range(1, BangkitColumns.INITIATIVE_BLOCKS + 1):
        focus, keputusan, tindakan = BangkitColumns.initiative(n)
        initiative = Initiative(
            focus_area=accessor.raw(focus),
            keputusan=accessor.raw(keputusan),
            pelan_tindakan=accessor.raw(tindakan),
        )
        if not initiative.is_empty():
            items.append(initiative)
    return InitiativeList(items=tuple(items))


def _bangkit_sales(accessor: ColumnAccessor, malformed: list[str]) -> MonthlySales:
    values = []
    bad = False
    for spec in BangkitColumns.monthly_sales():
        raw = accessor.raw(spec)
        value = parse_numeric(raw) if raw else 0.0
        if value is None:
            bad = True
            value = 0.0
        values.append(value)
    if bad:
        malformed.append("jualan_terkini")
    return MonthlySales(values=tuple(values))


def _bangkit_reflection(accessor: ColumnAccessor, session_number: Optional[int], malformed: list[str]) -> Optional[Reflection]:
    # La reflexion solo se captura en la sesion 1
    if session_number != 1:
        return None
    return Reflection(
        panduan_pemerhatian=accessor.text(BangkitColumns.PANDUAN_PEMERHATIAN),
        perasaan=accessor.text(BangkitColumns.REFLEKSI_PERASAAN),
        skor=_parsed(accessor, BangkitColumns.REFLEKSI_SKOR, parse_integer, "refleksi.skor", malformed),
        alasan_skor=accessor.text(BangkitColumns.REFLEKSI_ALASAN_SKOR),
        eliminate=accessor.text(BangkitColumns.REFLEKSI_ELIMINATE),
        raise_=accessor.text(BangkitColumns.REFLEKSI_RAISE),
        reduce=accessor.text(BangkitColumns.REFLEKSI_REDUCE),
        create=accessor.text(BangkitColumns.REFLEKSI_CREATE),
    )


def _bangkit_gw_scores(accessor: ColumnAccessor) -> GrowthWheelScores:
    cells = [value for _, value in accessor.prefixed(BangkitColumns.GW_SCORE_PREFIX)]
    if not cells:
        start = BangkitColumns.GW_SCORE_START
        cells = [accessor.row.at(start + i).strip() for i in range(_MAX_GW_SCORES)]

    scores: list[float] = []
    for value in cells:
        if value:
            scores.append(parse_numeric(value) or 0.0)
        elif scores:
            # Se corta en la primera celda vacia despues de empezar
            break
    return GrowthWheelScores(scores=tuple(scores))


def _bangkit_images(accessor: ColumnAccessor) -> ImageUrls:
    return ImageUrls(
        sesi=tuple(parse_url_list(accessor.raw(BangkitColumns.LINK_GAMBAR), "image_urls.sesi")),
        premis=tuple(parse_url_list(accessor.raw(BangkitColumns.LINK_PREMIS), "image_urls.premis")),
        growthwheel=accessor.text(BangkitColumns.LINK_GROWTHWHEEL),
        profil=accessor.text(BangkitColumns.LINK_PROFIL),
    )


def map_bangkit_row(row: SourceRow) -> BangkitReport:
    """Fila de la pestana V8 -> BangkitReport."""
    accessor = ColumnAccessor(row)
    malformed: list[str] = []

    session_number = parse_session_number(accessor.raw(BangkitColumns.SESI_LAPORAN))
    mia_text = accessor.raw(BangkitColumns.STATUS_SESI) or "Selesai"
    mia = parse_mia_status(mia_text)

    columns = apply_field_mappings(accessor, BANGKIT_FIELD_MAPPINGS, malformed)
    columns["mia_status"] = mia_text
    columns["mia_proof_url"] = accessor.text(BangkitColumns.LINK_BUKTI_MIA) if mia is MiaStatus.MIA else None
    columns["premis_dilawat"] = is_checked(accessor.raw(BangkitColumns.PREMIS_DILAWAT))

    return BangkitReport(
        program=Program.BANGKIT,
        position=row.position,
        entrepreneur_name=accessor.raw(BangkitColumns.NAMA_USAHAWAN),
        mentor_email=accessor.raw(BangkitColumns.MENTOR_EMAIL),
        session_number=session_number,
        session_date=_parsed(accessor, BangkitColumns.TARIKH_SESI, parse_local_date, "session_date", malformed),
        submitted_at=_parsed(accessor, BangkitColumns.TIMESTAMP, parse_local_datetime, "submission_date", malformed),
        mia=mia,
        columns=columns,
        documents={
            "inisiatif": _bangkit_initiatives(accessor),
            "jualan_terkini": _bangkit_sales(accessor, malformed),
            "refleksi": _bangkit_reflection(accessor, session_number, malformed),
            "gw_skor": _bangkit_gw_scores(accessor),
            "image_urls": _bangkit_images(accessor),
        },
        malformed_fields=malformed,
    )


# ---------------------------------------------------------------------------
# Maju
# ---------------------------------------------------------------------------
def _json_document(accessor: ColumnAccessor, spec, field: str, malformed: list[str]) -> JsonDocument:
    raw = accessor.raw(spec)
    value = parse_json_field(raw, field)
    if raw and value is None:
        malformed.append(field)
    return JsonDocument(value=value)


def _maju_images(accessor: ColumnAccessor, malformed: list[str]) -> ImageUrls:
    def urls(spec, field):
        raw = accessor.raw(spec)
        if not raw:
            return ()
        parsed = parse_json_field(raw, field) if raw.startswith(("[", "{", '"')) else raw
        if parsed is None:
            malformed.append(field)
            return ()
        if isinstance(parsed, list):
            return tuple(str(u).strip() for u in parsed if u and str(u).strip())
        return (str(parsed),)

    return ImageUrls(
        premis=urls(MajuColumns.GAMBAR_PREMIS, "image_urls.premis"),
        sesi=urls(MajuColumns.GAMBAR_SESI, "image_urls.sesi"),
        growthwheel=first_url(accessor.raw(MajuColumns.GAMBAR_GW360), "image_urls.growthwheel"),
    )


def map_maju_row(row: SourceRow) -> MajuReport:
    """Fila de la pestana LaporanMaju -> MajuReport."""
    accessor = ColumnAccessor(row)
    malformed: list[str] = []

    mia_text = accessor.raw(MajuColumns.MIA_STATUS) or "Tidak MIA"
    mia = parse_mia_status(mia_text)
    is_mia = mia is MiaStatus.MIA

    columns = apply_field_mappings(accessor, MAJU_FIELD_MAPPINGS, malformed)
    columns["mia_status"] = mia_text
    columns["mia_reason"] = accessor.text(MajuColumns.MIA_REASON) if is_mia else None
    columns["mia_proof_url"] = accessor.text(MajuColumns.MIA_PROOF_URL) if is_mia else None

    return MajuReport(
        program=Program.MAJU,
        position=row.position,
        entrepreneur_name=accessor.raw(MajuColumns.NAMA_MENTEE),
        mentor_email=accessor.raw(MajuColumns.EMAIL_MENTOR),
        session_number=parse_session_number(accessor.raw(MajuColumns.SESI_NUMBER)),
        session_date=_parsed(accessor, MajuColumns.TARIKH_SESI, parse_local_date, "session_date", malformed),
        submitted_at=_parsed(accessor, MajuColumns.TIMESTAMP, parse_local_datetime, "submission_date", malformed),
        mia=mia,
        columns=columns,
        documents={
            "data_kewangan_bulanan": _json_document(
                accessor, MajuColumns.DATA_KEWANGAN, "data_kewangan_bulanan", malformed
            ),
            "mentoring_findings": _json_document(
                accessor, MajuColumns.MENTORING_FINDINGS, "mentoring_findings", malformed
            ),
            "image_urls": _maju_images(accessor, malformed),
        },
        malformed_fields=malformed,
    )


# ---------------------------------------------------------------------------
# Upward Mobility
# ---------------------------------------------------------------------------
def map_um_row(row: SourceRow) -> UpwardMobilityReport:
    """Fila de la pestana UM -> UpwardMobilityReport."""
    accessor = ColumnAccessor(row)
    malformed: list[str] = []

    columns = apply_field_mappings(accessor, UM_FIELD_MAPPINGS, malformed)

    return UpwardMobilityReport(
        program=Program.UPWARD_MOBILITY,
        position=row.position,
        entrepreneur_name=accessor.raw(UMColumns.NAMA_USAHAWAN),
        mentor_email=accessor.raw(UMColumns.EMAIL),
        session_number=None,
        session_date=None,
        submitted_at=_parsed(accessor, UMColumns.TIMESTAMP, parse_local_datetime, "report_date", malformed),
        mia=MiaStatus.UNKNOWN,
        columns=columns,
        malformed_fields=malformed,
        session_label=accessor.raw(UMColumns.SESI_MENTORING),
    )


MAPPERS: dict[Program, RowMapper] = {
    Program.BANGKIT: map_bangkit_row,
    Program.MAJU: map_maju_row,
    Program.UPWARD_MOBILITY: map_um_row,
}


def get_mapper(program: Program) -> RowMapper:
    return MAPPERS[program]
