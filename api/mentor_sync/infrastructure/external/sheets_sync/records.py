"""
Registros normalizados producidos por los FieldMappers.

Los subdocumentos JSONB son variantes etiquetadas con un contrato minimo
(`is_empty()` + `to_json()`); un subdocumento vacio se persiste como NULL.
Las claves JSON coinciden con las que escribe el formulario (dual-write),
asi el validador puede comparar ambos caminos campo a campo.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, ClassVar, Optional

from mentor_sync.shared.constants.sync_constants import (
    SHEETS_SYNC_SOURCE,
    MiaStatus,
    Program,
    ReportStatus,
    Table,
)


class SubDocument:
    """Contrato comun de los subdocumentos JSONB."""

    def is_empty(self) -> bool:
        raise NotImplementedError

    def to_json(self) -> Any:
        raise NotImplementedError


def document_json(doc: Optional[SubDocument]) -> Any:
    """Serializa un subdocumento; None si falta o esta vacio."""
    if doc is None or doc.is_empty():
        return None
    return doc.to_json()


@dataclass(frozen=True)
class Initiative(SubDocument):
    focus_area: str = ""
    keputusan: str = ""
    pelan_tindakan: str = ""

    def is_empty(self) -> bool:
        return not (self.focus_area or self.keputusan or self.pelan_tindakan)

    def to_json(self) -> dict[str, str]:
        return {
            "focusArea": self.focus_area,
            "keputusan": self.keputusan,
            "pelanTindakan": self.pelan_tindakan,
        }


@dataclass(frozen=True)
class InitiativeList(SubDocument):
    items: tuple[Initiative, ...] = ()

    def is_empty(self) -> bool:
        return all(item.is_empty() for item in self.items)

    def to_json(self) -> list[dict[str, str]]:
        return [item.to_json() for item in self.items if not item.is_empty()]


@dataclass(frozen=True)
class MonthlySales(SubDocument):
    """12 meses de ventas (Ene..Dic). Vacio si todos son 0."""

    values: tuple[float, ...] = ()

    def is_empty(self) -> bool:
        return not any(v > 0 for v in self.values)

    def to_json(self) -> list[float]:
        return list(self.values)


@dataclass(frozen=True)
class Reflection(SubDocument):
    """Reflexion del mentor (solo sesion 1 de Bangkit)."""

    panduan_pemerhatian: Optional[str] = None
    perasaan: Optional[str] = None
    skor: Optional[int] = None
    alasan_skor: Optional[str] = None
    eliminate: Optional[str] = None
    raise_: Optional[str] = None
    reduce: Optional[str] = None
    create: Optional[str] = None

    def is_empty(self) -> bool:
        return all(v is None for v in self.to_json().values())

    def to_json(self) -> dict[str, Any]:
        return {
            "panduan_pemerhatian": self.panduan_pemerhatian,
            "perasaan": self.perasaan,
            "skor": self.skor,
            "alasan_skor": self.alasan_skor,
            "eliminate": self.eliminate,
            "raise": self.raise_,
            "reduce": self.reduce,
            "create": self.create,
        }


@dataclass(frozen=True)
class GrowthWheelScores(SubDocument):
    scores: tuple[float, ...] = ()

    def is_empty(self) -> bool:
        return not self.scores

    def to_json(self) -> list[float]:
        return list(self.scores)


@dataclass(frozen=True)
class ImageUrls(SubDocument):
    """Columnas de imagenes agrupadas en un solo objeto."""

    sesi: tuple[str, ...] = ()
    premis: tuple[str, ...] = ()
    growthwheel: Optional[str] = None
    profil: Optional[str] = None

    def is_empty(self) -> bool:
        return not (self.sesi or self.premis or self.growthwheel or self.profil)

    def to_json(self) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        if self.sesi:
            payload["sesi"] = list(self.sesi)
        if self.premis:
            payload["premis"] = list(self.premis)
        if self.growthwheel:
            payload["growthwheel"] = self.growthwheel
        if self.profil:
            payload["profil"] = self.profil
        return payload


@dataclass(frozen=True)
class JsonDocument(SubDocument):
    """JSON libre embebido en una celda (finanzas mensuales, hallazgos de Maju)."""

    value: Any = None

    def is_empty(self) -> bool:
        if self.value is None:
            return True
        if isinstance(self.value, (list, dict, str)):
            return len(self.value) == 0
        return False

    def to_json(self) -> Any:
        return self.value


@dataclass
class NormalizedReport:
    """
    Registro normalizado de una fila, antes de resolver entidades.

    `columns` son columnas planas ya parseadas; `documents` son los JSONB.
    Las FKs se agregan en `to_record()` una vez resueltas.
    """

    target_table: ClassVar[Table] = Table.REPORTS
    natural_key: ClassVar[tuple[str, ...]] = ("program", "sheets_row_number")

    program: Program
    position: int
    entrepreneur_name: str
    mentor_email: str
    session_number: Optional[int]
    session_date: Optional[date]
    submitted_at: Optional[datetime]
    mia: MiaStatus
    columns: dict[str, Any] = field(default_factory=dict)
    documents: dict[str, SubDocument] = field(default_factory=dict)
    malformed_fields: list[str] = field(default_factory=list)

    @property
    def is_mia(self) -> bool:
        return self.mia is MiaStatus.MIA

    def base_record(self) -> dict[str, Any]:
        record: dict[str, Any] = {
            "program": self.program.value,
            "session_number": self.session_number,
            "session_date": self.session_date,
            "status": ReportStatus.SUBMITTED.value,
            "sheets_row_number": self.position,
            "source": SHEETS_SYNC_SOURCE,
            "submission_date": self.submitted_at,
        }
        record.update(self.columns)
        for column, doc in self.documents.items():
            record[column] = document_json(doc)
        return record

    def to_record(
        self,
        *,
        mentor_id: Any,
        entrepreneur_id: Any,
        session_id: Any = None,
        folder_id: Optional[str] = None,
    ) -> dict[str, Any]:
        record = self.base_record()
        record.update(
            {
                "mentor_id": mentor_id,
                "entrepreneur_id": entrepreneur_id,
                "session_id": session_id,
                # El folder de la fila (Maju) tiene prioridad sobre el resuelto
                "folder_id": record.get("folder_id") or folder_id,
            }
        )
        return record

    def natural_key_values(self, record: dict[str, Any]) -> dict[str, Any]:
        return {k: record[k] for k in self.natural_key}


@dataclass
class BangkitReport(NormalizedReport):
    pass


@dataclass
class MajuReport(NormalizedReport):
    pass


@dataclass
class UpwardMobilityReport(NormalizedReport):
    """
    Reporte UM: clave natural (entrepreneur_id, sesi_mentoring).

    No tiene sesion ni folder; el numero de fila se guarda solo como
    trazabilidad (permite detectar sobrescrituras desde otra fila).
    """

    target_table: ClassVar[Table] = Table.UPWARD_MOBILITY_REPORTS
    natural_key: ClassVar[tuple[str, ...]] = ("entrepreneur_id", "sesi_mentoring")

    session_label: str = ""

    def base_record(self) -> dict[str, Any]:
        record: dict[str, Any] = {
            "sesi_mentoring": self.session_label,
            "report_date": self.submitted_at,
            "sheets_row_number": self.position,
            "source": SHEETS_SYNC_SOURCE,
        }
        record.update(self.columns)
        for column, doc in self.documents.items():
            record[column] = document_json(doc)
        return record

    def to_record(
        self,
        *,
        mentor_id: Any,
        entrepreneur_id: Any,
        session_id: Any = None,
        folder_id: Optional[str] = None,
    ) -> dict[str, Any]:
        record = self.base_record()
        record.update({"mentor_id": mentor_id, "entrepreneur_id": entrepreneur_id})
        return record
