"""
Tipos y utilidades puras para el pipeline Sheets -> Postgres.

Se mantienen libres de I/O para poder testearlos fácilmente.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional, Sequence

# Puntuacion que Google Forms deja al final de los headers ("Nama Penuh Usahawan.")
_TRAILING_PUNCT_RE = re.compile(r"[\s.:;,?*]+$")
_WHITESPACE_RE = re.compile(r"\s+")


def utc_now() -> datetime:
    """Retorna la hora actual en UTC, como datetime aware."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """
    Normaliza datetime a UTC (aware).

    PostgreSQL devuelve timestamptz en la zona de la sesion; normalizamos para
    comparar/almacenar de forma consistente.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def normalize_header(header: str) -> str:
    """Colapsa espacios/saltos de linea y pasa a minusculas."""
    return _WHITESPACE_RE.sub(" ", header or "").strip().casefold()


def strip_trailing_punctuation(header: str) -> str:
    return _TRAILING_PUNCT_RE.sub("", normalize_header(header))


class HeaderIndex:
    """
    Indice de headers de una pestana, compartido por todas sus filas.

    Orden de resolucion para una lista de aliases:
    1. header exacto (trim)
    2. header sin puntuacion final (case-insensitive)
    3. prefijo mas largo: el alias mas largo que sea prefijo de un header
       (headers de Google Forms con descripciones y saltos de linea)
    """

    def __init__(self, headers: Sequence[str]) -> None:
        self.headers: tuple[str, ...] = tuple((h or "").strip() for h in headers)
        self._exact = {}
        self._stripped = {}
        for idx, header in enumerate(self.headers):
            # Ante headers duplicados gana la primera columna
            self._exact.setdefault(header, idx)
            self._stripped.setdefault(strip_trailing_punctuation(header), idx)

    def __len__(self) -> int:
        return len(self.headers)

    def find(self, aliases: Iterable[str]) -> Optional[int]:
        """Retorna el indice de columna para el primer alias que resuelva."""
        aliases = [a for a in aliases if a]

        for alias in aliases:
            if alias in self._exact:
                return self._exact[alias]

        for alias in aliases:
            key = strip_trailing_punctuation(alias)
            if key in self._stripped:
                return self._stripped[key]

        best: Optional[tuple[int, int]] = None  # (largo del alias, -indice)
        for alias in aliases:
            prefix = strip_trailing_punctuation(alias)
            if not prefix:
                continue
            for idx, header in enumerate(self.headers):
                if normalize_header(header).startswith(prefix):
                    candidate = (len(prefix), -idx)
                    if best is None or candidate > best:
                        best = candidate
                    break
        return -best[1] if best else None

    def matches(self, index: int, aliases: Iterable[str]) -> bool:
        """Indica si el header en `index` corresponde a alguno de los aliases."""
        if index < 0 or index >= len(self.headers):
            return False
        header = self.headers[index]
        norm = normalize_header(header)
        stripped = strip_trailing_punctuation(header)
        for alias in aliases:
            if not alias:
                continue
            if alias == header or strip_trailing_punctuation(alias) == stripped:
                return True
            if norm.startswith(strip_trailing_punctuation(alias)):
                return True
        return False

    def with_prefix(self, prefix: str) -> list[int]:
        """Columnas cuyo header empieza con `prefix` (p.ej. "GW_Skor_")."""
        return [i for i, h in enumerate(self.headers) if h.startswith(prefix)]


@dataclass(frozen=True)
class ColumnSpec:
    """
    Columna logica de una pestana origen.

    - name: nombre canonico (usado en logs y como primer alias)
    - position: indice 0-based esperado (opcional)
    - aliases: nombres alternativos, en orden de prioridad
    """

    name: str
    position: Optional[int] = None
    aliases: tuple[str, ...] = ()

    @property
    def all_aliases(self) -> tuple[str, ...]:
        return (self.name,) + tuple(a for a in self.aliases if a != self.name)


@dataclass(frozen=True)
class SourceRow:
    """
    Fila inmutable de una pestana origen.

    position es el numero de fila 1-based en la pestana (el header es la fila 1),
    estable entre corridas y usado como clave de idempotencia.
    """

    position: int
    cells: tuple[str, ...]
    header_index: HeaderIndex = field(compare=False, repr=False)

    def at(self, index: int) -> str:
        if 0 <= index < len(self.cells):
            return self.cells[index]
        return ""

    def get(self, header: str, default: str = "") -> str:
        """Lookup por header (con la misma tolerancia que ColumnSpec)."""
        idx = self.header_index.find([header])
        if idx is None:
            return default
        return self.at(idx)

    def is_blank(self) -> bool:
        return not any(c.strip() for c in self.cells)

    def as_dict(self) -> dict[str, str]:
        return {h: self.at(i) for i, h in enumerate(self.header_index.headers) if h}


Transform = Callable[[Any], Any]


@dataclass(frozen=True)
class FieldMapping:
    """
    Define el mapeo de una columna origen a una columna Postgres.

    - column: columna logica en la pestana (posicion + aliases)
    - pg_column: nombre de la columna en Postgres
    - transform: funcion opcional; debe retornar None ante input invalido
    - default: valor cuando la celda esta vacia
    """

    column: ColumnSpec
    pg_column: str
    transform: Optional[Transform] = None
    default: Any = None


class ColumnAccessor:
    """
    Acceso a columnas logicas de una fila.

    Primero la posicion esperada (si su header coincide con algun alias),
    luego los aliases priorizados contra todos los headers. Los mappers solo
    hablan con esta clase; nunca con indices sueltos.
    """

    def __init__(self, row: SourceRow) -> None:
        self._row = row
        self._index = row.header_index

    @property
    def row(self) -> SourceRow:
        return self._row

    def locate(self, spec: ColumnSpec) -> Optional[int]:
        if spec.position is not None and self._index.matches(spec.position, spec.all_aliases):
            return spec.position
        return self._index.find(spec.all_aliases)

    def raw(self, spec: ColumnSpec) -> str:
        """Valor crudo (trim), "" si la columna no existe."""
        idx = self.locate(spec)
        if idx is None:
            return ""
        return (self._row.at(idx) or "").strip()

    def text(self, spec: ColumnSpec) -> Optional[str]:
        """Valor como texto, None si esta vacio."""
        return self.raw(spec) or None

    def prefixed(self, prefix: str) -> list[tuple[str, str]]:
        """Pares (header, valor) de las columnas con el prefijo dado."""
        return [
            (self._index.headers[i], (self._row.at(i) or "").strip())
            for i in self._index.with_prefix(prefix)
        ]


def build_rows(values: Sequence[Sequence[object]]) -> list[SourceRow]:
    """
    Construye SourceRows desde la matriz de valores de la API de Sheets.

    La primera fila es el header. Las filas vacias intermedias se conservan
    para que la posicion de cada fila sea estable.
    """
    if not values:
        return []

    header, *data = values
    index = HeaderIndex([str(h) for h in header])
    width = len(index)

    rows: list[SourceRow] = []
    for offset, raw in enumerate(data):
        cells = tuple("" if c is None else str(c) for c in raw)
        if len(cells) < width:
            cells = cells + ("",) * (width - len(cells))
        rows.append(SourceRow(position=offset + 2, cells=cells, header_index=index))
    return rows
