"""
EntityResolver: texto libre del formulario -> FKs estables.

- Emprendedor: por nombre (ILIKE exacto, luego substring).
- Mentor: por email (ILIKE exacto, sin fallback).
- Sesion: por clave compuesta; es la unica entidad que este pipeline crea.

Las entidades canonicas (entrepreneurs, mentors) las crea un proceso externo;
si no existen, la fila no se escribe.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Optional

from loguru import logger

from mentor_sync.domain.repositories.report_store import IReportStore
from mentor_sync.shared.constants.sync_constants import Program, SessionStatus, Table
from mentor_sync.shared.exceptions.sync import (
    AmbiguousEntityError,
    EntityNotFoundError,
    SyncException,
)

from .records import NormalizedReport

# Candidatos a listar en un AmbiguousEntityError
_MAX_CANDIDATES = 5


class PartialMatchPolicy(str, Enum):
    """Que hacer cuando varias entidades coinciden por substring."""
    STRICT = "strict"
    FIRST = "first"


@dataclass(frozen=True)
class Resolution:
    id: Any = None
    folder_id: Optional[str] = None
    error: Optional[SyncException] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.id is not None


@dataclass(frozen=True)
class SessionResolution:
    id: Any
    is_new: bool


@dataclass
class ResolvedEntities:
    mentor_id: Any = None
    entrepreneur_id: Any = None
    session_id: Any = None
    folder_id: Optional[str] = None
    session_is_new: bool = False
    errors: list[SyncException] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def error_message(self) -> str:
        return "; ".join(e.message for e in self.errors)


class EntityResolver:
    def __init__(
        self,
        store: IReportStore,
        *,
        partial_match_policy: PartialMatchPolicy = PartialMatchPolicy.STRICT,
    ) -> None:
        self._store = store
        self._policy = PartialMatchPolicy(partial_match_policy)

    def resolve_entrepreneur(self, raw_name: str) -> Resolution:
        name = (raw_name or "").strip()
        if not name:
            return Resolution(error=EntityNotFoundError("Entrepreneur", raw_name))

        table = Table.ENTREPRENEURS.value
        exact = self._store.find_ilike(table, "name", name, limit=1, order_by=("id",))
        if exact:
            return Resolution(id=exact[0]["id"], folder_id=exact[0].get("folder_id"))

        # Fallback substring: en STRICT se piden candidatos extra para detectar ambiguedad
        limit = 1 if self._policy is PartialMatchPolicy.FIRST else _MAX_CANDIDATES + 1
        partial = self._store.find_ilike(
            table, "name", name, partial=True, limit=limit, order_by=("name", "id")
        )
        if not partial:
            return Resolution(error=EntityNotFoundError("Entrepreneur", raw_name))

        if len(partial) > 1 and self._policy is PartialMatchPolicy.STRICT:
            candidates = [str(r.get("name")) for r in partial[:_MAX_CANDIDATES]]
            return Resolution(error=AmbiguousEntityError("Entrepreneur", raw_name, candidates))

        match = partial[0]
        logger.debug(f"Emprendedor '{name}' resuelto por coincidencia parcial -> '{match.get('name')}'")
        return Resolution(id=match["id"], folder_id=match.get("folder_id"))

    def resolve_mentor(self, raw_email: str) -> Resolution:
        email = (raw_email or "").strip().lower()
        if not email:
            return Resolution(error=EntityNotFoundError("Mentor", raw_email))

        rows = self._store.find_ilike(Table.MENTORS.value, "email", email, limit=1, order_by=("id",))
        if not rows:
            return Resolution(error=EntityNotFoundError("Mentor", raw_email))
        return Resolution(id=rows[0]["id"])

    def resolve_session(
        self,
        mentor_id: Any,
        entrepreneur_id: Any,
        program: Program,
        session_number: int,
        session_date: Optional[date] = None,
    ) -> SessionResolution:
        """
        Busca la sesion por (mentor, emprendedor, programa, numero); la crea
        con estado 'completed' si no existe.
        """
        key = {
            "mentor_id": mentor_id,
            "entrepreneur_id": entrepreneur_id,
            "program": program.value,
            "session_number": session_number,
        }
        existing = self._store.find_one(Table.SESSIONS.value, key)
        if existing:
            return SessionResolution(id=existing["id"], is_new=False)

        created = self._store.insert(
            Table.SESSIONS.value,
            {**key, "session_date": session_date, "status": SessionStatus.COMPLETED.value},
        )
        logger.info(
            f"Sesion creada: {program.value} #{session_number} "
            f"(mentor={mentor_id}, entrepreneur={entrepreneur_id}) -> {created['id']}"
        )
        return SessionResolution(id=created["id"], is_new=True)

    def resolve_report_entities(self, report: NormalizedReport) -> ResolvedEntities:
        """
        Resuelve emprendedor + mentor y, si ambos existen y la variante lo
        usa, la sesion. Cualquier error bloquea la escritura del reporte.
        """
        result = ResolvedEntities()

        entrepreneur = self.resolve_entrepreneur(report.entrepreneur_name)
        if entrepreneur.ok:
            result.entrepreneur_id = entrepreneur.id
            result.folder_id = entrepreneur.folder_id
        else:
            result.errors.append(entrepreneur.error)

        mentor = self.resolve_mentor(report.mentor_email)
        if mentor.ok:
            result.mentor_id = mentor.id
        else:
            result.errors.append(mentor.error)

        if result.errors or report.session_number is None:
            return result

        session = self.resolve_session(
            result.mentor_id,
            result.entrepreneur_id,
            report.program,
            report.session_number,
            report.session_date,
        )
        result.session_id = session.id
        result.session_is_new = session.is_new
        return result
