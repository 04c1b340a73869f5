"""
Repositorio Postgres (psycopg) para el pipeline Sheets -> Postgres:
- conexion + advisory lock por job + statement_timeout por fila
- almacen generico (IReportStore) sobre las tablas destino

Se usa psycopg (v3) con dict_row; el caller controla los commits.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator, Optional, Sequence

import psycopg
from psycopg import errors as pg_errors
from psycopg import sql
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from mentor_sync.domain.repositories.report_store import IReportStore, Record
from mentor_sync.shared.exceptions.sync import (
    DestinationQueryError,
    DestinationUnavailableError,
    UpsertFailedError,
)


def _adapt(value: Any) -> Any:
    """dict/list -> Jsonb (columnas JSONB)."""
    if isinstance(value, (dict, list)):
        return Jsonb(value)
    return value


def _is_connection_loss(exc: BaseException) -> bool:
    # statement_timeout levanta QueryCanceled (subclase de OperationalError):
    # eso es un fallo de la fila, no una caida del destino
    if isinstance(exc, pg_errors.QueryCanceled):
        return False
    return isinstance(exc, (psycopg.OperationalError, psycopg.InterfaceError))


class PostgresSyncRepository:
    def __init__(self, dsn: str) -> None:
        self._dsn = dsn

    def connect(self) -> psycopg.Connection:
        """
        Abre conexion (autocommit False). El caller controla commits.
        """
        try:
            return psycopg.connect(self._dsn, row_factory=dict_row)
        except psycopg.OperationalError as e:
            raise DestinationUnavailableError(
                f"No se pudo conectar a PostgreSQL: {e}\n"
                f"Sugerencia: verifica que DATABASE_URL sea accesible desde donde ejecutas el script."
            ) from e

    def try_advisory_lock(self, conn: psycopg.Connection, lock_key: int) -> bool:
        """
        Evita ejecuciones simultaneas del mismo job.
        """
        with conn.cursor() as cur:
            cur.execute("SELECT pg_try_advisory_lock(%s) AS locked", (lock_key,))
            row = cur.fetchone()
        conn.commit()
        return bool(row and row.get("locked"))

    def release_advisory_lock(self, conn: psycopg.Connection, lock_key: int) -> None:
        with conn.cursor() as cur:
            cur.execute("SELECT pg_advisory_unlock(%s)", (lock_key,))
        conn.commit()

    def set_statement_timeout(self, conn: psycopg.Connection, timeout_s: int) -> None:
        """Tope por sentencia para la sesion; una fila colgada falla sola."""
        with conn.cursor() as cur:
            cur.execute(
                sql.SQL("SET statement_timeout = {}").format(sql.Literal(f"{int(timeout_s)}s"))
            )
        conn.commit()

    @contextmanager
    def store(self, *, statement_timeout_s: Optional[int] = None) -> Iterator["PostgresReportStore"]:
        """Conexion + store listos para usar; cierra la conexion al salir."""
        conn = self.connect()
        try:
            if statement_timeout_s:
                self.set_statement_timeout(conn, statement_timeout_s)
            yield PostgresReportStore(conn)
        finally:
            conn.close()


class PostgresReportStore(IReportStore):
    """Implementacion de IReportStore sobre una conexion psycopg."""

    def __init__(self, conn: psycopg.Connection) -> None:
        self._conn = conn

    @property
    def connection(self) -> psycopg.Connection:
        return self._conn

    # ------------------------------------------------------------------
    # SQL helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _where_clause(
        where: Optional[Record],
        null_columns: Sequence[str] = (),
        not_null_columns: Sequence[str] = (),
    ) -> tuple[sql.Composable, list[Any]]:
        parts: list[sql.Composable] = []
        params: list[Any] = []
        for column, value in (where or {}).items():
            if value is None:
                parts.append(sql.SQL("{} IS NULL").format(sql.Identifier(column)))
            else:
                parts.append(sql.SQL("{} = %s").format(sql.Identifier(column)))
                params.append(_adapt(value))
        for column in null_columns:
            parts.append(sql.SQL("{} IS NULL").format(sql.Identifier(column)))
        for column in not_null_columns:
            parts.append(sql.SQL("{} IS NOT NULL").format(sql.Identifier(column)))

        if not parts:
            return sql.SQL(""), params
        return sql.SQL(" WHERE ") + sql.SQL(" AND ").join(parts), params

    @staticmethod
    def _order_clause(order_by: Optional[Sequence[str]]) -> sql.Composable:
        if not order_by:
            return sql.SQL("")
        parts = []
        for column in order_by:
            if column.startswith("-"):
                parts.append(sql.SQL("{} DESC").format(sql.Identifier(column[1:])))
            else:
                parts.append(sql.SQL("{} ASC").format(sql.Identifier(column)))
        return sql.SQL(" ORDER BY ") + sql.SQL(", ").join(parts)

    @staticmethod
    def _limit_clause(limit: Optional[int]) -> sql.Composable:
        if limit is None:
            return sql.SQL("")
        return sql.SQL(" LIMIT {}").format(sql.Literal(int(limit)))

    def _fetch_all(self, query: sql.Composable, params: Sequence[Any], *, table: str) -> list[Record]:
        try:
            with self._conn.cursor() as cur:
                cur.execute(query, params)
                return list(cur.fetchall())
        except psycopg.Error as e:
            if _is_connection_loss(e):
                raise DestinationUnavailableError(f"Conexion a PostgreSQL perdida: {e}") from e
            raise DestinationQueryError(f"Consulta a '{table}' fallo: {e}", table=table) from e

    # ------------------------------------------------------------------
    # IReportStore
    # ------------------------------------------------------------------
    def find_one(self, table: str, where: Record) -> Optional[Record]:
        rows = self.find_many(table, where, limit=1)
        return rows[0] if rows else None

    def find_many(
        self,
        table: str,
        where: Optional[Record] = None,
        *,
        columns: Optional[Sequence[str]] = None,
        limit: Optional[int] = None,
        order_by: Optional[Sequence[str]] = None,
        null_columns: Sequence[str] = (),
        not_null_columns: Sequence[str] = (),
    ) -> list[Record]:
        select = (
            sql.SQL(", ").join(sql.Identifier(c) for c in columns) if columns else sql.SQL("*")
        )
        where_sql, params = self._where_clause(where, null_columns, not_null_columns)
        query = (
            sql.SQL("SELECT {} FROM {}").format(select, sql.Identifier(table))
            + where_sql
            + self._order_clause(order_by)
            + self._limit_clause(limit)
        )
        return self._fetch_all(query, params, table=table)

    def count(
        self,
        table: str,
        where: Optional[Record] = None,
        *,
        null_columns: Sequence[str] = (),
        not_null_columns: Sequence[str] = (),
    ) -> int:
        where_sql, params = self._where_clause(where, null_columns, not_null_columns)
        query = sql.SQL("SELECT COUNT(*) AS total FROM {}").format(sql.Identifier(table)) + where_sql
        rows = self._fetch_all(query, params, table=table)
        return int(rows[0]["total"]) if rows else 0

    def find_ilike(
        self,
        table: str,
        column: str,
        value: str,
        *,
        partial: bool = False,
        limit: Optional[int] = None,
        order_by: Optional[Sequence[str]] = None,
    ) -> list[Record]:
        pattern = f"%{_escape_like(value)}%" if partial else _escape_like(value)
        query = (
            sql.SQL("SELECT * FROM {} WHERE {} ILIKE %s").format(
                sql.Identifier(table), sql.Identifier(column)
            )
            + self._order_clause(order_by)
            + self._limit_clause(limit)
        )
        return self._fetch_all(query, [pattern], table=table)

    def insert(self, table: str, values: Record) -> Record:
        columns = list(values.keys())
        query = sql.SQL("INSERT INTO {} ({}) VALUES ({}) RETURNING *").format(
            sql.Identifier(table),
            sql.SQL(", ").join(sql.Identifier(c) for c in columns),
            sql.SQL(", ").join(sql.Placeholder() for _ in columns),
        )
        return self._write(query, [_adapt(values[c]) for c in columns], table=table, record_id=None)

    def update(self, table: str, record_id: Any, values: Record) -> Record:
        columns = list(values.keys())
        query = sql.SQL("UPDATE {} SET {} WHERE {} = %s RETURNING *").format(
            sql.Identifier(table),
            sql.SQL(", ").join(
                sql.SQL("{} = %s").format(sql.Identifier(c)) for c in columns
            ),
            sql.Identifier("id"),
        )
        params = [_adapt(values[c]) for c in columns] + [record_id]
        return self._write(query, params, table=table, record_id=record_id)

    def _write(self, query: sql.Composable, params: Sequence[Any], *, table: str, record_id: Any) -> Record:
        try:
            with self._conn.cursor() as cur:
                cur.execute(query, params)
                row = cur.fetchone()
        except psycopg.Error as e:
            if _is_connection_loss(e):
                raise DestinationUnavailableError(f"Conexion a PostgreSQL perdida: {e}") from e
            raise UpsertFailedError(
                f"Escritura en '{table}' rechazada: {e}",
                table=table,
                record_id=None if record_id is None else str(record_id),
            ) from e
        if row is None:
            raise UpsertFailedError(
                f"Escritura en '{table}' no retorno filas (id={record_id})",
                table=table,
                record_id=None if record_id is None else str(record_id),
            )
        return row

    def list_orphan_session_ids(self, limit: int = 100) -> list[Any]:
        query = sql.SQL(
            """
            SELECT s.id
            FROM sessions s
            WHERE NOT EXISTS (SELECT 1 FROM reports r WHERE r.session_id = s.id)
            ORDER BY s.id
            """
        ) + self._limit_clause(limit)
        return [row["id"] for row in self._fetch_all(query, [], table="sessions")]

    def commit(self) -> None:
        try:
            self._conn.commit()
        except psycopg.Error as e:
            if _is_connection_loss(e):
                raise DestinationUnavailableError(f"Conexion a PostgreSQL perdida: {e}") from e
            raise UpsertFailedError(f"COMMIT rechazado: {e}") from e

    def rollback(self) -> None:
        try:
            self._conn.rollback()
        except psycopg.Error as e:
            raise DestinationUnavailableError(f"ROLLBACK fallo: {e}") from e


def _escape_like(value: str) -> str:
    """Escapa comodines de LIKE para que el input se trate como texto literal."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
