"""
Interfaz del almacen destino (PostgreSQL) usado por el pipeline.
Define el contrato que debe cumplir cualquier implementacion.

Es deliberadamente generico (tabla + filtros por igualdad): el resolver, el
upserter, el logger de discrepancias y el validador comparten la misma
interfaz, y los tests usan una implementacion en memoria.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence


Record = Dict[str, Any]


class IReportStore(ABC):
    """
    Operaciones de lectura/escritura sobre las tablas destino.

    Todas las escrituras quedan en la transaccion actual; el caller decide
    cuando hacer commit() o rollback().
    """

    @abstractmethod
    def find_one(self, table: str, where: Record) -> Optional[Record]:
        """
        Obtiene el primer registro que cumpla todos los filtros de igualdad.

        Args:
            table: Nombre de la tabla
            where: Filtros columna -> valor

        Returns:
            Optional[Record]: Registro encontrado o None
        """
        pass

    @abstractmethod
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
    ) -> List[Record]:
        """
        Lista registros con filtros de igualdad y de nulidad.

        Args:
            order_by: columnas; prefijo "-" para orden descendente
        """
        pass

    @abstractmethod
    def count(
        self,
        table: str,
        where: Optional[Record] = None,
        *,
        null_columns: Sequence[str] = (),
        not_null_columns: Sequence[str] = (),
    ) -> int:
        pass

    @abstractmethod
    def find_ilike(
        self,
        table: str,
        column: str,
        value: str,
        *,
        partial: bool = False,
        limit: Optional[int] = None,
        order_by: Optional[Sequence[str]] = None,
    ) -> List[Record]:
        """
        Busqueda case-insensitive.

        Args:
            partial: si True busca `value` como substring; si no, igualdad exacta
        """
        pass

    @abstractmethod
    def insert(self, table: str, values: Record) -> Record:
        """Inserta y retorna el registro completo (con id asignado)."""
        pass

    @abstractmethod
    def update(self, table: str, record_id: Any, values: Record) -> Record:
        """Actualiza por id y retorna el registro completo."""
        pass

    @abstractmethod
    def list_orphan_session_ids(self, limit: int = 100) -> List[Any]:
        """IDs de sesiones sin ningun reporte que las referencie."""
        pass

    @abstractmethod
    def commit(self) -> None:
        pass

    @abstractmethod
    def rollback(self) -> None:
        pass
