"""
Cliente minimo de Google Sheets API v4 (values.get) para lectura de pestanas.

Requisitos cubiertos:
- auth con service account (google-auth, scope de solo lectura)
- rate-limit/backoff (429, 5xx) respetando Retry-After
- filas con posicion estable (SourceRow) y lookup tolerante de headers
"""

from __future__ import annotations

import base64
import json
import time
from dataclasses import dataclass
from typing import Any, Optional
from urllib.parse import quote

import requests
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import AuthorizedSession
from google.oauth2 import service_account
from loguru import logger

from mentor_sync.shared.exceptions.sync import SourceUnavailableError, SyncConfigError

from .types import SourceRow, build_rows

SHEETS_READONLY_SCOPE = "https://www.googleapis.com/auth/spreadsheets.readonly"

DEFAULT_RANGE = "A:CZ"


@dataclass(frozen=True)
class SheetRef:
    """Pestana origen: spreadsheet + tab + rango."""

    spreadsheet_id: str
    tab_name: str
    cell_range: str = DEFAULT_RANGE

    @property
    def a1_range(self) -> str:
        # Las pestanas con espacios o puntuacion requieren comillas simples en A1
        return f"'{self.tab_name}'!{self.cell_range}"


def load_service_account_info(credentials_b64: str) -> dict[str, Any]:
    """Decodifica GOOGLE_CREDENTIALS_BASE64 (JSON de service account)."""
    if not credentials_b64:
        raise SyncConfigError("Falta variable de entorno obligatoria: GOOGLE_CREDENTIALS_BASE64")
    try:
        return json.loads(base64.b64decode(credentials_b64).decode("utf-8"))
    except (ValueError, UnicodeDecodeError) as e:
        raise SyncConfigError(f"GOOGLE_CREDENTIALS_BASE64 invalida: {e}") from e


def build_authorized_session(credentials_b64: str) -> AuthorizedSession:
    info = load_service_account_info(credentials_b64)
    try:
        creds = service_account.Credentials.from_service_account_info(
            info, scopes=[SHEETS_READONLY_SCOPE]
        )
    except (ValueError, GoogleAuthError) as e:
        raise SyncConfigError(f"Credenciales de service account invalidas: {e}") from e
    return AuthorizedSession(creds)


class SheetsRowSource:
    """
    Cliente HTTP de Sheets. Devuelve la pestana completa como lista de SourceRow.

    Importante:
    - No hace cast de tipos: eso se decide en los FieldMappers.
    - Una pestana vacia no es error: retorna [] y deja un warning.
    - Errores de conexion/auth son fatales (SourceUnavailableError).
    """

    def __init__(
        self,
        session: requests.Session,
        *,
        base_url: str = "https://sheets.googleapis.com/v4/spreadsheets",
        timeout_s: int = 30,
        max_retries: int = 5,
        min_backoff_s: float = 0.8,
        max_backoff_s: float = 20.0,
    ) -> None:
        self._session = session
        self._base_url = base_url.rstrip("/")
        self._timeout_s = timeout_s
        self._max_retries = max_retries
        self._min_backoff_s = min_backoff_s
        self._max_backoff_s = max_backoff_s

    @classmethod
    def from_settings(cls, settings) -> "SheetsRowSource":
        session = build_authorized_session(settings.GOOGLE_CREDENTIALS_BASE64)
        return cls(
            session,
            timeout_s=settings.SHEETS_TIMEOUT_S,
            max_retries=settings.SHEETS_MAX_RETRIES,
        )

    def get_rows(
        self,
        spreadsheet_id: str,
        tab_name: str,
        cell_range: str = DEFAULT_RANGE,
    ) -> list[SourceRow]:
        ref = SheetRef(spreadsheet_id=spreadsheet_id, tab_name=tab_name, cell_range=cell_range)
        return self.fetch(ref)

    def fetch(self, ref: SheetRef) -> list[SourceRow]:
        if not ref.spreadsheet_id:
            raise SyncConfigError(f"Spreadsheet ID no configurado para la pestana '{ref.tab_name}'")

        url = f"{self._base_url}/{ref.spreadsheet_id}/values/{quote(ref.a1_range, safe='')}"
        payload = self._request_json(url, ref=ref)
        values = payload.get("values") or []

        if not values:
            logger.warning(f"No se encontraron filas en la pestana '{ref.tab_name}'")
            return []

        rows = build_rows(values)
        if not rows:
            logger.warning(f"La pestana '{ref.tab_name}' solo tiene encabezados")
            return []
        logger.info(f"Leidas {len(rows)} filas de '{ref.tab_name}' ({len(values[0])} columnas)")
        return rows

    def _request_json(self, url: str, *, ref: SheetRef) -> dict[str, Any]:
        """
        Request HTTP con backoff para 429/5xx.

        Estrategia:
        - 429: respeta Retry-After si existe, si no exponencial con jitter simple.
        - 5xx: exponencial con jitter.
        - 4xx (no 429): error inmediato (auth, permisos o rango invalido).
        """
        params = {"valueRenderOption": "FORMATTED_VALUE", "majorDimension": "ROWS"}

        for attempt in range(self._max_retries + 1):
            try:
                resp = self._session.request(
                    method="GET",
                    url=url,
                    params=params,
                    timeout=self._timeout_s,
                )
            except (requests.RequestException, GoogleAuthError) as e:
                raise SourceUnavailableError(
                    f"No se pudo conectar con Google Sheets: {e}",
                    spreadsheet_id=ref.spreadsheet_id,
                ) from e

            if 200 <= resp.status_code < 300:
                return resp.json()

            # Errores recuperables
            if resp.status_code == 429 or 500 <= resp.status_code < 600:
                if attempt >= self._max_retries:
                    raise SourceUnavailableError(
                        f"Sheets error {resp.status_code} tras {attempt} reintentos: {resp.text[:300]}",
                        spreadsheet_id=ref.spreadsheet_id,
                        status=resp.status_code,
                    )

                sleep_s = self._backoff_seconds(attempt, resp.headers.get("Retry-After"))
                logger.warning(
                    f"Sheets respondio {resp.status_code}; reintento {attempt + 1}/{self._max_retries} en {sleep_s:.1f}s"
                )
                time.sleep(sleep_s)
                continue

            # Errores no recuperables
            raise SourceUnavailableError(
                f"Sheets request fallo {resp.status_code} para '{ref.tab_name}': {resp.text[:300]}",
                spreadsheet_id=ref.spreadsheet_id,
                status=resp.status_code,
            )

        # Inalcanzable: el loop retorna o lanza
        raise SourceUnavailableError("Sheets request agoto reintentos", spreadsheet_id=ref.spreadsheet_id)

    def _backoff_seconds(self, attempt: int, retry_after: Optional[str]) -> float:
        if retry_after:
            try:
                return float(retry_after)
            except ValueError:
                return self._min_backoff_s
        # Exponencial simple + jitter proporcional
        base = min(self._max_backoff_s, self._min_backoff_s * (2**attempt))
        return base + (0.15 * base)
