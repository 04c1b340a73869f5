"""
Parsers puros compartidos por los FieldMappers.

Reglas comunes:
- Nunca lanzan: ante input invalido retornan None (o el enum UNKNOWN).
- Los subcampos JSON mal formados se registran en debug y degradan a None.
"""

from __future__ import annotations

import json
import math
import re
from datetime import date, datetime
from typing import Any, Optional
from zoneinfo import ZoneInfo

from loguru import logger

from mentor_sync.shared.constants.sync_constants import MiaStatus, YesNo
from mentor_sync.shared.exceptions.sync import MalformedSubfieldError

# Los formularios se llenan en hora de Malasia
SOURCE_TZ = ZoneInfo("Asia/Kuala_Lumpur")

_SESSION_NUMBER_RE = re.compile(r"#?\s*(\d+)")
_DATETIME_RE = re.compile(
    r"^(\d{1,2})[/-](\d{1,2})[/-](\d{4}),?\s+(\d{1,2}):(\d{2})(?::(\d{2}))?$"
)
_DATE_RE = re.compile(r"^(\d{1,2})[/-](\d{1,2})[/-](\d{4})")
_ISO_DATE_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")

_CHECKED_VALUES = {"true", "yes", "ya", "1", "checked", "y"}
_UNCHECKED_VALUES = {"false", "no", "tidak", "0", "unchecked", "n"}

# Textos de "sesion realizada" que usan los formularios
_NOT_MIA_VALUES = {"selesai", "sesi selesai", "completed", "tidak mia", "bukan mia"}


def _clean_numeric_text(value: Any) -> str:
    text = str(value).strip()
    text = re.sub(r"(?i)^rm\s*", "", text)
    return text.replace(",", "").replace(" ", "")


def parse_numeric(value: Any) -> Optional[float]:
    """'RM 1,234.50' -> 1234.5; None si vacio o no numerico."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = _clean_numeric_text(value)
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    # float() acepta "nan" e "inf"
    return number if math.isfinite(number) else None


def parse_integer(value: Any) -> Optional[int]:
    """Como parse_numeric pero entero (trunca decimales '3.0' -> 3)."""
    number = parse_numeric(value)
    if number is None:
        return None
    return int(number)


def parse_local_datetime(value: Any) -> Optional[datetime]:
    """
    'DD/MM/YYYY, HH:MM:SS' (coma opcional, segundos opcionales) -> datetime aware.

    La hora se interpreta en Asia/Kuala_Lumpur.
    """
    if not value:
        return None
    match = _DATETIME_RE.match(str(value).strip())
    if not match:
        return None
    day, month, year, hour, minute, second = match.groups()
    try:
        return datetime(
            int(year), int(month), int(day),
            int(hour), int(minute), int(second or 0),
            tzinfo=SOURCE_TZ,
        )
    except ValueError:
        return None


def parse_local_date(value: Any) -> Optional[date]:
    """'DD/MM/YYYY' o 'DD-MM-YYYY' (o ISO 'YYYY-MM-DD') -> date."""
    if not value:
        return None
    text = str(value).strip()

    iso = _ISO_DATE_RE.match(text)
    if iso:
        year, month, day = iso.groups()
    else:
        match = _DATE_RE.match(text)
        if not match:
            return None
        day, month, year = match.groups()

    try:
        return date(int(year), int(month), int(day))
    except ValueError:
        return None


def split_multi_value(value: Any) -> Optional[list[str]]:
    """'a, b,, c' -> ['a', 'b', 'c']; None si no queda ningun valor."""
    if not value:
        return None
    items = [part.strip() for part in str(value).split(",")]
    items = [item for item in items if item]
    return items or None


def parse_json_field(value: Any, field: str = "json") -> Any:
    """
    JSON defensivo. Retorna None ante input vacio o mal formado.

    El error se registra en debug como MalformedSubfieldError y no se propaga.
    """
    if value is None:
        return None
    if isinstance(value, (list, dict)):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return json.loads(text)
    except (ValueError, TypeError):
        logger.debug(MalformedSubfieldError(field, text).message)
        return None


def parse_session_number(value: Any) -> Optional[int]:
    """'Sesi #2' -> 2, '#3' -> 3, '4' -> 4."""
    if value is None:
        return None
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    match = _SESSION_NUMBER_RE.search(str(value))
    if not match:
        return None
    return int(match.group(1))


def parse_mia_status(value: Any) -> MiaStatus:
    """
    Texto libre de estado de sesion -> MiaStatus.

    - "Tidak MIA", "Selesai", "Sesi Selesai", "completed": NOT_MIA
    - texto con "mia" sin "tidak": MIA
    - cualquier otro texto (o vacio): UNKNOWN
    """
    if value is None:
        return MiaStatus.UNKNOWN
    text = " ".join(str(value).split()).casefold()
    if not text:
        return MiaStatus.UNKNOWN
    if text in _NOT_MIA_VALUES or text.startswith("selesai") or ("tidak" in text and "mia" in text):
        return MiaStatus.NOT_MIA
    if "mia" in text:
        return MiaStatus.MIA
    return MiaStatus.UNKNOWN


def parse_yes_no(value: Any) -> YesNo:
    """'Ya'/'Yes'/'checked'/'1' -> YES, 'Tidak'/'No'/'0' -> NO, resto UNKNOWN."""
    if value is None:
        return YesNo.UNKNOWN
    if isinstance(value, bool):
        return YesNo.YES if value else YesNo.NO
    text = str(value).strip().casefold()
    if text in _CHECKED_VALUES:
        return YesNo.YES
    if text in _UNCHECKED_VALUES:
        return YesNo.NO
    return YesNo.UNKNOWN


def is_checked(value: Any) -> bool:
    return parse_yes_no(value) is YesNo.YES


def parse_url_list(value: Any, field: str = "urls") -> list[str]:
    """
    Celda de imagenes: array JSON de URLs o una URL suelta.

    Texto que parece JSON pero no parsea se descarta (y se registra).
    """
    if not value:
        return []
    text = str(value).strip()
    if not text:
        return []
    if text.startswith("["):
        parsed = parse_json_field(text, field)
        if not isinstance(parsed, list):
            return []
        return [str(u).strip() for u in parsed if u and str(u).strip()]
    return [text]


def first_url(value: Any, field: str = "url") -> Optional[str]:
    urls = parse_url_list(value, field)
    return urls[0] if urls else None

