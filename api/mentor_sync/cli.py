"""
CLI de los jobs de sincronizacion.

Uso recomendado:
  - Ejecutar como job (cron/systemd timer), un comando por job.
  - No se integra al request/response del API para evitar timeouts.

Comandos:
  mentor-sync sync_bangkit_reports [--test [N]]
  mentor-sync sync_maju_reports    [--test [N]]
  mentor-sync sync_um_reports      [--test [N]]
  mentor-sync master_sync          [--test [N]]
  mentor-sync sync_docurl          [--test [N]] [--live]
  mentor-sync validate_sync        [--test [N]] [--live]

Variables de entorno requeridas:
  - GOOGLE_CREDENTIALS_BASE64
  - GOOGLE_SHEETS_REPORT_ID (y opcionalmente los IDs de Maju / UM)
  - DATABASE_URL (debe ser postgresql://... o postgres://...)

Exit codes: 0 si no hubo filas con error ni fallos fatales (en validate_sync:
si no hubo ningun CRITICAL), 1 en caso contrario, 2 por uso incorrecto.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Callable, Optional, Sequence

from dotenv import load_dotenv
from loguru import logger

from mentor_sync.core.config import Settings
from mentor_sync.core.events import configure_logging
from mentor_sync.shared.constants.sync_constants import Program
from mentor_sync.shared.exceptions.sync import SyncException

# Carpeta api/ y raiz del repo: ubicaciones tipicas del .env
_API_ROOT = Path(__file__).resolve().parents[1]
_REPO_ROOT = _API_ROOT.parent


def _bootstrap() -> Settings:
    """Carga .env, construye Settings y configura logging."""
    load_dotenv(_API_ROOT / ".env", override=False)
    load_dotenv(_REPO_ROOT / ".env", override=False)
    settings = Settings()
    configure_logging(level=settings.LOG_LEVEL, log_file=settings.LOG_FILE)
    return settings


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"debe ser >= 1: {value}")
    return number


def _build_parser(prog: str, description: str, *, with_live: bool = False) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=prog, description=description)
    parser.add_argument(
        "--test",
        nargs="?",
        type=_positive_int,
        const=-1,
        default=None,
        metavar="N",
        help="Modo test: procesa solo las primeras N filas (por defecto SYNC_TEST_LIMIT).",
    )
    if with_live:
        parser.add_argument(
            "--live",
            action="store_true",
            help="Escribe en la base de datos (por defecto es dry-run).",
        )
    return parser


def _resolve_limit(test: Optional[int], settings: Settings) -> Optional[int]:
    if test is None:
        return None
    limit = settings.SYNC_TEST_LIMIT if test == -1 else test
    logger.info(f"MODO TEST: limite de {limit} filas")
    return limit


def _guarded(job: Callable[[], int]) -> int:
    """Errores fatales fuera del job (config, conexion inicial) -> exit code 1."""
    try:
        return job()
    except SyncException as e:
        logger.error(f"{e.error_code}: {e.message}")
        return 1


def _report_sync_command(program: Program, prog: str) -> Callable[[Optional[Sequence[str]]], int]:
    def command(argv: Optional[Sequence[str]] = None) -> int:
        from mentor_sync.infrastructure.external.sheets_sync.sync_service import run_report_sync

        parser = _build_parser(prog, f"Sincroniza reportes {program.value}: Google Sheets -> PostgreSQL.")
        args = parser.parse_args(argv)
        settings = _bootstrap()
        limit = _resolve_limit(args.test, settings)
        return _guarded(lambda: run_report_sync(program, settings, limit=limit).exit_code)

    command.__name__ = f"{prog}_main"
    return command


sync_bangkit_main = _report_sync_command(Program.BANGKIT, "sync_bangkit_reports")
sync_maju_main = _report_sync_command(Program.MAJU, "sync_maju_reports")
sync_um_main = _report_sync_command(Program.UPWARD_MOBILITY, "sync_um_reports")


def master_sync_main(argv: Optional[Sequence[str]] = None) -> int:
    from mentor_sync.infrastructure.external.sheets_sync.sync_service import run_master_sync

    parser = _build_parser("master_sync", "Corre los syncs Bangkit, Maju y UM en orden.")
    args = parser.parse_args(argv)
    settings = _bootstrap()
    limit = _resolve_limit(args.test, settings)
    return _guarded(lambda: run_master_sync(settings, limit=limit).exit_code)


def sync_docurl_main(argv: Optional[Sequence[str]] = None) -> int:
    from mentor_sync.infrastructure.external.sheets_sync.docurl_backfill import run_docurl_backfill

    parser = _build_parser(
        "sync_docurl",
        "Completa doc_url faltantes desde la columna de documento de cada hoja.",
        with_live=True,
    )
    args = parser.parse_args(argv)
    settings = _bootstrap()
    limit = _resolve_limit(args.test, settings)

    def job() -> int:
        results = run_docurl_backfill(settings, live=args.live, limit=limit)
        return 1 if any(r.exit_code for r in results) else 0

    return _guarded(job)


def validate_sync_main(argv: Optional[Sequence[str]] = None) -> int:
    from mentor_sync.infrastructure.external.sheets_sync.drift_validator import run_validation

    parser = _build_parser(
        "validate_sync",
        "Compara Google Sheets con PostgreSQL (solo lectura; --live registra hallazgos).",
        with_live=True,
    )
    args = parser.parse_args(argv)
    settings = _bootstrap()
    limit = _resolve_limit(args.test, settings)
    return _guarded(lambda: run_validation(settings, limit=limit, live=args.live).exit_code)


COMMANDS: dict[str, Callable[[Optional[Sequence[str]]], int]] = {
    "sync_bangkit_reports": sync_bangkit_main,
    "sync_maju_reports": sync_maju_main,
    "sync_um_reports": sync_um_main,
    "master_sync": master_sync_main,
    "sync_docurl": sync_docurl_main,
    "validate_sync": validate_sync_main,
}


def main(argv: Optional[Sequence[str]] = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    if not argv or argv[0] not in COMMANDS:
        print(__doc__)
        return 2
    return COMMANDS[argv[0]](argv[1:])


if __name__ == "__main__":
    raise SystemExit(main())
