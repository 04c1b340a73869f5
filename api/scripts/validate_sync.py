"""
CLI: Validador de drift Sheets vs PostgreSQL.

Ejecucion:
  python scripts/validate_sync.py
  python scripts/validate_sync.py --test
  python scripts/validate_sync.py --test 25
  python scripts/validate_sync.py --live
"""
import sys
from pathlib import Path

# Permite ejecutar este script desde cualquier cwd sin instalar el paquete.
_API_ROOT = Path(__file__).resolve().parents[1]
if str(_API_ROOT) not in sys.path:
    sys.path.insert(0, str(_API_ROOT))

from mentor_sync.cli import validate_sync_main


if __name__ == "__main__":
    raise SystemExit(validate_sync_main())
