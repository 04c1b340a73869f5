"""
CLI: Sync de reportes Upward Mobility (pestana UM).

Ejecucion:
  python scripts/sync_um_reports.py
  python scripts/sync_um_reports.py --test
  python scripts/sync_um_reports.py --test 25
"""
import sys
from pathlib import Path

# Permite ejecutar este script desde cualquier cwd sin instalar el paquete.
_API_ROOT = Path(__file__).resolve().parents[1]
if str(_API_ROOT) not in sys.path:
    sys.path.insert(0, str(_API_ROOT))

from mentor_sync.cli import sync_um_main


if __name__ == "__main__":
    raise SystemExit(sync_um_main())
