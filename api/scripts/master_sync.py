"""
CLI: Master sync: Bangkit -> Maju -> UM.

Ejecucion:
  python scripts/master_sync.py
  python scripts/master_sync.py --test
  python scripts/master_sync.py --test 25
"""
import sys
from pathlib import Path

# Permite ejecutar este script desde cualquier cwd sin instalar el paquete.
_API_ROOT = Path(__file__).resolve().parents[1]
if str(_API_ROOT) not in sys.path:
    sys.path.insert(0, str(_API_ROOT))

from mentor_sync.cli import master_sync_main


if __name__ == "__main__":
    raise SystemExit(master_sync_main())
