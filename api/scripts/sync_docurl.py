"""
CLI: Backfill de doc_url (dry-run salvo --live).

Ejecucion:
  python scripts/sync_docurl.py
  python scripts/sync_docurl.py --test
  python scripts/sync_docurl.py --test 25
  python scripts/sync_docurl.py --live
"""
import sys
from pathlib import Path

# Permite ejecutar este script desde cualquier cwd sin instalar el paquete.
_API_ROOT = Path(__file__).resolve().parents[1]
if str(_API_ROOT) not in sys.path:
    sys.path.insert(0, str(_API_ROOT))

from mentor_sync.cli import sync_docurl_main


if __name__ == "__main__":
    raise SystemExit(sync_docurl_main())
