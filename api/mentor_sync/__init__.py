"""
Sincronizacion de reportes de mentoria: Google Sheets -> PostgreSQL.

Incluye los jobs batch (sync por variante, master sync, backfill de doc_url,
validador de drift) y una API de monitoreo de solo lectura.
"""
