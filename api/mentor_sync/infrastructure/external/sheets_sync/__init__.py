"""
Pipeline de sincronizacion one-way: Google Sheets -> PostgreSQL.

Este paquete esta disenado para ejecutarse como job (cron / task scheduler),
no como parte del request/response del API.

Objetivos de diseno:
- Idempotencia: se puede ejecutar N veces sin duplicar reportes ni sesiones.
- Aislamiento por fila: una fila mala no detiene el batch.
- Sin fallos silenciosos: cada fila no escrita queda en dual_write_logs.
- Mapeo/transformaciones/resolucion de entidades explicitos en codigo.
"""
