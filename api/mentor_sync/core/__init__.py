"""Configuracion y eventos compartidos por jobs y API."""
