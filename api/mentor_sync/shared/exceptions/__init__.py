"""
Excepciones del dominio.
"""
from mentor_sync.shared.exceptions.base import AppException
