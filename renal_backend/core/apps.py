"""
Core App Configuration
"""

from django.apps import AppConfig


class CoreConfig(AppConfig):
    """App-Konfiguration für Benutzer, Rollen und Audit-Log"""
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'renal_backend.core'
    verbose_name = 'Core (Users & Roles)'
