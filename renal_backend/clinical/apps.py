"""
Clinical App Configuration
"""

from django.apps import AppConfig


class ClinicalConfig(AppConfig):
    """App-Konfiguration für Laborwerte, Klassifikation und Medikation"""
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'renal_backend.clinical'
    verbose_name = 'Clinical (Klassifikation & Medikation)'
