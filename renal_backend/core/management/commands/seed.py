"""
Seed Command – erzeugt reproduzierbare Testdaten.

Verwendung:
    python manage.py seed           # Seed für alle Apps
    python manage.py seed --flush   # Testdaten löschen und neu aufbauen

WICHTIG:
- Testarten und Situationen sind Stammdaten aus den Migrationen und werden
  nie gelöscht.
- Demo-Patienten werden über die Klassifikations-Engine angelegt.
"""

from django.core.management.base import BaseCommand
from django.db import transaction

from renal_backend.clinical.seeders import seed_clinical
from renal_backend.core.seeders import seed_core


class Command(BaseCommand):
    help = "Seed database with demo data for the renal clinic backend"

    def add_arguments(self, parser):
        parser.add_argument(
            "--flush",
            action="store_true",
            help="Delete existing demo data before seeding (reference data stays untouched).",
        )

    def handle(self, *args, **options):
        flush = options.get("flush", False)

        self.stdout.write("=" * 80)
        self.stdout.write("  Renal Backend Seed – Testdaten generieren")
        self.stdout.write("=" * 80)

        try:
            with transaction.atomic():
                stats = {}

                # 1. Core (Rollen, Benutzer)
                self.stdout.write("\n[1/2] Seeding Core (Roles, Users)...")
                core_stats = seed_core(flush=flush)
                stats.update(core_stats)
                self._print_stats(core_stats)

                # 2. Clinical (Medikamente, Patienten, Visiten)
                self.stdout.write("\n[2/2] Seeding Clinical (Medication types, Patients, Visits)...")
                clinical_stats = seed_clinical(flush=flush)
                stats.update(clinical_stats)
                self._print_stats(clinical_stats)

                self.stdout.write("\n" + "=" * 80)
                self.stdout.write("  ✓ Seeding erfolgreich abgeschlossen!")
                self.stdout.write("=" * 80)
                self._print_summary(stats)

        except Exception as e:
            self.stdout.write(f"\n✗ Fehler beim Seeding: {e}")
            raise

    def _print_stats(self, stats):
        for key, value in stats.items():
            self.stdout.write(f"  ✓ {key}: {value}")

    def _print_summary(self, stats):
        self.stdout.write("\nErstellte Datensätze (gesamt):")
        for key, value in sorted(stats.items()):
            self.stdout.write(f"  • {key}: {value}")
