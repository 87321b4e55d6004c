"""
Prüft die Situation-Tabelle gegen den aus der Klassifikation abgeleiteten Katalog.

Verwendung:
    python manage.py verify_situation_catalog

Exit-Code != 0, wenn Zeilen fehlen, abweichen oder überzählig sind.
"""

from django.core.management.base import BaseCommand, CommandError

from renal_backend.clinical.models import Situation
from renal_backend.clinical.services.situations import catalog_drift, situation_catalog


class Command(BaseCommand):
    help = "Verify that the Situation table matches the derived 66-entry catalog"

    def handle(self, *args, **options):
        stored = list(Situation.objects.using("default").order_by("id"))
        problems = catalog_drift(stored)

        if problems:
            for problem in problems:
                self.stderr.write(f"  ✗ {problem}")
            raise CommandError(f"Situation catalog drift: {len(problems)} problem(s)")

        self.stdout.write(
            self.style.SUCCESS(f"✓ Situation catalog OK ({len(situation_catalog())} entries)")
        )
