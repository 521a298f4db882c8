from django.core.management.base import BaseCommand

from core.services import ReservationEngine


class Command(BaseCommand):
    help = "Recompute table availability from active reservations"

    def add_arguments(self, parser):
        parser.add_argument("--database", default="default")

    def handle(self, *args, **options):
        corrected = ReservationEngine(using=options["database"]).reconcile_availability()
        if not corrected:
            self.stdout.write(self.style.SUCCESS("All tables already consistent"))
            return
        for table in corrected:
            state = "available" if table.is_available else "unavailable"
            self.stdout.write(f"Table {table.pk} ({table.name}) -> {state}")
        self.stdout.write(self.style.SUCCESS(f"Reconciled {len(corrected)} table(s)"))
