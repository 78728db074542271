# factory_core/management/commands/dispatch_waiting_work.py

from django.core.management.base import BaseCommand

from factory_core.services.dispatch import dispatch_waiting_work


class Command(BaseCommand):
    help = "Assign waiting department queue entries to available workers"

    def add_arguments(self, parser):
        parser.add_argument(
            "--department",
            help="Only dispatch this department (default: all departments)",
        )

    def handle(self, *args, **options):
        assigned = dispatch_waiting_work(options.get("department"))
        self.stdout.write(f"Assigned {assigned} waiting record(s).")
