# factory_core/management/commands/check_workflow_integrity.py

from django.core.management.base import BaseCommand, CommandError

from factory_core.workflows.integrity import check_all


class Command(BaseCommand):
    help = "Validate orders, department queues and worker assignments against workflow invariants"

    def handle(self, *args, **options):
        self.stdout.write("Checking workflow integrity...\n")

        errors = check_all()

        for err in errors:
            self.stderr.write(f"[ERROR] {err}")

        if errors:
            self.stderr.write("\nWorkflow integrity check FAILED.")
            raise CommandError(f"{len(errors)} workflow invariant violation(s) found.")

        self.stdout.write("All workflow invariants hold.")
