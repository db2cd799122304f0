"""
Bring records written by the first generation of the app onto the current
field set.

  - owner_id was introduced after legacy_agent_id: copy it across where empty
  - task kinds used other names (newbie, first_class, monthly_care, ...)

Usage:
    python manage.py migrate_legacy_tasks
    python manage.py migrate_legacy_tasks --dry-run
"""
from django.core.management.base import BaseCommand
from django.db import transaction
from django.db.models import F, Q

from app.models.contract import Contract
from app.models.task import Task
from app.services.timeline import LEGACY_KIND_NAMES


class Command(BaseCommand):
    help = "Copy legacy agent ownership into owner_id and normalise legacy task kinds"

    def add_arguments(self, parser):
        parser.add_argument(
            "--dry-run", action="store_true",
            help="Report what would change without writing",
        )

    def handle(self, *args, **options):
        dry_run = options["dry_run"]
        orphaned = Q(owner_id="") & Q(legacy_agent_id__isnull=False) & ~Q(legacy_agent_id="")

        with transaction.atomic():
            contracts = Contract.objects.filter(orphaned)
            tasks = Task.objects.filter(orphaned)
            if dry_run:
                contract_count, task_count = contracts.count(), tasks.count()
            else:
                contract_count = contracts.update(owner_id=F("legacy_agent_id"))
                task_count = tasks.update(owner_id=F("legacy_agent_id"))

            renamed = {}
            for legacy_kind, kind in LEGACY_KIND_NAMES.items():
                legacy_tasks = Task.objects.filter(kind=legacy_kind)
                count = legacy_tasks.count() if dry_run else legacy_tasks.update(kind=kind)
                if count:
                    renamed[legacy_kind] = count

        prefix = "Would migrate" if dry_run else "Migrated"
        self.stdout.write(self.style.SUCCESS(
            f"{prefix}: {contract_count} contracts and {task_count} tasks given an owner_id"
        ))
        for legacy_kind, count in renamed.items():
            self.stdout.write(f"  {legacy_kind} -> {LEGACY_KIND_NAMES[legacy_kind]}: {count} tasks")
