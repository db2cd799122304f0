"""
Management command to register the care schedule sweep with django-q.

Usage:
    python manage.py setup_schedule_sweep
    python manage.py setup_schedule_sweep --minutes 30

This creates (or updates) a Schedule entry that runs ensure_care_schedules()
periodically. Safe to run multiple times — it uses update_or_create.
"""
from django.core.management.base import BaseCommand
from django_q.models import Schedule


class Command(BaseCommand):
    help = "Register the periodic care schedule sweep task with django-q"

    def add_arguments(self, parser):
        parser.add_argument(
            "--minutes", type=int, default=15,
            help="Sweep interval in minutes (default 15)",
        )

    def handle(self, *args, **options):
        minutes = options["minutes"]
        schedule, created = Schedule.objects.update_or_create(
            name="care_ensure_schedules",
            defaults={
                "func": "app.services.task_generator.ensure_care_schedules",
                "schedule_type": Schedule.MINUTES,
                "minutes": minutes,
                "repeats": -1,  # run forever
            },
        )
        verb = "Created" if created else "Updated"
        self.stdout.write(self.style.SUCCESS(
            f"{verb} periodic task: {schedule.name} (every {minutes} minutes)"
        ))
