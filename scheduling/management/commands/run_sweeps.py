"""
Management command to run the scheduling sweeps once (for cron deployments
without Celery beat).
"""

from datetime import datetime

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from scheduling.services.notification_outbox import NotificationOutbox
from scheduling.services.reminder_service import TimetableReminderService
from scheduling.services.reset_service import TimetableResetService
from scheduling.services.retention_service import RetentionService

SWEEPS = ("reset", "reminders", "outbox", "retention")


class Command(BaseCommand):
    help = "Run the timetable reset, reminder, outbox and retention sweeps once"

    def add_arguments(self, parser):
        parser.add_argument(
            "--only",
            choices=SWEEPS,
            action="append",
            help="Run only the named sweep (repeatable)",
        )
        parser.add_argument(
            "--at",
            help="Local wall-clock time to run as, e.g. 2025-01-10T05:00",
        )

    def handle(self, *args, **options):
        now = self._parse_at(options.get("at"))
        selected = options.get("only") or list(SWEEPS)

        if "reset" in selected:
            removed = TimetableResetService.run(now)
            self.stdout.write(f"reset: removed {removed} timetable entries")

        if "reminders" in selected:
            sent = TimetableReminderService.run(now)
            self.stdout.write(f"reminders: sent {sent}")

        if "outbox" in selected:
            delivered = NotificationOutbox.drain()
            self.stdout.write(f"outbox: delivered {delivered}")

        if "retention" in selected:
            audit = RetentionService.purge_audit_logs(now)
            tokens = RetentionService.purge_blacklisted_tokens(now)
            outbox = RetentionService.purge_outbox(now)
            self.stdout.write(
                f"retention: {audit} audit rows, {tokens} blacklisted tokens, {outbox} outbox rows"
            )

        self.stdout.write(self.style.SUCCESS("Sweeps complete"))

    def _parse_at(self, value):
        if not value:
            return timezone.now()
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            raise CommandError(f"Invalid --at value: {value}")
        if timezone.is_naive(parsed):
            parsed = timezone.make_aware(parsed)
        return parsed
