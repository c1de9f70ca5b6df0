"""
Own-slot reminder sweep.

Runs every minute and scans the timetable. A reminder fires for an entry
exactly in the minute ``slot - lead`` where ``lead`` is the owner's
configured reminder lead time. Reminders are push-only.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from django.conf import settings
from django.utils import timezone

from scheduling.constants import NotificationType
from scheduling.models import TimetableEntry
from scheduling.services.notification_service import NotificationService

logger = logging.getLogger(__name__)


def truncate_minute(value: datetime) -> datetime:
    return timezone.localtime(value).replace(second=0, microsecond=0)


class TimetableReminderService:
    @staticmethod
    def reminder_target(slot: datetime, lead_minutes: int) -> datetime:
        return truncate_minute(slot - timedelta(minutes=lead_minutes))

    @staticmethod
    def run(now: Optional[datetime] = None) -> int:
        """
        Send the reminders due in the current minute.

        Args:
            now: Tick time; defaults to the current time

        Returns:
            Number of reminders handed to the notification service
        """
        now = truncate_minute(now or timezone.now())
        default_lead = settings.GAMESYNC["DEFAULT_REMINDER_MINUTES"]

        entries = (
            TimetableEntry.objects.filter(
                slot__gte=now,
                user__notifications_enabled=True,
                user__push_my_timetable_reminder_enabled=True,
            )
            .select_related("user", "game", "server")
            .order_by("slot", "pk")
        )

        sent = 0
        for entry in entries:
            lead = entry.user.my_timetable_reminder_minutes
            if lead is None:
                lead = default_lead
            if TimetableReminderService.reminder_target(entry.slot, lead) != now:
                continue

            start = timezone.localtime(entry.slot).strftime("%H:%M")
            try:
                NotificationService.notify_push_only(
                    entry.user,
                    NotificationType.REMINDER,
                    f"{entry.game.name} starts soon",
                    f"{entry.game.name} in {entry.server.name} starts at {start}",
                    server_id=entry.server_id,
                )
                sent += 1
            except Exception as e:
                logger.error(f"Failed to send reminder for timetable entry {entry.pk}: {e}")

        if sent:
            logger.info(f"Sent {sent} timetable reminder(s) for {now:%Y-%m-%d %H:%M}")
        return sent
