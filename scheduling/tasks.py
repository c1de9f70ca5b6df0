"""
Celery tasks for the scheduling sweeps and the notification outbox.

Periodic tasks are wired in ``CELERY_BEAT_SCHEDULE``. A tick that starts
while the previous tick of the same task still runs is skipped.
"""

import logging
import uuid
from contextlib import contextmanager

from celery import shared_task
from django.conf import settings
from django.core.cache import cache

logger = logging.getLogger(__name__)


@contextmanager
def single_flight(name: str):
    """
    Yield True if this worker holds the lock for ``name``, else False.

    The lock stores an owner token. If it expired and a later tick took it,
    the earlier holder leaves the newer lock in place on exit.
    """
    key = f"gamesync:task-lock:{name}"
    token = uuid.uuid4().hex
    acquired = cache.add(key, token, settings.GAMESYNC["TASK_LOCK_TTL_SECONDS"])
    try:
        yield acquired
    finally:
        if acquired and cache.get(key) == token:
            cache.delete(key)


@shared_task
def reset_timetables():
    """Run every minute: wipe the timetables of servers due for reset."""
    from scheduling.services.reset_service import TimetableResetService

    with single_flight("reset_timetables") as acquired:
        if not acquired:
            logger.warning("Previous reset_timetables tick still running; skipping")
            return "Skipped: previous tick still running"
        removed = TimetableResetService.run()

    return f"Reset removed {removed} timetable entries"


@shared_task
def send_timetable_reminders():
    """Run every minute: push reminders for slots starting after their lead time."""
    from scheduling.services.reminder_service import TimetableReminderService

    with single_flight("send_timetable_reminders") as acquired:
        if not acquired:
            logger.warning("Previous send_timetable_reminders tick still running; skipping")
            return "Skipped: previous tick still running"
        sent = TimetableReminderService.run()

    return f"Sent {sent} timetable reminders"


@shared_task
def dispatch_outbound_notification(outbound_id: int):
    """
    Deliver one outbox row after its transaction committed.

    Args:
        outbound_id: Primary key of the OutboundNotification
    """
    from scheduling.services.notification_outbox import NotificationOutbox

    if NotificationOutbox.dispatch(outbound_id):
        return f"Dispatched outbound notification {outbound_id}"
    return f"Outbound notification {outbound_id} not dispatched"


@shared_task
def drain_notification_outbox():
    """Run every minute: deliver outbox rows whose immediate dispatch never ran."""
    from scheduling.services.notification_outbox import NotificationOutbox

    with single_flight("drain_notification_outbox") as acquired:
        if not acquired:
            return "Skipped: previous tick still running"
        delivered = NotificationOutbox.drain(settings.GAMESYNC["OUTBOX_DRAIN_BATCH"])

    return f"Drained {delivered} outbound notifications"


@shared_task
def cleanup_audit_logs():
    """Run daily at 04:00: apply audit retention and prune delivered outbox rows."""
    from scheduling.services.retention_service import RetentionService

    with single_flight("cleanup_audit_logs") as acquired:
        if not acquired:
            return "Skipped: previous tick still running"
        audit_deleted = RetentionService.purge_audit_logs()
        outbox_deleted = RetentionService.purge_outbox()

    return f"Purged {audit_deleted} audit rows and {outbox_deleted} outbox rows"


@shared_task
def cleanup_blacklisted_tokens():
    """Run daily at 03:00: drop expired blacklisted tokens."""
    from scheduling.services.retention_service import RetentionService

    with single_flight("cleanup_blacklisted_tokens") as acquired:
        if not acquired:
            return "Skipped: previous tick still running"
        deleted = RetentionService.purge_blacklisted_tokens()

    return f"Purged {deleted} blacklisted tokens"
