"""Tests for Celery tasks and the single-flight lock."""

from unittest.mock import patch

import pytest
from django.conf import settings
from django.core.cache import cache

from scheduling.constants import NotificationType
from scheduling.models import Notification, OutboundNotification
from scheduling.services.notification_outbox import NotificationOutbox
from scheduling.tasks import (
    cleanup_audit_logs,
    cleanup_blacklisted_tokens,
    dispatch_outbound_notification,
    drain_notification_outbox,
    reset_timetables,
    send_timetable_reminders,
    single_flight,
)


class TestSingleFlight:
    def test_second_holder_is_refused(self):
        with single_flight("job") as first:
            with single_flight("job") as second:
                assert first is True
                assert second is False

    def test_lock_released_after_use(self):
        with single_flight("job"):
            pass

        with single_flight("job") as acquired:
            assert acquired is True

    def test_lock_released_on_error(self):
        with pytest.raises(RuntimeError):
            with single_flight("job"):
                raise RuntimeError("sweep failed")

        assert cache.get("gamesync:task-lock:job") is None

    def test_expired_holder_leaves_newer_lock(self):
        key = "gamesync:task-lock:job"

        with single_flight("job") as acquired:
            assert acquired is True
            # Lock expired mid-run and the next tick took it over
            cache.delete(key)
            assert cache.add(key, "next-tick") is True

        assert cache.get(key) == "next-tick"


@pytest.mark.django_db
class TestPeriodicTasks:
    def test_reset_timetables_runs_sweep(self):
        with patch("scheduling.services.reset_service.TimetableResetService.run", return_value=3) as run:
            result = reset_timetables()

        run.assert_called_once_with()
        assert result == "Reset removed 3 timetable entries"

    def test_overlapping_tick_skipped(self):
        with patch("scheduling.services.reset_service.TimetableResetService.run") as run:
            with single_flight("reset_timetables"):
                result = reset_timetables()

        run.assert_not_called()
        assert result.startswith("Skipped")

    def test_send_timetable_reminders(self):
        with patch("scheduling.services.reminder_service.TimetableReminderService.run", return_value=2):
            assert send_timetable_reminders() == "Sent 2 timetable reminders"

    def test_cleanup_tasks(self):
        with patch("scheduling.services.retention_service.RetentionService.purge_audit_logs", return_value=5), patch(
            "scheduling.services.retention_service.RetentionService.purge_outbox", return_value=1
        ):
            assert cleanup_audit_logs() == "Purged 5 audit rows and 1 outbox rows"

        with patch("scheduling.services.retention_service.RetentionService.purge_blacklisted_tokens", return_value=4):
            assert cleanup_blacklisted_tokens() == "Purged 4 blacklisted tokens"

    def test_drain_uses_configured_batch(self):
        with patch.object(NotificationOutbox, "drain", return_value=0) as drain:
            drain_notification_outbox()

        drain.assert_called_once_with(settings.GAMESYNC["OUTBOX_DRAIN_BATCH"])


@pytest.mark.django_db
class TestOutboxTasks:
    def test_dispatch_task_delivers(self, user_factory):
        recipient = user_factory()
        outbound = NotificationOutbox.enqueue([recipient], NotificationType.PARTY, "Party", "Join us")

        assert dispatch_outbound_notification(outbound.pk) == f"Dispatched outbound notification {outbound.pk}"
        assert Notification.objects.filter(user=recipient).count() == 1

    def test_dispatch_task_eager_delay(self, user_factory):
        outbound = NotificationOutbox.enqueue([user_factory()], NotificationType.PARTY, "Party", "Join us")

        dispatch_outbound_notification.delay(outbound.pk)

        outbound.refresh_from_db()
        assert outbound.status == "sent"

    def test_drain_task_end_to_end(self, user_factory):
        for _ in range(2):
            NotificationOutbox.enqueue([user_factory()], NotificationType.PARTY, "Party", "Join us")

        assert drain_notification_outbox() == "Drained 2 outbound notifications"
        assert not OutboundNotification.objects.filter(status="pending").exists()


def test_beat_schedule_declares_periodic_tasks():
    tasks = {entry["task"] for entry in settings.CELERY_BEAT_SCHEDULE.values()}
    assert tasks == {
        "scheduling.tasks.reset_timetables",
        "scheduling.tasks.send_timetable_reminders",
        "scheduling.tasks.drain_notification_outbox",
        "scheduling.tasks.cleanup_blacklisted_tokens",
        "scheduling.tasks.cleanup_audit_logs",
    }
    assert settings.CELERY_BEAT_SCHEDULE["cleanup-audit-logs"]["schedule"].hour == {4}
    assert settings.CELERY_BEAT_SCHEDULE["cleanup-blacklisted-tokens"]["schedule"].hour == {3}
    assert settings.CELERY_BEAT_SCHEDULE["reset-timetables"]["schedule"].minute == set(range(60))
