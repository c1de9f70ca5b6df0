"""Tests for the reset, reminder and retention sweeps."""

import datetime
from datetime import timedelta

import pytest

from scheduling.audit_details import parse_details
from scheduling.constants import AuditAction, NotificationType
from scheduling.models import (
    AuditLog,
    BlacklistedToken,
    Notification,
    OutboundNotification,
    Party,
    TimetableEntry,
)
from scheduling.services.reminder_service import TimetableReminderService
from scheduling.services.reset_service import TimetableResetService
from scheduling.services.retention_service import RetentionService
from scheduling.services.slot_coordinator import SlotCoordinator
from tests.factories import (
    AuditLogFactory,
    BlacklistedTokenFactory,
    TimetableEntryFactory,
    local_time,
)


class TestTimetableReset:
    @pytest.fixture
    def reset_server(self, server_factory, user_factory, game, slot):
        a, b = user_factory(), user_factory()
        server = server_factory(members=[a, b], reset_time=datetime.time(5, 0))
        TimetableEntryFactory(server=server, user=a, game=game, slot=slot)
        TimetableEntryFactory(server=server, user=b, game=game, slot=slot)
        return server

    def test_resets_exactly_at_reset_minute(self, reset_server):
        removed = TimetableResetService.run(local_time(2025, 1, 10, 5, 0))

        assert removed == 2
        assert not TimetableEntry.objects.filter(server=reset_server).exists()

    def test_seconds_within_the_minute_still_match(self, reset_server):
        assert TimetableResetService.run(local_time(2025, 1, 10, 5, 0, 37)) == 2

    @pytest.mark.parametrize("minute", [(4, 59), (5, 1)])
    def test_neighbouring_minutes_untouched(self, reset_server, minute):
        removed = TimetableResetService.run(local_time(2025, 1, 10, *minute))

        assert removed == 0
        assert TimetableEntry.objects.filter(server=reset_server).count() == 2
        assert not AuditLog.objects.exists()

    def test_each_removed_entry_is_audited(self, reset_server):
        TimetableResetService.run(local_time(2025, 1, 10, 5, 0))

        rows = AuditLog.objects.filter(action=AuditAction.TIMETABLE_RESET_DELETE)
        assert rows.count() == 2
        assert {row.server_id for row in rows} == {reset_server.pk}
        for row in rows:
            assert parse_details(row.details) == {
                "game": "Valorant",
                "slot": "2025-01-10T21:00",
                "reason": "RESET",
            }

    def test_other_servers_untouched(self, reset_server, server_factory, user_factory, game, slot):
        other = server_factory(reset_time=datetime.time(6, 0))
        TimetableEntryFactory(server=other, user=other.owner, game=game, slot=slot)

        TimetableResetService.run(local_time(2025, 1, 10, 5, 0))

        assert TimetableEntry.objects.filter(server=other).count() == 1

    def test_paused_server_skipped(self, reset_server):
        reset_server.reset_paused = True
        reset_server.save()

        assert TimetableResetService.run(local_time(2025, 1, 10, 5, 0)) == 0
        assert TimetableEntry.objects.filter(server=reset_server).count() == 2

    def test_parties_survive_reset(self, server, party_factory):
        server.reset_time = datetime.time(5, 0)
        server.save()
        party = party_factory(capacity=3)

        TimetableResetService.run(local_time(2025, 1, 10, 5, 0))

        assert Party.objects.filter(pk=party.pk).exists()
        assert party.participant_count == 1
        assert not TimetableEntry.objects.filter(server=server).exists()

    def test_reset_time_normalized_to_minute(self, server_factory):
        server = server_factory(reset_time=datetime.time(5, 0, 42))

        server.refresh_from_db()
        assert server.reset_time == datetime.time(5, 0)


class TestTimetableReminder:
    @pytest.fixture
    def entry(self, server, member_factory, push_token_factory, game, slot):
        member = member_factory(my_timetable_reminder_minutes=10)
        push_token_factory(member)
        return TimetableEntryFactory(server=server, user=member, game=game, slot=slot)

    def test_fires_exactly_at_lead_minute(self, entry, push_enabled):
        sent = TimetableReminderService.run(local_time(2025, 1, 10, 20, 50))

        assert sent == 1
        assert push_enabled.call_count == 1
        message = push_enabled.call_args[0][0]
        assert message.data["type"] == NotificationType.REMINDER
        assert "21:00" in message.notification.body
        assert not Notification.objects.exists()
        notify = AuditLog.objects.get(action=AuditAction.NOTIFY)
        assert parse_details(notify.details)["panel"] == "0"

    @pytest.mark.parametrize("minute", [49, 51])
    def test_silent_in_neighbouring_minutes(self, entry, push_enabled, minute):
        assert TimetableReminderService.run(local_time(2025, 1, 10, 20, minute)) == 0
        assert not push_enabled.called

    def test_user_lead_time_respected(self, entry, push_enabled):
        entry.user.my_timetable_reminder_minutes = 30
        entry.user.save()

        assert TimetableReminderService.run(local_time(2025, 1, 10, 20, 50)) == 0
        assert TimetableReminderService.run(local_time(2025, 1, 10, 20, 30)) == 1

    def test_reminder_switch_off(self, entry, push_enabled):
        entry.user.push_my_timetable_reminder_enabled = False
        entry.user.save()

        assert TimetableReminderService.run(local_time(2025, 1, 10, 20, 50)) == 0
        assert not push_enabled.called

    def test_global_switch_off(self, entry, push_enabled):
        entry.user.notifications_enabled = False
        entry.user.save()

        assert TimetableReminderService.run(local_time(2025, 1, 10, 20, 50)) == 0

    def test_reminder_target(self):
        target = TimetableReminderService.reminder_target(local_time(2025, 1, 10, 21, 0), 10)
        assert target == local_time(2025, 1, 10, 20, 50)


class TestRetention:
    def test_audit_rows_older_than_ninety_days_removed(self, db):
        now = local_time(2025, 4, 1, 4, 0)
        AuditLogFactory(occurred_at=now - timedelta(days=90, minutes=1))
        kept = AuditLogFactory(occurred_at=now - timedelta(days=89))

        assert RetentionService.purge_audit_logs(now) == 1
        assert list(AuditLog.objects.values_list("pk", flat=True)) == [kept.pk]

    def test_expired_blacklisted_tokens_removed(self, db):
        now = local_time(2025, 4, 1, 3, 0)
        BlacklistedTokenFactory(expiry=now - timedelta(seconds=1))
        live = BlacklistedTokenFactory(expiry=now + timedelta(hours=1))

        assert RetentionService.purge_blacklisted_tokens(now) == 1
        assert list(BlacklistedToken.objects.values_list("pk", flat=True)) == [live.pk]

    def test_sent_outbox_rows_removed_after_a_week(self, user_factory):
        recipient = user_factory()
        sent = OutboundNotification.objects.create(
            recipient_ids=[recipient.pk], notification_type=NotificationType.PARTY, title="t", status="sent"
        )
        failed = OutboundNotification.objects.create(
            recipient_ids=[recipient.pk], notification_type=NotificationType.PARTY, title="t", status="failed"
        )

        assert RetentionService.purge_outbox(sent.created_at + timedelta(days=6)) == 0
        assert RetentionService.purge_outbox(sent.created_at + timedelta(days=8)) == 1
        assert list(OutboundNotification.objects.values_list("pk", flat=True)) == [failed.pk]

    def test_audit_trail_outlives_reset(self, server, member_factory, game, slot):
        server.reset_time = datetime.time(5, 0)
        server.save()
        SlotCoordinator.register_timetable_entry(server.pk, member_factory(), slot, game.pk)

        TimetableResetService.run(local_time(2025, 1, 11, 5, 0))

        assert not TimetableEntry.objects.exists()
        assert AuditLog.objects.filter(action=AuditAction.TIMETABLE_REGISTER).count() == 1
