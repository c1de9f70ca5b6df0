"""
Daily per-server timetable reset.

Each server configures a local wall-clock minute at which all of its
timetable entries are wiped. Every removed entry leaves a
``TIMETABLE_RESET_DELETE`` audit row so statistics survive the wipe.
Parties are left untouched.
"""

import logging
from datetime import datetime
from typing import Optional

from django.db import transaction
from django.db.models import QuerySet
from django.utils import timezone

from scheduling.audit_details import Removed
from scheduling.constants import AuditAction, RemovalReason
from scheduling.models import Server, TimetableEntry
from scheduling.services.audit_service import AuditService

logger = logging.getLogger(__name__)


class TimetableResetService:
    @staticmethod
    def due_servers(now: datetime) -> QuerySet:
        """Servers whose reset time is the local minute of ``now``."""
        minute = timezone.localtime(now).time().replace(second=0, microsecond=0)
        return Server.objects.filter(reset_time=minute, reset_paused=False).order_by("pk")

    @staticmethod
    def reset_server(server: Server) -> int:
        """Wipe one server's timetable; returns the number of entries removed."""
        with transaction.atomic():
            entries = list(
                TimetableEntry.objects.select_for_update(of=("self",))
                .filter(server=server)
                .select_related("game")
                .order_by("pk")
            )
            for entry in entries:
                AuditService.log(
                    server.pk,
                    entry.user_id,
                    AuditAction.TIMETABLE_RESET_DELETE,
                    Removed(entry.game.name, entry.slot, RemovalReason.RESET),
                )
            TimetableEntry.objects.filter(pk__in=[entry.pk for entry in entries]).delete()

        logger.info(f"Reset server {server.pk}: removed {len(entries)} timetable entries")
        return len(entries)

    @staticmethod
    def run(now: Optional[datetime] = None) -> int:
        """
        Reset every server due at ``now``.

        A failing server is logged and skipped; the others still reset.

        Returns:
            Total number of entries removed
        """
        now = now or timezone.now()
        removed = 0
        for server in TimetableResetService.due_servers(now):
            try:
                removed += TimetableResetService.reset_server(server)
            except Exception as e:
                logger.error(f"Failed to reset server {server.pk}: {e}")
        return removed
