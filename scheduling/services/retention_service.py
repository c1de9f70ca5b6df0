"""
Age-based retention for the audit trail, revoked auth tokens and delivered
outbox rows.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from django.conf import settings
from django.utils import timezone

from scheduling.models import BlacklistedToken
from scheduling.services.audit_service import AuditService
from scheduling.services.notification_outbox import NotificationOutbox

logger = logging.getLogger(__name__)


class RetentionService:
    @staticmethod
    def purge_audit_logs(now: Optional[datetime] = None) -> int:
        """Delete audit rows older than ``AUDIT_RETENTION_DAYS``."""
        now = now or timezone.now()
        cutoff = now - timedelta(days=settings.GAMESYNC["AUDIT_RETENTION_DAYS"])
        deleted = AuditService.purge_older_than(cutoff)
        logger.info(f"Purged {deleted} audit row(s) older than {cutoff:%Y-%m-%d %H:%M}")
        return deleted

    @staticmethod
    def purge_blacklisted_tokens(now: Optional[datetime] = None) -> int:
        """Delete revoked tokens that have expired anyway."""
        now = now or timezone.now()
        deleted, _ = BlacklistedToken.objects.filter(expiry__lt=now).delete()
        logger.info(f"Purged {deleted} expired blacklisted token(s)")
        return deleted

    @staticmethod
    def purge_outbox(now: Optional[datetime] = None) -> int:
        now = now or timezone.now()
        cutoff = now - timedelta(days=settings.GAMESYNC["OUTBOX_RETENTION_DAYS"])
        deleted = NotificationOutbox.purge_sent_before(cutoff)
        if deleted:
            logger.info(f"Purged {deleted} delivered outbox row(s)")
        return deleted
