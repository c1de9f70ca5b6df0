"""
Audit trail service.

Appends domain events to the audit log, the durable record later used for
usage statistics. Live timetable rows are wiped by resets; audit rows are
only removed by age-based retention.
"""

import logging
from datetime import datetime
from typing import Optional, Union

from django.conf import settings
from django.db import DatabaseError, transaction

from scheduling.audit_details import AuditDetails, encode_details
from scheduling.models import AuditLog

logger = logging.getLogger(__name__)


class AuditService:
    """Append-only audit logging."""

    @staticmethod
    def log(
        server_id: Optional[int],
        user_id: Optional[int],
        action: str,
        details: Union[AuditDetails, str, None] = None,
    ) -> Optional[AuditLog]:
        """
        Append an audit row.

        The insert runs in its own savepoint: a database error is logged and
        rolled back to the savepoint, leaving the caller's transaction usable.

        Args:
            server_id: Server the event belongs to, if any
            user_id: Acting user, if any
            action: Action tag (see ``AuditAction``)
            details: Typed detail payload or a pre-encoded string

        Returns:
            Created AuditLog instance, or None if the write failed
        """
        if details is None:
            text = ""
        elif isinstance(details, str):
            text = details
        else:
            text = encode_details(details)

        max_length = settings.GAMESYNC["AUDIT_DETAILS_MAX_LENGTH"]
        if len(text) > max_length:
            text = text[:max_length]

        try:
            with transaction.atomic():
                return AuditLog.objects.create(
                    server_id=server_id,
                    user_id=user_id,
                    action=action,
                    details=text,
                )
        except DatabaseError as e:
            logger.error(f"Failed to write audit row {action} (server={server_id}, user={user_id}): {e}")
            return None

    @staticmethod
    def purge_older_than(cutoff: datetime) -> int:
        """Delete audit rows that occurred before ``cutoff``."""
        deleted, _ = AuditLog.objects.filter(occurred_at__lt=cutoff).delete()
        return deleted
