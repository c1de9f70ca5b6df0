"""
Transactional notification outbox.

Scheduling operations never deliver inline. They write an
``OutboundNotification`` row in their own transaction; once that transaction
commits, a Celery task drains the row through ``NotificationService``.
A rolled-back operation therefore never notifies anybody.
"""

import logging
from typing import Iterable, Optional

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from scheduling.models import OutboundNotification, User
from scheduling.services.notification_service import NotificationService

logger = logging.getLogger(__name__)


class NotificationOutbox:
    """Enqueue and drain batched notifications."""

    @staticmethod
    def enqueue(
        recipients: Iterable[User],
        notification_type: str,
        title: str,
        payload: str,
        server_id: Optional[int] = None,
    ) -> Optional[OutboundNotification]:
        """
        Record a batched notification inside the caller's transaction.

        Args:
            recipients: Users to notify (deduplicated)
            notification_type: A ``NotificationType`` value
            title: Notification title
            payload: JSON payload understood by ``NotificationService.compose_push``
            server_id: Server the notification relates to

        Returns:
            The pending OutboundNotification, or None for an empty audience
        """
        recipient_ids = sorted({user.pk for user in recipients})
        if not recipient_ids:
            return None

        outbound = OutboundNotification.objects.create(
            recipient_ids=recipient_ids,
            notification_type=notification_type,
            title=title,
            payload=payload,
            server_id=server_id,
        )
        outbound_id = outbound.pk
        transaction.on_commit(lambda: NotificationOutbox.schedule(outbound_id))
        return outbound

    @staticmethod
    def schedule(outbound_id: int) -> None:
        """Hand a committed outbox row to a worker; the beat drain is the fallback."""
        from scheduling.tasks import dispatch_outbound_notification

        try:
            dispatch_outbound_notification.delay(outbound_id)
        except Exception as e:
            logger.error(f"Failed to schedule outbound notification {outbound_id}: {e}")

    @staticmethod
    def dispatch(outbound_id: int) -> bool:
        """
        Deliver one outbox row.

        The row is claimed with a conditional update so two drainers racing
        on the same row never both send it.

        Returns:
            True if this call delivered the row
        """
        claimed = OutboundNotification.objects.filter(
            pk=outbound_id, status="pending"
        ).update(status="dispatching", attempts=F("attempts") + 1)
        if not claimed:
            logger.debug(f"Outbound notification {outbound_id} already claimed")
            return False

        outbound = OutboundNotification.objects.get(pk=outbound_id)
        try:
            recipients = User.objects.filter(pk__in=outbound.recipient_ids).order_by("pk")
            NotificationService.notify_many(
                recipients,
                outbound.notification_type,
                outbound.title,
                outbound.payload,
                server_id=outbound.server_id,
            )
        except Exception as e:
            OutboundNotification.objects.filter(pk=outbound_id).update(
                status="failed",
                last_error=str(e)[:500],
                dispatched_at=timezone.now(),
            )
            logger.error(f"Outbound notification {outbound_id} failed: {e}")
            return False

        OutboundNotification.objects.filter(pk=outbound_id).update(
            status="sent", dispatched_at=timezone.now()
        )
        return True

    @staticmethod
    def drain(limit: Optional[int] = None) -> int:
        """Dispatch pending rows oldest-first; returns how many were delivered."""
        pending = OutboundNotification.objects.filter(status="pending").order_by("created_at", "pk")
        if limit:
            pending = pending[:limit]

        delivered = 0
        for outbound_id in list(pending.values_list("pk", flat=True)):
            if NotificationOutbox.dispatch(outbound_id):
                delivered += 1

        if delivered:
            logger.info(f"Drained {delivered} outbound notification(s)")
        return delivered

    @staticmethod
    def purge_sent_before(cutoff) -> int:
        deleted, _ = OutboundNotification.objects.filter(
            status="sent", created_at__lt=cutoff
        ).delete()
        return deleted
