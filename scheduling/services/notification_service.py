"""
Notification delivery service.

Best-effort delivery of panel records and push messages to one or many
recipients, honouring each recipient's notification switches. Every call
appends exactly one audit row summarizing the delivery; batch calls
aggregate all recipients into that single row.

Nothing raised while delivering reaches the caller: the scheduling change
that triggered the notification is already committed.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional

from django.conf import settings
from django.db import transaction

from scheduling.audit_details import DeliverySummary
from scheduling.constants import AuditAction, NotificationType
from scheduling.models import Notification, User
from scheduling.services.audit_service import AuditService
from scheduling.services.fcm_service import FCMService

logger = logging.getLogger(__name__)

TITLE_MAX_LENGTH = 200
MESSAGE_MAX_LENGTH = 1000


@dataclass(frozen=True)
class PushContent:
    """Human-readable push body plus the deep link it opens."""

    body: str
    url: str


@dataclass
class DeliveryResult:
    panel: int = 0
    pushed: int = 0


def _truncate(text: Optional[str], limit: int) -> str:
    text = text or ""
    if len(text) <= limit:
        return text
    return text[: max(limit - 1, 0)] + "…"


def _slot_clock(slot: Any) -> str:
    """``2025-01-10T21:00`` -> ``21:00``."""
    text = str(slot or "")
    if "T" in text:
        return text.split("T", 1)[1][:5]
    return text


def _friend_request_push(data: Dict[str, Any]) -> PushContent:
    sender = data.get("fromNickname") or "Someone"
    return PushContent(f"{sender} sent you a friend request", "/friends")


def _server_invite_push(data: Dict[str, Any]) -> PushContent:
    sender = data.get("fromNickname") or "Someone"
    server_name = data.get("serverName") or "a server"
    return PushContent(f"{sender} invited you to {server_name}", "/invites")


def _timetable_push(data: Dict[str, Any]) -> PushContent:
    sender = data.get("fromNickname") or "A friend"
    game = data.get("gameName") or "a game"
    when = _slot_clock(data.get("slot"))
    body = f"{sender} will play {game} at {when}" if when else f"{sender} will play {game}"
    return PushContent(body, f"/servers/{data.get('serverId', '')}/timetable")


def _party_push(data: Dict[str, Any]) -> PushContent:
    sender = data.get("fromNickname") or "Someone"
    game = data.get("gameName") or "a game"
    capacity = data.get("capacity")
    body = f"{sender} is recruiting a {game} party"
    if capacity:
        body += f" ({capacity} slots)"
    return PushContent(body, f"/servers/{data.get('serverId', '')}/parties")


PUSH_COMPOSERS = {
    "friend_request": _friend_request_push,
    "server_invite": _server_invite_push,
    "timetable": _timetable_push,
    "party": _party_push,
}


class NotificationService:
    """Panel + push notification gateway."""

    # Category -> user switch gating the push send
    PUSH_SWITCHES = {
        NotificationType.INVITE: "push_invite_enabled",
        NotificationType.FRIEND_REQUEST: "push_friend_request_enabled",
        NotificationType.TIMETABLE: "push_friend_schedule_enabled",
        NotificationType.PARTY: "push_party_enabled",
        NotificationType.REMINDER: "push_my_timetable_reminder_enabled",
    }

    @staticmethod
    def notify(
        recipient: User,
        notification_type: str,
        title: str,
        payload: str,
        server_id: Optional[int] = None,
    ) -> Optional[DeliveryResult]:
        """
        Notify a single recipient.

        A recipient with notifications switched off gets nothing at all:
        no panel record, no push, and no audit row.

        Args:
            recipient: User to notify
            notification_type: A ``NotificationType`` value
            title: Notification title
            payload: Structured JSON payload (``kind`` discriminator) or plain text
            server_id: Server the notification relates to, for the audit row

        Returns:
            DeliveryResult, or None when the recipient has notifications off
        """
        if not recipient.notifications_enabled:
            return None

        result = NotificationService._deliver(
            recipient, notification_type, title, payload, server_id, with_panel=True
        )
        NotificationService._audit(
            server_id,
            recipient.pk,
            AuditAction.NOTIFY,
            DeliverySummary(str(notification_type), 1, result.panel, result.pushed),
        )
        return result

    @staticmethod
    def notify_many(
        recipients: Iterable[User],
        notification_type: str,
        title: str,
        payload: str,
        server_id: Optional[int] = None,
    ) -> DeliveryResult:
        """
        Notify a batch of recipients.

        Each recipient is gated independently. The whole batch produces one
        audit row so audit volume tracks events, not fan-out size.

        Args:
            recipients: Users to notify
            notification_type: A ``NotificationType`` value
            title: Notification title
            payload: Structured JSON payload or plain text
            server_id: Server hint recorded on the audit row

        Returns:
            Aggregated DeliveryResult
        """
        recipients = list(recipients)
        total = DeliveryResult()
        skipped = 0

        for recipient in recipients:
            if not recipient.notifications_enabled:
                skipped += 1
                continue
            result = NotificationService._deliver(
                recipient, notification_type, title, payload, server_id, with_panel=True
            )
            total.panel += result.panel
            total.pushed += result.pushed

        NotificationService._audit(
            server_id,
            None,
            AuditAction.NOTIFY_MANY,
            DeliverySummary(
                str(notification_type), len(recipients), total.panel, total.pushed, skipped
            ),
        )
        logger.info(
            f"{notification_type} batch delivered: {len(recipients)} recipient(s), "
            f"{total.panel} panel, {total.pushed} push, {skipped} skipped"
        )
        return total

    @staticmethod
    def notify_push_only(
        recipient: User,
        notification_type: str,
        title: str,
        body: str,
        server_id: Optional[int] = None,
    ) -> Optional[DeliveryResult]:
        """Send a push without creating a panel record (reminders)."""
        if not recipient.notifications_enabled:
            return None

        result = NotificationService._deliver(
            recipient, notification_type, title, body, server_id, with_panel=False
        )
        NotificationService._audit(
            server_id,
            recipient.pk,
            AuditAction.NOTIFY,
            DeliverySummary(str(notification_type), 1, result.panel, result.pushed),
        )
        return result

    @staticmethod
    def should_create_panel(user: User, notification_type: str) -> bool:
        """Panel records are unconditional except for the friend-schedule category."""
        if notification_type == NotificationType.REMINDER:
            return False
        if notification_type == NotificationType.TIMETABLE:
            return bool(user.push_friend_schedule_enabled)
        return True

    @staticmethod
    def should_push(user: User, notification_type: str, payload: str) -> bool:
        """Check the global push switch, then the category switch."""
        if not user.push_all_enabled:
            return False
        if notification_type == NotificationType.GENERIC:
            if NotificationService.payload_kind(payload) == "friend_request":
                return bool(user.push_friend_request_enabled)
            return True
        switch = NotificationService.PUSH_SWITCHES.get(notification_type)
        if switch is None:
            return True
        return bool(getattr(user, switch))

    @staticmethod
    def payload_kind(payload: str) -> Optional[str]:
        data = NotificationService._parse_payload(payload)
        if data is None:
            return None
        return data.get("kind")

    @staticmethod
    def compose_push(payload: str) -> PushContent:
        """
        Resolve a short push body and deep link from a notification payload.

        Structured payloads are dispatched on their ``kind``; anything
        unparseable, oversized or without a known kind falls back to the raw
        message, truncated.
        """
        limit = settings.GAMESYNC["PUSH_BODY_MAX_LENGTH"]
        data = NotificationService._parse_payload(payload)

        if data is not None:
            composer = PUSH_COMPOSERS.get(data.get("kind"))
            if composer is not None:
                content = composer(data)
                return PushContent(_truncate(content.body, limit), content.url)
            message = data.get("message")
            if isinstance(message, str) and message:
                return PushContent(_truncate(message, limit), "/notifications")

        return PushContent(_truncate(payload, limit), "/notifications")

    @staticmethod
    def _parse_payload(payload: str) -> Optional[Dict[str, Any]]:
        if not payload or len(payload) > settings.GAMESYNC["PAYLOAD_PARSE_LIMIT"]:
            return None
        try:
            data = json.loads(payload)
        except ValueError:
            return None
        return data if isinstance(data, dict) else None

    @staticmethod
    def _deliver(
        recipient: User,
        notification_type: str,
        title: str,
        payload: str,
        server_id: Optional[int],
        with_panel: bool,
    ) -> DeliveryResult:
        result = DeliveryResult()
        try:
            if with_panel and NotificationService.should_create_panel(recipient, notification_type):
                with transaction.atomic():
                    Notification.objects.create(
                        user=recipient,
                        notification_type=notification_type,
                        title=_truncate(title, TITLE_MAX_LENGTH),
                        message=_truncate(payload, MESSAGE_MAX_LENGTH),
                    )
                result.panel = 1
        except Exception as e:
            logger.error(f"Failed to store {notification_type} notification for user {recipient.pk}: {e}")

        try:
            if NotificationService.should_push(recipient, notification_type, payload):
                content = NotificationService.compose_push(payload)
                data = {
                    "type": str(notification_type),
                    "url": content.url,
                    "serverId": server_id if server_id is not None else "",
                }
                result.pushed = FCMService.send_to_user(
                    recipient, title or settings.GAMESYNC["APP_NAME"], content.body, data
                )
        except Exception as e:
            logger.error(f"Failed to push {notification_type} notification to user {recipient.pk}: {e}")
        return result

    @staticmethod
    def _audit(server_id, user_id, action, summary: DeliverySummary) -> None:
        try:
            AuditService.log(server_id, user_id, action, summary)
        except Exception as e:
            logger.error(f"Failed to audit {action} delivery: {e}")
