"""
Firebase Cloud Messaging (FCM) service for push notifications.

Handles sending push notifications to user devices via Firebase and prunes
registration tokens that Firebase reports as permanently unusable.
"""

import hashlib
import logging
from typing import Dict, Optional

import firebase_admin
from firebase_admin import credentials, messaging

from django.conf import settings

from scheduling.models import PushToken, User

logger = logging.getLogger(__name__)

# Error codes / message fragments Firebase uses for dead registration tokens
PERMANENT_ERROR_CODES = {"NOT_FOUND", "INVALID_ARGUMENT", "UNREGISTERED"}
PERMANENT_ERROR_MARKERS = (
    "registration-token-not-registered",
    "invalid-registration-token",
    "invalid-argument",
)


def token_hash(token: str) -> str:
    """Short, non-reversible token fingerprint for logs."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()[:10]


class FCMService:
    """Firebase Cloud Messaging service for push notifications."""

    _initialized = False

    @classmethod
    def initialize(cls):
        """
        Initialize Firebase Admin SDK.

        Should be called once at application startup.
        Reads credentials from settings.FIREBASE_CREDENTIALS_PATH.
        """
        if cls._initialized:
            return

        try:
            cred_path = getattr(settings, "FIREBASE_CREDENTIALS_PATH", None)
            if cred_path:
                cred = credentials.Certificate(cred_path)
                firebase_admin.initialize_app(cred)
                cls._initialized = True
                logger.info("Firebase Admin SDK initialized successfully")
            else:
                logger.warning("FIREBASE_CREDENTIALS_PATH not configured; push delivery disabled")
        except Exception as e:
            logger.error(f"Failed to initialize Firebase Admin SDK: {e}")

    @staticmethod
    def is_permanent_failure(error: Exception) -> bool:
        """
        Classify a delivery error as a permanently invalid destination.

        Args:
            error: Exception raised by ``messaging.send``

        Returns:
            True if the token will never work again and should be deleted
        """
        if isinstance(error, (messaging.UnregisteredError, messaging.SenderIdMismatchError)):
            return True
        code = str(getattr(error, "code", "") or "").upper()
        if code in PERMANENT_ERROR_CODES:
            return True
        text = str(error).lower()
        return any(marker in text for marker in PERMANENT_ERROR_MARKERS)

    @staticmethod
    def send_to_device(
        fcm_token: str,
        title: str,
        body: str,
        data: Optional[Dict] = None
    ) -> bool:
        """
        Send push notification to a single device.

        A token classified as permanently invalid is deleted immediately so
        later sends never retry it.

        Args:
            fcm_token: FCM device token
            title: Notification title
            body: Notification body text
            data: Optional additional data payload

        Returns:
            True if sent successfully, False otherwise
        """
        if not FCMService._initialized:
            logger.warning("FCM not initialized; skipping push")
            return False

        payload = {str(k): str(v) for k, v in (data or {}).items() if v is not None}
        payload.setdefault("title", title or "")
        payload.setdefault("body", body or "")

        try:
            message = messaging.Message(
                notification=messaging.Notification(
                    title=title,
                    body=body
                ),
                data=payload,
                token=fcm_token
            )

            response = messaging.send(message)
            logger.info(f"Sent FCM message {response} to token {token_hash(fcm_token)}")
            return True

        except Exception as e:
            if FCMService.is_permanent_failure(e):
                PushToken.objects.filter(token=fcm_token).delete()
                logger.warning(f"Removed invalid FCM token {token_hash(fcm_token)}: {e}")
            else:
                logger.error(f"Failed to send FCM message to token {token_hash(fcm_token)}: {e}")
            return False

    @staticmethod
    def send_to_user(
        user: User,
        title: str,
        body: str,
        data: Optional[Dict] = None
    ) -> int:
        """
        Send push notification to every registered device of a user.

        Args:
            user: User to send notification to
            title: Notification title
            body: Notification body text
            data: Optional additional data payload

        Returns:
            Number of devices successfully sent to
        """
        tokens = list(PushToken.objects.filter(user=user).values_list("token", flat=True))
        success_count = 0

        for token in tokens:
            if FCMService.send_to_device(token, title, body, data):
                success_count += 1

        return success_count

    @staticmethod
    def register_token(user: User, fcm_token: str, platform: str = "web") -> PushToken:
        """
        Register (or re-assign) a push destination.

        Args:
            user: User who owns the device
            fcm_token: FCM registration token
            platform: Device platform (web/android/ios)

        Returns:
            PushToken instance
        """
        push_token, created = PushToken.objects.update_or_create(
            token=fcm_token,
            defaults={"user": user, "platform": platform or "web"},
        )
        logger.info(
            f"Registered FCM token {token_hash(fcm_token)} for user {user.pk} "
            f"({push_token.platform}, {'new' if created else 'updated'})"
        )
        return push_token

    @staticmethod
    def unregister_token(fcm_token: str) -> bool:
        """
        Remove a push destination.

        Returns:
            True if the token existed
        """
        deleted, _ = PushToken.objects.filter(token=fcm_token).delete()
        return deleted > 0
