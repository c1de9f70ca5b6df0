"""
Core models for the GameSync scheduling platform.

This module contains the database models for servers, timetable entries,
parties, the audit trail, panel notifications, push destinations and the
notification outbox.
"""

from django.db import models
from django.contrib.auth.models import AbstractUser
from django.utils import timezone

from scheduling.constants import NotificationType


class User(AbstractUser):
    """
    Platform user with notification preferences.

    The preference switches are owned by the settings screens; the
    scheduling core only reads them to gate delivery.
    """

    nickname = models.CharField(max_length=30, blank=True, default="")

    # Global switch: off means no panel record, no push, no audit
    notifications_enabled = models.BooleanField(default=True)

    # Push categories
    push_all_enabled = models.BooleanField(default=True)
    push_invite_enabled = models.BooleanField(default=True)
    push_friend_request_enabled = models.BooleanField(default=True)
    push_friend_schedule_enabled = models.BooleanField(default=True)
    push_party_enabled = models.BooleanField(default=True)

    # Own-slot reminder
    push_my_timetable_reminder_enabled = models.BooleanField(default=True)
    my_timetable_reminder_minutes = models.PositiveIntegerField(default=10)

    class Meta:
        db_table = "users"

    @property
    def display_name(self) -> str:
        return self.nickname or self.username

    def __str__(self):
        return self.display_name


class Server(models.Model):
    """
    A community whose members share one timetable.

    ``reset_time`` is the local wall-clock minute at which every timetable
    entry of the server is wiped.
    """

    name = models.CharField(max_length=50)
    owner = models.ForeignKey(
        User, on_delete=models.CASCADE, related_name="owned_servers"
    )
    members = models.ManyToManyField(User, related_name="joined_servers", blank=True)
    admins = models.ManyToManyField(User, related_name="administered_servers", blank=True)
    reset_time = models.TimeField()
    reset_paused = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "servers"
        indexes = [
            models.Index(fields=["reset_time"], name="servers_reset_time_idx"),
        ]

    def save(self, *args, **kwargs):
        if self.reset_time is not None:
            self.reset_time = self.reset_time.replace(second=0, microsecond=0)
        super().save(*args, **kwargs)

    def is_member(self, user: User) -> bool:
        return self.owner_id == user.pk or self.members.filter(pk=user.pk).exists()

    def is_admin(self, user: User) -> bool:
        return self.owner_id == user.pk or self.admins.filter(pk=user.pk).exists()

    def __str__(self):
        return self.name


class Game(models.Model):
    """A default game (``server`` is null) or a server-specific custom game."""

    name = models.CharField(max_length=100)
    server = models.ForeignKey(
        Server,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="custom_games",
    )

    class Meta:
        db_table = "games"
        constraints = [
            models.UniqueConstraint(fields=["server", "name"], name="unique_game_per_server"),
        ]

    @property
    def is_custom(self) -> bool:
        return self.server_id is not None

    def usable_in(self, server: Server) -> bool:
        return self.server_id is None or self.server_id == server.pk

    def __str__(self):
        return self.name


class TimetableEntry(models.Model):
    """A user's single active reservation of a slot within a server."""

    server = models.ForeignKey(
        Server, on_delete=models.CASCADE, related_name="timetable_entries"
    )
    user = models.ForeignKey(
        User, on_delete=models.CASCADE, related_name="timetable_entries"
    )
    slot = models.DateTimeField()
    game = models.ForeignKey(Game, on_delete=models.CASCADE, related_name="timetable_entries")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "timetable_entries"
        constraints = [
            models.UniqueConstraint(fields=["server", "user"], name="unique_entry_per_server_user"),
        ]
        indexes = [
            models.Index(fields=["server", "slot"], name="timetable_server_slot_idx"),
        ]

    def __str__(self):
        return f"{self.user} @ {self.slot:%Y-%m-%d %H:%M} ({self.game})"


class Party(models.Model):
    """A capacity-bounded group reservation; joining implies a timetable entry."""

    server = models.ForeignKey(Server, on_delete=models.CASCADE, related_name="parties")
    creator = models.ForeignKey(
        User, on_delete=models.CASCADE, related_name="created_parties"
    )
    slot = models.DateTimeField()
    capacity = models.PositiveIntegerField(default=1)
    game = models.ForeignKey(Game, on_delete=models.CASCADE, related_name="parties")
    participants = models.ManyToManyField(
        User, through="PartyParticipant", related_name="parties", blank=True
    )
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "parties"
        constraints = [
            models.CheckConstraint(condition=models.Q(capacity__gte=1), name="party_capacity_positive"),
        ]
        indexes = [
            models.Index(fields=["server", "slot"], name="parties_server_slot_idx"),
        ]

    @property
    def participant_count(self) -> int:
        return self.memberships.count()

    @property
    def is_full(self) -> bool:
        return self.participant_count >= self.capacity

    def has_participant(self, user: User) -> bool:
        return self.memberships.filter(user=user).exists()

    def __str__(self):
        return f"{self.game} party @ {self.slot:%Y-%m-%d %H:%M} ({self.server})"


class PartyParticipant(models.Model):
    """
    Party membership.

    ``user`` is unique: a user belongs to at most one party system-wide.
    """

    party = models.ForeignKey(Party, on_delete=models.CASCADE, related_name="memberships")
    user = models.OneToOneField(
        User, on_delete=models.CASCADE, related_name="party_membership"
    )
    joined_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "party_participants"

    def __str__(self):
        return f"{self.user} in party {self.party_id}"


class AuditLog(models.Model):
    """
    Append-only record of domain events.

    Server and user are kept as plain ids so rows outlive the entities they
    describe. Only age-based retention removes rows.
    """

    server_id = models.BigIntegerField(null=True, blank=True)
    user_id = models.BigIntegerField(null=True, blank=True)
    action = models.CharField(max_length=50)
    details = models.CharField(max_length=1000, blank=True, default="")
    occurred_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "audit_log"
        indexes = [
            models.Index(fields=["server_id", "action", "occurred_at"], name="audit_server_action_time_idx"),
            models.Index(fields=["occurred_at"], name="audit_occurred_at_idx"),
        ]

    def __str__(self):
        return f"{self.action} server={self.server_id} user={self.user_id}"


class Notification(models.Model):
    """Panel record: a durable, user-visible notification."""

    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name="notifications")
    notification_type = models.CharField(max_length=20, choices=NotificationType.choices)
    title = models.CharField(max_length=200)
    message = models.CharField(max_length=1000, blank=True, default="")
    read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "notifications"
        indexes = [
            models.Index(fields=["user", "created_at"], name="notif_user_created_idx"),
        ]

    def __str__(self):
        return f"{self.user} - {self.notification_type}: {self.title}"


class PushToken(models.Model):
    """A push destination (FCM registration token) of a user."""

    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name="push_tokens")
    token = models.CharField(max_length=512, unique=True)
    platform = models.CharField(max_length=32, default="web")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "push_tokens"

    def __str__(self):
        return f"{self.user} - {self.platform}"


class Friendship(models.Model):
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name="friendships")
    friend = models.ForeignKey(User, on_delete=models.CASCADE, related_name="+")

    class Meta:
        db_table = "friendships"
        constraints = [
            models.UniqueConstraint(fields=["user", "friend"], name="unique_friendship"),
        ]


class FriendNotificationSetting(models.Model):
    """Per-friend mute: ``owner`` stops receiving ``friend``'s schedule fan-out."""

    owner = models.ForeignKey(User, on_delete=models.CASCADE, related_name="friend_settings")
    friend = models.ForeignKey(User, on_delete=models.CASCADE, related_name="+")
    enabled = models.BooleanField(default=True)

    class Meta:
        db_table = "friend_notification_settings"
        constraints = [
            models.UniqueConstraint(fields=["owner", "friend"], name="unique_friend_setting"),
        ]


class BlacklistedToken(models.Model):
    """Revoked auth token, kept until it would have expired anyway."""

    token = models.CharField(max_length=500, unique=True)
    expiry = models.DateTimeField()

    class Meta:
        db_table = "blacklisted_tokens"
        indexes = [
            models.Index(fields=["expiry"], name="blacklisted_expiry_idx"),
        ]


class OutboundNotification(models.Model):
    """
    Transactional outbox row for a batched notification.

    Written in the same transaction as the scheduling change and drained by
    a Celery worker after commit.
    """

    STATUS_CHOICES = [
        ("pending", "Pending"),
        ("dispatching", "Dispatching"),
        ("sent", "Sent"),
        ("failed", "Failed"),
    ]

    recipient_ids = models.JSONField(default=list)
    notification_type = models.CharField(max_length=20, choices=NotificationType.choices)
    title = models.CharField(max_length=200)
    payload = models.TextField(blank=True, default="")
    server_id = models.BigIntegerField(null=True, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="pending")
    attempts = models.PositiveIntegerField(default=0)
    last_error = models.CharField(max_length=500, blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)
    dispatched_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "outbound_notifications"
        indexes = [
            models.Index(fields=["status", "created_at"], name="outbox_status_created_idx"),
        ]

    def __str__(self):
        return f"{self.notification_type} to {len(self.recipient_ids)} recipient(s) [{self.status}]"
