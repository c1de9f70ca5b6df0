"""
Action tags, removal reasons and notification categories.

Audit action strings are read back by the statistics collaborator, so their
values must never change.
"""

from django.db import models


class AuditAction:
    """Audit log action tags."""

    # Timetable
    TIMETABLE_REGISTER = "TIMETABLE_REGISTER"
    TIMETABLE_DELETE = "TIMETABLE_DELETE"
    TIMETABLE_RESET_DELETE = "TIMETABLE_RESET_DELETE"

    # Party
    PARTY_CREATE = "PARTY_CREATE"
    PARTY_JOIN = "PARTY_JOIN"
    PARTY_LEAVE = "PARTY_LEAVE"
    PARTY_DELETE = "PARTY_DELETE"

    # Server membership
    KICK_MEMBER = "KICK_MEMBER"
    LEAVE_SERVER = "LEAVE_SERVER"

    # Notification delivery summaries
    NOTIFY = "NOTIFY"
    NOTIFY_MANY = "NOTIFY_MANY"


class RemovalReason:
    """Why a timetable entry (or party membership) went away."""

    USER_ACTION = "USER_ACTION"
    PARTY_MOVE = "PARTY_MOVE"
    PARTY_LEAVE = "PARTY_LEAVE"
    PARTY_DELETE = "PARTY_DELETE"
    KICK = "KICK"
    SERVER_LEAVE = "SERVER_LEAVE"
    RESET = "RESET"


class NotificationType(models.TextChoices):
    INVITE = "INVITE", "Server Invite"
    FRIEND_REQUEST = "FRIEND_REQUEST", "Friend Request"
    TIMETABLE = "TIMETABLE", "Friend Schedule"
    PARTY = "PARTY", "Party Recruiting"
    REMINDER = "REMINDER", "Timetable Reminder"
    GENERIC = "GENERIC", "Generic"
