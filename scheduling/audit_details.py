"""
Audit detail payloads and their wire codec.

Audit rows carry a semi-structured ``key=value;key=value`` string that the
statistics collaborator parses back (``game`` and ``slot`` in particular).
Detail payloads are built as typed variants and serialized only here, so the
wire format stays stable while construction stays type-checked.

The format has no escaping: a value containing ``;`` or ``=`` corrupts the
pair boundaries on parse. Game names are stored as entered.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Tuple, Union

from django.utils import timezone

from scheduling.constants import RemovalReason


def format_slot(value: datetime) -> str:
    """Render a slot as an ISO-8601 local timestamp without zone suffix."""
    if timezone.is_aware(value):
        value = timezone.localtime(value)
    if value.second or value.microsecond:
        return value.strftime("%Y-%m-%dT%H:%M:%S")
    return value.strftime("%Y-%m-%dT%H:%M")


@dataclass(frozen=True)
class Registered:
    game: str
    slot: datetime

    def pairs(self) -> List[Tuple[str, str]]:
        return [("game", self.game), ("slot", format_slot(self.slot))]


@dataclass(frozen=True)
class Replaced:
    """A registration that superseded the user's previous entry."""

    game: str
    slot: datetime
    from_game: str
    from_slot: datetime

    def pairs(self) -> List[Tuple[str, str]]:
        return [
            ("game", self.game),
            ("slot", format_slot(self.slot)),
            ("fromGame", self.from_game),
            ("fromSlot", format_slot(self.from_slot)),
        ]


@dataclass(frozen=True)
class Removed:
    game: str
    slot: datetime
    reason: str

    def pairs(self) -> List[Tuple[str, str]]:
        return [
            ("game", self.game),
            ("slot", format_slot(self.slot)),
            ("reason", self.reason),
        ]


@dataclass(frozen=True)
class Moved:
    """Leaving one party because the user joined another."""

    game: str
    slot: datetime
    to_game: str
    to_slot: datetime

    def pairs(self) -> List[Tuple[str, str]]:
        return [
            ("game", self.game),
            ("slot", format_slot(self.slot)),
            ("reason", RemovalReason.PARTY_MOVE),
            ("toGame", self.to_game),
            ("toSlot", format_slot(self.to_slot)),
        ]


@dataclass(frozen=True)
class MemberRemoved:
    target_user_id: int

    def pairs(self) -> List[Tuple[str, str]]:
        return [("targetUserId", str(self.target_user_id))]


@dataclass(frozen=True)
class DeliverySummary:
    """Delivery counts for NOTIFY rows. Its keys never overlap the slot-action keys."""

    notification_type: str
    recipients: int
    panel: int
    pushed: int
    skipped: int = 0

    def pairs(self) -> List[Tuple[str, str]]:
        return [
            ("type", self.notification_type),
            ("recipients", str(self.recipients)),
            ("panel", str(self.panel)),
            ("pushed", str(self.pushed)),
            ("skipped", str(self.skipped)),
        ]


AuditDetails = Union[Registered, Replaced, Removed, Moved, MemberRemoved, DeliverySummary]


def encode_details(details: AuditDetails) -> str:
    """Serialize a detail variant to the ``k=v;k=v`` wire format."""
    return ";".join(f"{key}={value}" for key, value in details.pairs())


def parse_details(text: str) -> Dict[str, str]:
    """
    Parse a details string back into a key/value mapping.

    Mirrors the reader used by statistics: split on ``;``, split each part on
    its first ``=``, trim, and drop parts without a key.
    """
    result: Dict[str, str] = {}
    if not text:
        return result
    for part in text.split(";"):
        key, sep, value = part.partition("=")
        key = key.strip()
        if not sep or not key:
            continue
        result[key] = value.strip()
    return result
