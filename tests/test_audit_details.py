"""Tests for audit detail payloads and their wire format."""

import datetime

import pytest

from scheduling.audit_details import (
    DeliverySummary,
    MemberRemoved,
    Moved,
    Registered,
    Removed,
    Replaced,
    encode_details,
    format_slot,
    parse_details,
)
from scheduling.constants import RemovalReason
from tests.factories import local_time


class TestFormatSlot:
    def test_minute_precision_without_zone(self):
        assert format_slot(local_time(2025, 1, 10, 21, 0)) == "2025-01-10T21:00"

    def test_aware_utc_rendered_in_local_time(self):
        # Asia/Seoul is UTC+9
        utc = datetime.datetime(2025, 1, 10, 12, 0, tzinfo=datetime.timezone.utc)
        assert format_slot(utc) == "2025-01-10T21:00"

    def test_seconds_kept_when_present(self):
        assert format_slot(datetime.datetime(2025, 1, 10, 21, 0, 30)) == "2025-01-10T21:00:30"


class TestEncodeDetails:
    def test_registered(self):
        details = Registered("Valorant", local_time(2025, 1, 10, 21, 0))
        assert encode_details(details) == "game=Valorant;slot=2025-01-10T21:00"

    def test_replaced(self):
        details = Replaced(
            "Valorant",
            local_time(2025, 1, 10, 22, 0),
            "Overwatch",
            local_time(2025, 1, 10, 21, 0),
        )
        assert encode_details(details) == (
            "game=Valorant;slot=2025-01-10T22:00;fromGame=Overwatch;fromSlot=2025-01-10T21:00"
        )

    def test_removed(self):
        details = Removed("Valorant", local_time(2025, 1, 10, 21, 0), RemovalReason.KICK)
        assert encode_details(details) == "game=Valorant;slot=2025-01-10T21:00;reason=KICK"

    def test_moved(self):
        details = Moved(
            "Valorant",
            local_time(2025, 1, 10, 21, 0),
            "Overwatch",
            local_time(2025, 1, 10, 23, 30),
        )
        assert encode_details(details) == (
            "game=Valorant;slot=2025-01-10T21:00;reason=PARTY_MOVE;"
            "toGame=Overwatch;toSlot=2025-01-10T23:30"
        )

    def test_member_removed(self):
        assert encode_details(MemberRemoved(42)) == "targetUserId=42"

    def test_delivery_summary(self):
        details = DeliverySummary("PARTY", recipients=3, panel=2, pushed=1, skipped=1)
        assert encode_details(details) == "type=PARTY;recipients=3;panel=2;pushed=1;skipped=1"

    def test_slot_action_keys_disjoint_from_delivery_keys(self):
        slot = local_time(2025, 1, 10, 21, 0)
        slot_actions = [
            Registered("Valorant", slot),
            Replaced("Valorant", slot, "Overwatch", slot),
            Removed("Valorant", slot, RemovalReason.RESET),
            Moved("Valorant", slot, "Overwatch", slot),
            MemberRemoved(7),
        ]
        slot_keys = {key for details in slot_actions for key, _ in details.pairs()}
        delivery_keys = {key for key, _ in DeliverySummary("PARTY", 1, 1, 1).pairs()}

        assert slot_keys == {"game", "slot", "reason", "fromGame", "fromSlot", "toGame", "toSlot", "targetUserId"}
        assert delivery_keys == {"type", "recipients", "panel", "pushed", "skipped"}
        assert not slot_keys & delivery_keys

    def test_variants_are_immutable(self):
        details = MemberRemoved(1)
        with pytest.raises(AttributeError):
            details.target_user_id = 2


class TestParseDetails:
    def test_parses_encoded_payload(self):
        text = encode_details(Removed("Valorant", local_time(2025, 1, 10, 21, 0), RemovalReason.RESET))
        assert parse_details(text) == {
            "game": "Valorant",
            "slot": "2025-01-10T21:00",
            "reason": "RESET",
        }

    def test_empty(self):
        assert parse_details("") == {}

    def test_skips_parts_without_key_or_separator(self):
        assert parse_details("game=Valorant;;=orphan;junk; slot = 2025-01-10T21:00 ") == {
            "game": "Valorant",
            "slot": "2025-01-10T21:00",
        }

    def test_value_split_on_first_equals_only(self):
        assert parse_details("game=a=b") == {"game": "a=b"}

    def test_unescaped_separator_in_game_name_corrupts_pairs(self):
        # Known limitation of the format: values are not escaped
        text = encode_details(Registered("Tom;Jerry", local_time(2025, 1, 10, 21, 0)))
        parsed = parse_details(text)
        assert parsed["game"] == "Tom"
        assert parsed["slot"] == "2025-01-10T21:00"
