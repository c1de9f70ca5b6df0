"""
Slot coordination service.

Keeps timetable entries, party memberships and the audit trail consistent:

- at most one timetable entry per (server, user)
- at most one party membership per user, system-wide
- a party never holds more participants than its capacity

Every public operation runs in a single transaction and takes the acting user
explicitly. Validation happens before anything is written; notification
fan-out is only enqueued and is delivered after commit.
"""

import json
import logging
from datetime import datetime
from typing import Any, Optional

from django.db import transaction
from django.utils import timezone

from scheduling.audit_details import MemberRemoved, Moved, Registered, Removed, Replaced, format_slot
from scheduling.constants import AuditAction, NotificationType, RemovalReason
from scheduling.exceptions import Conflict, Forbidden, InvalidInput, NotFound, PartyFull
from scheduling.models import Game, Party, PartyParticipant, Server, TimetableEntry, User
from scheduling.services.audit_service import AuditService
from scheduling.services.friend_graph import FriendGraph
from scheduling.services.notification_outbox import NotificationOutbox

logger = logging.getLogger(__name__)


def truncate_slot(slot: datetime) -> datetime:
    """Drop seconds and sub-seconds; naive values are read as local time."""
    if not isinstance(slot, datetime):
        raise InvalidInput("Slot must be a datetime", code="T001")
    if timezone.is_naive(slot):
        slot = timezone.make_aware(slot)
    return slot.replace(second=0, microsecond=0)


def build_payload(kind: str, server: Server, actor: User, game: Game, slot: datetime, **extra: Any) -> str:
    data = {
        "kind": kind,
        "serverId": server.pk,
        "serverName": server.name,
        "fromUserId": actor.pk,
        "fromNickname": actor.display_name,
        "gameName": game.name,
        "slot": format_slot(slot),
    }
    data.update(extra)
    return json.dumps(data, ensure_ascii=False)


class SlotCoordinator:
    """Timetable and party use cases."""

    @staticmethod
    def register_timetable_entry(server_id: int, user: User, slot: datetime, game_id: int) -> TimetableEntry:
        """
        Reserve ``slot`` for ``user`` in a server, replacing any previous entry.

        Args:
            server_id: Server to register in
            user: Acting user
            slot: Requested slot; truncated to the minute
            game_id: Default game or a custom game of this server

        Returns:
            The persisted TimetableEntry

        Raises:
            NotFound: Unknown server or game
            Forbidden: User is not a member of the server
            InvalidInput: Game not usable in this server
            Conflict: User is in a party of this server
        """
        with transaction.atomic():
            server = SlotCoordinator._get_server(server_id)
            SlotCoordinator._require_member(server, user)
            game = SlotCoordinator._get_game(server, game_id)
            slot = truncate_slot(slot)
            SlotCoordinator._lock_user(user)

            if PartyParticipant.objects.filter(user=user, party__server=server).exists():
                raise Conflict("Leave your party before registering a timetable entry", code="T002")

            return SlotCoordinator._register(server, user, slot, game)

    @staticmethod
    def remove_timetable_entry(server_id: int, user: User, reason: str = RemovalReason.USER_ACTION) -> bool:
        """
        Remove the user's entry in a server. Idempotent.

        Returns:
            True if an entry existed and was removed
        """
        with transaction.atomic():
            server = SlotCoordinator._get_server(server_id)
            SlotCoordinator._lock_user(user)
            return SlotCoordinator._remove_entry(server, user, reason)

    @staticmethod
    def create_party(server_id: int, creator: User, slot: datetime, capacity: int, game_id: int) -> Party:
        """
        Open a party and seat its creator.

        The creator leaves any other party first. Their timetable entry is
        moved to the party slot, and every other server member is told the
        party is recruiting.

        Args:
            server_id: Server the party belongs to
            creator: Acting user, seated as first participant
            slot: Party slot; truncated to the minute
            capacity: Maximum participants; values below 1 are clamped to 1
            game_id: Default game or a custom game of this server

        Returns:
            The created Party
        """
        with transaction.atomic():
            server = SlotCoordinator._get_server(server_id)
            SlotCoordinator._require_member(server, creator)
            game = SlotCoordinator._get_game(server, game_id)
            slot = truncate_slot(slot)
            capacity = max(1, int(capacity or 0))
            SlotCoordinator._lock_user(creator)

            SlotCoordinator._evict(creator, game, slot)

            party = Party.objects.create(
                server=server,
                creator=creator,
                slot=slot,
                capacity=capacity,
                game=game,
            )
            AuditService.log(server.pk, creator.pk, AuditAction.PARTY_CREATE, Registered(game.name, slot))

            SlotCoordinator._register(server, creator, slot, game)
            PartyParticipant.objects.create(party=party, user=creator)
            AuditService.log(server.pk, creator.pk, AuditAction.PARTY_JOIN, Registered(game.name, slot))

            audience = server.members.exclude(pk=creator.pk).order_by("pk")
            NotificationOutbox.enqueue(
                audience,
                NotificationType.PARTY,
                f"{creator.display_name} is recruiting for {game.name}",
                build_payload("party", server, creator, game, slot, capacity=capacity, partyId=party.pk),
                server_id=server.pk,
            )

            logger.info(f"Party {party.pk} created by user {creator.pk} in server {server.pk} (capacity {capacity})")
            return party

    @staticmethod
    def join_party(party_id: int, user: User) -> Party:
        """
        Join a party, leaving any other party the user is in.

        Raises:
            NotFound: Unknown party
            Forbidden: User is not a member of the party's server
            PartyFull: The party is at capacity
        """
        with transaction.atomic():
            party = SlotCoordinator._get_party(party_id)
            SlotCoordinator._require_member(party.server, user)
            SlotCoordinator._lock_user(user)

            if party.has_participant(user):
                return party

            if party.participant_count >= party.capacity:
                raise PartyFull()

            SlotCoordinator._evict(user, party.game, party.slot, keep_party_id=party.pk)
            SlotCoordinator._register(party.server, user, party.slot, party.game)
            PartyParticipant.objects.create(party=party, user=user)
            AuditService.log(
                party.server_id, user.pk, AuditAction.PARTY_JOIN, Registered(party.game.name, party.slot)
            )

            logger.info(f"User {user.pk} joined party {party.pk}")
            return party

    @staticmethod
    def leave_party(party_id: int, user: User) -> Party:
        """
        Leave a party.

        Only the seat depends on being a participant. The caller's timetable
        entry in the party's server is always cleared and PARTY_LEAVE appended.
        """
        with transaction.atomic():
            party = SlotCoordinator._get_party(party_id)
            SlotCoordinator._lock_user(user)

            PartyParticipant.objects.filter(party=party, user=user).delete()
            SlotCoordinator._remove_entry(party.server, user, RemovalReason.PARTY_LEAVE)
            AuditService.log(
                party.server_id,
                user.pk,
                AuditAction.PARTY_LEAVE,
                Removed(party.game.name, party.slot, RemovalReason.PARTY_LEAVE),
            )

            logger.info(f"User {user.pk} left party {party.pk}")
            return party

    @staticmethod
    def delete_party(party_id: int, requester: User) -> None:
        """
        Delete a party and clear every participant's timetable entry.

        Raises:
            NotFound: Unknown party
            Forbidden: Requester is not the party creator
        """
        with transaction.atomic():
            party = SlotCoordinator._get_party(party_id)
            if party.creator_id != requester.pk:
                raise Forbidden.not_party_creator()

            participants = list(party.participants.order_by("pk"))
            for participant in participants:
                SlotCoordinator._remove_entry(party.server, participant, RemovalReason.PARTY_DELETE)

            AuditService.log(
                party.server_id, requester.pk, AuditAction.PARTY_DELETE, Registered(party.game.name, party.slot)
            )
            party_pk = party.pk
            party.delete()

            logger.info(f"Party {party_pk} deleted by user {requester.pk} ({len(participants)} participant(s))")

    @staticmethod
    def remove_member(server_id: int, member: User, actor: User) -> None:
        """
        Remove a member from a server: voluntary leave or kick.

        The member's party seat and timetable entry in that server go with
        them. The owner can neither leave nor be kicked.

        Raises:
            NotFound: Unknown server, or ``member`` is not a member
            Conflict: ``member`` is the server owner
            Forbidden: A kick by someone who is neither owner nor admin
        """
        with transaction.atomic():
            server = SlotCoordinator._get_server(server_id)
            if member.pk == server.owner_id:
                raise Conflict("The server owner cannot leave or be removed", code="S005")
            if not server.is_member(member):
                raise NotFound("User is not a member of this server", code="S004")

            kicking = actor.pk != member.pk
            if kicking and not server.is_admin(actor):
                raise Forbidden("Only the owner or an admin can remove members", code="S006")
            reason = RemovalReason.KICK if kicking else RemovalReason.SERVER_LEAVE

            SlotCoordinator._lock_user(member)
            memberships = PartyParticipant.objects.filter(
                user=member, party__server=server
            ).select_related("party__game")
            for membership in memberships:
                party = membership.party
                membership.delete()
                AuditService.log(
                    server.pk,
                    member.pk,
                    AuditAction.PARTY_LEAVE,
                    Removed(party.game.name, party.slot, reason),
                )

            SlotCoordinator._remove_entry(server, member, reason)
            server.members.remove(member)
            server.admins.remove(member)

            if kicking:
                AuditService.log(server.pk, actor.pk, AuditAction.KICK_MEMBER, MemberRemoved(member.pk))
            else:
                AuditService.log(server.pk, member.pk, AuditAction.LEAVE_SERVER)

            logger.info(f"User {member.pk} removed from server {server.pk} ({reason})")

    # Internal helpers

    @staticmethod
    def _register(server: Server, user: User, slot: datetime, game: Game) -> TimetableEntry:
        """Replace the user's entry, audit it and queue the friend fan-out."""
        previous = TimetableEntry.objects.filter(server=server, user=user).select_related("game").first()
        if previous is not None:
            previous.delete()

        entry = TimetableEntry.objects.create(server=server, user=user, slot=slot, game=game)

        if previous is not None:
            details = Replaced(game.name, slot, previous.game.name, previous.slot)
        else:
            details = Registered(game.name, slot)
        AuditService.log(server.pk, user.pk, AuditAction.TIMETABLE_REGISTER, details)

        NotificationOutbox.enqueue(
            FriendGraph.schedule_audience(user, server),
            NotificationType.TIMETABLE,
            f"{user.display_name} scheduled {game.name}",
            build_payload("timetable", server, user, game, slot),
            server_id=server.pk,
        )

        logger.info(f"User {user.pk} registered {format_slot(slot)} in server {server.pk}")
        return entry

    @staticmethod
    def _remove_entry(server: Server, user: User, reason: str) -> bool:
        entry = TimetableEntry.objects.filter(server=server, user=user).select_related("game").first()
        if entry is None:
            return False

        game_name, slot = entry.game.name, entry.slot
        entry.delete()
        AuditService.log(server.pk, user.pk, AuditAction.TIMETABLE_DELETE, Removed(game_name, slot, reason))
        return True

    @staticmethod
    def _evict(user: User, to_game: Game, to_slot: datetime, keep_party_id: Optional[int] = None) -> None:
        """Take the user out of whatever party they are in (there is at most one)."""
        memberships = PartyParticipant.objects.filter(user=user).select_related("party__game", "party__server")
        if keep_party_id is not None:
            memberships = memberships.exclude(party_id=keep_party_id)

        for membership in memberships:
            party = membership.party
            membership.delete()
            SlotCoordinator._remove_entry(party.server, user, RemovalReason.PARTY_MOVE)
            AuditService.log(
                party.server_id,
                user.pk,
                AuditAction.PARTY_LEAVE,
                Moved(party.game.name, party.slot, to_game.name, to_slot),
            )
            logger.info(f"User {user.pk} moved out of party {party.pk}")

    @staticmethod
    def _get_server(server_id: int) -> Server:
        try:
            return Server.objects.get(pk=server_id)
        except Server.DoesNotExist:
            raise NotFound.server()

    @staticmethod
    def _get_party(party_id: int) -> Party:
        try:
            return (
                Party.objects.select_for_update(of=("self",))
                .select_related("server", "game")
                .get(pk=party_id)
            )
        except Party.DoesNotExist:
            raise NotFound.party()

    @staticmethod
    def _get_game(server: Server, game_id: int) -> Game:
        try:
            game = Game.objects.get(pk=game_id)
        except Game.DoesNotExist:
            raise NotFound.game()
        if not game.usable_in(server):
            raise InvalidInput("Game is not available in this server", code="G002")
        return game

    @staticmethod
    def _require_member(server: Server, user: User) -> None:
        if not server.is_member(user):
            raise Forbidden.not_member()

    @staticmethod
    def _lock_user(user: User) -> None:
        """Serialize concurrent operations of the same user on their user row."""
        list(User.objects.select_for_update().filter(pk=user.pk).values_list("pk", flat=True))
