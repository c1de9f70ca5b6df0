"""
Pytest configuration and fixtures for testing.
"""

from unittest.mock import patch

import pytest

from scheduling.models import Party
from scheduling.services.fcm_service import FCMService
from scheduling.services.slot_coordinator import SlotCoordinator
from tests.factories import GameFactory, PushTokenFactory, ServerFactory, UserFactory, local_time


@pytest.fixture
def user_factory(db):
    """Factory for creating users."""

    def create_user(**kwargs):
        return UserFactory(**kwargs)

    return create_user


@pytest.fixture
def user(user_factory):
    """Provide a single test user."""
    return user_factory()


@pytest.fixture
def server_factory(db, user_factory):
    """Factory for creating servers; the owner is always a member."""

    def create_server(owner=None, members=(), **kwargs):
        if owner is None:
            owner = user_factory()
        server = ServerFactory(owner=owner, **kwargs)
        server.members.add(owner, *members)
        return server

    return create_server


@pytest.fixture
def server(server_factory):
    """Provide a single test server."""
    return server_factory()


@pytest.fixture
def member_factory(server, user_factory):
    """Factory for users who are already members of ``server``."""

    def create_member(**kwargs):
        member = user_factory(**kwargs)
        server.members.add(member)
        return member

    return create_member


@pytest.fixture
def game(db):
    """A default (global) game."""
    return GameFactory(name="Valorant")


@pytest.fixture
def other_game(db):
    return GameFactory(name="Overwatch")


@pytest.fixture
def slot():
    return local_time(2025, 1, 10, 21, 0)


@pytest.fixture
def party_factory(server, game, slot, member_factory):
    """Factory for parties created through the coordinator."""

    def create_party(creator=None, capacity=4, party_slot=None, party_game=None, party_server=None) -> Party:
        target_server = party_server or server
        if creator is None:
            creator = member_factory()
            target_server.members.add(creator)
        return SlotCoordinator.create_party(
            target_server.pk,
            creator,
            party_slot or slot,
            capacity,
            (party_game or game).pk,
        )

    return create_party


@pytest.fixture
def push_token_factory(db):
    def create_token(user, **kwargs):
        return PushTokenFactory(user=user, **kwargs)

    return create_token


@pytest.fixture
def push_enabled():
    """Mark Firebase as initialized and capture every ``messaging.send`` call."""
    with patch.object(FCMService, "_initialized", True), patch(
        "scheduling.services.fcm_service.messaging.send"
    ) as mock_send:
        mock_send.return_value = "projects/gamesync/messages/1"
        yield mock_send
