"""
Friend-graph lookup used to scope schedule fan-out.
"""

from typing import List, Set

from scheduling.models import FriendNotificationSetting, Friendship, Server, User


class FriendGraph:
    @staticmethod
    def friend_ids(user: User) -> Set[int]:
        """Ids of the user's friends; a friendship row in either direction counts."""
        outgoing = Friendship.objects.filter(user=user).values_list("friend_id", flat=True)
        incoming = Friendship.objects.filter(friend=user).values_list("user_id", flat=True)
        return (set(outgoing) | set(incoming)) - {user.pk}

    @staticmethod
    def muted_by(user: User) -> Set[int]:
        """Ids of users who switched off this user's schedule notifications."""
        return set(
            FriendNotificationSetting.objects.filter(friend=user, enabled=False)
            .values_list("owner_id", flat=True)
        )

    @staticmethod
    def schedule_audience(user: User, server: Server) -> List[User]:
        """Friends of ``user`` who are members of ``server`` and have not muted them."""
        candidates = FriendGraph.friend_ids(user) - FriendGraph.muted_by(user)
        if not candidates:
            return []
        return list(server.members.filter(pk__in=candidates).order_by("pk"))
