import logging

from django.db import IntegrityError, transaction

from socialgraph.exceptions import (
    AlreadyFollowing,
    InvalidStatus,
    NotFollowing,
    RequestAlreadyPending,
    SelfFollow,
)
from socialgraph.ledger import NotificationLedger
from socialgraph.models import Follow, Notification

logger = logging.getLogger(__name__)

DECISIONS = (Notification.ACCEPTED, Notification.REJECTED)


def add_edge(follower, followee):
    """Make ``followee`` part of ``follower.following`` and ``follower`` part of ``followee.followers``."""
    Follow.objects.get_or_create(follower=follower, followee=followee)


def remove_edge(follower, followee) -> bool:
    deleted, _ = Follow.objects.filter(follower=follower, followee=followee).delete()
    return bool(deleted)


class RelationshipStateMachine:
    """
    Follow requests and the follower graph.

    Per ordered pair (A, B) a request goes NONE -> PENDING -> ACCEPTED or
    REJECTED, and the last two are final. The pending state lives only in a
    ``follow_request`` notification in B's inbox; the graph edge appears on
    acceptance.

    Each transition runs in one database transaction, so the edge and the
    notifications it produces are written together or not at all.
    """

    def __init__(self, ledger=None):
        self.ledger = ledger or NotificationLedger()

    def follow(self, follower, followee):
        if follower.pk == followee.pk:
            raise SelfFollow()

        if follower.is_following(followee):
            raise AlreadyFollowing()

        if self.ledger.pending_request(follower, followee) is not None:
            raise RequestAlreadyPending()

        # The partial unique index on pending requests catches a concurrent
        # follow that passed the check above.
        try:
            with transaction.atomic():
                request = self.ledger.append(
                    follower, followee, Notification.FOLLOW_REQUEST, status=Notification.PENDING
                )
        except IntegrityError:
            raise RequestAlreadyPending()

        logger.info("Follow request %s: %s -> %s", request.pk, follower.pk, followee.pk)
        return request

    def respond(self, receiver, request_id, decision):
        """
        Accept or reject the follow request ``request_id`` sent to ``receiver``.

        Raises:
            InvalidStatus: ``decision`` is neither accepted nor rejected.
            RequestNotFound: no follow request with that id addressed to receiver.
            InvalidState: the request was already accepted or rejected.
        """
        if decision not in DECISIONS:
            raise InvalidStatus()

        with transaction.atomic():
            request = self.ledger.request_for(receiver, request_id)
            self.ledger.resolve(request, decision)

            if decision == Notification.ACCEPTED:
                add_edge(request.sender, receiver)
                self.ledger.append(receiver, request.sender, Notification.ACCEPTED_REQUEST)

        logger.info("Follow request %s %s by %s", request.pk, decision, receiver.pk)
        return request

    def unfollow(self, follower, followee):
        with transaction.atomic():
            if not remove_edge(follower, followee):
                raise NotFollowing()
        logger.info("Unfollow: %s -> %s", follower.pk, followee.pk)

    def relationship(self, viewer, other) -> str:
        if viewer.pk == other.pk:
            return "self"
        if viewer.is_following(other):
            return "following"
        if self.ledger.pending_request(viewer, other) is not None:
            return "pending"
        return "none"
