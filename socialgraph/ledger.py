import logging

from socialgraph.exceptions import Conflict, InvalidState, RequestNotFound
from socialgraph.models import Notification

logger = logging.getLogger(__name__)


class NotificationLedger:
    """
    Append-only inbox of each identity.

    Entries are kept in arrival order and never reordered or merged. The
    only in-place change allowed is the one-way status transition of a
    pending follow request.
    """

    def append(self, sender, receiver, type, status=None):
        notification = Notification.objects.create(
            sender=sender,
            receiver=receiver,
            type=type,
            status=status,
        )
        logger.debug("Appended %s %s -> %s", type, sender.pk, receiver.pk)
        return notification

    def inbox(self, identity):
        return Notification.objects.filter(receiver=identity).select_related("sender").order_by("id")

    def pending_request(self, sender, receiver):
        return Notification.objects.filter(
            sender=sender,
            receiver=receiver,
            type=Notification.FOLLOW_REQUEST,
            status=Notification.PENDING,
        ).first()

    def request_for(self, receiver, request_id):
        """Return the follow request ``request_id`` addressed to ``receiver``."""
        try:
            request = Notification.objects.filter(
                pk=request_id,
                receiver=receiver,
                type=Notification.FOLLOW_REQUEST,
            ).first()
        except (TypeError, ValueError):
            request = None
        if request is None:
            raise RequestNotFound()
        return request

    def resolve(self, request, decision):
        """
        Move a pending follow request to ``decision``.

        The write is conditioned on the version read and on the row still
        being pending. If it misses, the row is re-read: a resolved request
        means another responder got there first (InvalidState); anything
        else is a plain write conflict.
        """
        if request.status != Notification.PENDING:
            raise InvalidState()

        try:
            request.update_if_current(extra_filter={"status": Notification.PENDING}, status=decision)
        except Conflict:
            request.refresh_from_db()
            if request.status != Notification.PENDING:
                raise InvalidState()
            raise
        return request
