from django.conf import settings
from django.db import models
from django.db.models import Q

from .versioned import VersionedModel


class Notification(VersionedModel):
    """
    A directed event in the receiver's inbox.

    A ``follow_request`` with status ``pending`` is the only record of an
    in-flight follow request. Its status moves once, to ``accepted`` or
    ``rejected``, and never changes again. Other types carry no status.

    Fields:
        - sender / receiver: The identities on either end of the event.
        - type: follow_request, accepted_request or like.
        - status: pending, accepted or rejected (follow_request only).
        - created_at: Arrival time; the integer id gives arrival order.
    """
    FOLLOW_REQUEST = "follow_request"
    ACCEPTED_REQUEST = "accepted_request"
    LIKE = "like"

    TYPE_CHOICES = [
        (FOLLOW_REQUEST, "Follow request"),
        (ACCEPTED_REQUEST, "Accepted request"),
        (LIKE, "Like"),
    ]

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"

    STATUS_CHOICES = [
        (PENDING, "Pending"),
        (ACCEPTED, "Accepted"),
        (REJECTED, "Rejected"),
    ]

    id = models.BigAutoField(primary_key=True)
    sender = models.ForeignKey(settings.AUTH_USER_MODEL, related_name="sent_notifications", on_delete=models.CASCADE)
    receiver = models.ForeignKey(settings.AUTH_USER_MODEL, related_name="inbox", on_delete=models.CASCADE)
    type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["id"]
        constraints = [
            models.UniqueConstraint(
                fields=["sender", "receiver"],
                condition=Q(type="follow_request", status="pending"),
                name="unique_pending_follow_request",
            ),
        ]

    def __str__(self):
        if self.status:
            return f"{self.type} {self.sender} -> {self.receiver} ({self.status})"
        return f"{self.type} {self.sender} -> {self.receiver}"

    @property
    def is_pending(self) -> bool:
        return self.type == self.FOLLOW_REQUEST and self.status == self.PENDING
