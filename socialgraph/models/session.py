from django.conf import settings
from django.db import models


class Session(models.Model):
    """
    A refresh session, one per logged-in device.

    ``refresh_token`` holds the exact value handed to the client in the
    signed cookie. A session is replaced on every rotation and deleted on
    logout.
    """
    identity = models.ForeignKey(settings.AUTH_USER_MODEL, related_name="sessions", on_delete=models.CASCADE)
    refresh_token = models.TextField(unique=True)
    issued_at = models.DateTimeField()
    expires_at = models.DateTimeField()

    class Meta:
        ordering = ["issued_at", "id"]

    def __str__(self):
        return f"Session {self.pk} of {self.identity}"
