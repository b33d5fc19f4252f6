from django.conf import settings
from django.db import models


class Follow(models.Model):
    """
    A relationship edge: ``follower`` follows ``followee``.

    One row backs both ``follower.following`` and ``followee.followers``,
    so the two sides of the graph cannot drift apart. Rows are created only
    when a follow request is accepted and deleted on unfollow.
    """
    follower = models.ForeignKey(settings.AUTH_USER_MODEL, related_name="following_edges", on_delete=models.CASCADE)
    followee = models.ForeignKey(settings.AUTH_USER_MODEL, related_name="follower_edges", on_delete=models.CASCADE)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["follower", "followee"], name="unique_follow_edge"),
        ]

    def __str__(self):
        return f"{self.follower} -> {self.followee}"
