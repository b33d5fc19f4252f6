import uuid

from django.contrib.auth.models import AbstractUser, UserManager
from django.core.exceptions import ValidationError
from django.db import models

from .versioned import VersionedModel

FIELD_MAX_LENGTH = 60

# Fields exposed on a private profile to identities that do not follow it.
REDUCED_PROFILE_FIELDS = ("name", "last_name", "username", "description", "private_profile")


class IdentityManager(UserManager):
    def resolve(self, identity_id):
        """Return the identity with this id, or None, including for ids that are not UUIDs."""
        try:
            return self.filter(pk=identity_id).first()
        except (ValueError, ValidationError):
            return None


class Identity(AbstractUser, VersionedModel):
    """
    The authenticated subject of every session and relationship operation.

    Inherits username, password hash, first/last name and email from
    ``AbstractUser``. The public "name" field of the API is stored in
    ``first_name``.

    Fields:
        id (UUID): Primary key.
        email (str): Unique, used for local sign-in.
        description, date_birth, phone_number, genre: Profile fields.
        private_profile (bool): Hides the full profile from non-followers.
        following: Identities this one follows, through ``Follow``.
            The reverse accessor ``followers`` reads the same rows.
        version (int): Optimistic concurrency counter for profile updates.

    Notes:
        - Refresh sessions are reachable as ``sessions`` and the
          notification inbox as ``inbox``.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    username = models.CharField(max_length=FIELD_MAX_LENGTH, unique=True)
    email = models.EmailField(unique=True)

    description = models.TextField(blank=True, default="")
    date_birth = models.DateField(null=True, blank=True)
    phone_number = models.CharField(max_length=10, blank=True, default="")
    genre = models.CharField(max_length=FIELD_MAX_LENGTH, blank=True, default="")
    private_profile = models.BooleanField(default=False)

    following = models.ManyToManyField(
        "self",
        through="Follow",
        through_fields=("follower", "followee"),
        symmetrical=False,
        related_name="followers",
    )

    objects = IdentityManager()

    class Meta:
        verbose_name = "Identity"
        verbose_name_plural = "Identities"

    def __str__(self):
        return self.username

    @property
    def name(self) -> str:
        return self.first_name

    def is_following(self, other) -> bool:
        return self.following.filter(pk=other.pk).exists()
