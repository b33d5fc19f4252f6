from rest_framework import serializers
from socialgraph.models import Identity
from socialgraph.models.identity import REDUCED_PROFILE_FIELDS


class IdentitySerializer(serializers.ModelSerializer):
    """Short public view of an identity, used in listings and search results."""
    type = serializers.SerializerMethodField()
    id = serializers.CharField(read_only=True)
    name = serializers.CharField(source="first_name")

    class Meta:
        model = Identity
        fields = ["type", "id", "name", "last_name", "username", "description", "private_profile"]

    def get_type(self, obj):
        return "identity"


class ProfileSerializer(serializers.ModelSerializer):
    """
    Full profile of an identity.

    ``followers`` and ``following`` are lists of identity ids. The email is
    only included when the profile is the requester's own (``context["own"]``).
    """
    id = serializers.CharField(read_only=True)
    name = serializers.CharField(source="first_name")
    followers = serializers.SerializerMethodField()
    following = serializers.SerializerMethodField()

    class Meta:
        model = Identity
        fields = [
            "id",
            "name",
            "last_name",
            "username",
            "email",
            "description",
            "date_birth",
            "phone_number",
            "genre",
            "private_profile",
            "followers",
            "following",
        ]

    def get_followers(self, obj):
        return [str(pk) for pk in obj.followers.order_by("username").values_list("pk", flat=True)]

    def get_following(self, obj):
        return [str(pk) for pk in obj.following.order_by("username").values_list("pk", flat=True)]

    def to_representation(self, instance):
        data = super().to_representation(instance)
        if not self.context.get("own"):
            data.pop("email", None)
        return data


class ReducedProfileSerializer(ProfileSerializer):
    """What a private profile shows to identities that do not follow it."""

    def to_representation(self, instance):
        data = super().to_representation(instance)
        return {field: data[field] for field in REDUCED_PROFILE_FIELDS}
