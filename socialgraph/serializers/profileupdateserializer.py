import re

from rest_framework import serializers
from socialgraph.models.identity import FIELD_MAX_LENGTH
from .signupserializer import LETTERS_ONLY

NAMES_REQUIRED = "Name and last name are required fields"

_names_required = {"required": NAMES_REQUIRED, "blank": NAMES_REQUIRED, "null": NAMES_REQUIRED}


class ProfileUpdateSerializer(serializers.Serializer):
    """
    Validates an edit of the requester's own profile.

    ``name`` and ``last_name`` are always required; the other fields are
    optional and only written when they differ from the stored value.
    Profile pictures are handled by the media service, not here.
    """
    name = serializers.CharField(max_length=150, error_messages=_names_required)
    last_name = serializers.CharField(max_length=150, error_messages=_names_required)
    description = serializers.CharField(
        required=False,
        allow_blank=True,
        error_messages={"invalid": "Invalid data type in Description. Expected string."},
    )
    date_birth = serializers.DateField(
        required=False,
        error_messages={"invalid": "Invalid data type in Date of Birth. Expected valid Date format."},
    )
    phone_number = serializers.CharField(required=False, allow_blank=True)
    genre = serializers.CharField(required=False, allow_blank=True, max_length=FIELD_MAX_LENGTH)
    private_profile = serializers.BooleanField(
        required=False,
        error_messages={"invalid": "Invalid data type in Private Profile. Expected boolean."},
    )

    def validate_name(self, value):
        if not LETTERS_ONLY.match(value):
            raise serializers.ValidationError(
                "Invalid data type in Name. Expected string without special characters or numbers."
            )
        return value

    def validate_last_name(self, value):
        if not LETTERS_ONLY.match(value):
            raise serializers.ValidationError(
                "Invalid data type in Last Name. Expected string without special characters or numbers."
            )
        return value

    def validate_phone_number(self, value):
        if value and not re.match(r"^\d{10}$", value):
            raise serializers.ValidationError("Invalid phone number format. Expected a 10-digit number.")
        return value

    def validate_genre(self, value):
        if value and not LETTERS_ONLY.match(value):
            raise serializers.ValidationError(
                "Invalid data type in Genre. Expected string without special characters or numbers."
            )
        return value

    def changes(self, identity):
        """Return the model fields whose validated value differs from ``identity``."""
        changed = {}
        for field, value in self.validated_data.items():
            attribute = "first_name" if field == "name" else field
            if getattr(identity, attribute) != value:
                changed[attribute] = value
        return changed
