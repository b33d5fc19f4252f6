import re

from rest_framework import serializers
from socialgraph.models import Identity
from socialgraph.models.identity import FIELD_MAX_LENGTH

REQUIRED_MESSAGE = "Required fields are missing or empty"

LETTERS_ONLY = re.compile(r"^[^\W\d_]+$")
USERNAME_CHARS = re.compile(r"^[a-zA-Z0-9._]+$")
EMAIL_FORMAT = re.compile(r"^[a-zA-Z0-9._-]+@[a-zA-Z0-9-]+\.[a-zA-Z]{2,}$")

_required = {"required": REQUIRED_MESSAGE, "blank": REQUIRED_MESSAGE, "null": REQUIRED_MESSAGE}


def _field(**kwargs):
    return serializers.CharField(error_messages=dict(_required), **kwargs)


class SignupSerializer(serializers.Serializer):
    """
    Validates a signup form and creates the identity.

    Every field is checked independently, so one response lists every
    problem with the form at once.

    Example request:
    {
        "name": "Alice",
        "last_name": "Smith",
        "username": "alice",
        "email": "alice@example.com",
        "password": "secret"
    }
    """
    name = _field(max_length=150)
    last_name = _field(max_length=150)
    username = _field(max_length=FIELD_MAX_LENGTH)
    email = _field(max_length=254)
    password = _field(write_only=True, trim_whitespace=False, style={"input_type": "password"})

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

    def validate_username(self, value):
        errors = []
        if not USERNAME_CHARS.match(value):
            errors.append("Invalid data type in Username. Expected string without special characters.")
        if len(value) < 4:
            errors.append("Username must be at least 4 characters")
        if Identity.objects.filter(username__iexact=value).exists():
            errors.append("The Username is already in use")
        if errors:
            raise serializers.ValidationError(errors)
        return value

    def validate_email(self, value):
        errors = []
        if not EMAIL_FORMAT.match(value):
            errors.append("Invalid data type in E-Mail. Expected string with a valid E-Mail format.")
        if Identity.objects.filter(email__iexact=value).exists():
            errors.append("The E-Mail is already in use")
        if errors:
            raise serializers.ValidationError(errors)
        return value.lower()

    def validate_password(self, value):
        if len(value) < 4:
            raise serializers.ValidationError("Password must be at least 4 characters")
        return value

    def create(self, validated_data):
        return Identity.objects.create_user(
            username=validated_data["username"],
            email=validated_data["email"],
            password=validated_data["password"],    # hashed by create_user
            first_name=validated_data["name"],
            last_name=validated_data["last_name"],
        )


class SigninSerializer(serializers.Serializer):
    email = _field()
    password = _field(trim_whitespace=False)

    def validate_email(self, value):
        if not re.match(r"^[^\s@]+@[^\s@]+\.[^\s@]+$", value):
            raise serializers.ValidationError("E-Mail is not valid")
        return value

    def validate_password(self, value):
        if len(value) < 4:
            raise serializers.ValidationError("Password must be at least 4 characters")
        return value
