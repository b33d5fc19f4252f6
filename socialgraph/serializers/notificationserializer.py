from rest_framework import serializers
from socialgraph.models import Notification
from .identityserializer import IdentitySerializer


class NotificationSerializer(serializers.ModelSerializer):
    """
    One inbox entry.

    ``status`` is only meaningful for follow requests and is null for the
    other types.
    """
    id = serializers.IntegerField(read_only=True)
    sender = IdentitySerializer(read_only=True)
    receiver = serializers.CharField(source="receiver_id", read_only=True)
    date = serializers.DateTimeField(source="created_at", read_only=True)

    class Meta:
        model = Notification
        fields = ["id", "sender", "receiver", "type", "status", "date"]
