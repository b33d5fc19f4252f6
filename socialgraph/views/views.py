from rest_framework.response import Response
from rest_framework.views import APIView

from socialgraph.ledger import NotificationLedger
from socialgraph.serializers import NotificationSerializer


class NotificationsAPIView(APIView):
    """
    GET /api/users/notifications

    The requester's whole inbox in arrival order: follow requests with
    their status, accepted-request notices and likes.
    """

    def get(self, request):
        inbox = NotificationLedger().inbox(request.user)
        return Response(NotificationSerializer(inbox, many=True).data)
