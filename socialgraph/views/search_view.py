from django.db.models import Q
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from socialgraph.models import Identity
from socialgraph.serializers import IdentitySerializer

MAX_RESULTS = 8


class UserSearchAPIView(APIView):
    """
    GET /api/users/search?q=<text>

    Case-insensitive substring match on name, last name and username,
    ordered by username. No relevance ranking.
    """

    def get(self, request):
        q = request.query_params.get("q", "").strip()
        if not q:
            return Response({"message": "Query parameter is required"}, status=status.HTTP_400_BAD_REQUEST)

        identities = Identity.objects.filter(
            Q(first_name__icontains=q) | Q(last_name__icontains=q) | Q(username__icontains=q)
        ).order_by("username")[:MAX_RESULTS]

        return Response(IdentitySerializer(identities, many=True).data)
