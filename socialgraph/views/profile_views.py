from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from socialgraph.exceptions import IdentityNotFound
from socialgraph.models import Identity
from socialgraph.relationships import RelationshipStateMachine
from socialgraph.serializers import ProfileSerializer, ProfileUpdateSerializer, ReducedProfileSerializer
from socialgraph.utils import validation_error_response


class ProfileAPIView(APIView):
    """GET /api/users/profile: the requester's own profile, email included."""

    def get(self, request):
        return Response(ProfileSerializer(request.user, context={"own": True}).data)


class ProfileUpdateAPIView(APIView):
    """
    PUT /api/users/updateProfile

    Accepts name and last_name (required) and optionally description,
    date_birth, phone_number, genre and private_profile. Only changed
    fields are written, in one version-checked update.
    """

    def put(self, request):
        serializer = ProfileUpdateSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer)

        identity = request.user
        changes = serializer.changes(identity)
        if changes:
            identity.update_if_current(**changes)

        return Response({"success": True}, status=status.HTTP_200_OK)


class UserProfileAPIView(APIView):
    """
    GET /api/users/profile/{id}

    A private profile shows only its reduced form to identities that do
    not follow it. Public profiles, followed profiles and the requester's
    own profile are shown in full with the requester's relationship to it.
    """

    def get(self, request, id):
        target = Identity.objects.resolve(id)
        if target is None:
            raise IdentityNotFound("User to view not found")

        viewer = request.user
        relationship = RelationshipStateMachine().relationship(viewer, target)

        if target.private_profile and relationship not in ("self", "following"):
            return Response(ReducedProfileSerializer(target).data)

        data = ProfileSerializer(target, context={"own": relationship == "self"}).data
        data["relationship"] = relationship
        return Response(data)
