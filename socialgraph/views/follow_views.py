from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from socialgraph.exceptions import IdentityNotFound
from socialgraph.models import Identity
from socialgraph.relationships import RelationshipStateMachine
from socialgraph.serializers import IdentitySerializer


def _target(identity_id, message):
    target = Identity.objects.resolve(identity_id)
    if target is None:
        raise IdentityNotFound(message)
    return target


class FollowAPIView(APIView):
    """
    POST /api/users/follow/{id}

    Sends a follow request to identity ``id``. No edge exists until the
    receiver accepts it.

    400 for following yourself, an identity you already follow, or one
    with a request from you still pending; 404 if ``id`` does not exist.
    """

    def post(self, request, id):
        target = _target(id, "User to follow not found")
        follow_request = RelationshipStateMachine().follow(request.user, target)
        return Response(
            {"message": "Follow request sent", "requestId": follow_request.pk},
            status=status.HTTP_200_OK,
        )


class FollowRequestAPIView(APIView):
    """
    PUT /api/users/follow-request/{id}

    { "status": "accepted" | "rejected" }

    Resolves a pending follow request addressed to the requester. A
    request can only be resolved once.
    """

    def put(self, request, id):
        decision = request.data.get("status")
        RelationshipStateMachine().respond(request.user, id, decision)
        return Response({"message": f"Follow request {decision}"}, status=status.HTTP_200_OK)


class UnfollowAPIView(APIView):
    """POST /api/users/unfollow/{id}"""

    def post(self, request, id):
        target = _target(id, "User to unfollow not found")
        RelationshipStateMachine().unfollow(request.user, target)
        return Response({"message": "You unfollowed this user"}, status=status.HTTP_200_OK)


class FollowingListAPIView(APIView):
    """
    GET /api/users/following
    Return {
        "followingCount": n,
        "followingUsers": [ …IdentitySerializer… ]
    }
    """

    def get(self, request):
        following = request.user.following.order_by("username")
        serializer = IdentitySerializer(following, many=True)
        return Response({
            "followingCount": len(serializer.data),
            "followingUsers": serializer.data,
        })


class FollowersListAPIView(APIView):
    """
    GET /api/users/followers
    Return {
        "followersCount": n,
        "followerUsers": [ …IdentitySerializer… ]
    }
    """

    def get(self, request):
        followers = request.user.followers.order_by("username")
        serializer = IdentitySerializer(followers, many=True)
        return Response({
            "followersCount": len(serializer.data),
            "followerUsers": serializer.data,
        })
