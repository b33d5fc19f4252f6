from .auth_views import SignupAPIView, SigninAPIView, RefreshTokenAPIView, LogoutAPIView
from .follow_views import (
    FollowAPIView,
    FollowRequestAPIView,
    UnfollowAPIView,
    FollowingListAPIView,
    FollowersListAPIView,
)
from .profile_views import ProfileAPIView, ProfileUpdateAPIView, UserProfileAPIView
from .search_view import UserSearchAPIView
from .views import NotificationsAPIView
