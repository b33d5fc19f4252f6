from django.urls import path
from socialgraph import views


urlpatterns = [
    # Identity and sessions
    path("signup", views.SignupAPIView.as_view(), name="api_signup"),
    path("signin", views.SigninAPIView.as_view(), name="api_signin"),
    path("refreshToken", views.RefreshTokenAPIView.as_view(), name="api_refresh_token"),
    path("logout", views.LogoutAPIView.as_view(), name="api_logout"),

    # Profiles
    path("profile", views.ProfileAPIView.as_view(), name="api_profile"),
    path("updateProfile", views.ProfileUpdateAPIView.as_view(), name="api_update_profile"),
    path("profile/<str:id>", views.UserProfileAPIView.as_view(), name="api_user_profile"),
    path("search", views.UserSearchAPIView.as_view(), name="api_search"),

    # Relationships
    path("follow/<str:id>", views.FollowAPIView.as_view(), name="api_follow"),
    path("follow-request/<str:id>", views.FollowRequestAPIView.as_view(), name="api_follow_request"),
    path("unfollow/<str:id>", views.UnfollowAPIView.as_view(), name="api_unfollow"),
    path("following", views.FollowingListAPIView.as_view(), name="api_following"),
    path("followers", views.FollowersListAPIView.as_view(), name="api_followers"),

    # Inbox
    path("notifications", views.NotificationsAPIView.as_view(), name="api_notifications"),
]
