from .identityserializer import IdentitySerializer, ProfileSerializer, ReducedProfileSerializer
from .signupserializer import SignupSerializer, SigninSerializer
from .profileupdateserializer import ProfileUpdateSerializer
from .notificationserializer import NotificationSerializer
