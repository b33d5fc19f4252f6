from django.contrib.auth import get_user_model
from django.contrib.auth.backends import ModelBackend


class EmailBackend(ModelBackend):
    """
    Authenticate with email and password instead of username.

    Unknown emails still run the password hasher once so response time does
    not reveal which addresses are registered.
    """
    def authenticate(self, request, email=None, password=None, **kwargs):
        if email is None or password is None:
            return None

        UserModel = get_user_model()
        identity = UserModel._default_manager.filter(email__iexact=email.strip()).first()
        if identity is None:
            UserModel().set_password(password)
            return None

        if identity.check_password(password) and self.user_can_authenticate(identity):
            return identity
        return None
