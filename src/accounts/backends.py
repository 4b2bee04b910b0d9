"""Authentication backend for inventory admins and mobile users."""

import logging

from django.contrib.auth import get_user_model
from django.contrib.auth.backends import ModelBackend

logger = logging.getLogger(__name__)

User = get_user_model()


class EmailOrUsernameBackend(ModelBackend):
    """Allow login with either email address or username.

    Users whose account has not been approved are refused.
    """

    def authenticate(self, request, username=None, password=None, **kwargs):
        if username is None or password is None:
            return None

        if "@" in username:
            user = User.objects.filter(email__iexact=username.strip()).first()
        else:
            user = User.objects.filter(username=username).first()
        if user is None:
            return None

        if not user.check_password(password):
            return None
        if not user.is_approved:
            logger.info("Refused login for unapproved user %s", user.pk)
            return None
        if self.user_can_authenticate(user):
            return user
        return None
