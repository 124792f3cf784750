"""
Trusted e-mail header authentication.

Older clients identify themselves with an `X-User-Email` header and no
credentials. The lookup is kept behind the LEDGER_ALLOW_EMAIL_HEADER_AUTH
setting; JWT bearer tokens are the verified way in.
"""
import logging

from django.conf import settings
from django.contrib.auth import get_user_model
from rest_framework import authentication
from rest_framework.exceptions import AuthenticationFailed

logger = logging.getLogger(__name__)

User = get_user_model()


class EmailHeaderAuthentication(authentication.BaseAuthentication):
    """Resolve the caller from the X-User-Email header"""

    def authenticate(self, request):
        if not getattr(settings, 'LEDGER_ALLOW_EMAIL_HEADER_AUTH', False):
            return None

        header = getattr(settings, 'LEDGER_EMAIL_HEADER', 'HTTP_X_USER_EMAIL')
        email = (request.META.get(header) or '').strip()
        if not email:
            return None

        try:
            user = User.objects.get(email__iexact=email)
        except User.DoesNotExist:
            logger.warning(f"Header authentication failed: no user for {email}")
            raise AuthenticationFailed('User not found')

        if not user.is_active:
            raise AuthenticationFailed('User account is disabled.')
        return (user, None)

    def authenticate_header(self, request):
        return 'X-User-Email'
