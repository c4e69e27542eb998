"""
Password reset and token verification helpers.

Access/refresh token issuance itself is handled by simplejwt; this module
only covers the parts simplejwt does not: a tagged verification result and
the single-use, time-bound password reset token.
"""
import hashlib
import logging
import secrets
from datetime import timedelta

from django.conf import settings
from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework_simplejwt.exceptions import ExpiredTokenError, TokenError
from rest_framework_simplejwt.tokens import AccessToken, RefreshToken

from backend.exceptions import NotFound, ValidationError

logger = logging.getLogger(__name__)

User = get_user_model()

TOKEN_VALID = 'valid'
TOKEN_EXPIRED = 'expired'
TOKEN_INVALID = 'invalid'


def issue_tokens(user):
    """Return a fresh access/refresh pair carrying the user's role."""
    refresh = RefreshToken.for_user(user)
    refresh['role'] = user.role
    return {
        'access': str(refresh.access_token),
        'refresh': str(refresh),
    }


def verify_token(raw_token, token_class=AccessToken):
    """Return ``(status, payload)`` where status is valid / expired / invalid."""
    try:
        token = token_class(raw_token)
    except ExpiredTokenError:
        return TOKEN_EXPIRED, None
    except TokenError:
        return TOKEN_INVALID, None
    return TOKEN_VALID, token.payload


def _hash_token(raw_token):
    return hashlib.sha256(raw_token.encode('utf-8')).hexdigest()


def issue_password_reset(email):
    """Store a hashed reset token for the user and return the raw token."""
    user = User.objects.filter(email__iexact=email).first()
    if not user:
        raise NotFound('User not found with this email')

    raw_token = secrets.token_hex(32)
    user.password_reset_token = _hash_token(raw_token)
    user.password_reset_expires = timezone.now() + timedelta(
        minutes=getattr(settings, 'PASSWORD_RESET_TIMEOUT_MINUTES', 10)
    )
    user.save(update_fields=['password_reset_token', 'password_reset_expires'])
    logger.info("Password reset issued for user %s", user.pk)
    return raw_token


def reset_password(raw_token, new_password):
    user = User.objects.filter(
        password_reset_token=_hash_token(raw_token),
        password_reset_expires__gt=timezone.now(),
    ).first()
    if not user:
        raise ValidationError({'token': ['Token is invalid or has expired']})

    user.set_password(new_password)
    user.password_reset_token = None
    user.password_reset_expires = None
    user.save(update_fields=['password', 'password_reset_token', 'password_reset_expires'])
    logger.info("Password reset completed for user %s", user.pk)
    return user


def change_password(user, current_password, new_password):
    if not user.check_password(current_password):
        raise ValidationError({'current_password': ['Current password is incorrect']})
    user.set_password(new_password)
    user.save(update_fields=['password'])
    return user
