# core/supabase_auth.py
# Custom DRF authentication class to verify Supabase JWTs

import logging

import jwt
from django.conf import settings
from django.contrib.auth import get_user_model
from rest_framework.authentication import BaseAuthentication
from rest_framework.exceptions import AuthenticationFailed

logger = logging.getLogger("foodshare")

User = get_user_model()


class SupabaseJWTAuthentication(BaseAuthentication):
    """
    Custom authentication class that validates Supabase JWTs.

    This authenticator:
    1. Extracts the JWT from the Authorization header
    2. Verifies the token signature using the Supabase JWT secret
    3. Looks up or creates a Django user keyed by the Supabase user ID,
       taking the role (donor / ngo) from the signup metadata

    The backend never authenticates users itself; it only trusts the
    identity and role Supabase hands it.
    """

    def authenticate(self, request):
        auth_header = request.headers.get("Authorization", "")

        if not auth_header.startswith("Bearer "):
            return None  # Let other auth backends handle it

        token = auth_header.split(" ", 1)[1]

        supabase_jwt_secret = settings.SUPABASE_JWT_SECRET
        if not supabase_jwt_secret:
            logger.debug("SUPABASE_JWT_SECRET not configured")
            return None

        try:
            # Supabase uses HS256 by default
            payload = jwt.decode(
                token,
                supabase_jwt_secret,
                algorithms=["HS256"],
                audience="authenticated",
            )
        except jwt.ExpiredSignatureError:
            raise AuthenticationFailed("Token has expired")
        except jwt.InvalidTokenError as e:
            logger.debug(f"Invalid Supabase token: {e}")
            return None  # Let other auth backends try (SimpleJWT)

        supabase_user_id = payload.get("sub")
        if not supabase_user_id:
            raise AuthenticationFailed("Invalid token: missing user ID")

        user = self._get_or_create_user(supabase_user_id, payload)

        if not user.is_active:
            raise AuthenticationFailed("User account is disabled")

        return (user, payload)

    def _get_or_create_user(self, supabase_user_id: str, payload: dict):
        """
        Get or create a Django user for a Supabase identity.

        The Supabase user ID is stored on the user so an email change on
        the Supabase side does not fork the account.
        """
        try:
            return User.objects.get(supabase_id=supabase_user_id)
        except User.DoesNotExist:
            pass

        email = payload.get("email")
        if not email:
            raise AuthenticationFailed("Token missing email claim")

        user = User.objects.filter(email=email, supabase_id__isnull=True).first()
        if user is not None:
            user.supabase_id = supabase_user_id
            user.save(update_fields=["supabase_id"])
            return user

        metadata = payload.get("user_metadata") or {}
        role = metadata.get("role")
        if role not in (User.ROLE_DONOR, User.ROLE_NGO):
            # Admins are promoted inside the backend, never self-declared
            role = User.ROLE_NGO

        username = email.split("@")[0]
        base_username = username
        counter = 1
        while User.objects.filter(username=username).exists():
            username = f"{base_username}_{counter}"
            counter += 1

        user = User.objects.create(
            username=username,
            email=email,
            supabase_id=supabase_user_id,
            role=role,
            name=(metadata.get("name") or "")[:255],
            org_name=metadata.get("org_name") or "",
            # Password is not used for Supabase auth
        )
        user.set_unusable_password()
        user.save(update_fields=["password"])
        logger.info(f"Created new {role} user from Supabase: {email}")

        return user
