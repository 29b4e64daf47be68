# core/supabase_client.py
# Supabase client for edge-function invocation (push + email delivery)

import logging

from django.conf import settings
from supabase import create_client

logger = logging.getLogger("foodshare")

_supabase_client = None


def get_supabase_client():
    """
    Get the Supabase client instance (singleton pattern).
    Uses service_role key for admin access.

    Returns None when Supabase is not configured (local dev, tests).
    """
    global _supabase_client

    if _supabase_client is None:
        url = settings.SUPABASE_URL
        key = settings.SUPABASE_SERVICE_ROLE_KEY

        if not url or not key:
            logger.debug("Supabase credentials not configured")
            return None

        _supabase_client = create_client(url, key)
        logger.info("Supabase client initialized")

    return _supabase_client


def invoke_function(name: str, body: dict) -> bool:
    """
    Invoke a Supabase edge function (e.g. "send-push", "send-email").

    Returns True when the function accepted the payload, False when
    Supabase is not configured or the call failed. Callers decide
    whether a failure is worth a retry.
    """
    client = get_supabase_client()
    if not client:
        return False

    try:
        client.functions.invoke(name, invoke_options={"body": body})
    except Exception as e:
        logger.warning(f"Edge function '{name}' failed: {e}")
        return False

    logger.info(f"Edge function '{name}' invoked")
    return True


def reset_client():
    """Drop the cached client (used when settings change under tests)."""
    global _supabase_client
    _supabase_client = None
