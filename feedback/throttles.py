# feedback/throttles.py

from rest_framework.throttling import ScopedRateThrottle


class ComplaintCreateThrottle(ScopedRateThrottle):
    """
    Throttle complaint filing per user.

    Scope key: 'complaint-create'
    Cache key shape:
      throttle_complaint-create_u<user_id>
    """
    scope = "complaint-create"

    def get_cache_key(self, request, view):
        if request.method != "POST":
            return None

        user = getattr(request, "user", None)
        if not user or not user.is_authenticated:
            return None

        return f"throttle_{self.scope}_u{user.id}"
