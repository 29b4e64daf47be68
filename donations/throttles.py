# donations/throttles.py

from rest_framework.throttling import ScopedRateThrottle


class DonationRequestThrottle(ScopedRateThrottle):
    """
    Throttle pickup-request submission per NGO.

    Scope key: 'donation-request'
    Cache key shape:
      throttle_donation-request_u<user_id>
    """
    scope = "donation-request"

    def get_cache_key(self, request, view):
        # Only throttle POST (request submission)
        if request.method != "POST":
            return None

        user = getattr(request, "user", None)
        if not user or not user.is_authenticated:
            return None

        return f"throttle_{self.scope}_u{user.id}"
