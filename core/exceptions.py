from rest_framework.views import exception_handler as drf_exception_handler
from rest_framework.response import Response
from rest_framework import status
import logging

logger = logging.getLogger("foodshare")


class DomainError(Exception):
    """
    Base class for every business-rule failure raised by the services.

    Services raise these; the API boundary (custom_exception_handler)
    turns them into the standard error envelope.
    """
    code = "domain_error"
    status_code = status.HTTP_400_BAD_REQUEST
    # Conflicts caused by a concurrent change: the client should refetch
    refresh = False

    def __init__(self, message: str = "", **context):
        self.message = message or self.default_message()
        self.context = context
        super().__init__(self.message)

    def default_message(self) -> str:
        return self.code.replace("_", " ").capitalize()

    def as_dict(self) -> dict:
        data = {"detail": self.message, "code": self.code}
        if self.refresh:
            data["refresh"] = True
        return data


class ValidationError(DomainError):
    """Malformed input: bad time windows, out-of-range stars, empty fields."""
    code = "validation_error"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = "", field: str = None, **context):
        self.field = field
        super().__init__(message, **context)

    def as_dict(self) -> dict:
        data = super().as_dict()
        if self.field:
            data["field"] = self.field
        return data


class Forbidden(DomainError):
    code = "forbidden"
    status_code = status.HTTP_403_FORBIDDEN


class NotFound(DomainError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class InvalidTransition(DomainError):
    code = "invalid_transition"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, message: str = "", current=None, target=None, **context):
        self.current = current
        self.target = target
        if not message and current is not None:
            message = f"Cannot transition from '{current}' to '{target}'"
        super().__init__(message, **context)


class ListingNotAvailable(DomainError):
    code = "listing_not_available"
    status_code = status.HTTP_409_CONFLICT
    refresh = True


class AlreadyResolved(DomainError):
    code = "already_resolved"
    status_code = status.HTTP_409_CONFLICT
    refresh = True


class DuplicateRequest(DomainError):
    code = "duplicate_request"
    status_code = status.HTTP_409_CONFLICT

    def default_message(self) -> str:
        return "You already have an active request for this listing"


class DuplicateFeedback(DomainError):
    code = "duplicate_feedback"
    status_code = status.HTTP_409_CONFLICT

    def default_message(self) -> str:
        return "Feedback already submitted for this donation"


def custom_exception_handler(exc, context):
    """
    Wrap DRF, Django and domain exceptions into a consistent response format.

    Success responses (2xx) are not touched.
    Only errors come through here.
    """
    if isinstance(exc, DomainError):
        view = context.get("view")
        log = logger.warning if exc.refresh else logger.info
        log(f"Domain error {exc.code} in {type(view).__name__}: {exc.message}")
        return Response(
            {
                "success": False,
                "status_code": exc.status_code,
                "errors": exc.as_dict(),
            },
            status=exc.status_code,
        )

    response = drf_exception_handler(exc, context)

    # If DRF handled it, wrap it
    if response is not None:
        return Response(
            {
                "success": False,
                "status_code": response.status_code,
                "errors": response.data,
            },
            status=response.status_code,
            headers={
                k: v for k, v in response.items()
                if k in ("Retry-After", "WWW-Authenticate", "Allow")
            },
        )

    # Unhandled exceptions -> 500
    logger.exception("Unhandled API exception", exc_info=exc)

    return Response(
        {
            "success": False,
            "status_code": status.HTTP_500_INTERNAL_SERVER_ERROR,
            "errors": {"detail": "Internal server error."},
        },
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
