# donations/arbitration.py
"""
Request arbitration.

Decides which NGO (if any) gets to collect a listing. The listing row
is the serialization point: every mutation locks it, re-reads the
state it decides on, and writes through a conditional update, so two
racing accepts can never both win.

Policy decisions:
- NGOs may bid while the listing is `posted` or `requested`; the first
  bid moves it to `requested`, later bids leave the status alone.
- An NGO holds at most one pending/accepted request per listing. After
  a rejection it may bid again while the listing is still open.
- Rejecting the last pending request does not send the listing back to
  `posted`; it stays `requested` and open for new bids until it is
  accepted, cancelled or expires.
"""
import logging

from django.db import IntegrityError, transaction

from core import datetime_utils
from core.exceptions import (
    AlreadyResolved,
    DuplicateRequest,
    ListingNotAvailable,
    NotFound,
    ValidationError,
)
from core.sanitizers import sanitize_text
from notifications import dispatch, hooks
from .models import DonationRequest, Listing
from .policies import DonationPolicy
from . import state_machine

logger = logging.getLogger("foodshare.donations")

MESSAGE_MAX_LENGTH = 500


def _get_request(request_id) -> DonationRequest:
    try:
        return DonationRequest.objects.get(pk=request_id)
    except DonationRequest.DoesNotExist:
        raise NotFound("Request not found")


def submit_request(listing_id, ngo, message: str, requested_pickup_time) -> DonationRequest:
    """
    Bid for a listing.

    Raises ListingNotAvailable if the listing is no longer open (or has
    just expired), ValidationError if the pickup time falls outside the
    listing's pickup window, DuplicateRequest if the NGO already has a
    live bid on it.
    """
    message = sanitize_text(message, max_length=MESSAGE_MAX_LENGTH)
    if requested_pickup_time is None:
        raise ValidationError("Requested pickup time is required", field="requested_pickup_time")
    requested_pickup_time = datetime_utils.ensure_aware(requested_pickup_time)

    expired = False
    with transaction.atomic():
        listing = state_machine.lock_listing(listing_id)
        DonationPolicy.enforce(DonationPolicy.can_submit_request(ngo, listing))

        if not listing.is_open:
            logger.warning(
                f"Request on unavailable listing: listing={listing.id}, "
                f"status={listing.status}, ngo={ngo.id}"
            )
            raise ListingNotAvailable("This listing is no longer accepting requests")

        if listing.is_past_expiry(datetime_utils.now()):
            state_machine.expire_locked(listing)
            expired = True
        else:
            if not (listing.pickup_time_start <= requested_pickup_time <= listing.pickup_time_end):
                raise ValidationError(
                    "Pickup time must fall within the listing's pickup window",
                    field="requested_pickup_time",
                )

            if listing.requests.filter(ngo=ngo, status__in=DonationRequest.ACTIVE_STATUSES).exists():
                raise DuplicateRequest()

            try:
                with transaction.atomic():
                    request = DonationRequest.objects.create(
                        listing=listing,
                        ngo=ngo,
                        message=message,
                        requested_pickup_time=requested_pickup_time,
                    )
            except IntegrityError:
                raise DuplicateRequest()

            if listing.status == Listing.STATUS_POSTED:
                state_machine.transition(listing, Listing.STATUS_REQUESTED, ngo, request=request)
            else:
                # Already requested: the bid still reaches the donor
                dispatch.emit(hooks.request_received(request))

            logger.info(f"Request submitted: request={request.id}, listing={listing.id}, ngo={ngo.id}")

    if expired:
        raise ListingNotAvailable("This listing has expired")
    return request


def accept_request(request_id, donor) -> DonationRequest:
    """
    Accept one bid: the request becomes `accepted`, the listing
    `confirmed`, and every other pending bid `rejected`, all in one
    transaction. Exactly one accept can succeed per listing; the others
    get AlreadyResolved and change nothing.
    """
    request = _get_request(request_id)

    expired = False
    with transaction.atomic():
        listing = state_machine.lock_listing(request.listing_id)
        DonationPolicy.enforce(DonationPolicy.can_manage_listing(donor, listing))

        # Fresh read under the lock
        request.refresh_from_db()
        request.listing = listing

        if listing.status != Listing.STATUS_REQUESTED:
            logger.warning(
                f"Accept on resolved listing: listing={listing.id}, status={listing.status}, "
                f"request={request.id}"
            )
            raise AlreadyResolved("This listing is no longer awaiting a decision")

        if request.status != DonationRequest.STATUS_PENDING:
            raise AlreadyResolved(f"This request was already {request.status}")

        if listing.is_past_expiry(datetime_utils.now()):
            state_machine.expire_locked(listing)
            expired = True
        else:
            # The listing's conditional update is the single-winner gate
            state_machine.transition(listing, Listing.STATUS_CONFIRMED, donor, request=request)

            if not DonationRequest.objects.update_if(
                request.pk,
                DonationRequest.STATUS_PENDING,
                status=DonationRequest.STATUS_ACCEPTED,
            ):
                raise AlreadyResolved("This request was changed by someone else. Refresh and try again.")
            request.status = DonationRequest.STATUS_ACCEPTED

            state_machine.close_pending_requests(listing, reason="superseded", exclude_id=request.pk)
            logger.info(f"Request accepted: request={request.id}, listing={listing.id}, donor={donor.id}")

    if expired:
        raise ListingNotAvailable("This listing expired before the request was accepted")
    return request


def reject_request(request_id, donor) -> DonationRequest:
    """
    Decline one pending bid. The listing status is not touched.
    """
    request = _get_request(request_id)

    with transaction.atomic():
        listing = state_machine.lock_listing(request.listing_id)
        DonationPolicy.enforce(DonationPolicy.can_manage_listing(donor, listing))

        request.refresh_from_db()
        request.listing = listing

        if request.status != DonationRequest.STATUS_PENDING:
            raise AlreadyResolved(f"This request was already {request.status}")

        if not DonationRequest.objects.update_if(
            request.pk,
            DonationRequest.STATUS_PENDING,
            status=DonationRequest.STATUS_REJECTED,
        ):
            raise AlreadyResolved("This request was changed by someone else. Refresh and try again.")
        request.status = DonationRequest.STATUS_REJECTED

        dispatch.emit(hooks.request_rejected(request, reason="declined"))
        logger.info(f"Request rejected: request={request.id}, listing={listing.id}, donor={donor.id}")

    return request
