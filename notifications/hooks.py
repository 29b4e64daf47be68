# notifications/hooks.py
"""
Notification dispatch hooks.

Pure functions mapping a state change to the NotificationIntent it
produces. Nothing here touches the database; dispatch.emit() persists
and delivers the intents.
"""
from dataclasses import dataclass, field
from typing import Optional

from core.datetime_utils import format_for_display
from donations.models import Listing
from .models import Notification


@dataclass(frozen=True)
class NotificationIntent:
    event_type: str
    recipient_id: int
    listing_id: Optional[int]
    title: str
    message: str
    payload: dict = field(default_factory=dict)


def _listing_label(listing) -> str:
    return f"{float(listing.quantity):g} {listing.quantity_unit} of {listing.food_category}"


def _display_name(user) -> str:
    return user.org_name or user.name or user.username


def request_received(request) -> NotificationIntent:
    listing = request.listing
    return NotificationIntent(
        event_type=Notification.TYPE_REQUEST_RECEIVED,
        recipient_id=listing.donor_id,
        listing_id=listing.id,
        title="New pickup request",
        message=f"{_display_name(request.ngo)} requested {_listing_label(listing)}.",
        payload={
            "request_id": request.id,
            "ngo_id": request.ngo_id,
            "ngo_name": _display_name(request.ngo),
            "listing_title": _listing_label(listing),
            "request_message": request.message,
            "requested_pickup_time": request.requested_pickup_time.isoformat(),
            "pickup_time": format_for_display(request.requested_pickup_time),
        },
    )


def request_accepted(request) -> NotificationIntent:
    listing = request.listing
    return NotificationIntent(
        event_type=Notification.TYPE_REQUEST_ACCEPTED,
        recipient_id=request.ngo_id,
        listing_id=listing.id,
        title="Request accepted",
        message=(
            f"Your request for {_listing_label(listing)} was accepted. "
            "Contact details are now shared."
        ),
        payload={
            "request_id": request.id,
            "donor_id": listing.donor_id,
            "pickup_time": format_for_display(request.requested_pickup_time),
            "donor_name": _display_name(listing.donor),
            "listing_title": _listing_label(listing),
        },
    )


def request_rejected(request, reason: str = "declined") -> NotificationIntent:
    """
    reason is one of: declined (donor said no), superseded (another
    request won), cancelled / expired (the listing went away).
    """
    listing = request.listing
    messages = {
        "declined": f"Your request for {_listing_label(listing)} was declined.",
        "superseded": f"{_listing_label(listing)} went to another organisation.",
        "cancelled": f"The donor cancelled {_listing_label(listing)}.",
        "expired": f"{_listing_label(listing)} expired before pickup was confirmed.",
    }
    return NotificationIntent(
        event_type=Notification.TYPE_REQUEST_REJECTED,
        recipient_id=request.ngo_id,
        listing_id=listing.id,
        title="Request not accepted",
        message=messages.get(reason, messages["declined"]),
        payload={
            "request_id": request.id,
            "reason": reason,
            "listing_title": _listing_label(listing),
        },
    )


def donation_completed(listing, accepted_request) -> NotificationIntent:
    return NotificationIntent(
        event_type=Notification.TYPE_DONATION_COMPLETED,
        recipient_id=accepted_request.ngo_id,
        listing_id=listing.id,
        title="Donation completed",
        message=f"Pickup of {_listing_label(listing)} is complete. Leave feedback for the donor.",
        payload={
            "request_id": accepted_request.id,
            "donor_id": listing.donor_id,
            "donor_name": _display_name(listing.donor),
            "listing_title": _listing_label(listing),
        },
    )


def listing_expired(listing) -> NotificationIntent:
    return NotificationIntent(
        event_type=Notification.TYPE_LISTING_EXPIRED,
        recipient_id=listing.donor_id,
        listing_id=listing.id,
        title="Listing expired",
        message=f"{_listing_label(listing)} expired without a confirmed pickup.",
        payload={"expiry_time": listing.expiry_time.isoformat()},
    )


def listing_cancelled(listing) -> NotificationIntent:
    return NotificationIntent(
        event_type=Notification.TYPE_LISTING_CANCELLED,
        recipient_id=listing.donor_id,
        listing_id=listing.id,
        title="Listing cancelled",
        message=f"You cancelled {_listing_label(listing)}.",
    )


def for_listing_transition(listing, target: str, request=None) -> NotificationIntent:
    """
    The single intent a listing transition emits.

    `request` is the request that drove the transition: the new one for
    posted → requested, the accepted one for requested → confirmed and
    confirmed → completed.
    """
    if target == Listing.STATUS_REQUESTED:
        return request_received(request)
    if target == Listing.STATUS_CONFIRMED:
        return request_accepted(request)
    if target == Listing.STATUS_COMPLETED:
        return donation_completed(listing, request)
    if target == Listing.STATUS_EXPIRED:
        return listing_expired(listing)
    if target == Listing.STATUS_CANCELLED:
        return listing_cancelled(listing)
    raise ValueError(f"No notification defined for transition to '{target}'")


def feedback_received(feedback) -> NotificationIntent:
    return NotificationIntent(
        event_type=Notification.TYPE_FEEDBACK_RECEIVED,
        recipient_id=feedback.to_user_id,
        listing_id=feedback.listing_id,
        title="New feedback",
        message=f"{_display_name(feedback.from_user)} rated you {feedback.stars}/5.",
        payload={"feedback_id": feedback.id, "stars": feedback.stars},
    )


def complaint_updated(complaint) -> NotificationIntent:
    return NotificationIntent(
        event_type=Notification.TYPE_COMPLAINT_UPDATED,
        recipient_id=complaint.from_user_id,
        listing_id=complaint.listing_id,
        title="Complaint updated",
        message=f"Your complaint is now {complaint.get_status_display().lower()}.",
        payload={"complaint_id": complaint.id, "status": complaint.status},
    )
