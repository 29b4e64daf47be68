# donations/state_machine.py
"""
Listing lifecycle engine.

Enforces valid state transitions for a donation listing:

posted → requested → confirmed → completed
   └──────────┴→ expired    (system, once now > expiry_time)
   └──────────┴→ cancelled  (donor)

`confirmed` can neither expire nor be cancelled; its only way forward
is `completed`. Any transition not in VALID_TRANSITIONS is rejected
with InvalidTransition and leaves the listing untouched.

Callers must hold the listing row lock (see lock_listing) when they
call transition(); the conditional update inside is the last guard
against a concurrent writer.
"""
from decimal import Decimal, InvalidOperation
from typing import List, Optional, Tuple
import logging

from django.db import transaction

from core import datetime_utils
from core.exceptions import (
    AlreadyResolved,
    InvalidTransition,
    Forbidden,
    ListingNotAvailable,
    NotFound,
    ValidationError,
)
from core.sanitizers import sanitize_line, sanitize_list, sanitize_text
from notifications import dispatch, hooks
from .models import DonationRequest, Listing, ListingTransition
from .policies import DonationPolicy

logger = logging.getLogger("foodshare.donations")


# Valid state transitions: from_status -> list of allowed to_statuses
VALID_TRANSITIONS = {
    Listing.STATUS_POSTED: [Listing.STATUS_REQUESTED, Listing.STATUS_EXPIRED, Listing.STATUS_CANCELLED],
    Listing.STATUS_REQUESTED: [Listing.STATUS_CONFIRMED, Listing.STATUS_EXPIRED, Listing.STATUS_CANCELLED],
    Listing.STATUS_CONFIRMED: [Listing.STATUS_COMPLETED],
    Listing.STATUS_COMPLETED: [],
    Listing.STATUS_EXPIRED: [],
    Listing.STATUS_CANCELLED: [],
}

TIME_FIELDS = ("prepared_time", "expiry_time", "pickup_time_start", "pickup_time_end")

EDITABLE_FIELDS = (
    "food_type",
    "food_category",
    "quantity",
    "quantity_unit",
    "packaging_type",
    "hygiene_notes",
    "allergens",
    "photos",
    "location",
    "address",
    "latitude",
    "longitude",
) + TIME_FIELDS

REQUIRED_FIELDS = ("food_category", "quantity", "quantity_unit", "location") + TIME_FIELDS


def can_transition(listing: Listing, new_status: str) -> Tuple[bool, str]:
    """
    Check if a listing can move to a new status.

    Returns (can_transition: bool, reason: str)
    """
    current_status = listing.status

    if new_status not in dict(Listing.STATUS_CHOICES):
        return False, f"Invalid status: {new_status}"

    allowed = VALID_TRANSITIONS.get(current_status, [])

    if new_status not in allowed:
        return False, f"Cannot transition from '{current_status}' to '{new_status}'"

    return True, ""


def get_allowed_transitions(listing: Listing) -> list:
    return VALID_TRANSITIONS.get(listing.status, [])


def is_terminal_status(status: str) -> bool:
    return status not in VALID_TRANSITIONS or len(VALID_TRANSITIONS[status]) == 0


def _authorize(listing: Listing, target: str, actor, request: Optional[DonationRequest]):
    """Per-edge trigger and actor rules."""
    if target == Listing.STATUS_REQUESTED:
        if request is None or request.listing_id != listing.id:
            raise InvalidTransition(
                "A listing becomes requested only when an NGO submits a request",
                current=listing.status, target=target,
            )
        if actor is None or actor.id != request.ngo_id:
            raise Forbidden("Only the requesting NGO can trigger this transition")

    elif target == Listing.STATUS_CONFIRMED:
        if request is None or request.listing_id != listing.id:
            raise InvalidTransition(
                "A listing is confirmed only by accepting one of its requests",
                current=listing.status, target=target,
            )
        DonationPolicy.enforce(DonationPolicy.can_manage_listing(actor, listing))

    elif target in (Listing.STATUS_COMPLETED, Listing.STATUS_CANCELLED):
        DonationPolicy.enforce(DonationPolicy.can_manage_listing(actor, listing))

    elif target == Listing.STATUS_EXPIRED:
        if not listing.is_past_expiry(datetime_utils.now()):
            raise InvalidTransition(
                "Listing has not reached its expiry time",
                current=listing.status, target=target,
            )


def transition(listing: Listing, new_status: str, actor=None, request: Optional[DonationRequest] = None) -> Listing:
    """
    Move a (locked, freshly read) listing to a new status.

    Args:
        listing: The listing to transition
        new_status: The target status
        actor: The user performing the action; None for system expiry
        request: The request driving the transition (submit / accept / complete)

    Emits exactly one notification-intent and one audit row per
    successful transition. Re-expiring an expired listing is a no-op.
    """
    if new_status == Listing.STATUS_EXPIRED and listing.status == Listing.STATUS_EXPIRED:
        return listing

    can, reason = can_transition(listing, new_status)
    if not can:
        logger.warning(
            f"Invalid state transition attempted: listing={listing.id}, "
            f"from={listing.status}, to={new_status}, actor={getattr(actor, 'id', 'system')}. "
            f"Reason: {reason}"
        )
        raise InvalidTransition(reason, current=listing.status, target=new_status)

    if new_status == Listing.STATUS_COMPLETED and request is None:
        request = listing.accepted_request()

    _authorize(listing, new_status, actor, request)

    old_status = listing.status
    with transaction.atomic():
        updated = Listing.objects.update_if(
            listing.pk,
            old_status,
            expected_version=listing.version,
            status=new_status,
        )
        if not updated:
            logger.warning(
                f"Stale listing on transition: listing={listing.id}, "
                f"expected={old_status}@v{listing.version}, to={new_status}"
            )
            raise AlreadyResolved("This listing was changed by someone else. Refresh and try again.")

        listing.status = new_status
        listing.version += 1

        ListingTransition.objects.create(
            listing=listing,
            from_status=old_status,
            to_status=new_status,
            actor=actor,
        )
        dispatch.emit(hooks.for_listing_transition(listing, new_status, request))

    logger.info(
        f"Listing state transition: listing={listing.id}, "
        f"from={old_status}, to={new_status}, actor={getattr(actor, 'id', 'system')}"
    )
    return listing


# ─────────────────────────────────────────────────────────────
# Locking & shared side effects
# ─────────────────────────────────────────────────────────────

def lock_listing(listing_id) -> Listing:
    """Fetch a listing with a row lock. Must run inside transaction.atomic()."""
    try:
        return Listing.objects.select_for_update().get(pk=listing_id)
    except Listing.DoesNotExist:
        raise NotFound("Listing not found")


def close_pending_requests(listing: Listing, reason: str, exclude_id=None) -> List[DonationRequest]:
    """
    Reject every pending request on the listing (except `exclude_id`)
    and notify each NGO. Runs inside the caller's transaction.
    """
    pending = listing.requests.select_related("ngo").filter(status=DonationRequest.STATUS_PENDING)
    if exclude_id is not None:
        pending = pending.exclude(pk=exclude_id)
    pending = list(pending)
    if not pending:
        return []

    DonationRequest.objects.filter(
        pk__in=[r.pk for r in pending],
        status=DonationRequest.STATUS_PENDING,
    ).update(status=DonationRequest.STATUS_REJECTED, updated_at=datetime_utils.now())

    for request in pending:
        request.status = DonationRequest.STATUS_REJECTED
        dispatch.emit(hooks.request_rejected(request, reason))

    logger.info(f"Auto-rejected {len(pending)} pending request(s) on listing {listing.id} ({reason})")
    return pending


def expire_locked(listing: Listing) -> Listing:
    """Expire a locked, overdue listing and release its pending bids."""
    transition(listing, Listing.STATUS_EXPIRED)
    close_pending_requests(listing, reason="expired")
    return listing


# ─────────────────────────────────────────────────────────────
# Validation
# ─────────────────────────────────────────────────────────────

def validate_time_window(prepared_time, expiry_time, pickup_time_start, pickup_time_end, at):
    """
    prepared_time <= at, pickup_time_start < pickup_time_end <= expiry_time.
    """
    if prepared_time > at:
        raise ValidationError("Prepared time cannot be in the future", field="prepared_time")
    if expiry_time <= prepared_time:
        raise ValidationError("Expiry time must be after the prepared time", field="expiry_time")
    if pickup_time_start >= pickup_time_end:
        raise ValidationError("Pickup window must start before it ends", field="pickup_time_start")
    if pickup_time_end > expiry_time:
        raise ValidationError("Pickup window must close by the expiry time", field="pickup_time_end")


def _clean_attrs(attrs: dict, partial: bool = False) -> dict:
    unknown = set(attrs) - set(EDITABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Fields cannot be set: {', '.join(sorted(unknown))}", field=sorted(unknown)[0])

    if not partial:
        for name in REQUIRED_FIELDS:
            if attrs.get(name) in (None, ""):
                raise ValidationError(f"{name.replace('_', ' ').capitalize()} is required", field=name)

    data = {}
    for name, value in attrs.items():
        if name in TIME_FIELDS:
            if value is None:
                raise ValidationError(f"{name.replace('_', ' ').capitalize()} is required", field=name)
            data[name] = datetime_utils.ensure_aware(value)
        elif name in ("food_category", "quantity_unit", "location", "packaging_type"):
            data[name] = sanitize_line(value, max_length=255 if name == "location" else 128)
            if name != "packaging_type" and not data[name]:
                raise ValidationError(f"{name.replace('_', ' ').capitalize()} is required", field=name)
        elif name in ("hygiene_notes", "address"):
            data[name] = sanitize_text(value, max_length=2000)
        elif name == "allergens":
            data[name] = sanitize_list(value)
        elif name == "photos":
            data[name] = [str(url) for url in (value or [])][:10]
        elif name == "quantity":
            try:
                quantity = Decimal(str(value))
            except (InvalidOperation, ValueError):
                raise ValidationError("Quantity must be a number", field="quantity")
            if quantity <= 0:
                raise ValidationError("Quantity must be greater than zero", field="quantity")
            data[name] = quantity
        elif name == "food_type":
            if value not in dict(Listing.FOOD_TYPE_CHOICES):
                raise ValidationError(f"Invalid food type: {value}", field="food_type")
            data[name] = value
        else:
            data[name] = value
    return data


# ─────────────────────────────────────────────────────────────
# Lifecycle operations
# ─────────────────────────────────────────────────────────────

def create_listing(donor, attrs: dict) -> Listing:
    """
    Create a listing in `posted`.

    Raises ValidationError for a bad time window or missing fields,
    Forbidden if the actor is not an active donor.
    """
    DonationPolicy.enforce(DonationPolicy.can_create_listing(donor))

    data = _clean_attrs(attrs)
    at = datetime_utils.now()
    validate_time_window(
        data["prepared_time"], data["expiry_time"],
        data["pickup_time_start"], data["pickup_time_end"], at,
    )
    if data["expiry_time"] <= at:
        raise ValidationError("Expiry time is already past", field="expiry_time")

    listing = Listing.objects.create(donor=donor, status=Listing.STATUS_POSTED, **data)
    logger.info(f"Listing created: listing={listing.id}, donor={donor.id}")
    return listing


def update_listing(listing_id, actor, attrs: dict) -> Listing:
    """
    Donor edit of descriptive fields while the listing is still open.

    Time windows are locked once an NGO has requested the listing, so a
    pending bid never falls outside the window it was made against.
    """
    expired = False
    with transaction.atomic():
        listing = lock_listing(listing_id)
        DonationPolicy.enforce(DonationPolicy.can_manage_listing(actor, listing))

        if not listing.is_open:
            raise InvalidTransition(
                "Listings can only be edited before a request is accepted",
                current=listing.status, target=listing.status,
            )

        at = datetime_utils.now()
        if listing.is_past_expiry(at):
            expire_locked(listing)
            expired = True
        else:
            data = _clean_attrs(attrs, partial=True)
            changed_times = [
                name for name in TIME_FIELDS
                if name in data and data[name] != getattr(listing, name)
            ]
            if changed_times and listing.status == Listing.STATUS_REQUESTED:
                raise ValidationError(
                    "Time windows cannot change once NGOs have requested this listing",
                    field=changed_times[0],
                )

            window = {name: data.get(name, getattr(listing, name)) for name in TIME_FIELDS}
            validate_time_window(at=at, **window)
            if changed_times and window["expiry_time"] <= at:
                raise ValidationError("Expiry time is already past", field="expiry_time")

            for name, value in data.items():
                setattr(listing, name, value)
            if data:
                listing.save(update_fields=list(data) + ["updated_at"])
            logger.info(f"Listing updated: listing={listing.id}, fields={sorted(data)}")

    if expired:
        raise ListingNotAvailable("This listing has expired")
    return listing


def cancel_listing(listing_id, actor) -> Listing:
    """posted | requested → cancelled, donor only. Pending bids are rejected."""
    with transaction.atomic():
        listing = lock_listing(listing_id)
        DonationPolicy.enforce(DonationPolicy.can_manage_listing(actor, listing))
        transition(listing, Listing.STATUS_CANCELLED, actor)
        close_pending_requests(listing, reason="cancelled")
    return listing


def mark_completed(listing_id, actor) -> Listing:
    """confirmed → completed, donor only."""
    with transaction.atomic():
        listing = lock_listing(listing_id)
        DonationPolicy.enforce(DonationPolicy.can_manage_listing(actor, listing))
        transition(listing, Listing.STATUS_COMPLETED, actor)
    return listing


def expire_if_due(listing_id) -> bool:
    """
    Lazy expiry check. Returns True if this call expired the listing.

    Idempotent: an already expired (or otherwise closed) listing is left
    alone and no error is raised.
    """
    with transaction.atomic():
        listing = lock_listing(listing_id)
        if listing.is_open and listing.is_past_expiry(datetime_utils.now()):
            expire_locked(listing)
            return True
    return False


def expire_overdue_listings() -> int:
    """
    Sweep: expire every open listing past its expiry time.
    Each listing is expired in its own transaction.
    """
    overdue_ids = list(
        Listing.objects.overdue(datetime_utils.now()).values_list("id", flat=True)
    )
    expired = 0
    for listing_id in overdue_ids:
        try:
            if expire_if_due(listing_id):
                expired += 1
        except NotFound:
            continue
    if expired:
        logger.info(f"Expiry sweep expired {expired} listing(s)")
    return expired


def timeline(listing: Listing) -> List[ListingTransition]:
    return list(listing.transitions.select_related("actor").order_by("created_at", "id"))
