# feedback/services.py
"""
Post-completion workflow: feedback between the matched parties of a
completed donation, and complaints any user can file about another.
"""
import logging

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.db.models import Avg, Count, Q

from core.exceptions import (
    AlreadyResolved,
    DuplicateFeedback,
    Forbidden,
    InvalidTransition,
    NotFound,
    ValidationError,
)
from core.sanitizers import sanitize_text
from donations.models import Listing
from notifications import dispatch, hooks
from .models import Complaint, Feedback

logger = logging.getLogger("foodshare.feedback")

User = get_user_model()

COMMENT_MAX_LENGTH = 1000
DESCRIPTION_MAX_LENGTH = 1000
NOTES_MAX_LENGTH = 2000


def _ensure_active(user):
    if not user or not user.is_authenticated:
        raise Forbidden("Authentication required")
    if user.is_blocked:
        raise Forbidden("Your account is blocked")


def _get_listing(listing_id) -> Listing:
    try:
        return Listing.objects.select_related("donor").get(pk=listing_id)
    except Listing.DoesNotExist:
        raise NotFound("Listing not found")


def _get_user(user_id):
    try:
        return User.objects.get(pk=user_id)
    except (User.DoesNotExist, ValueError, TypeError):
        raise NotFound("User not found")


def donation_parties(listing: Listing):
    """(donor_id, ngo_id) of a matched listing, or None if nobody was accepted."""
    accepted = listing.accepted_request()
    if accepted is None:
        return None
    return listing.donor_id, accepted.ngo_id


def validate_stars(stars) -> int:
    # bool is an int subclass; True must not count as one star
    if isinstance(stars, bool) or not isinstance(stars, int):
        raise ValidationError("Rating must be a whole number from 1 to 5", field="stars")
    if not 1 <= stars <= 5:
        raise ValidationError("Rating must be between 1 and 5", field="stars")
    return stars


# ─────────────────────────────────────────────────────────────
# Feedback
# ─────────────────────────────────────────────────────────────

def submit_feedback(listing_id, from_user, stars, comment: str = "", to_user_id=None) -> Feedback:
    """
    Rate the other party of a completed donation.

    Only the donor and the accepted NGO may rate, each only the other.
    `to_user_id` defaults to the counterpart. A second submission by the
    same author for the same listing raises DuplicateFeedback.
    """
    _ensure_active(from_user)
    listing = _get_listing(listing_id)

    if listing.status != Listing.STATUS_COMPLETED:
        raise Forbidden("Feedback can only be left once the donation is completed")

    parties = donation_parties(listing)
    if parties is None or from_user.id not in parties:
        raise Forbidden("Only the donor and the collecting NGO can leave feedback")

    donor_id, ngo_id = parties
    counterpart_id = ngo_id if from_user.id == donor_id else donor_id
    if to_user_id is None:
        to_user_id = counterpart_id
    elif str(to_user_id) != str(counterpart_id):
        raise ValidationError("Feedback must be addressed to the other party of the donation", field="to_user")

    stars = validate_stars(stars)
    comment = sanitize_text(comment, max_length=COMMENT_MAX_LENGTH)

    with transaction.atomic():
        if Feedback.objects.filter(listing=listing, from_user=from_user).exists():
            raise DuplicateFeedback()

        try:
            with transaction.atomic():
                feedback = Feedback.objects.create(
                    listing=listing,
                    from_user=from_user,
                    to_user_id=counterpart_id,
                    stars=stars,
                    comment=comment,
                )
        except IntegrityError:
            raise DuplicateFeedback()

        dispatch.emit(hooks.feedback_received(feedback))

    logger.info(
        f"Feedback submitted: listing={listing.id}, from={from_user.id}, "
        f"to={counterpart_id}, stars={stars}"
    )
    return feedback


def listing_feedback(listing_id, user):
    """Feedback stored for one listing; parties and admins only."""
    listing = _get_listing(listing_id)
    parties = donation_parties(listing) or (listing.donor_id,)
    if not (user.is_platform_admin or user.id in parties):
        raise Forbidden("You do not have permission to view feedback for this donation")
    return Feedback.objects.filter(listing=listing).select_related("from_user", "to_user")


def feedback_summary(user) -> dict:
    received = Feedback.objects.filter(to_user=user)
    stats = received.aggregate(average=Avg("stars"), count=Count("id"))
    return {
        "given": Feedback.objects.filter(from_user=user).select_related("from_user", "to_user"),
        "received": received.select_related("from_user", "to_user"),
        "average_rating": round(stats["average"], 2) if stats["average"] is not None else None,
        "received_count": stats["count"],
    }


# ─────────────────────────────────────────────────────────────
# Complaints
# ─────────────────────────────────────────────────────────────

def complaints_visible_to(user):
    """Filer, target and administrators only."""
    qs = Complaint.objects.select_related("from_user", "to_user", "listing")
    if user.is_platform_admin:
        return qs
    return qs.filter(Q(from_user=user) | Q(to_user=user))


def submit_complaint(from_user, to_user_id, complaint_type: str, description: str, listing_id=None) -> Complaint:
    """
    File a complaint about another user. Allowed at any point in a
    donation's life; the complaint starts out `pending`.
    """
    _ensure_active(from_user)

    if to_user_id is None:
        raise ValidationError("Complaint target is required", field="to_user")
    if str(to_user_id) == str(from_user.id):
        raise ValidationError("You cannot file a complaint about yourself", field="to_user")

    valid_types = dict(Complaint.TYPE_CHOICES)
    if complaint_type not in valid_types:
        raise ValidationError(
            f"Invalid complaint type. Choose one of: {', '.join(valid_types)}",
            field="type",
        )

    description = sanitize_text(description)
    if not description:
        raise ValidationError("Description is required", field="description")
    if len(description) > DESCRIPTION_MAX_LENGTH:
        raise ValidationError(
            f"Description must be at most {DESCRIPTION_MAX_LENGTH} characters",
            field="description",
        )

    to_user = _get_user(to_user_id)
    listing = _get_listing(listing_id) if listing_id is not None else None

    complaint = Complaint.objects.create(
        from_user=from_user,
        to_user=to_user,
        listing=listing,
        type=complaint_type,
        description=description,
    )
    logger.info(
        f"Complaint filed: complaint={complaint.id}, from={from_user.id}, "
        f"to={to_user.id}, type={complaint_type}"
    )
    return complaint


def resolve_complaint(complaint_id, admin, new_status: str, notes: str = None) -> Complaint:
    """
    Move a complaint toward a terminal state. Admin only; touches nothing
    but the complaint itself (and notifies the filer).
    """
    if not admin or not admin.is_authenticated or not admin.is_platform_admin:
        raise Forbidden("Only administrators can resolve complaints")

    if new_status not in dict(Complaint.STATUS_CHOICES):
        raise ValidationError("Invalid complaint status", field="status")

    with transaction.atomic():
        try:
            complaint = Complaint.objects.select_for_update().get(pk=complaint_id)
        except Complaint.DoesNotExist:
            raise NotFound("Complaint not found")

        current = complaint.status
        if new_status not in Complaint.VALID_TRANSITIONS.get(current, []):
            raise InvalidTransition(current=current, target=new_status)

        fields = {"status": new_status}
        if notes is not None:
            fields["admin_notes"] = sanitize_text(notes, max_length=NOTES_MAX_LENGTH)
        if new_status in Complaint.TERMINAL_STATUSES:
            fields["resolved_by"] = admin

        if not Complaint.objects.update_if(complaint.pk, current, **fields):
            raise AlreadyResolved("This complaint was changed by someone else. Refresh and try again.")
        complaint.refresh_from_db()

        dispatch.emit(hooks.complaint_updated(complaint))

    logger.info(
        f"Complaint updated: complaint={complaint.id}, {current} -> {new_status}, admin={admin.id}"
    )
    return complaint
