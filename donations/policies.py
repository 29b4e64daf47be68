# donations/policies.py
"""
Centralized donation policy layer.

All authorization checks for listings and requests are defined here,
together with the contact disclosure rules. Views and services use
these methods instead of inline permission logic.
"""
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

from core.exceptions import Forbidden
from .models import Listing, DonationRequest


class DonationPolicy:
    """
    Centralized permission checks for donations.
    All methods return (bool, reason); enforce() turns a denial into Forbidden.
    """

    @staticmethod
    def enforce(result: Tuple[bool, str]):
        allowed, reason = result
        if not allowed:
            raise Forbidden(reason)

    @staticmethod
    def _active(user) -> Tuple[bool, str]:
        if not user or not user.is_authenticated:
            return False, "Authentication required"
        if user.is_blocked:
            return False, "Your account is blocked"
        return True, ""

    @staticmethod
    def is_listing_donor(user, listing: Listing) -> bool:
        return bool(user and user.is_authenticated and listing.donor_id == user.id)

    # ─────────────────────────────────────────────────────────────
    # Listings
    # ─────────────────────────────────────────────────────────────

    @staticmethod
    def can_create_listing(user) -> Tuple[bool, str]:
        ok, reason = DonationPolicy._active(user)
        if not ok:
            return ok, reason
        if not user.is_donor:
            return False, "Only donors can post listings"
        return True, ""

    @staticmethod
    def can_manage_listing(user, listing: Listing) -> Tuple[bool, str]:
        """Edit, cancel, complete, accept/reject requests."""
        if not user or not user.is_authenticated:
            return False, "Authentication required"
        if not DonationPolicy.is_listing_donor(user, listing):
            return False, "Only the donor who posted this listing can do that"
        return True, ""

    @staticmethod
    def can_view_requests(user, listing: Listing) -> Tuple[bool, str]:
        if not user or not user.is_authenticated:
            return False, "Authentication required"
        if user.is_platform_admin or DonationPolicy.is_listing_donor(user, listing):
            return True, ""
        return False, "You do not have permission to view requests for this listing"

    @staticmethod
    def can_view_timeline(user, listing: Listing) -> Tuple[bool, str]:
        if not user or not user.is_authenticated:
            return False, "Authentication required"
        if user.is_platform_admin or DonationPolicy.is_listing_donor(user, listing):
            return True, ""
        if listing.requests.filter(ngo=user).exists():
            return True, ""
        return False, "You do not have permission to view this donation's history"

    # ─────────────────────────────────────────────────────────────
    # Requests
    # ─────────────────────────────────────────────────────────────

    @staticmethod
    def can_submit_request(user, listing: Listing) -> Tuple[bool, str]:
        ok, reason = DonationPolicy._active(user)
        if not ok:
            return ok, reason
        if not user.is_ngo:
            return False, "Only NGOs can request donations"
        if listing.donor_id == user.id:
            return False, "You cannot request your own listing"
        return True, ""


# ─────────────────────────────────────────────────────────────
# Contact disclosure
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ContactDisclosure:
    donor_contact: Optional[dict] = None
    ngo_contact: Optional[dict] = None

    @property
    def is_empty(self) -> bool:
        return self.donor_contact is None and self.ngo_contact is None

    def as_dict(self) -> dict:
        data = {}
        if self.donor_contact is not None:
            data["donor_contact"] = self.donor_contact
        if self.ngo_contact is not None:
            data["ngo_contact"] = self.ngo_contact
        return data


NOTHING = ContactDisclosure()


def visible_contact(listing: Listing, requests: Iterable[DonationRequest], viewer_id) -> ContactDisclosure:
    """
    Which counterpart contact details `viewer_id` may see for `listing`.

    Contact is exchanged only between the donor and the NGO of the single
    accepted request, and only once the listing is confirmed or completed.
    Everyone else, including NGOs whose requests are pending or were
    rejected, gets nothing. Reads only; makes no decisions for mutations.
    """
    if listing.status not in Listing.MATCHED_STATUSES:
        return NOTHING

    accepted = [
        r for r in requests
        if r.listing_id == listing.id and r.status == DonationRequest.STATUS_ACCEPTED
    ]
    if len(accepted) != 1:
        return NOTHING
    winner = accepted[0]

    if viewer_id == listing.donor_id:
        return ContactDisclosure(ngo_contact=winner.ngo.contact_card())
    if viewer_id == winner.ngo_id:
        return ContactDisclosure(donor_contact=listing.donor.contact_card())
    return NOTHING
