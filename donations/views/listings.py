from django.db.models import Count, Q
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from rest_framework import status

from core import datetime_utils
from core.exceptions import NotFound
from core.pagination import paginate
from donations import state_machine
from donations.models import Listing, DonationRequest
from donations.policies import DonationPolicy, visible_contact
from donations.serializers import (
    ListingSerializer,
    ListingWriteSerializer,
    ListingTransitionSerializer,
)


def get_listing_or_404(listing_id) -> Listing:
    try:
        return Listing.objects.select_related("donor").get(pk=listing_id)
    except Listing.DoesNotExist:
        raise NotFound("Listing not found")


def with_pending_counts(qs):
    return qs.annotate(
        pending_count=Count("requests", filter=Q(requests__status=DonationRequest.STATUS_PENDING))
    )


class ListingListCreateView(APIView):
    """
    GET /api/v1/donations/listings/
    - donors: their own listings (?status= to filter)
    - NGOs: listings still open for requests
    - admins: everything (?status= to filter)

    POST /api/v1/donations/listings/  (donors)
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        user = request.user
        status_filter = request.query_params.get("status")

        if user.is_platform_admin:
            qs = Listing.objects.all()
        elif user.is_donor:
            qs = Listing.objects.filter(donor=user)
        else:
            # Overdue listings are hidden even before the sweep expires them
            qs = Listing.objects.open_for_requests(datetime_utils.now())

        if status_filter and (user.is_platform_admin or user.is_donor):
            qs = qs.filter(status=status_filter)

        qs = with_pending_counts(qs.select_related("donor"))

        return Response(paginate(request, qs, ListingSerializer))

    def post(self, request):
        serializer = ListingWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        listing = state_machine.create_listing(request.user, serializer.validated_data)
        return Response(ListingSerializer(listing).data, status=status.HTTP_201_CREATED)


class ListingDetailView(APIView):
    """
    GET /api/v1/donations/listings/<listing_id>/
    PATCH /api/v1/donations/listings/<listing_id>/   (owning donor, open listings only)
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, listing_id):
        listing = get_listing_or_404(listing_id)

        if listing.is_open and listing.is_past_expiry(datetime_utils.now()):
            state_machine.expire_if_due(listing.id)
            listing = get_listing_or_404(listing_id)

        data = ListingSerializer(listing).data
        data["allowed_transitions"] = (
            state_machine.get_allowed_transitions(listing)
            if DonationPolicy.is_listing_donor(request.user, listing) else []
        )
        return Response(data)

    def patch(self, request, listing_id):
        serializer = ListingWriteSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)

        listing = state_machine.update_listing(listing_id, request.user, serializer.validated_data)
        return Response(ListingSerializer(listing).data)


class CancelListingView(APIView):
    """
    POST /api/v1/donations/listings/<listing_id>/cancel/
    """
    permission_classes = [IsAuthenticated]

    def post(self, request, listing_id):
        listing = state_machine.cancel_listing(listing_id, request.user)
        return Response(ListingSerializer(listing).data)


class CompleteListingView(APIView):
    """
    POST /api/v1/donations/listings/<listing_id>/complete/
    """
    permission_classes = [IsAuthenticated]

    def post(self, request, listing_id):
        listing = state_machine.mark_completed(listing_id, request.user)
        return Response(ListingSerializer(listing).data)


class ListingContactView(APIView):
    """
    GET /api/v1/donations/listings/<listing_id>/contact/

    Counterpart contact details for the matched donor/NGO pair.
    Everyone else gets an empty object.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, listing_id):
        listing = get_listing_or_404(listing_id)
        requests = listing.requests.select_related("ngo").filter(
            status=DonationRequest.STATUS_ACCEPTED
        )
        disclosure = visible_contact(listing, requests, request.user.id)
        return Response(disclosure.as_dict(), status=status.HTTP_200_OK)


class ListingTimelineView(APIView):
    """
    GET /api/v1/donations/listings/<listing_id>/timeline/
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, listing_id):
        listing = get_listing_or_404(listing_id)
        DonationPolicy.enforce(DonationPolicy.can_view_timeline(request.user, listing))

        transitions = state_machine.timeline(listing)
        return Response({
            "listing_id": listing.id,
            "status": listing.status,
            "created_at": datetime_utils.format_for_api(listing.created_at),
            "transitions": ListingTransitionSerializer(transitions, many=True).data,
        })
