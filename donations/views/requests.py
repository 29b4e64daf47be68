from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from rest_framework import status

from donations import arbitration
from donations.models import DonationRequest
from donations.policies import DonationPolicy
from donations.serializers import DonationRequestSerializer, SubmitRequestSerializer
from donations.throttles import DonationRequestThrottle
from .listings import get_listing_or_404


class ListingRequestsView(APIView):
    """
    GET /api/v1/donations/listings/<listing_id>/requests/   (owning donor or admin)
    POST /api/v1/donations/listings/<listing_id>/requests/  (NGOs)
    """
    permission_classes = [IsAuthenticated]
    throttle_classes = [DonationRequestThrottle]
    throttle_scope = "donation-request"

    def get(self, request, listing_id):
        listing = get_listing_or_404(listing_id)
        DonationPolicy.enforce(DonationPolicy.can_view_requests(request.user, listing))

        qs = listing.requests.select_related("ngo", "listing").order_by("created_at", "id")
        status_filter = request.query_params.get("status")
        if status_filter:
            qs = qs.filter(status=status_filter)

        return Response(DonationRequestSerializer(qs, many=True).data)

    def post(self, request, listing_id):
        serializer = SubmitRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        donation_request = arbitration.submit_request(
            listing_id,
            request.user,
            serializer.validated_data.get("message", ""),
            serializer.validated_data["requested_pickup_time"],
        )
        return Response(
            DonationRequestSerializer(donation_request).data,
            status=status.HTTP_201_CREATED,
        )


class MyRequestsView(APIView):
    """
    GET /api/v1/donations/requests/mine/
    Requests the current NGO has made, newest first.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        qs = (
            DonationRequest.objects
            .filter(ngo=request.user)
            .select_related("ngo", "listing")
            .order_by("-created_at", "-id")
        )
        status_filter = request.query_params.get("status")
        if status_filter:
            qs = qs.filter(status=status_filter)

        return Response(DonationRequestSerializer(qs, many=True).data)


class AcceptRequestView(APIView):
    """
    POST /api/v1/donations/requests/<request_id>/accept/
    """
    permission_classes = [IsAuthenticated]

    def post(self, request, request_id):
        donation_request = arbitration.accept_request(request_id, request.user)
        return Response(DonationRequestSerializer(donation_request).data)


class RejectRequestView(APIView):
    """
    POST /api/v1/donations/requests/<request_id>/reject/
    """
    permission_classes = [IsAuthenticated]

    def post(self, request, request_id):
        donation_request = arbitration.reject_request(request_id, request.user)
        return Response(DonationRequestSerializer(donation_request).data)
