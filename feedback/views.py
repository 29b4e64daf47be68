from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from rest_framework import status

from feedback import services
from feedback.serializers import (
    FeedbackSerializer,
    SubmitFeedbackSerializer,
    ComplaintSerializer,
    SubmitComplaintSerializer,
    ResolveComplaintSerializer,
)
from feedback.throttles import ComplaintCreateThrottle


class ListingFeedbackView(APIView):
    """
    GET /api/v1/feedback/listings/<listing_id>/
    POST /api/v1/feedback/listings/<listing_id>/
    - Only the donor and the accepted NGO, once the donation is completed.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, listing_id):
        qs = services.listing_feedback(listing_id, request.user)
        return Response(FeedbackSerializer(qs, many=True).data)

    def post(self, request, listing_id):
        serializer = SubmitFeedbackSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        feedback = services.submit_feedback(
            listing_id,
            request.user,
            data["stars"],
            comment=data.get("comment", ""),
            to_user_id=data.get("to_user"),
        )
        return Response(FeedbackSerializer(feedback).data, status=status.HTTP_201_CREATED)


class MyFeedbackView(APIView):
    """
    GET /api/v1/feedback/me/
    Feedback the current user has given and received, plus their average rating.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        summary = services.feedback_summary(request.user)
        return Response({
            "average_rating": summary["average_rating"],
            "received_count": summary["received_count"],
            "received": FeedbackSerializer(summary["received"], many=True).data,
            "given": FeedbackSerializer(summary["given"], many=True).data,
        })


class ComplaintListCreateView(APIView):
    """
    GET /api/v1/feedback/complaints/   (?status= to filter)
    POST /api/v1/feedback/complaints/
    """
    permission_classes = [IsAuthenticated]
    throttle_classes = [ComplaintCreateThrottle]
    throttle_scope = "complaint-create"

    def get(self, request):
        qs = services.complaints_visible_to(request.user)
        status_filter = request.query_params.get("status")
        if status_filter:
            qs = qs.filter(status=status_filter)

        return Response(ComplaintSerializer(qs, many=True, context={"request": request}).data)

    def post(self, request):
        serializer = SubmitComplaintSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        complaint = services.submit_complaint(
            request.user,
            data["to_user"],
            data["type"],
            data["description"],
            listing_id=data.get("listing"),
        )
        return Response(
            ComplaintSerializer(complaint, context={"request": request}).data,
            status=status.HTTP_201_CREATED,
        )


class ResolveComplaintView(APIView):
    """
    PATCH /api/v1/feedback/complaints/<complaint_id>/resolve/   (admins)
    """
    permission_classes = [IsAuthenticated]

    def patch(self, request, complaint_id):
        serializer = ResolveComplaintSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        complaint = services.resolve_complaint(
            complaint_id,
            request.user,
            serializer.validated_data["status"],
            notes=serializer.validated_data.get("admin_notes"),
        )
        return Response(ComplaintSerializer(complaint, context={"request": request}).data)
