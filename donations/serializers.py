from rest_framework import serializers

from users.serializers import PublicUserSerializer
from .models import Listing, DonationRequest, ListingTransition


# -----------------------------------------
# LISTINGS
# -----------------------------------------
class ListingSerializer(serializers.ModelSerializer):
    """
    Public view of a listing: no donor contact details. Those are only
    served by the contact endpoint once the donation is confirmed.
    """
    donor = PublicUserSerializer(read_only=True)
    pending_request_count = serializers.SerializerMethodField()

    class Meta:
        model = Listing
        fields = [
            "id",
            "donor",
            "food_type",
            "food_category",
            "quantity",
            "quantity_unit",
            "packaging_type",
            "prepared_time",
            "expiry_time",
            "pickup_time_start",
            "pickup_time_end",
            "location",
            "address",
            "latitude",
            "longitude",
            "status",
            "photos",
            "hygiene_notes",
            "allergens",
            "pending_request_count",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_pending_request_count(self, obj):
        annotated = getattr(obj, "pending_count", None)
        if annotated is not None:
            return annotated
        return obj.requests.filter(status=DonationRequest.STATUS_PENDING).count()


class ListingWriteSerializer(serializers.ModelSerializer):
    """
    Input parsing for create/update. Business rules (time window,
    ownership, status) are enforced by donations.state_machine.
    """
    allergens = serializers.ListField(
        child=serializers.CharField(max_length=64), required=False, max_length=20,
    )
    photos = serializers.ListField(
        child=serializers.URLField(max_length=1024), required=False, max_length=10,
    )
    quantity = serializers.DecimalField(max_digits=10, decimal_places=2)

    class Meta:
        model = Listing
        fields = [
            "food_type",
            "food_category",
            "quantity",
            "quantity_unit",
            "packaging_type",
            "prepared_time",
            "expiry_time",
            "pickup_time_start",
            "pickup_time_end",
            "location",
            "address",
            "latitude",
            "longitude",
            "photos",
            "hygiene_notes",
            "allergens",
        ]

    def validate_latitude(self, value):
        if value is not None and not -90 <= value <= 90:
            raise serializers.ValidationError("Latitude must be between -90 and 90")
        return value

    def validate_longitude(self, value):
        if value is not None and not -180 <= value <= 180:
            raise serializers.ValidationError("Longitude must be between -180 and 180")
        return value


# -----------------------------------------
# REQUESTS
# -----------------------------------------
class ListingSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = Listing
        fields = [
            "id",
            "food_category",
            "quantity",
            "quantity_unit",
            "location",
            "photos",
            "status",
            "pickup_time_start",
            "pickup_time_end",
        ]
        read_only_fields = fields


class DonationRequestSerializer(serializers.ModelSerializer):
    ngo = PublicUserSerializer(read_only=True)
    listing = ListingSummarySerializer(read_only=True)

    class Meta:
        model = DonationRequest
        fields = [
            "id",
            "listing",
            "ngo",
            "message",
            "requested_pickup_time",
            "status",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class SubmitRequestSerializer(serializers.Serializer):
    message = serializers.CharField(required=False, allow_blank=True, default="")
    requested_pickup_time = serializers.DateTimeField()


class ListingTransitionSerializer(serializers.ModelSerializer):
    actor_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = ListingTransition
        fields = ["id", "from_status", "to_status", "actor_id", "created_at"]
        read_only_fields = fields
