from rest_framework import serializers

from users.serializers import PublicUserSerializer
from .models import Feedback, Complaint


class FeedbackSerializer(serializers.ModelSerializer):
    from_user = PublicUserSerializer(read_only=True)
    to_user = PublicUserSerializer(read_only=True)

    class Meta:
        model = Feedback
        fields = ["id", "listing_id", "from_user", "to_user", "stars", "comment", "created_at"]
        read_only_fields = fields


class SubmitFeedbackSerializer(serializers.Serializer):
    # Range is checked by the service so the error carries the domain code
    stars = serializers.IntegerField()
    comment = serializers.CharField(required=False, allow_blank=True, default="")
    to_user = serializers.IntegerField(required=False, allow_null=True, default=None)


class ComplaintSerializer(serializers.ModelSerializer):
    from_user = PublicUserSerializer(read_only=True)
    to_user = PublicUserSerializer(read_only=True)
    type_display = serializers.CharField(source="get_type_display", read_only=True)
    status_display = serializers.CharField(source="get_status_display", read_only=True)

    class Meta:
        model = Complaint
        fields = [
            "id",
            "from_user",
            "to_user",
            "listing_id",
            "type",
            "type_display",
            "description",
            "status",
            "status_display",
            "admin_notes",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def to_representation(self, instance):
        data = super().to_representation(instance)
        # Admin notes are for the filer and administrators, not the target
        request = self.context.get("request")
        user = getattr(request, "user", None)
        if user is not None and not user.is_platform_admin and instance.from_user_id != user.id:
            data.pop("admin_notes", None)
        return data


class SubmitComplaintSerializer(serializers.Serializer):
    to_user = serializers.IntegerField()
    type = serializers.CharField(max_length=32)
    description = serializers.CharField(allow_blank=True)
    listing = serializers.IntegerField(required=False, allow_null=True, default=None)


class ResolveComplaintSerializer(serializers.Serializer):
    status = serializers.CharField(max_length=16)
    admin_notes = serializers.CharField(required=False, allow_blank=True, allow_null=True, default=None)
