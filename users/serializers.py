from rest_framework import serializers

from core.sanitizers import sanitize_line, sanitize_text
from .models import User


class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = [
            'id',
            'username',
            'email',
            'role',
            'name',
            'org_name',
            'contact',
            'address',
            'avatar_url',
            'verification_status',
            'is_blocked',
            'date_joined',
        ]
        read_only_fields = fields


class PublicUserSerializer(serializers.ModelSerializer):
    """
    What any party may see about a counterpart: no contact details.
    """
    class Meta:
        model = User
        fields = ['id', 'name', 'org_name', 'role', 'avatar_url', 'verification_status']
        read_only_fields = fields


class UpdateProfileSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['name', 'org_name', 'contact', 'address', 'avatar_url']

    def validate_name(self, value):
        return sanitize_line(value, max_length=255)

    def validate_org_name(self, value):
        return sanitize_line(value, max_length=255)

    def validate_contact(self, value):
        return sanitize_line(value, max_length=32)

    def validate_address(self, value):
        return sanitize_text(value, max_length=1000)
