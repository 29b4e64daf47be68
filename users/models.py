# users/models.py
from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """
    Local projection of the identity provider's user.

    Authentication happens in Supabase; the backend keeps the role used
    for authorization and the contact profile that is disclosed to the
    matched party once a donation is confirmed.
    """
    ROLE_DONOR = "donor"
    ROLE_NGO = "ngo"
    ROLE_ADMIN = "admin"

    ROLE_CHOICES = (
        (ROLE_DONOR, 'Donor'),
        (ROLE_NGO, 'NGO'),
        (ROLE_ADMIN, 'Admin'),
    )

    VERIFICATION_PENDING = "pending"
    VERIFICATION_APPROVED = "approved"
    VERIFICATION_REJECTED = "rejected"

    VERIFICATION_CHOICES = (
        (VERIFICATION_PENDING, 'Pending'),
        (VERIFICATION_APPROVED, 'Approved'),
        (VERIFICATION_REJECTED, 'Rejected'),
    )

    role = models.CharField(
        max_length=16,
        choices=ROLE_CHOICES,
        default=ROLE_NGO,
    )

    supabase_id = models.CharField(max_length=64, unique=True, blank=True, null=True)

    # Contact profile (disclosed only to the matched party)
    name = models.CharField(max_length=255, blank=True, default="")
    org_name = models.CharField(max_length=255, blank=True, default="")
    contact = models.CharField(max_length=32, blank=True, default="", help_text="Phone number")
    address = models.TextField(blank=True, default="")
    avatar_url = models.CharField(max_length=1024, blank=True, null=True)

    verification_status = models.CharField(
        max_length=16,
        choices=VERIFICATION_CHOICES,
        default=VERIFICATION_PENDING,
    )

    # Moderation
    is_blocked = models.BooleanField(default=False)
    blocked_reason = models.TextField(blank=True, default="")
    blocked_at = models.DateTimeField(blank=True, null=True)

    class Meta:
        indexes = [
            models.Index(fields=["role"], name="user_role_idx"),
        ]

    def __str__(self):
        return self.org_name or self.name or self.username

    @property
    def is_donor(self) -> bool:
        return self.role == self.ROLE_DONOR

    @property
    def is_ngo(self) -> bool:
        return self.role == self.ROLE_NGO

    @property
    def is_platform_admin(self) -> bool:
        return self.is_superuser or self.role == self.ROLE_ADMIN

    def contact_card(self) -> dict:
        """Contact details shown to the counterpart of a confirmed donation."""
        return {
            "user_id": self.id,
            "name": self.name or self.username,
            "org_name": self.org_name or None,
            "contact": self.contact or None,
            "email": self.email or None,
            "address": self.address or None,
        }
