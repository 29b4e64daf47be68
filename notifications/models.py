# notifications/models.py
from django.conf import settings
from django.db import models


class Notification(models.Model):
    """
    One persisted notification-intent.

    Rows are written in the same transaction as the transition that
    produced them; delivery (push/email) happens after commit and stamps
    delivered_at.
    """
    TYPE_REQUEST_RECEIVED = "request_received"
    TYPE_REQUEST_ACCEPTED = "request_accepted"
    TYPE_REQUEST_REJECTED = "request_rejected"
    TYPE_DONATION_COMPLETED = "donation_completed"
    TYPE_LISTING_EXPIRED = "listing_expired"
    TYPE_LISTING_CANCELLED = "listing_cancelled"
    TYPE_FEEDBACK_RECEIVED = "feedback_received"
    TYPE_COMPLAINT_UPDATED = "complaint_updated"

    TYPE_CHOICES = [
        (TYPE_REQUEST_RECEIVED, "Request Received"),
        (TYPE_REQUEST_ACCEPTED, "Request Accepted"),
        (TYPE_REQUEST_REJECTED, "Request Rejected"),
        (TYPE_DONATION_COMPLETED, "Donation Completed"),
        (TYPE_LISTING_EXPIRED, "Listing Expired"),
        (TYPE_LISTING_CANCELLED, "Listing Cancelled"),
        (TYPE_FEEDBACK_RECEIVED, "Feedback Received"),
        (TYPE_COMPLAINT_UPDATED, "Complaint Updated"),
    ]

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="notifications",
    )
    type = models.CharField(max_length=64, choices=TYPE_CHOICES)
    title = models.CharField(max_length=255)
    message = models.TextField(blank=True)
    payload = models.JSONField(default=dict, blank=True)
    is_read = models.BooleanField(default=False)
    delivered_at = models.DateTimeField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    listing = models.ForeignKey(
        "donations.Listing",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="notifications",
    )

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["user", "is_read"], name="notif_user_read_idx"),
            models.Index(fields=["type"], name="notif_type_idx"),
        ]

    def __str__(self):
        return f"{self.user} - {self.type} - {self.title}"
