from django.db import models
from django.conf import settings
from django.db.models import Q, F

from donations.models import ConditionalUpdateQuerySet


class Feedback(models.Model):
    """
    One rating from one party of a completed donation about the other.
    At most one per (listing, author); immutable once stored.
    """
    listing = models.ForeignKey(
        "donations.Listing",
        on_delete=models.CASCADE,
        related_name="feedback",
    )
    from_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="feedback_given",
    )
    to_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="feedback_received",
    )
    stars = models.PositiveSmallIntegerField()
    comment = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        constraints = [
            models.UniqueConstraint(
                fields=["listing", "from_user"],
                name="one_feedback_per_listing_author",
            ),
            models.CheckConstraint(
                condition=Q(stars__gte=1) & Q(stars__lte=5),
                name="feedback_stars_range",
            ),
        ]
        indexes = [
            models.Index(fields=["to_user", "created_at"], name="feedback_to_user_idx"),
        ]

    def __str__(self):
        return f"{self.from_user_id} -> {self.to_user_id} ({self.stars}/5) on listing {self.listing_id}"


class Complaint(models.Model):
    TYPE_INAPPROPRIATE_BEHAVIOR = "inappropriate_behavior"
    TYPE_FOOD_QUALITY = "food_quality"
    TYPE_NO_SHOW = "no_show"
    TYPE_COMMUNICATION = "communication"
    TYPE_SAFETY = "safety"
    TYPE_OTHER = "other"

    TYPE_CHOICES = [
        (TYPE_INAPPROPRIATE_BEHAVIOR, "Inappropriate behavior"),
        (TYPE_FOOD_QUALITY, "Food quality"),
        (TYPE_NO_SHOW, "No show"),
        (TYPE_COMMUNICATION, "Communication"),
        (TYPE_SAFETY, "Safety"),
        (TYPE_OTHER, "Other"),
    ]

    STATUS_PENDING = "pending"
    STATUS_REVIEWING = "reviewing"
    STATUS_RESOLVED = "resolved"
    STATUS_DISMISSED = "dismissed"

    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_REVIEWING, "Reviewing"),
        (STATUS_RESOLVED, "Resolved"),
        (STATUS_DISMISSED, "Dismissed"),
    ]

    TERMINAL_STATUSES = (STATUS_RESOLVED, STATUS_DISMISSED)

    # Unidirectional toward a terminal state; reviewing is optional
    VALID_TRANSITIONS = {
        STATUS_PENDING: [STATUS_REVIEWING, STATUS_RESOLVED, STATUS_DISMISSED],
        STATUS_REVIEWING: [STATUS_RESOLVED, STATUS_DISMISSED],
        STATUS_RESOLVED: [],
        STATUS_DISMISSED: [],
    }

    from_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="complaints_filed",
    )
    to_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="complaints_received",
    )
    listing = models.ForeignKey(
        "donations.Listing",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="complaints",
    )
    type = models.CharField(max_length=32, choices=TYPE_CHOICES)
    description = models.TextField()
    status = models.CharField(
        max_length=16,
        choices=STATUS_CHOICES,
        default=STATUS_PENDING,
    )
    admin_notes = models.TextField(blank=True)
    resolved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="complaints_handled",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ConditionalUpdateQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at", "-id"]
        constraints = [
            models.CheckConstraint(
                condition=~Q(from_user=F("to_user")),
                name="complaint_parties_differ",
            ),
        ]
        indexes = [
            models.Index(fields=["status", "created_at"], name="complaint_status_idx"),
        ]

    def __str__(self):
        return f"Complaint {self.id} ({self.type}, {self.status})"
