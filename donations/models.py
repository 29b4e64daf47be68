# donations/models.py
from django.conf import settings
from django.db import models
from django.db.models import F, Q
from django.utils import timezone


class ConditionalUpdateQuerySet(models.QuerySet):
    """
    QuerySet with an atomic compare-and-set primitive.

    update_if() issues a single UPDATE ... WHERE pk = ? AND status = ?
    and reports whether exactly one row matched, so a caller that read
    stale state can never overwrite a concurrent decision.
    """

    def update_if(self, pk, expected_status, **fields) -> bool:
        qs = self.filter(pk=pk)
        if isinstance(expected_status, (list, tuple, set, frozenset)):
            qs = qs.filter(status__in=list(expected_status))
        else:
            qs = qs.filter(status=expected_status)
        fields.setdefault("updated_at", timezone.now())
        return qs.update(**fields) == 1


class ListingQuerySet(ConditionalUpdateQuerySet):

    def update_if(self, pk, expected_status, expected_version=None, **fields) -> bool:
        if expected_version is not None:
            return self.filter(version=expected_version).update_if(pk, expected_status, **fields)
        fields["version"] = F("version") + 1
        return super().update_if(pk, expected_status, **fields)

    def open_for_requests(self, at):
        """Listings an NGO can still bid on at time `at`."""
        return self.filter(status__in=Listing.OPEN_STATUSES, expiry_time__gt=at)

    def overdue(self, at):
        """Open listings whose expiry_time has passed; candidates for expiry."""
        return self.filter(status__in=Listing.OPEN_STATUSES, expiry_time__lt=at)

    def visible_to(self, user):
        if user.is_platform_admin:
            return self
        if user.is_donor:
            return self.filter(donor=user)
        return self.filter(
            Q(status__in=Listing.OPEN_STATUSES) | Q(requests__ngo=user)
        ).distinct()


class Listing(models.Model):
    STATUS_POSTED = "posted"
    STATUS_REQUESTED = "requested"
    STATUS_CONFIRMED = "confirmed"
    STATUS_COMPLETED = "completed"
    STATUS_EXPIRED = "expired"
    STATUS_CANCELLED = "cancelled"

    STATUS_CHOICES = [
        (STATUS_POSTED, "Posted"),
        (STATUS_REQUESTED, "Requested"),
        (STATUS_CONFIRMED, "Confirmed"),
        (STATUS_COMPLETED, "Completed"),
        (STATUS_EXPIRED, "Expired"),
        (STATUS_CANCELLED, "Cancelled"),
    ]

    # States in which the listing still accepts bids, can expire or be cancelled
    OPEN_STATUSES = (STATUS_POSTED, STATUS_REQUESTED)
    # States in which the donor/NGO pair is matched
    MATCHED_STATUSES = (STATUS_CONFIRMED, STATUS_COMPLETED)
    TERMINAL_STATUSES = (STATUS_COMPLETED, STATUS_EXPIRED, STATUS_CANCELLED)

    FOOD_VEG = "veg"
    FOOD_NON_VEG = "non-veg"
    FOOD_BOTH = "both"

    FOOD_TYPE_CHOICES = [
        (FOOD_VEG, "Veg"),
        (FOOD_NON_VEG, "Non-veg"),
        (FOOD_BOTH, "Both"),
    ]

    donor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="listings",
    )

    # What
    food_type = models.CharField(max_length=16, choices=FOOD_TYPE_CHOICES, default=FOOD_VEG)
    food_category = models.CharField(max_length=128)
    quantity = models.DecimalField(max_digits=10, decimal_places=2)
    quantity_unit = models.CharField(max_length=32)
    packaging_type = models.CharField(max_length=128, blank=True, default="")
    hygiene_notes = models.TextField(blank=True, default="")
    allergens = models.JSONField(default=list, blank=True)
    # Opaque file-storage URLs
    photos = models.JSONField(default=list, blank=True)

    # When
    prepared_time = models.DateTimeField()
    expiry_time = models.DateTimeField()
    pickup_time_start = models.DateTimeField()
    pickup_time_end = models.DateTimeField()

    # Where
    location = models.CharField(max_length=255)
    address = models.TextField(blank=True, default="")
    latitude = models.FloatField(blank=True, null=True)
    longitude = models.FloatField(blank=True, null=True)

    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_POSTED)
    # Bumped on every status write; optimistic-concurrency token
    version = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ListingQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["status", "expiry_time"], name="listing_status_expiry_idx"),
            models.Index(fields=["donor", "created_at"], name="listing_donor_created_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(pickup_time_start__lt=F("pickup_time_end")),
                name="listing_pickup_window_ordered",
            ),
            models.CheckConstraint(
                condition=Q(pickup_time_end__lte=F("expiry_time")),
                name="listing_pickup_before_expiry",
            ),
            models.CheckConstraint(
                condition=Q(quantity__gt=0),
                name="listing_quantity_positive",
            ),
        ]

    def __str__(self):
        return f"{self.food_category} ({self.quantity} {self.quantity_unit}) - {self.status}"

    @property
    def is_open(self) -> bool:
        return self.status in self.OPEN_STATUSES

    def is_past_expiry(self, at) -> bool:
        return at > self.expiry_time

    def accepted_request(self):
        return self.requests.filter(status=DonationRequest.STATUS_ACCEPTED).select_related("ngo").first()


class DonationRequest(models.Model):
    STATUS_PENDING = "pending"
    STATUS_ACCEPTED = "accepted"
    STATUS_REJECTED = "rejected"

    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_ACCEPTED, "Accepted"),
        (STATUS_REJECTED, "Rejected"),
    ]

    ACTIVE_STATUSES = (STATUS_PENDING, STATUS_ACCEPTED)

    listing = models.ForeignKey(
        Listing,
        on_delete=models.CASCADE,
        related_name="requests",
    )
    ngo = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="donation_requests",
    )
    message = models.TextField(blank=True, default="")
    requested_pickup_time = models.DateTimeField()
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PENDING)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ConditionalUpdateQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["listing", "status"], name="request_listing_status_idx"),
            models.Index(fields=["ngo", "created_at"], name="request_ngo_created_idx"),
        ]
        constraints = [
            # Single winner per listing
            models.UniqueConstraint(
                fields=["listing"],
                condition=Q(status="accepted"),
                name="one_accepted_request_per_listing",
            ),
            # One live bid per NGO per listing
            models.UniqueConstraint(
                fields=["listing", "ngo"],
                condition=Q(status__in=["pending", "accepted"]),
                name="one_active_request_per_ngo",
            ),
        ]

    def __str__(self):
        return f"Request #{self.pk} by {self.ngo_id} on listing {self.listing_id} ({self.status})"


class ListingTransition(models.Model):
    """
    Audit trail: one row per successful listing status change.
    """
    listing = models.ForeignKey(
        Listing,
        on_delete=models.CASCADE,
        related_name="transitions",
    )
    from_status = models.CharField(max_length=16, choices=Listing.STATUS_CHOICES)
    to_status = models.CharField(max_length=16, choices=Listing.STATUS_CHOICES)
    # Null for system-triggered transitions (expiry)
    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="listing_transitions",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["listing", "created_at"], name="transition_listing_idx"),
        ]

    def __str__(self):
        return f"Listing {self.listing_id}: {self.from_status} -> {self.to_status}"
