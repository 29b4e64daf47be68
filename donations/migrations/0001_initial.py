import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


LISTING_STATUS_CHOICES = [
    ("posted", "Posted"),
    ("requested", "Requested"),
    ("confirmed", "Confirmed"),
    ("completed", "Completed"),
    ("expired", "Expired"),
    ("cancelled", "Cancelled"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Listing",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("food_type", models.CharField(choices=[("veg", "Veg"), ("non-veg", "Non-veg"), ("both", "Both")], default="veg", max_length=16)),
                ("food_category", models.CharField(max_length=128)),
                ("quantity", models.DecimalField(decimal_places=2, max_digits=10)),
                ("quantity_unit", models.CharField(max_length=32)),
                ("packaging_type", models.CharField(blank=True, default="", max_length=128)),
                ("hygiene_notes", models.TextField(blank=True, default="")),
                ("allergens", models.JSONField(blank=True, default=list)),
                ("photos", models.JSONField(blank=True, default=list)),
                ("prepared_time", models.DateTimeField()),
                ("expiry_time", models.DateTimeField()),
                ("pickup_time_start", models.DateTimeField()),
                ("pickup_time_end", models.DateTimeField()),
                ("location", models.CharField(max_length=255)),
                ("address", models.TextField(blank=True, default="")),
                ("latitude", models.FloatField(blank=True, null=True)),
                ("longitude", models.FloatField(blank=True, null=True)),
                ("status", models.CharField(choices=LISTING_STATUS_CHOICES, default="posted", max_length=16)),
                ("version", models.PositiveIntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("donor", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="listings", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["status", "expiry_time"], name="listing_status_expiry_idx"),
                    models.Index(fields=["donor", "created_at"], name="listing_donor_created_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("pickup_time_start__lt", models.F("pickup_time_end"))), name="listing_pickup_window_ordered"),
                    models.CheckConstraint(condition=models.Q(("pickup_time_end__lte", models.F("expiry_time"))), name="listing_pickup_before_expiry"),
                    models.CheckConstraint(condition=models.Q(("quantity__gt", 0)), name="listing_quantity_positive"),
                ],
            },
        ),
        migrations.CreateModel(
            name="DonationRequest",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("message", models.TextField(blank=True, default="")),
                ("requested_pickup_time", models.DateTimeField()),
                ("status", models.CharField(choices=[("pending", "Pending"), ("accepted", "Accepted"), ("rejected", "Rejected")], default="pending", max_length=16)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("listing", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="requests", to="donations.listing")),
                ("ngo", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="donation_requests", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["listing", "status"], name="request_listing_status_idx"),
                    models.Index(fields=["ngo", "created_at"], name="request_ngo_created_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(condition=models.Q(("status", "accepted")), fields=("listing",), name="one_accepted_request_per_listing"),
                    models.UniqueConstraint(condition=models.Q(("status__in", ["pending", "accepted"])), fields=("listing", "ngo"), name="one_active_request_per_ngo"),
                ],
            },
        ),
        migrations.CreateModel(
            name="ListingTransition",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("from_status", models.CharField(choices=LISTING_STATUS_CHOICES, max_length=16)),
                ("to_status", models.CharField(choices=LISTING_STATUS_CHOICES, max_length=16)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("actor", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="listing_transitions", to=settings.AUTH_USER_MODEL)),
                ("listing", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="transitions", to="donations.listing")),
            ],
            options={
                "ordering": ["created_at", "id"],
                "indexes": [
                    models.Index(fields=["listing", "created_at"], name="transition_listing_idx"),
                ],
            },
        ),
    ]
