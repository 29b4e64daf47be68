import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("donations", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Feedback",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("stars", models.PositiveSmallIntegerField()),
                ("comment", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("from_user", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="feedback_given", to=settings.AUTH_USER_MODEL)),
                ("listing", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="feedback", to="donations.listing")),
                ("to_user", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="feedback_received", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["to_user", "created_at"], name="feedback_to_user_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("listing", "from_user"), name="one_feedback_per_listing_author"),
                    models.CheckConstraint(condition=models.Q(("stars__gte", 1), ("stars__lte", 5)), name="feedback_stars_range"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Complaint",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("type", models.CharField(choices=[
                    ("inappropriate_behavior", "Inappropriate behavior"),
                    ("food_quality", "Food quality"),
                    ("no_show", "No show"),
                    ("communication", "Communication"),
                    ("safety", "Safety"),
                    ("other", "Other"),
                ], max_length=32)),
                ("description", models.TextField()),
                ("status", models.CharField(choices=[
                    ("pending", "Pending"),
                    ("reviewing", "Reviewing"),
                    ("resolved", "Resolved"),
                    ("dismissed", "Dismissed"),
                ], default="pending", max_length=16)),
                ("admin_notes", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("from_user", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="complaints_filed", to=settings.AUTH_USER_MODEL)),
                ("listing", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="complaints", to="donations.listing")),
                ("resolved_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="complaints_handled", to=settings.AUTH_USER_MODEL)),
                ("to_user", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="complaints_received", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["status", "created_at"], name="complaint_status_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("from_user", models.F("to_user")), _negated=True), name="complaint_parties_differ"),
                ],
            },
        ),
    ]
