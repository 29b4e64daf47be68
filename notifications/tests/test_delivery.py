from unittest.mock import MagicMock, patch

from celery.exceptions import Retry
from django.contrib.auth import get_user_model
from django.test import TestCase

from donations.tests.factories import make_listing, make_request, make_user
from notifications import dispatch, hooks
from notifications.models import Notification
from notifications.tasks import build_email_body, deliver_notification, redelivery_sweep

User = get_user_model()


class DispatchTests(TestCase):
    def setUp(self):
        self.donor = make_user("donor", role=User.ROLE_DONOR)
        self.ngo = make_user("ngo")
        self.listing = make_listing(self.donor)
        self.request = make_request(self.listing, self.ngo)

    def test_emit_persists_and_schedules_after_commit(self):
        with patch("notifications.tasks.deliver_notification") as task:
            with self.captureOnCommitCallbacks(execute=True):
                notification = dispatch.emit(hooks.request_received(self.request))
                task.delay.assert_not_called()

        self.assertEqual(notification.user, self.donor)
        self.assertEqual(notification.listing, self.listing)
        self.assertFalse(notification.is_read)
        task.delay.assert_called_once_with(notification.id)

    def test_scheduling_failure_keeps_notification(self):
        with patch("notifications.tasks.deliver_notification") as task:
            task.delay.side_effect = ConnectionError("broker down")
            with self.captureOnCommitCallbacks(execute=True):
                notification = dispatch.emit(hooks.request_received(self.request))

        self.assertTrue(Notification.objects.filter(pk=notification.pk, delivered_at__isnull=True).exists())


class EmailBodyTests(TestCase):
    def setUp(self):
        self.donor = make_user("donor", role=User.ROLE_DONOR, org_name="Annapoorna")
        self.ngo = make_user("ngo", org_name="Feed Bengaluru")
        self.listing = make_listing(self.donor)
        self.request = make_request(self.listing, self.ngo, message="Two volunteers will come")

    def test_request_received_email(self):
        notification = dispatch.emit(hooks.request_received(self.request))

        body = build_email_body(notification)

        self.assertEqual(body["type"], Notification.TYPE_REQUEST_RECEIVED)
        self.assertEqual(body["to_email"], "donor@example.com")
        self.assertEqual(body["listing_title"], "12.5 kg of Cooked rice")
        self.assertEqual(body["ngo_name"], "Feed Bengaluru")
        self.assertEqual(body["message"], "Two volunteers will come")
        self.assertIsNotNone(body["pickup_time"])

    def test_request_without_message_sends_none(self):
        self.request.message = ""
        notification = dispatch.emit(hooks.request_received(self.request))

        self.assertIsNone(build_email_body(notification)["message"])

    def test_request_accepted_email_names_the_donor(self):
        notification = dispatch.emit(hooks.request_accepted(self.request))

        body = build_email_body(notification)

        self.assertEqual(body["to_email"], "ngo@example.com")
        self.assertEqual(body["donor_name"], "Annapoorna")
        self.assertEqual(body["listing_title"], "12.5 kg of Cooked rice")

    def test_rejected_and_completed_emails_carry_the_listing(self):
        for intent in (
            hooks.request_rejected(self.request, reason="superseded"),
            hooks.donation_completed(self.listing, self.request),
        ):
            body = build_email_body(dispatch.emit(intent))
            self.assertEqual(body["listing_title"], "12.5 kg of Cooked rice")


class DeliverNotificationTests(TestCase):
    def setUp(self):
        self.donor = make_user("donor", role=User.ROLE_DONOR)
        self.ngo = make_user("ngo")
        self.listing = make_listing(self.donor)
        request = make_request(self.listing, self.ngo)
        self.notification = Notification.objects.create(
            user=self.donor,
            type=Notification.TYPE_REQUEST_RECEIVED,
            title="New pickup request",
            message="Ngo requested 12.5 kg of Cooked rice.",
            listing=self.listing,
            payload={"request_id": request.id},
        )

    def test_without_supabase_stays_in_app(self):
        with patch("notifications.tasks.get_supabase_client", return_value=None):
            self.assertEqual(deliver_notification(self.notification.id), "delivery_not_configured")

        self.notification.refresh_from_db()
        self.assertIsNone(self.notification.delivered_at)

    @patch("notifications.tasks.get_supabase_client", return_value=MagicMock())
    def test_push_and_email_delivered(self, _client):
        with patch("notifications.tasks.invoke_function", return_value=True) as invoke:
            self.assertEqual(deliver_notification(self.notification.id), "delivered")

        names = [call.args[0] for call in invoke.call_args_list]
        self.assertEqual(names, ["send-push", "send-email"])
        push_body = invoke.call_args_list[0].args[1]
        self.assertEqual(push_body["url"], f"/listings/{self.listing.id}")

        self.notification.refresh_from_db()
        self.assertIsNotNone(self.notification.delivered_at)

        # Second run is a no-op
        self.assertEqual(deliver_notification(self.notification.id), "already_delivered")

    @patch("notifications.tasks.get_supabase_client", return_value=MagicMock())
    def test_push_only_types_skip_email(self, _client):
        self.notification.type = Notification.TYPE_LISTING_EXPIRED
        self.notification.save()

        with patch("notifications.tasks.invoke_function", return_value=True) as invoke:
            deliver_notification(self.notification.id)

        self.assertEqual(invoke.call_count, 1)

    @patch("notifications.tasks.get_supabase_client", return_value=MagicMock())
    def test_failed_delivery_is_retried(self, _client):
        with patch("notifications.tasks.invoke_function", return_value=False):
            with self.assertRaises(Retry):
                deliver_notification(self.notification.id)

        self.notification.refresh_from_db()
        self.assertIsNone(self.notification.delivered_at)

    def test_missing_notification(self):
        self.assertEqual(deliver_notification(999999), "notification_not_found")

    @patch("notifications.tasks.get_supabase_client", return_value=MagicMock())
    def test_redelivery_sweep_requeues_undelivered(self, _client):
        with patch("notifications.tasks.deliver_notification") as task:
            self.assertEqual(redelivery_sweep(), 1)

        task.delay.assert_called_once_with(self.notification.id)
