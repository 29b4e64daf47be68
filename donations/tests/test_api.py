from datetime import timedelta
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APIClient

from donations.models import DonationRequest, Listing
from .factories import listing_payload, make_listing, make_user, pickup_time

User = get_user_model()


def as_json(data):
    return {k: v.isoformat() if hasattr(v, "isoformat") else str(v) for k, v in data.items()}


class DonationAPITestCase(TestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()

        self.donor = make_user("donor", role=User.ROLE_DONOR, contact="080 1234 5678")
        self.ngo_a = make_user("ngo_a", contact="99999 00000")
        self.ngo_b = make_user("ngo_b", contact="88888 00000")

        self.listings_url = reverse("listing-list-create")

    def _login(self, user):
        self.client.force_authenticate(user=user)

    def _submit(self, user, listing, minutes=30):
        self._login(user)
        return self.client.post(
            reverse("listing-requests", args=[listing.id]),
            {"message": "We can come", "requested_pickup_time": pickup_time(listing, minutes).isoformat()},
            format="json",
        )

    def test_donor_creates_listing(self):
        self._login(self.donor)
        response = self.client.post(self.listings_url, as_json(listing_payload()), format="json")

        self.assertEqual(
            response.status_code,
            201,
            f"Status: {response.status_code}, Content: {getattr(response, 'data', response.content)}",
        )
        self.assertEqual(response.data["status"], Listing.STATUS_POSTED)
        self.assertEqual(response.data["donor"]["id"], self.donor.id)
        self.assertNotIn("contact", response.data["donor"])

    def test_bad_time_window_returns_error_envelope(self):
        payload = listing_payload()
        payload["pickup_time_end"] = payload["expiry_time"] + timedelta(hours=1)

        self._login(self.donor)
        response = self.client.post(self.listings_url, as_json(payload), format="json")

        self.assertEqual(response.status_code, 400)
        self.assertFalse(response.data["success"])
        self.assertEqual(response.data["errors"]["code"], "validation_error")
        self.assertEqual(response.data["errors"]["field"], "pickup_time_end")

    def test_ngo_cannot_create_listing(self):
        self._login(self.ngo_a)
        response = self.client.post(self.listings_url, as_json(listing_payload()), format="json")

        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.data["errors"]["code"], "forbidden")

    def test_unauthenticated_requests_are_rejected(self):
        response = self.client.get(self.listings_url)
        self.assertIn(response.status_code, (401, 403))
        self.assertFalse(response.data["success"])

    def test_ngo_sees_only_open_listings(self):
        open_listing = make_listing(self.donor)
        make_listing(self.donor, status=Listing.STATUS_CANCELLED)

        self._login(self.ngo_a)
        response = self.client.get(self.listings_url)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["count"], 1)
        self.assertEqual(response.data["results"][0]["id"], open_listing.id)

    def test_donor_sees_own_listings_with_pending_count(self):
        listing = make_listing(self.donor)
        self._submit(self.ngo_a, listing)

        self._login(self.donor)
        response = self.client.get(self.listings_url)

        self.assertEqual(response.data["count"], 1)
        self.assertEqual(response.data["results"][0]["pending_request_count"], 1)

    def test_listing_paging_params(self):
        make_listing(self.donor)
        make_listing(self.donor)
        self._login(self.donor)

        response = self.client.get(self.listings_url, {"limit": 1, "offset": -5})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["count"], 2)
        self.assertEqual(response.data["offset"], 0)
        self.assertEqual(len(response.data["results"]), 1)

        for params in ({"limit": "abc"}, {"offset": "abc"}):
            response = self.client.get(self.listings_url, params)
            self.assertEqual(response.status_code, 400, params)
            self.assertFalse(response.data["success"])

    def test_full_arbitration_flow(self):
        listing = make_listing(self.donor)

        res_a = self._submit(self.ngo_a, listing)
        res_b = self._submit(self.ngo_b, listing, minutes=60)
        self.assertEqual(res_a.status_code, 201, res_a.data)
        self.assertEqual(res_b.status_code, 201, res_b.data)

        self._login(self.donor)
        response = self.client.post(reverse("request-accept", args=[res_a.data["id"]]))
        self.assertEqual(response.status_code, 200, response.data)
        self.assertEqual(response.data["status"], DonationRequest.STATUS_ACCEPTED)

        response = self.client.post(reverse("request-accept", args=[res_b.data["id"]]))
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.data["errors"]["code"], "already_resolved")
        self.assertTrue(response.data["errors"]["refresh"])

        listing.refresh_from_db()
        self.assertEqual(listing.status, Listing.STATUS_CONFIRMED)

    def test_duplicate_request_conflicts(self):
        listing = make_listing(self.donor)
        self._submit(self.ngo_a, listing)

        response = self._submit(self.ngo_a, listing)

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.data["errors"]["code"], "duplicate_request")

    def test_contact_endpoint_only_for_matched_pair(self):
        listing = make_listing(self.donor)
        res_a = self._submit(self.ngo_a, listing)
        self._submit(self.ngo_b, listing)

        self._login(self.donor)
        self.client.post(reverse("request-accept", args=[res_a.data["id"]]))

        contact_url = reverse("listing-contact", args=[listing.id])

        self._login(self.ngo_a)
        response = self.client.get(contact_url)
        self.assertEqual(response.data["donor_contact"]["contact"], "080 1234 5678")

        self._login(self.donor)
        response = self.client.get(contact_url)
        self.assertEqual(response.data["ngo_contact"]["contact"], "99999 00000")

        self._login(self.ngo_b)
        response = self.client.get(contact_url)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data, {})

    def test_only_owner_or_admin_lists_requests(self):
        listing = make_listing(self.donor)
        self._submit(self.ngo_a, listing)
        url = reverse("listing-requests", args=[listing.id])

        self._login(self.ngo_b)
        self.assertEqual(self.client.get(url).status_code, 403)

        self._login(self.donor)
        response = self.client.get(url)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.data), 1)

    def test_my_requests(self):
        listing = make_listing(self.donor)
        self._submit(self.ngo_a, listing)

        self._login(self.ngo_a)
        response = self.client.get(reverse("my-requests"))

        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]["listing"]["id"], listing.id)

    def test_reject_request(self):
        listing = make_listing(self.donor)
        res = self._submit(self.ngo_a, listing)

        self._login(self.donor)
        response = self.client.post(reverse("request-reject", args=[res.data["id"]]))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["status"], DonationRequest.STATUS_REJECTED)

    def test_cancel_and_complete(self):
        listing = make_listing(self.donor)
        res = self._submit(self.ngo_a, listing)

        self._login(self.donor)
        self.client.post(reverse("request-accept", args=[res.data["id"]]))

        response = self.client.post(reverse("listing-cancel", args=[listing.id]))
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.data["errors"]["code"], "invalid_transition")

        response = self.client.post(reverse("listing-complete", args=[listing.id]))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["status"], Listing.STATUS_COMPLETED)

    def test_timeline(self):
        listing = make_listing(self.donor)
        res = self._submit(self.ngo_a, listing)
        self._login(self.donor)
        self.client.post(reverse("request-accept", args=[res.data["id"]]))

        response = self.client.get(reverse("listing-timeline", args=[listing.id]))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            [(t["from_status"], t["to_status"]) for t in response.data["transitions"]],
            [("posted", "requested"), ("requested", "confirmed")],
        )

        self._login(self.ngo_b)
        self.assertEqual(self.client.get(reverse("listing-timeline", args=[listing.id])).status_code, 403)

    def test_detail_expires_overdue_listing(self):
        listing = make_listing(self.donor)

        self._login(self.ngo_a)
        with patch("core.datetime_utils.now", return_value=listing.expiry_time + timedelta(minutes=1)):
            response = self.client.get(reverse("listing-detail", args=[listing.id]))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["status"], Listing.STATUS_EXPIRED)
        self.assertEqual(response.data["allowed_transitions"], [])

    def test_patch_listing(self):
        listing = make_listing(self.donor)
        url = reverse("listing-detail", args=[listing.id])

        self._login(self.donor)
        response = self.client.patch(url, {"hygiene_notes": "Packed at 7pm"}, format="json")
        self.assertEqual(response.status_code, 200, response.data)
        self.assertEqual(response.data["hygiene_notes"], "Packed at 7pm")

        self._login(self.ngo_a)
        response = self.client.patch(url, {"hygiene_notes": "nope"}, format="json")
        self.assertEqual(response.status_code, 403)

    def test_missing_listing_is_404(self):
        self._login(self.ngo_a)
        response = self.client.get(reverse("listing-detail", args=[999999]))

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data["errors"]["code"], "not_found")
