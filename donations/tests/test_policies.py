from django.contrib.auth import get_user_model
from django.test import TestCase

from donations import arbitration, state_machine
from donations.models import DonationRequest, Listing
from donations.policies import DonationPolicy, NOTHING, visible_contact
from .factories import make_listing, make_request, make_user, pickup_time

User = get_user_model()


class VisibleContactTests(TestCase):
    def setUp(self):
        self.donor = make_user("donor", role=User.ROLE_DONOR, contact="080 1234 5678", address="1 MG Road")
        self.winner = make_user("winner", org_name="Helping Hands", contact="99999 00000")
        self.loser = make_user("loser", contact="88888 00000")
        self.stranger = make_user("stranger")
        self.listing = make_listing(self.donor)
        self.req_w = arbitration.submit_request(self.listing.id, self.winner, "", pickup_time(self.listing))
        self.req_l = arbitration.submit_request(self.listing.id, self.loser, "", pickup_time(self.listing))

    def _contact_for(self, viewer):
        self.listing.refresh_from_db()
        requests = list(self.listing.requests.select_related("ngo"))
        return visible_contact(self.listing, requests, viewer.id)

    def test_nothing_is_shared_before_acceptance(self):
        for viewer in (self.donor, self.winner, self.loser):
            self.assertTrue(self._contact_for(viewer).is_empty)

    def test_matched_pair_see_each_other(self):
        arbitration.accept_request(self.req_w.id, self.donor)

        donor_view = self._contact_for(self.donor)
        self.assertIsNone(donor_view.donor_contact)
        self.assertEqual(donor_view.ngo_contact["contact"], "99999 00000")
        self.assertEqual(donor_view.ngo_contact["org_name"], "Helping Hands")

        winner_view = self._contact_for(self.winner)
        self.assertIsNone(winner_view.ngo_contact)
        self.assertEqual(winner_view.donor_contact["contact"], "080 1234 5678")
        self.assertEqual(winner_view.donor_contact["address"], "1 MG Road")

    def test_other_ngos_see_nothing_after_acceptance(self):
        arbitration.accept_request(self.req_w.id, self.donor)

        self.assertIs(self._contact_for(self.loser), NOTHING)
        self.assertIs(self._contact_for(self.stranger), NOTHING)

    def test_disclosure_survives_completion(self):
        arbitration.accept_request(self.req_w.id, self.donor)
        state_machine.mark_completed(self.listing.id, self.donor)

        self.assertFalse(self._contact_for(self.winner).is_empty)
        self.assertTrue(self._contact_for(self.loser).is_empty)

    def test_no_disclosure_without_single_accepted_request(self):
        # Confirmed status alone is not enough
        Listing.objects.filter(pk=self.listing.pk).update(status=Listing.STATUS_CONFIRMED)

        self.assertTrue(self._contact_for(self.donor).is_empty)
        self.assertTrue(self._contact_for(self.winner).is_empty)

    def test_as_dict_only_contains_visible_side(self):
        arbitration.accept_request(self.req_w.id, self.donor)

        self.assertEqual(set(self._contact_for(self.winner).as_dict()), {"donor_contact"})
        self.assertEqual(self._contact_for(self.loser).as_dict(), {})


class DonationPolicyTests(TestCase):
    def setUp(self):
        self.donor = make_user("donor", role=User.ROLE_DONOR)
        self.ngo = make_user("ngo")
        self.admin = make_user("admin", role=User.ROLE_ADMIN)
        self.listing = make_listing(self.donor)

    def test_create_listing(self):
        self.assertTrue(DonationPolicy.can_create_listing(self.donor)[0])
        self.assertFalse(DonationPolicy.can_create_listing(self.ngo)[0])

    def test_blocked_donor_cannot_create(self):
        self.donor.is_blocked = True
        allowed, reason = DonationPolicy.can_create_listing(self.donor)
        self.assertFalse(allowed)
        self.assertIn("blocked", reason)

    def test_view_requests(self):
        self.assertTrue(DonationPolicy.can_view_requests(self.donor, self.listing)[0])
        self.assertTrue(DonationPolicy.can_view_requests(self.admin, self.listing)[0])
        self.assertFalse(DonationPolicy.can_view_requests(self.ngo, self.listing)[0])

    def test_requesting_ngo_can_view_timeline(self):
        self.assertFalse(DonationPolicy.can_view_timeline(self.ngo, self.listing)[0])

        make_request(self.listing, self.ngo, status=DonationRequest.STATUS_REJECTED)

        self.assertTrue(DonationPolicy.can_view_timeline(self.ngo, self.listing)[0])
