from datetime import timedelta
from unittest.mock import MagicMock, patch

import jwt
from django.contrib.auth import get_user_model
from django.test import RequestFactory, TestCase, override_settings
from django.urls import reverse
from django.utils import timezone
from rest_framework.exceptions import AuthenticationFailed, Throttled

from core import supabase_client
from core.exceptions import AlreadyResolved, ValidationError, custom_exception_handler
from core.sanitizers import sanitize_line, sanitize_list, sanitize_text
from core.supabase_auth import SupabaseJWTAuthentication

User = get_user_model()

JWT_SECRET = "test-supabase-secret-with-enough-length"


class SanitizerTests(TestCase):
    def test_tags_are_removed(self):
        self.assertEqual(sanitize_text("  <b>Fresh</b> rotis  "), "Fresh rotis")

    def test_plain_angle_brackets_survive(self):
        self.assertEqual(sanitize_text("serves < 10 & > 5"), "serves < 10 & > 5")

    def test_none_and_truncation(self):
        self.assertEqual(sanitize_text(None), "")
        self.assertEqual(sanitize_text("abcdef", max_length=3), "abc")

    def test_line_collapses_whitespace(self):
        self.assertEqual(sanitize_line("Indira\n  Nagar"), "Indira Nagar")

    def test_list_dedupes(self):
        self.assertEqual(sanitize_list(["gluten", " gluten ", "", "nuts"]), ["gluten", "nuts"])


class ExceptionHandlerTests(TestCase):
    def test_domain_error_envelope(self):
        response = custom_exception_handler(
            ValidationError("Rating must be between 1 and 5", field="stars"), {"view": None}
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(
            response.data,
            {
                "success": False,
                "status_code": 400,
                "errors": {"detail": "Rating must be between 1 and 5", "code": "validation_error", "field": "stars"},
            },
        )

    def test_conflicts_ask_for_refresh(self):
        response = custom_exception_handler(AlreadyResolved(), {"view": None})

        self.assertEqual(response.status_code, 409)
        self.assertTrue(response.data["errors"]["refresh"])
        self.assertEqual(response.data["errors"]["detail"], "Already resolved")

    def test_drf_errors_are_wrapped_with_retry_header(self):
        response = custom_exception_handler(Throttled(wait=30), {"view": None})

        self.assertEqual(response.status_code, 429)
        self.assertFalse(response.data["success"])
        self.assertEqual(response["Retry-After"], "30")

    def test_unexpected_errors_become_500(self):
        response = custom_exception_handler(RuntimeError("boom"), {"view": None})

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.data["errors"], {"detail": "Internal server error."})


@override_settings(SUPABASE_JWT_SECRET=JWT_SECRET)
class SupabaseAuthTests(TestCase):
    def setUp(self):
        self.factory = RequestFactory()
        self.auth = SupabaseJWTAuthentication()

    def _request(self, **claims):
        payload = {
            "sub": "5b1c0d8e-0000-4000-8000-000000000001",
            "email": "kitchen@example.com",
            "aud": "authenticated",
            "exp": timezone.now() + timedelta(hours=1),
            "user_metadata": {"role": "donor", "name": "Hotel Kitchen"},
        }
        payload.update(claims)
        token = jwt.encode(payload, JWT_SECRET, algorithm="HS256")
        return self.factory.get("/", HTTP_AUTHORIZATION=f"Bearer {token}")

    def test_creates_user_with_declared_role(self):
        user, _ = self.auth.authenticate(self._request())

        self.assertEqual(user.role, User.ROLE_DONOR)
        self.assertEqual(user.name, "Hotel Kitchen")
        self.assertFalse(user.has_usable_password())

        again, _ = self.auth.authenticate(self._request())
        self.assertEqual(again.pk, user.pk)

    def test_admin_role_cannot_be_self_declared(self):
        user, _ = self.auth.authenticate(self._request(user_metadata={"role": "admin"}))
        self.assertEqual(user.role, User.ROLE_NGO)

    def test_links_existing_user_by_email(self):
        existing = User.objects.create_user(username="kitchen", email="kitchen@example.com", password="x")

        user, _ = self.auth.authenticate(self._request())

        self.assertEqual(user.pk, existing.pk)
        existing.refresh_from_db()
        self.assertEqual(existing.supabase_id, "5b1c0d8e-0000-4000-8000-000000000001")

    def test_expired_token_fails(self):
        with self.assertRaises(AuthenticationFailed):
            self.auth.authenticate(self._request(exp=timezone.now() - timedelta(minutes=1)))

    def test_foreign_token_is_left_to_other_backends(self):
        token = jwt.encode({"sub": "x", "aud": "authenticated"}, "another-secret-entirely-0123456789", algorithm="HS256")
        request = self.factory.get("/", HTTP_AUTHORIZATION=f"Bearer {token}")

        self.assertIsNone(self.auth.authenticate(request))

    def test_no_header(self):
        self.assertIsNone(self.auth.authenticate(self.factory.get("/")))


class SupabaseClientTests(TestCase):
    def tearDown(self):
        supabase_client.reset_client()

    @override_settings(SUPABASE_URL="", SUPABASE_SERVICE_ROLE_KEY="")
    def test_unconfigured_client(self):
        supabase_client.reset_client()
        self.assertIsNone(supabase_client.get_supabase_client())
        self.assertFalse(supabase_client.invoke_function("send-push", {}))

    def test_invoke_failure_is_reported(self):
        client = MagicMock()
        client.functions.invoke.side_effect = RuntimeError("edge function down")

        with patch("core.supabase_client.get_supabase_client", return_value=client):
            self.assertFalse(supabase_client.invoke_function("send-push", {"title": "x"}))

        client.functions.invoke.assert_called_once_with("send-push", invoke_options={"body": {"title": "x"}})


class HealthCheckTests(TestCase):
    def test_health(self):
        response = self.client.get(reverse("health-check"))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "ok")
