# notifications/tasks.py

import logging

from celery import shared_task
from django.utils import timezone

from core.supabase_client import get_supabase_client, invoke_function
from .models import Notification

logger = logging.getLogger("foodshare.notifications")

# Event types that also go out by email (the send-email edge function
# only has templates for these)
EMAIL_TYPES = {
    Notification.TYPE_REQUEST_RECEIVED,
    Notification.TYPE_REQUEST_ACCEPTED,
    Notification.TYPE_REQUEST_REJECTED,
    Notification.TYPE_DONATION_COMPLETED,
}


def build_push_body(notification: Notification) -> dict:
    url = f"/listings/{notification.listing_id}" if notification.listing_id else "/notifications"
    return {
        "user_id": str(notification.user.supabase_id or notification.user_id),
        "title": notification.title,
        "body": notification.message,
        "url": url,
    }


def build_email_body(notification: Notification) -> dict:
    user = notification.user
    payload = notification.payload or {}
    if notification.type == Notification.TYPE_REQUEST_RECEIVED:
        # Quoted back to the donor as the NGO's own words
        message = payload.get("request_message") or None
    else:
        message = notification.message
    return {
        "type": notification.type,
        "to_email": user.email,
        "to_name": user.name or user.username,
        "listing_title": payload.get("listing_title"),
        "donor_name": payload.get("donor_name"),
        "ngo_name": payload.get("ngo_name"),
        "pickup_time": payload.get("pickup_time"),
        "message": message,
    }


@shared_task(bind=True, max_retries=5, default_retry_delay=60)
def deliver_notification(self, notification_id: int):
    """
    Push (and for some types, email) one notification.

    Delivery is at-least-once: delivered_at is stamped only after every
    channel accepted the payload, and failures are retried.
    """
    try:
        notification = Notification.objects.select_related("user").get(id=notification_id)
    except Notification.DoesNotExist:
        return "notification_not_found"

    if notification.delivered_at:
        return "already_delivered"

    if get_supabase_client() is None:
        # In-app inbox only (local dev, tests)
        return "delivery_not_configured"

    ok = invoke_function("send-push", build_push_body(notification))

    if ok and notification.type in EMAIL_TYPES and notification.user.email:
        ok = invoke_function("send-email", build_email_body(notification))

    if not ok:
        logger.warning(f"Delivery failed for notification {notification_id}, retrying")
        raise self.retry()

    Notification.objects.filter(id=notification_id, delivered_at__isnull=True).update(
        delivered_at=timezone.now()
    )
    return "delivered"


@shared_task
def redelivery_sweep(limit: int = 200):
    """
    Re-schedule notifications whose delivery never completed.
    """
    if get_supabase_client() is None:
        return 0

    pending_ids = list(
        Notification.objects.filter(delivered_at__isnull=True)
        .order_by("created_at")
        .values_list("id", flat=True)[:limit]
    )
    for notification_id in pending_ids:
        deliver_notification.delay(notification_id)
    return len(pending_ids)
