# notifications/dispatch.py
"""
Persist notification intents and hand them to the delivery task.

emit() must be called inside the transaction of the mutation that
produced the intent: a rolled-back mutation leaves no notification
behind, and delivery is only scheduled once the row is committed.
"""
import logging

from django.db import transaction

from .hooks import NotificationIntent
from .models import Notification

logger = logging.getLogger("foodshare.notifications")


def emit(intent: NotificationIntent) -> Notification:
    notification = Notification.objects.create(
        user_id=intent.recipient_id,
        type=intent.event_type,
        title=intent.title,
        message=intent.message,
        listing_id=intent.listing_id,
        payload=intent.payload,
    )
    logger.info(
        f"Notification queued: type={intent.event_type}, "
        f"recipient={intent.recipient_id}, listing={intent.listing_id}"
    )

    transaction.on_commit(lambda: _schedule_delivery(notification.id))
    return notification


def _schedule_delivery(notification_id: int):
    from .tasks import deliver_notification

    try:
        deliver_notification.delay(notification_id)
    except Exception as e:
        # The row is committed; redelivery_sweep picks it up later
        logger.warning(f"Could not schedule delivery for notification {notification_id}: {e}")
