# donations/tasks.py

from celery import shared_task

from . import state_machine


@shared_task
def expire_overdue_listings():
    """
    Periodic sweep (Celery beat) moving overdue posted/requested
    listings to `expired`. Read paths expire lazily as well, so a
    delayed sweep never lets an overdue listing be accepted.
    """
    return state_machine.expire_overdue_listings()


@shared_task
def expire_listing(listing_id: int):
    """Expire one listing if it is due (e.g. scheduled at its expiry_time)."""
    return state_machine.expire_if_due(listing_id)
