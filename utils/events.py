"""In-process outbound events.

Publishers call ``publish`` after their transaction has committed.
Subscribers are best-effort: an exception in one is logged and never reaches
the publisher.
"""
import logging
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor

from flask import current_app

BOOKING_CREATED = "BookingCreated"
PAYMENT_VERIFIED = "PaymentVerified"

logger = logging.getLogger(__name__)

_subscribers = defaultdict(list)
_executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="events")


def subscribe(event_name: str, handler) -> None:
    if handler not in _subscribers[event_name]:
        _subscribers[event_name].append(handler)


def _dispatch(event_name: str, payload: dict) -> None:
    for handler in list(_subscribers.get(event_name, ())):
        try:
            handler(payload)
        except Exception:
            logger.exception("Subscriber %s failed for %s", getattr(handler, "__name__", handler), event_name)


def _dispatch_in_context(app, event_name: str, payload: dict) -> None:
    with app.app_context():
        _dispatch(event_name, payload)


def publish(event_name: str, payload: dict) -> None:
    if not _subscribers.get(event_name):
        return

    if current_app.config.get("NOTIFICATIONS_ASYNC", False):
        app = current_app._get_current_object()
        _executor.submit(_dispatch_in_context, app, event_name, payload)
    else:
        _dispatch(event_name, payload)
