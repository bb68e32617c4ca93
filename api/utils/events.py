"""
Best-effort state change events for real-time UI updates.

Receivers connect to `allocation_event`; a failing receiver is logged and
never affects the transition that emitted the event.
"""
import structlog
from django.dispatch import Signal

logger = structlog.get_logger(__name__)

# Sent with: event_type (str), payload (dict)
allocation_event = Signal()


def emit(event_type, payload):
    responses = allocation_event.send_robust(sender=None, event_type=event_type, payload=payload)
    for receiver, response in responses:
        if isinstance(response, Exception):
            logger.warning(
                "event_receiver_failed",
                event_type=event_type,
                receiver=getattr(receiver, '__qualname__', repr(receiver)),
                error=str(response),
            )
    return responses
