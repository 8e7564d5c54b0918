from .health import health
from .push_notifications import register_device, unregister_device, devices, preferences, broadcast
from .notifications import notification_list, notification_read, notification_read_all
from .events import event_list, event_register
from .participations import (
    my_participations,
    submit_contribution,
    review_participation,
    verify_contribution,
    issue_certificate,
)

__all__ = [
    "health",
    "register_device",
    "unregister_device",
    "devices",
    "preferences",
    "broadcast",
    "notification_list",
    "notification_read",
    "notification_read_all",
    "event_list",
    "event_register",
    "my_participations",
    "submit_contribution",
    "review_participation",
    "verify_contribution",
    "issue_certificate",
]
