"""
Notification fan-out: in-app record + push delivery to every active device.

All helpers are best-effort. A failure is logged and reported as None so the
request that triggered the notification still succeeds.
"""
import logging
from typing import Optional, Dict, Any, List

from .constants import (
    CLICK_PATHS,
    DEFAULT_CLICK_PATH,
    DEFAULT_PUSH_TITLE,
    NOTIFICATION_TYPES,
    PREFERENCE_FOR_TYPE,
    PUSH_TITLES,
    ROLE_STUDENT,
)
from .firebase_service import firestore_service
from .push_service import push_service
from .utils import active_tokens, merge_preferences, remove_device_tokens

logger = logging.getLogger("api")


def should_notify(preferences: Optional[Dict[str, Any]], notification_type: str) -> bool:
    """Check the user's preference flag for this notification type."""
    flag = PREFERENCE_FOR_TYPE.get(notification_type)
    if flag is None:
        return True
    return merge_preferences(preferences)[flag]


def push_title(notification_type: str) -> str:
    return PUSH_TITLES.get(notification_type, DEFAULT_PUSH_TITLE)


def notify_user(
    user_id: str,
    notification_type: str,
    message: str,
    data: Optional[Dict[str, Any]] = None,
) -> Optional[Dict[str, Any]]:
    """
    Send a notification to a specific user (both in-app and push).

    Returns the stored notification record, or None when the type is
    unknown, the user is missing or has disabled it, or storage failed.
    """
    data = data or {}
    if notification_type not in NOTIFICATION_TYPES:
        logger.warning(f"[NOTIFY] Unknown notification type: {notification_type}")
        return None

    try:
        user = firestore_service.get_user(user_id)
        if not user:
            logger.warning(f"[NOTIFY] User {user_id} not found")
            return None

        if not should_notify(user.get("notificationPreferences"), notification_type):
            logger.info(f"[NOTIFY] Notification disabled for user {user_id}, type: {notification_type}")
            return None

        notification = firestore_service.create_notification(user_id, notification_type, message, data)

        device_tokens = user.get("deviceTokens") or []
        tokens = active_tokens(device_tokens)
        if tokens:
            push_result = push_service.send_multicast(
                tokens,
                push_title(notification_type),
                message,
                {
                    "url": CLICK_PATHS.get(notification_type, DEFAULT_CLICK_PATH),
                    **data,
                    "type": notification_type,
                    "userId": user_id,
                    "notificationId": notification["id"],
                },
            )

            if push_result and push_result.invalid_tokens:
                firestore_service.save_device_tokens(
                    user_id, remove_device_tokens(device_tokens, push_result.invalid_tokens)
                )
                logger.info(
                    f"[NOTIFY] Removed {len(push_result.invalid_tokens)} invalid tokens for user {user_id}"
                )

        return notification
    except Exception:
        logger.exception(f"[NOTIFY] Error notifying user {user_id}")
        return None


def notify_users(
    user_ids: List[str],
    notification_type: str,
    message: str,
    data: Optional[Dict[str, Any]] = None,
) -> List[Optional[Dict[str, Any]]]:
    return [notify_user(user_id, notification_type, message, data) for user_id in user_ids]


def notify_users_by_role(
    role: str,
    notification_type: str,
    message: str,
    data: Optional[Dict[str, Any]] = None,
) -> Optional[List[Optional[Dict[str, Any]]]]:
    """Notify every active user holding `role`."""
    try:
        users = firestore_service.list_users_by_role(role, active_only=True)
    except Exception:
        logger.exception(f"[NOTIFY] Error loading users with role {role}")
        return None
    return notify_users([u["id"] for u in users], notification_type, message, data)


def notify_all_students(
    notification_type: str,
    message: str,
    data: Optional[Dict[str, Any]] = None,
) -> Optional[List[Optional[Dict[str, Any]]]]:
    return notify_users_by_role(ROLE_STUDENT, notification_type, message, data)


def broadcast_notification(
    topic: str,
    title: str,
    body: str,
    data: Optional[Dict[str, Any]] = None,
) -> Optional[str]:
    """Broadcast to a topic (no in-app records, no preference checks)."""
    return push_service.send_to_topic(topic, title, body, data)
