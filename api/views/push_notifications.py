import logging
import re

from ..auth import require_admin, require_auth
from ..constants import ALL_USERS_TOPIC, DEFAULT_DEVICE_TYPE, DEVICE_TYPES, PREFERENCE_KEYS, TOPIC_NAME_PATTERN
from ..firebase_service import firestore_service
from ..http import api_error, api_response, api_view, json_body
from ..notifier import broadcast_notification
from ..push_service import push_service
from ..utils import merge_preferences, public_device, remove_device_tokens, upsert_device_token, user_topic

logger = logging.getLogger("api")


@api_view("PUSH/REGISTER", ["POST"], error_message="Error registering device")
@require_auth
def register_device(request):
    """
    Register a device token for push notifications and subscribe it to
    the user's personal topic and the all-users broadcast topic.
    """
    data, error = json_body(request)
    if error:
        return error

    device_token = data.get("deviceToken")
    device_type = data.get("deviceType") or DEFAULT_DEVICE_TYPE
    device_name = data.get("deviceName")

    if not device_token or not isinstance(device_token, str):
        return api_error("Device token is required", 400)
    if device_type not in DEVICE_TYPES:
        return api_error("Invalid device type", 400, valid=sorted(DEVICE_TYPES))

    user_id = request.auth_user_id
    user = firestore_service.get_user(user_id)
    if not user:
        return api_error("User not found", 404)

    device_tokens = upsert_device_token(
        user.get("deviceTokens") or [], device_token, device_type, device_name
    )
    firestore_service.save_device_tokens(user_id, device_tokens)

    push_service.subscribe_to_topic([device_token], user_topic(user_id))
    push_service.subscribe_to_topic([device_token], ALL_USERS_TOPIC)

    logger.info(f"[PUSH/REGISTER] user={user_id} devices={len(device_tokens)}")
    return api_response("Device token registered successfully", {
        "totalDevices": len(device_tokens),
    })


@api_view("PUSH/UNREGISTER", ["POST"], error_message="Error unregistering device")
@require_auth
def unregister_device(request):
    data, error = json_body(request)
    if error:
        return error

    device_token = data.get("deviceToken")
    if not device_token or not isinstance(device_token, str):
        return api_error("Device token is required", 400)

    user_id = request.auth_user_id
    user = firestore_service.get_user(user_id)
    if not user:
        return api_error("User not found", 404)

    device_tokens = remove_device_tokens(user.get("deviceTokens") or [], [device_token])
    firestore_service.save_device_tokens(user_id, device_tokens)

    push_service.unsubscribe_from_topic([device_token], user_topic(user_id))
    push_service.unsubscribe_from_topic([device_token], ALL_USERS_TOPIC)

    logger.info(f"[PUSH/UNREGISTER] user={user_id} devices={len(device_tokens)}")
    return api_response("Device token unregistered successfully", {
        "totalDevices": len(device_tokens),
    })


@api_view("PUSH/DEVICES", ["GET"], error_message="Error fetching devices")
@require_auth
def devices(request):
    user = firestore_service.get_user(request.auth_user_id)
    if not user:
        return api_error("User not found", 404)

    device_tokens = user.get("deviceTokens") or []
    return api_response("Devices fetched", {
        "devices": [public_device(dt) for dt in device_tokens],
        "totalDevices": len(device_tokens),
    })


@api_view("PUSH/PREFERENCES", ["GET", "POST"], error_message="Error updating preferences")
@require_auth
def preferences(request):
    """GET returns the stored preferences, POST applies a partial update."""
    user_id = request.auth_user_id
    user = firestore_service.get_user(user_id)
    if not user:
        return api_error("User not found", 404)

    current = merge_preferences(user.get("notificationPreferences"))
    if request.method == "GET":
        return api_response("Notification preferences", {"preferences": current})

    data, error = json_body(request)
    if error:
        return error

    updates = {key: data[key] for key in PREFERENCE_KEYS if key in data}
    invalid = sorted(key for key, value in updates.items() if not isinstance(value, bool))
    if invalid:
        return api_error("Preference values must be booleans", 400, invalid=invalid)

    current.update(updates)
    firestore_service.update_user(user_id, {"notificationPreferences": current})

    logger.info(f"[PUSH/PREFERENCES] user={user_id} updated={sorted(updates)}")
    return api_response("Notification preferences updated", {"preferences": current})


@api_view("PUSH/BROADCAST", ["POST"], error_message="Error broadcasting notification")
@require_admin
def broadcast(request):
    data, error = json_body(request)
    if error:
        return error

    title = data.get("title")
    body = data.get("body")
    topic = data.get("topic") or ALL_USERS_TOPIC
    extra = data.get("data") or {}

    if not title or not body:
        return api_error("Both 'title' and 'body' are required", 400)
    if not isinstance(title, str) or not isinstance(body, str):
        return api_error("'title' and 'body' must be strings", 400)
    if not isinstance(topic, str) or not re.fullmatch(TOPIC_NAME_PATTERN, topic):
        return api_error("Invalid topic name", 400)
    if not isinstance(extra, dict):
        return api_error("'data' must be a JSON object", 400)

    message_id = broadcast_notification(topic, title, body, extra)
    if message_id is None:
        return api_error("Push delivery unavailable", 503)

    return api_response("Broadcast sent", {"topic": topic, "messageId": message_id})
