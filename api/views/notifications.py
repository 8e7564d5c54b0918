from ..auth import require_auth
from ..constants import DEFAULT_NOTIFICATION_LIMIT, MAX_NOTIFICATION_LIMIT
from ..firebase_service import firestore_service
from ..http import api_error, api_response, api_view
from ..utils import clamp_limit, parse_bool


@api_view("NOTIFICATIONS/LIST", ["GET"], error_message="Error fetching notifications")
@require_auth
def notification_list(request):
    user_id = request.auth_user_id
    unread_only = parse_bool(request.GET.get("unread")) or False
    limit = clamp_limit(request.GET.get("limit"), DEFAULT_NOTIFICATION_LIMIT, MAX_NOTIFICATION_LIMIT)

    notifications = firestore_service.list_notifications(user_id, unread_only=unread_only, limit=limit)
    return api_response("Notifications fetched", {
        "notifications": notifications,
        "unreadCount": firestore_service.count_unread_notifications(user_id),
    })


@api_view("NOTIFICATIONS/READ", ["POST"], error_message="Error updating notification")
@require_auth
def notification_read(request, notification_id):
    notification = firestore_service.get_notification(notification_id)
    # Someone else's notification is reported as missing
    if not notification or notification.get("user") != request.auth_user_id:
        return api_error("Notification not found", 404)

    if not notification.get("read"):
        firestore_service.mark_notification_read(notification_id)
    return api_response("Notification marked as read", {"id": notification_id})


@api_view("NOTIFICATIONS/READ_ALL", ["POST"], error_message="Error updating notifications")
@require_auth
def notification_read_all(request):
    updated = firestore_service.mark_all_notifications_read(request.auth_user_id)
    return api_response("All notifications marked as read", {"updated": updated})
