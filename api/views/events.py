import logging

from ..auth import require_auth
from ..constants import NEW_EVENT, ROLE_ADMIN, ROLE_STUDENT
from ..firebase_service import firestore_service
from ..http import api_error, api_response, api_view, json_body
from ..notifier import notify_all_students

logger = logging.getLogger("api")


@api_view("EVENTS", ["GET", "POST"], error_message="Error processing events")
@require_auth
def event_list(request):
    """
    GET lists active events; POST (admin only) publishes a new event and
    notifies every active student.
    """
    if request.method == "GET":
        events = firestore_service.list_events(active_only=True)
        return api_response("Events fetched", {"events": events})

    if request.auth_role != ROLE_ADMIN:
        return api_error("Admin access required", 403)

    data, error = json_body(request)
    if error:
        return error

    title = (data.get("title") or "").strip()
    if not title:
        return api_error("Event title is required", 400)

    event = firestore_service.create_event(
        title=title,
        created_by=request.auth_user_id,
        description=data.get("description") or "",
        location=data.get("location") or "",
        date=data.get("date"),
    )

    results = notify_all_students(
        NEW_EVENT,
        f"New event: {title}. Register now!",
        {"eventId": event["id"]},
    )
    notified = sum(1 for r in results or [] if r is not None)
    logger.info(f"[EVENTS] Created event {event['id']}, notified {notified} students")

    return api_response("Event created", {"event": event, "notifiedStudents": notified}, status=201)


@api_view("EVENTS/REGISTER", ["POST"], error_message="Error registering for event")
@require_auth
def event_register(request, event_id):
    if request.auth_role != ROLE_STUDENT:
        return api_error("Only students can register for events", 403)

    event = firestore_service.get_event(event_id)
    if not event or not event.get("isActive", True):
        return api_error("Event not found", 404)

    student_id = request.auth_user_id
    if firestore_service.find_participation(student_id, event_id):
        return api_error("Already registered for this event", 409)

    participation = firestore_service.create_participation(student_id, event_id)
    return api_response("Registered for event", {"participation": participation}, status=201)
