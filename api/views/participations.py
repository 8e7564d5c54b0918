"""
Participation lifecycle: pending -> approved/rejected (admin review),
contribution submitted by the student, verified by an admin, certificate
issued. Every admin step notifies the student.
"""
import logging
import math

from django.utils import timezone

from ..auth import require_admin, require_auth
from ..constants import (
    CERTIFICATE_ISSUED,
    CONTRIBUTION_VERIFIED,
    PARTICIPATION_APPROVED,
    PARTICIPATION_REJECTED,
    REVIEW_STATUSES,
    STATUS_APPROVED,
)
from ..firebase_service import firestore_service
from ..http import api_error, api_response, api_view, json_body
from ..notifier import notify_user

logger = logging.getLogger("api")


def _event_title(participation) -> str:
    event = firestore_service.get_event(participation.get("event"))
    return (event or {}).get("title") or "the event"


@api_view("PARTICIPATIONS/MINE", ["GET"], error_message="Error fetching participations")
@require_auth
def my_participations(request):
    participations = firestore_service.list_participations_for_student(request.auth_user_id)
    return api_response("Participations fetched", {"participations": participations})


@api_view("PARTICIPATIONS/CONTRIBUTION", ["POST"], error_message="Error submitting contribution")
@require_auth
def submit_contribution(request, participation_id):
    participation = firestore_service.get_participation(participation_id)
    if not participation or participation.get("student") != request.auth_user_id:
        return api_error("Participation not found", 404)

    if participation.get("status") != STATUS_APPROVED:
        return api_error(
            "Contributions can only be submitted for approved participations",
            409,
            currentStatus=participation.get("status"),
        )

    data, error = json_body(request)
    if error:
        return error

    description = (data.get("description") or "").strip()
    hours = data.get("hours")
    if not description:
        return api_error("Contribution description is required", 400)
    if (
        isinstance(hours, bool)
        or not isinstance(hours, (int, float))
        or not math.isfinite(hours)
        or hours <= 0
    ):
        return api_error("Hours must be a positive number", 400)

    updated = firestore_service.update_participation(participation_id, {
        "contribution": {
            "description": description,
            "hours": hours,
            "submittedAt": timezone.now(),
            "verified": False,
            "verifiedAt": None,
        },
    })
    return api_response("Contribution submitted", {"participation": updated})


@api_view("PARTICIPATIONS/REVIEW", ["POST"], error_message="Error reviewing participation")
@require_admin
def review_participation(request, participation_id):
    data, error = json_body(request)
    if error:
        return error

    status = data.get("status")
    if status not in REVIEW_STATUSES:
        return api_error("Invalid status", 400, valid=sorted(REVIEW_STATUSES))

    participation = firestore_service.get_participation(participation_id)
    if not participation:
        return api_error("Participation not found", 404)

    reason = data.get("reason") if status != STATUS_APPROVED else None
    updated = firestore_service.update_participation(participation_id, {
        "status": status,
        "reviewedAt": timezone.now(),
        "rejectionReason": reason,
    })

    title = _event_title(participation)
    if status == STATUS_APPROVED:
        notification_type = PARTICIPATION_APPROVED
        message = f"Your participation in {title} has been approved."
    else:
        notification_type = PARTICIPATION_REJECTED
        message = f"Your participation in {title} has been rejected."
        if reason:
            message = f"{message} Reason: {reason}"

    notification = notify_user(
        participation["student"],
        notification_type,
        message,
        {"participationId": participation_id, "eventId": participation.get("event")},
    )
    logger.info(f"[PARTICIPATIONS/REVIEW] {participation_id} -> {status}")

    return api_response("Participation reviewed", {
        "participation": updated,
        "notified": notification is not None,
    })


@api_view("PARTICIPATIONS/VERIFY", ["POST"], error_message="Error verifying contribution")
@require_admin
def verify_contribution(request, participation_id):
    participation = firestore_service.get_participation(participation_id)
    if not participation:
        return api_error("Participation not found", 404)

    contribution = participation.get("contribution")
    if not contribution:
        return api_error("No contribution has been submitted", 409)

    contribution = {**contribution, "verified": True, "verifiedAt": timezone.now()}
    updated = firestore_service.update_participation(participation_id, {"contribution": contribution})

    notification = notify_user(
        participation["student"],
        CONTRIBUTION_VERIFIED,
        f"Your contribution to {_event_title(participation)} has been verified. "
        f"Your certificate will be available soon.",
        {"participationId": participation_id, "eventId": participation.get("event")},
    )

    return api_response("Contribution verified", {
        "participation": updated,
        "notified": notification is not None,
    })


@api_view("PARTICIPATIONS/CERTIFICATE", ["POST"], error_message="Error issuing certificate")
@require_admin
def issue_certificate(request, participation_id):
    data, error = json_body(request)
    if error:
        return error

    url = data.get("url")
    if not url or not isinstance(url, str):
        return api_error("Certificate URL is required", 400)

    participation = firestore_service.get_participation(participation_id)
    if not participation:
        return api_error("Participation not found", 404)

    if not (participation.get("contribution") or {}).get("verified"):
        return api_error("Contribution must be verified before issuing a certificate", 409)

    updated = firestore_service.update_participation(participation_id, {
        "certificate": {"url": url, "issuedAt": timezone.now()},
    })

    notification = notify_user(
        participation["student"],
        CERTIFICATE_ISSUED,
        f"Your certificate for {_event_title(participation)} is ready to download.",
        {
            "participationId": participation_id,
            "eventId": participation.get("event"),
            "certificateUrl": url,
        },
    )

    return api_response("Certificate issued", {
        "participation": updated,
        "notified": notification is not None,
    })
