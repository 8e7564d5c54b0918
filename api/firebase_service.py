"""
Firebase service for Django - Firestore integration for portal data.

Firestore Collections:
- users/{uid}: Profile, role, deviceTokens[] and notificationPreferences
- events/{eventId}: Volunteer events published by administrators
- participations/{participationId}: Student registrations with contribution and certificate maps
- notifications/{notificationId}: In-app notification records
"""
import json
import logging
import os
from typing import Optional, Dict, Any, List

import firebase_admin
from firebase_admin import credentials, firestore
from django.utils import timezone

from .constants import FIRESTORE_BATCH_LIMIT, STATUS_PENDING
from .utils import chunked

logger = logging.getLogger("api")

# Firebase Admin initialization
_firebase_app = None
_firestore_client = None
_firebase_init_attempted = False


class FirestoreUnavailable(RuntimeError):
    """Raised when a Firestore operation is attempted without a configured client."""


def _load_credentials():
    # FIREBASE_CREDENTIALS takes precedence over FIREBASE_SERVICE_ACCOUNT
    service_account_json = (
        os.environ.get("FIREBASE_CREDENTIALS")
        or os.environ.get("FIREBASE_SERVICE_ACCOUNT")
    )
    service_account_path = os.environ.get("FIREBASE_SERVICE_ACCOUNT_PATH")

    if service_account_json:
        try:
            cred = credentials.Certificate(json.loads(service_account_json))
            logger.info("Using service account JSON from environment")
            return cred
        except (json.JSONDecodeError, ValueError) as e:
            logger.error(f"Invalid Firebase service account JSON: {e}")
            return None
    if service_account_path and os.path.exists(service_account_path):
        logger.info(f"Using service account from {service_account_path}")
        return credentials.Certificate(service_account_path)
    return None


def get_firebase_app():
    """Get or initialize Firebase Admin app"""
    global _firebase_app, _firebase_init_attempted

    if _firebase_app is not None:
        return _firebase_app

    if _firebase_init_attempted:
        # Already tried and failed
        return None

    _firebase_init_attempted = True

    use_emulator = os.environ.get("FIREBASE_USE_EMULATOR", "false").lower() == "true"
    project_id = os.environ.get("FIREBASE_PROJECT_ID")

    logger.info(f"Firebase init: use_emulator={use_emulator}, project_id={project_id}")

    if use_emulator:
        firestore_host = os.environ.get("FIRESTORE_EMULATOR_HOST", "localhost:8080")
        os.environ["FIRESTORE_EMULATOR_HOST"] = firestore_host
        options = {"projectId": project_id or "demo-nss-portal"}
        cred = None
    else:
        cred = _load_credentials()
        if cred is None:
            logger.warning(
                "Firebase credentials not found - push notifications are disabled "
                "and Firestore operations will fail"
            )
            return None
        options = {"projectId": project_id} if project_id else None

    try:
        _firebase_app = firebase_admin.initialize_app(credential=cred, options=options)
        logger.info(f"Firebase Admin initialized ({'emulator' if use_emulator else 'production'})")
    except ValueError:
        # Already initialized elsewhere in the process
        try:
            _firebase_app = firebase_admin.get_app()
        except ValueError as e:
            logger.error(f"Firebase init failed: {e}")
            return None
    except Exception as e:
        logger.error(f"Firebase init failed: {e}")
        return None

    return _firebase_app


def get_firestore():
    """Get Firestore client"""
    global _firestore_client

    if _firestore_client is not None:
        return _firestore_client

    app = get_firebase_app()
    if app is None:
        return None

    try:
        _firestore_client = firestore.client(app)
        return _firestore_client
    except Exception as e:
        logger.error(f"Failed to get Firestore client: {e}")
        return None


def _to_dict(doc) -> Dict[str, Any]:
    data = doc.to_dict() or {}
    data["id"] = doc.id
    return data


class FirestoreService:
    """Service class for Firestore operations"""

    # Collection names
    USERS_COLLECTION = "users"
    EVENTS_COLLECTION = "events"
    PARTICIPATIONS_COLLECTION = "participations"
    NOTIFICATIONS_COLLECTION = "notifications"

    def __init__(self):
        self._db = None

    @property
    def db(self):
        """Lazy initialization of Firestore client"""
        if self._db is None:
            self._db = get_firestore()
        return self._db

    def is_available(self) -> bool:
        """Check if Firestore is available"""
        return self.db is not None

    def _collection(self, name: str):
        if self.db is None:
            raise FirestoreUnavailable("Firebase Firestore is not configured")
        return self.db.collection(name)

    def _get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        if not doc_id:
            return None
        doc = self._collection(collection).document(doc_id).get()
        if not doc.exists:
            return None
        return _to_dict(doc)

    def _create(self, collection: str, data: Dict[str, Any]) -> Dict[str, Any]:
        doc_ref = self._collection(collection).document()
        doc_ref.set(data)
        return {**data, "id": doc_ref.id}

    # =========================================================================
    # Users
    # =========================================================================

    def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        """
        Get a user document.

        Expected document structure at users/{uid}:
        {
            "name": "Asha",
            "email": "asha@college.edu",
            "role": "student" | "admin",
            "isActive": true,
            "deviceTokens": [{"token", "deviceType", "deviceName", "isActive",
                              "registeredAt", "lastUsedAt"}],
            "notificationPreferences": {"eventNotifications": true, ...}
        }
        """
        user = self._get(self.USERS_COLLECTION, user_id)
        if user is None:
            logger.info(f"User document not found: {user_id}")
        return user

    def update_user(self, user_id: str, fields: Dict[str, Any]) -> None:
        self._collection(self.USERS_COLLECTION).document(user_id).update(fields)

    def save_device_tokens(self, user_id: str, device_tokens: List[Dict[str, Any]]) -> None:
        self.update_user(user_id, {"deviceTokens": device_tokens})

    def list_users_by_role(self, role: str, active_only: bool = True) -> List[Dict[str, Any]]:
        query = self._collection(self.USERS_COLLECTION).where("role", "==", role)
        if active_only:
            query = query.where("isActive", "==", True)
        return [_to_dict(doc) for doc in query.stream()]

    # =========================================================================
    # In-app notifications
    # =========================================================================

    def create_notification(
        self,
        user_id: str,
        notification_type: str,
        message: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        notification = {
            "user": user_id,
            "type": notification_type,
            "message": message,
            "data": data or {},
            "read": False,
            "readAt": None,
            "createdAt": timezone.now(),
        }
        created = self._create(self.NOTIFICATIONS_COLLECTION, notification)
        logger.info(f"Created notification {created['id']} ({notification_type}) for user {user_id}")
        return created

    def get_notification(self, notification_id: str) -> Optional[Dict[str, Any]]:
        return self._get(self.NOTIFICATIONS_COLLECTION, notification_id)

    def list_notifications(
        self,
        user_id: str,
        unread_only: bool = False,
        limit: int = 50,
    ) -> List[Dict[str, Any]]:
        query = self._collection(self.NOTIFICATIONS_COLLECTION).where("user", "==", user_id)
        if unread_only:
            query = query.where("read", "==", False)
        query = query.order_by("createdAt", direction=firestore.Query.DESCENDING).limit(limit)
        return [_to_dict(doc) for doc in query.stream()]

    def count_unread_notifications(self, user_id: str) -> int:
        query = (
            self._collection(self.NOTIFICATIONS_COLLECTION)
            .where("user", "==", user_id)
            .where("read", "==", False)
        )
        return sum(1 for _ in query.stream())

    def mark_notification_read(self, notification_id: str) -> None:
        self._collection(self.NOTIFICATIONS_COLLECTION).document(notification_id).update({
            "read": True,
            "readAt": timezone.now(),
        })

    def mark_all_notifications_read(self, user_id: str) -> int:
        """
        Mark every unread notification of a user as read.

        Returns number of updated documents.
        """
        query = (
            self._collection(self.NOTIFICATIONS_COLLECTION)
            .where("user", "==", user_id)
            .where("read", "==", False)
        )
        docs = list(query.stream())
        if not docs:
            return 0

        now = timezone.now()
        for chunk in chunked(docs, FIRESTORE_BATCH_LIMIT):
            batch = self.db.batch()
            for doc in chunk:
                batch.update(doc.reference, {"read": True, "readAt": now})
            batch.commit()
        return len(docs)

    # =========================================================================
    # Events
    # =========================================================================

    def create_event(
        self,
        title: str,
        created_by: str,
        description: str = "",
        location: str = "",
        date: Optional[str] = None,
    ) -> Dict[str, Any]:
        event = {
            "title": title,
            "description": description,
            "location": location,
            "date": date,
            "createdBy": created_by,
            "createdAt": timezone.now(),
            "isActive": True,
        }
        created = self._create(self.EVENTS_COLLECTION, event)
        logger.info(f"Created event {created['id']}: {title}")
        return created

    def get_event(self, event_id: str) -> Optional[Dict[str, Any]]:
        return self._get(self.EVENTS_COLLECTION, event_id)

    def list_events(self, active_only: bool = True) -> List[Dict[str, Any]]:
        query = self._collection(self.EVENTS_COLLECTION)
        if active_only:
            query = query.where("isActive", "==", True)
        return [_to_dict(doc) for doc in query.stream()]

    # =========================================================================
    # Participations
    # =========================================================================

    def create_participation(self, student_id: str, event_id: str) -> Dict[str, Any]:
        """
        Document structure at participations/{id}:
        {
            "student": "uid",
            "event": "eventId",
            "status": "pending" | "approved" | "rejected",
            "registeredAt": Timestamp,
            "reviewedAt": null,
            "rejectionReason": null,
            "contribution": null | {"description", "hours", "submittedAt", "verified", "verifiedAt"},
            "certificate": null | {"url", "issuedAt"}
        }
        """
        participation = {
            "student": student_id,
            "event": event_id,
            "status": STATUS_PENDING,
            "registeredAt": timezone.now(),
            "reviewedAt": None,
            "rejectionReason": None,
            "contribution": None,
            "certificate": None,
        }
        created = self._create(self.PARTICIPATIONS_COLLECTION, participation)
        logger.info(f"Created participation {created['id']} (student={student_id}, event={event_id})")
        return created

    def get_participation(self, participation_id: str) -> Optional[Dict[str, Any]]:
        return self._get(self.PARTICIPATIONS_COLLECTION, participation_id)

    def find_participation(self, student_id: str, event_id: str) -> Optional[Dict[str, Any]]:
        query = (
            self._collection(self.PARTICIPATIONS_COLLECTION)
            .where("student", "==", student_id)
            .where("event", "==", event_id)
            .limit(1)
        )
        for doc in query.stream():
            return _to_dict(doc)
        return None

    def list_participations_for_student(self, student_id: str) -> List[Dict[str, Any]]:
        query = self._collection(self.PARTICIPATIONS_COLLECTION).where("student", "==", student_id)
        return [_to_dict(doc) for doc in query.stream()]

    def list_participations_with_certificates(self) -> List[Dict[str, Any]]:
        participations = []
        for doc in self._collection(self.PARTICIPATIONS_COLLECTION).stream():
            data = _to_dict(doc)
            if (data.get("certificate") or {}).get("url"):
                participations.append(data)
        return participations

    def update_participation(self, participation_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        doc_ref = self._collection(self.PARTICIPATIONS_COLLECTION).document(participation_id)
        doc_ref.update(fields)
        return _to_dict(doc_ref.get())


# Singleton instance
firestore_service = FirestoreService()
