ROLE_STUDENT = "student"
ROLE_ADMIN = "admin"

# FCM accepts at most 500 registration tokens per multicast call
FCM_MULTICAST_LIMIT = 500
# Firestore rejects batched writes with more than 500 operations
FIRESTORE_BATCH_LIMIT = 500
TOKEN_LOG_PREFIX = 20

USER_TOPIC_PREFIX = "user-"
ALL_USERS_TOPIC = "all-users"
# Characters FCM accepts in a topic name
TOPIC_NAME_PATTERN = r"[a-zA-Z0-9\-_.~%]+"

DEFAULT_DEVICE_TYPE = "web"
DEVICE_TYPES = {"web", "android", "ios"}

# Notification types
NEW_EVENT = "new-event"
PARTICIPATION_APPROVED = "participation-approved"
PARTICIPATION_REJECTED = "participation-rejected"
CONTRIBUTION_VERIFIED = "contribution-verified"
CERTIFICATE_ISSUED = "certificate-issued"
SYSTEM = "system"

NOTIFICATION_TYPES = {
    NEW_EVENT,
    PARTICIPATION_APPROVED,
    PARTICIPATION_REJECTED,
    CONTRIBUTION_VERIFIED,
    CERTIFICATE_ISSUED,
    SYSTEM,
}

# Preference flags stored on users/{uid}.notificationPreferences
EVENT_NOTIFICATIONS = "eventNotifications"
PARTICIPATION_UPDATES = "participationUpdates"
CERTIFICATE_NOTIFICATIONS = "certificateNotifications"
SYSTEM_NOTIFICATIONS = "systemNotifications"

PREFERENCE_KEYS = (
    EVENT_NOTIFICATIONS,
    PARTICIPATION_UPDATES,
    CERTIFICATE_NOTIFICATIONS,
    SYSTEM_NOTIFICATIONS,
)

DEFAULT_PREFERENCES = {key: True for key in PREFERENCE_KEYS}

# certificate-issued has no preference flag and is always delivered
PREFERENCE_FOR_TYPE = {
    NEW_EVENT: EVENT_NOTIFICATIONS,
    PARTICIPATION_APPROVED: PARTICIPATION_UPDATES,
    PARTICIPATION_REJECTED: PARTICIPATION_UPDATES,
    CONTRIBUTION_VERIFIED: CERTIFICATE_NOTIFICATIONS,
    SYSTEM: SYSTEM_NOTIFICATIONS,
}

DEFAULT_PUSH_TITLE = "NSS Portal"
PUSH_TITLES = {
    NEW_EVENT: "📅 New Event",
    PARTICIPATION_APPROVED: "✅ Participation Approved",
    PARTICIPATION_REJECTED: "❌ Participation Rejected",
    CONTRIBUTION_VERIFIED: "🎓 Certificate Ready",
    CERTIFICATE_ISSUED: "🏆 New Certificate",
}

# Where the web client navigates when a push is clicked
DEFAULT_CLICK_PATH = "/student/dashboard"
CLICK_PATHS = {
    NEW_EVENT: "/student/events",
    PARTICIPATION_APPROVED: "/student/my-events",
    PARTICIPATION_REJECTED: "/student/my-events",
    CONTRIBUTION_VERIFIED: "/student/dashboard",
    CERTIFICATE_ISSUED: "/student/dashboard",
}

# Participation lifecycle
STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
STATUS_REJECTED = "rejected"
REVIEW_STATUSES = {STATUS_APPROVED, STATUS_REJECTED}

DEFAULT_NOTIFICATION_LIMIT = 50
MAX_NOTIFICATION_LIMIT = 200
