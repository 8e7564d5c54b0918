from django.urls import path
from . import views

urlpatterns = [
    # Health check
    path("health", views.health, name="health"),

    # Device tokens and notification preferences
    path("push-notifications/register-device", views.register_device, name="register_device"),
    path("push-notifications/unregister-device", views.unregister_device, name="unregister_device"),
    path("push-notifications/devices", views.devices, name="devices"),
    path("push-notifications/preferences", views.preferences, name="preferences"),
    path("push-notifications/broadcast", views.broadcast, name="broadcast"),

    # In-app notifications
    path("notifications", views.notification_list, name="notification_list"),
    path("notifications/read-all", views.notification_read_all, name="notification_read_all"),
    path("notifications/<str:notification_id>/read", views.notification_read, name="notification_read"),

    # Events and participations (Firestore-based)
    path("events", views.event_list, name="event_list"),
    path("events/<str:event_id>/register", views.event_register, name="event_register"),
    path("participations/mine", views.my_participations, name="my_participations"),
    path("participations/<str:participation_id>/contribution", views.submit_contribution, name="submit_contribution"),
    path("participations/<str:participation_id>/review", views.review_participation, name="review_participation"),
    path("participations/<str:participation_id>/verify", views.verify_contribution, name="verify_contribution"),
    path("participations/<str:participation_id>/certificate", views.issue_certificate, name="issue_certificate"),
]
