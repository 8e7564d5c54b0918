# Models are stored in Firebase Firestore, not Django DB.
# This file is kept for Django app structure compatibility.
#
# Firestore Collections:
# - users/{uid}: Profile, role, deviceTokens[] and notificationPreferences
# - events/{eventId}: Volunteer events
# - participations/{participationId}: Registrations, contributions, certificates
# - notifications/{notificationId}: In-app notifications
#
# See firebase_service.py for Firestore operations.
