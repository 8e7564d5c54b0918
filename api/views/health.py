from ..firebase_service import firestore_service
from ..http import api_response, api_view
from ..push_service import push_service


@api_view("HEALTH", ["GET"], error_message="Health check failed")
def health(request):
    firestore_ok = firestore_service.is_available()
    messaging_ok = push_service.is_initialized()

    return api_response("ok", {
        "status": "ok",
        "firestore": "connected" if firestore_ok else "not_configured",
        "messaging": "connected" if messaging_ok else "not_configured",
    })
