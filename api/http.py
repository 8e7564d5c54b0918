import functools
import json
import logging
from typing import Tuple

from django.http import JsonResponse, HttpResponseNotAllowed
from django.views.decorators.csrf import csrf_exempt

from .firebase_service import FirestoreUnavailable

logger = logging.getLogger("api")


def api_response(message: str = "", data: dict = None, status: int = 200) -> JsonResponse:
    return JsonResponse({
        "success": status < 400,
        "message": message,
        "data": data if data is not None else {},
    }, status=status)


def api_error(message: str, status: int, **extra) -> JsonResponse:
    body = {"success": False, "message": message, "data": {}}
    body.update(extra)
    return JsonResponse(body, status=status)


def json_body(request) -> Tuple[dict, JsonResponse]:
    try:
        body = request.body.decode("utf-8") if request.body else "{}"
        data = json.loads(body)
        if not isinstance(data, dict):
            raise ValueError("JSON body must be an object")
        return data, None
    except (json.JSONDecodeError, UnicodeDecodeError, ValueError) as exc:
        return None, api_error(f"Invalid JSON body: {exc}", 400)


def api_view(tag: str, methods, error_message: str = "Internal server error"):
    """
    Wrap a function view with the portal's request boundary:
    csrf exemption, method check, request logging and a catch-all that
    turns unexpected errors into a 500 envelope.
    """
    methods = list(methods)

    def decorator(view):
        @csrf_exempt
        @functools.wraps(view)
        def wrapper(request, *args, **kwargs):
            logger.info(f"[{tag}] {request.method} from {request.META.get('REMOTE_ADDR')}")

            if request.method not in methods:
                logger.warning(f"[{tag}] Method not allowed: {request.method}")
                return HttpResponseNotAllowed(methods)

            try:
                return view(request, *args, **kwargs)
            except FirestoreUnavailable as e:
                logger.error(f"[{tag}] {e}")
                return api_error("Firebase Firestore is not configured", 503, error="firestore_unavailable")
            except Exception as e:
                logger.exception(f"[{tag}] {error_message}")
                return api_error(error_message, 500, error=str(e))

        return wrapper

    return decorator
