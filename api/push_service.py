"""
Push notification service for web/Android/iOS devices (FCM via Firebase Admin SDK).

Every send path returns a result object instead of raising so that callers
can treat push delivery as best-effort.
"""
import logging
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List, Iterable

from django.utils import timezone
from firebase_admin import exceptions, messaging

from .constants import FCM_MULTICAST_LIMIT, TOKEN_LOG_PREFIX
from .firebase_service import get_firebase_app
from .utils import chunked

logger = logging.getLogger("api")

INVALID_TOKEN = "INVALID_TOKEN"

# Per-token errors meaning the registration token will never work again
_INVALID_TOKEN_ERRORS = (messaging.UnregisteredError, exceptions.InvalidArgumentError)


@dataclass
class PushResult:
    """Result of a single push notification attempt"""
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[str] = None


@dataclass
class MulticastResult:
    """Aggregated result of a fan-out across many device tokens"""
    success_count: int = 0
    failure_count: int = 0
    invalid_tokens: List[str] = field(default_factory=list)


def is_invalid_token_error(error: Optional[Exception]) -> bool:
    return isinstance(error, _INVALID_TOKEN_ERRORS)


def _short(token: str) -> str:
    return f"{token[:TOKEN_LOG_PREFIX]}..."


def build_data(data: Optional[Dict[str, Any]] = None) -> Dict[str, str]:
    """FCM data payloads only accept string values; stamp the send time."""
    payload = {k: str(v) for k, v in (data or {}).items() if v is not None}
    payload["timestamp"] = timezone.now().isoformat()
    return payload


class PushService:
    """
    Firebase Cloud Messaging wrapper.
    Uses the Firebase Admin SDK for single, batched, multicast and topic sends.
    """

    def __init__(self):
        self._messaging = None

    def _get_messaging(self):
        """Get Firebase messaging module (lazy initialization)"""
        if self._messaging is not None:
            return self._messaging

        app = get_firebase_app()
        if app is not None:
            self._messaging = messaging
            logger.info("[FCM] Firebase messaging initialized")
        else:
            logger.warning("[FCM] Firebase messaging not initialized")

        return self._messaging

    def is_initialized(self) -> bool:
        """Check if FCM is properly configured"""
        return self._get_messaging() is not None

    def send_to_device(
        self,
        device_token: str,
        title: str,
        body: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> PushResult:
        """
        Send a push notification to a specific device token.

        An unregistered or malformed token is reported with
        error_code=INVALID_TOKEN so the caller can drop it.
        """
        fcm = self._get_messaging()
        if fcm is None:
            return PushResult(success=False, error="FCM not configured", error_code="not_configured")

        message = fcm.Message(
            notification=fcm.Notification(title=title, body=body),
            data=build_data(data),
            token=device_token,
        )

        try:
            message_id = fcm.send(message)
            logger.info(f"[FCM] Notification sent successfully: {message_id}")
            return PushResult(success=True, message_id=message_id)
        except _INVALID_TOKEN_ERRORS as e:
            logger.warning(f"[FCM] Invalid token {_short(device_token)}: {e}")
            return PushResult(success=False, error=str(e), error_code=INVALID_TOKEN)
        except Exception as e:
            logger.error(f"[FCM] Send error: {e}")
            return PushResult(success=False, error=str(e), error_code="exception")

    def send_to_devices(
        self,
        device_tokens: List[str],
        title: str,
        body: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> Optional[MulticastResult]:
        """Send one message per token in a single batch request."""
        fcm = self._get_messaging()
        if fcm is None:
            return None

        payload = build_data(data)
        messages = [
            fcm.Message(
                notification=fcm.Notification(title=title, body=body),
                data=payload,
                token=token,
            )
            for token in device_tokens
        ]
        if not messages:
            return MulticastResult()

        try:
            response = fcm.send_each(messages)
        except Exception as e:
            logger.error(f"[FCM] Error sending batch: {e}")
            return None

        result = MulticastResult(
            success_count=response.success_count,
            failure_count=response.failure_count,
        )
        result.invalid_tokens.extend(self._invalid_tokens(device_tokens, response.responses))
        logger.info(f"[FCM] Sent {result.success_count} notifications, {result.failure_count} failed")
        return result

    def send_multicast(
        self,
        device_tokens: List[str],
        title: str,
        body: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> Optional[MulticastResult]:
        """
        Send a multicast notification, FCM_MULTICAST_LIMIT tokens per call.

        Returns:
            MulticastResult with summed counts and the tokens FCM rejected
            as unregistered/invalid, or None when FCM is unavailable or the
            SDK call itself fails.
        """
        fcm = self._get_messaging()
        if fcm is None:
            return None

        result = MulticastResult()
        payload = build_data(data)

        try:
            for chunk in chunked(device_tokens, FCM_MULTICAST_LIMIT):
                message = fcm.MulticastMessage(
                    tokens=chunk,
                    notification=fcm.Notification(title=title, body=body),
                    data=payload,
                )
                response = fcm.send_each_for_multicast(message)

                result.success_count += response.success_count
                result.failure_count += response.failure_count
                result.invalid_tokens.extend(self._invalid_tokens(chunk, response.responses))
        except Exception as e:
            logger.error(f"[FCM] Error sending multicast notification: {e}")
            return None

        logger.info(
            f"[FCM] Multicast sent to {result.success_count} devices, "
            f"{result.failure_count} failed, {len(result.invalid_tokens)} invalid"
        )
        return result

    @staticmethod
    def _invalid_tokens(tokens: List[str], responses: Iterable) -> List[str]:
        # responses are positional: responses[i] belongs to tokens[i]
        return [
            token
            for token, resp in zip(tokens, responses)
            if not resp.success and is_invalid_token_error(resp.exception)
        ]

    def subscribe_to_topic(self, device_tokens: List[str], topic: str):
        """Subscribe tokens to a topic. Returns the SDK response or None."""
        fcm = self._get_messaging()
        if fcm is None:
            return None

        try:
            response = fcm.subscribe_to_topic(device_tokens, topic)
            logger.info(f"[FCM] Subscribed {response.success_count} token(s) to topic '{topic}'")
            return response
        except Exception as e:
            logger.error(f"[FCM] Error subscribing to topic '{topic}': {e}")
            return None

    def unsubscribe_from_topic(self, device_tokens: List[str], topic: str):
        """Unsubscribe tokens from a topic. Returns the SDK response or None."""
        fcm = self._get_messaging()
        if fcm is None:
            return None

        try:
            response = fcm.unsubscribe_from_topic(device_tokens, topic)
            logger.info(f"[FCM] Unsubscribed {response.success_count} token(s) from topic '{topic}'")
            return response
        except Exception as e:
            logger.error(f"[FCM] Error unsubscribing from topic '{topic}': {e}")
            return None

    def send_to_topic(
        self,
        topic: str,
        title: str,
        body: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> Optional[str]:
        """Send a notification to every device subscribed to a topic."""
        fcm = self._get_messaging()
        if fcm is None:
            return None

        message = fcm.Message(
            notification=fcm.Notification(title=title, body=body),
            data=build_data(data),
            topic=topic,
        )

        try:
            message_id = fcm.send(message)
            logger.info(f"[FCM] Notification sent to topic '{topic}': {message_id}")
            return message_id
        except Exception as e:
            logger.error(f"[FCM] Error sending notification to topic '{topic}': {e}")
            return None


# Singleton instance
push_service = PushService()
