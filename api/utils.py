from typing import Any, Dict, Iterable, Iterator, List, Optional

from django.utils import timezone

from .constants import DEFAULT_PREFERENCES, DEFAULT_DEVICE_TYPE, USER_TOPIC_PREFIX


def chunked(items: List[Any], size: int) -> Iterator[List[Any]]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


def user_topic(user_id: str) -> str:
    return f"{USER_TOPIC_PREFIX}{user_id}"


def upsert_device_token(
    device_tokens: List[Dict[str, Any]],
    token: str,
    device_type: str = DEFAULT_DEVICE_TYPE,
    device_name: Optional[str] = None,
    now=None,
) -> List[Dict[str, Any]]:
    """
    Return a new device list with `token` registered.

    A token already on the list is reactivated and its lastUsedAt bumped
    instead of being added twice.
    """
    now = now or timezone.now()
    updated = [dict(dt) for dt in device_tokens]
    for dt in updated:
        if dt.get("token") == token:
            dt["isActive"] = True
            dt["lastUsedAt"] = now
            return updated

    updated.append({
        "token": token,
        "deviceType": device_type,
        "deviceName": device_name,
        "isActive": True,
        "registeredAt": now,
        "lastUsedAt": now,
    })
    return updated


def remove_device_tokens(device_tokens: List[Dict[str, Any]], tokens: Iterable[str]) -> List[Dict[str, Any]]:
    tokens = set(tokens)
    return [dt for dt in device_tokens if dt.get("token") not in tokens]


def active_tokens(device_tokens: List[Dict[str, Any]]) -> List[str]:
    return [dt["token"] for dt in device_tokens if dt.get("isActive") and dt.get("token")]


def public_device(device: Dict[str, Any]) -> Dict[str, Any]:
    """Device info safe to hand back to clients (raw token omitted)."""
    return {
        "deviceType": device.get("deviceType"),
        "deviceName": device.get("deviceName"),
        "isActive": device.get("isActive", False),
        "registeredAt": device.get("registeredAt"),
        "lastUsedAt": device.get("lastUsedAt"),
    }


def merge_preferences(stored: Optional[Dict[str, Any]]) -> Dict[str, bool]:
    preferences = dict(DEFAULT_PREFERENCES)
    for key, value in (stored or {}).items():
        if key in preferences:
            preferences[key] = bool(value)
    return preferences


def parse_bool(value) -> Optional[bool]:
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        value = value.lower()
        if value in {"1", "true", "yes"}:
            return True
        if value in {"0", "false", "no"}:
            return False
    return None


def clamp_limit(value, default: int, maximum: int) -> int:
    try:
        value = int(value)
    except (TypeError, ValueError):
        return default
    if value <= 0:
        return default
    return min(value, maximum)
