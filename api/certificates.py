"""Classification of stored certificate links for the URL maintenance command."""
import re
from typing import Optional, Tuple

import requests

LOCALHOST_ORIGIN = re.compile(r"^https?://localhost:5000(?=/|$)")
UPLOADS_PREFIX = "/uploads"
CLOUDINARY_HOST = "cloudinary.com"

# Actions returned by classify_certificate_url
REWRITE_LOCALHOST = "rewrite_localhost"
REWRITE_RELATIVE = "rewrite_relative"
HOSTED = "hosted"
PRODUCTION = "production"
UNKNOWN = "unknown"


def classify_certificate_url(url: str, production_url: str) -> Tuple[str, Optional[str]]:
    """
    Decide what to do with a stored certificate URL.

    Returns (action, new_url); new_url is only set for rewrite actions.
    """
    production_url = production_url.rstrip("/")
    production_host = production_url.split("://", 1)[-1]

    localhost = LOCALHOST_ORIGIN.match(url)
    if localhost:
        return REWRITE_LOCALHOST, f"{production_url}{url[localhost.end():]}"
    if url.startswith(UPLOADS_PREFIX):
        return REWRITE_RELATIVE, f"{production_url}{url}"
    if CLOUDINARY_HOST in url:
        return HOSTED, None
    if production_host in url:
        return PRODUCTION, None
    return UNKNOWN, None


def is_reachable(url: str, timeout: float = 10.0) -> bool:
    """HEAD the URL; anything below 400 counts as reachable."""
    try:
        response = requests.head(url, allow_redirects=True, timeout=timeout)
    except requests.exceptions.RequestException:
        return False
    return response.status_code < 400
