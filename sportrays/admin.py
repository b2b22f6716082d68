"""
Shared-secret authorization for admin endpoints.
"""

import hmac
from pathlib import Path
from typing import Optional

from sportrays.errors import AdminDisabled, Unauthorized

ADMIN_PAGE_PATH = Path(__file__).resolve().parent / "static" / "admin.html"

ADMIN_SECRET_HEADER = "x-admin-secret"


def secrets_match(provided: str, configured: str) -> bool:
    """
    Compare two secrets in constant time.

    hmac.compare_digest does not short-circuit on the first differing
    byte, so the comparison time does not reveal how much of the secret
    was guessed.
    """
    return hmac.compare_digest(provided.encode("utf-8"), configured.encode("utf-8"))


def check_admin_secret(configured: Optional[str], provided: Optional[str]):
    """
    Authorize an admin request.

    Args:
        configured: ADMIN_SECRET from settings, None when unset
        provided: Secret sent with the request (header or query)

    Raises:
        AdminDisabled: If no secret is configured, admin is off (503)
        Unauthorized: If the secret is missing or wrong (401)
    """
    if not configured:
        raise AdminDisabled("Admin is disabled")
    if provided is None or not secrets_match(provided, configured):
        raise Unauthorized("Unauthorized")
