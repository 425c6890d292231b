"""Shared-secret authentication for trigger endpoints."""
import hmac

from fastapi import Header

from pensive.config import settings
from pensive.exceptions import AuthenticationError


def verify_cron_secret(authorization: str | None = Header(default=None)) -> None:
    """Require ``Authorization: Bearer <CRON_SECRET>``.

    Requests are rejected when no secret is configured.
    """
    expected = settings.cron_secret
    if not expected:
        raise AuthenticationError("Trigger secret is not configured")

    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not hmac.compare_digest(token.strip().encode(), expected.encode()):
        raise AuthenticationError("Invalid or missing trigger secret")
