"""
Webhook Security Module

Signature verification for every inbound webhook endpoint:
- Constant-time signature comparison
- Timestamp validation against replayed deliveries
- Raw body is read once and handed back to the caller for parsing
"""

import base64
import hashlib
import hmac
import logging
import time
from typing import Optional

from fastapi import HTTPException, Request

logger = logging.getLogger(__name__)

# Maximum age of webhook in seconds (5 minutes)
MAX_WEBHOOK_AGE_SECONDS = 300


def constant_time_compare(a: str, b: str) -> bool:
    """Compare two strings in constant time"""
    if not a or not b:
        return False
    return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))


def compute_hmac_sha256(secret: str, payload: bytes) -> str:
    """Compute HMAC-SHA256 signature of payload"""
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


def compute_hmac_sha256_base64(secret: str, payload: bytes) -> str:
    """Compute HMAC-SHA256 signature of payload and return base64 encoded"""
    signature = hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).digest()
    return base64.b64encode(signature).decode("utf-8")


def verify_timestamp(timestamp: Optional[str], max_age: int = MAX_WEBHOOK_AGE_SECONDS) -> bool:
    """
    Verify webhook timestamp is within acceptable range.

    Args:
        timestamp: Unix timestamp as string
        max_age: Maximum age in seconds

    Returns:
        True if timestamp is valid, False otherwise
    """
    if not timestamp:
        return False

    try:
        webhook_time = int(timestamp)
        age = abs(int(time.time()) - webhook_time)

        if age > max_age:
            logger.warning(f"🚫 Webhook timestamp too old: {age}s (max: {max_age}s)")
            return False

        return True
    except (ValueError, TypeError):
        logger.warning(f"🚫 Invalid webhook timestamp format: {timestamp}")
        return False


def verify_typeform_signature(body: bytes, signature: Optional[str], secret: str) -> bool:
    """Typeform signs the raw body: "sha256=" + base64(HMAC-SHA256(secret, body))"""
    if not signature:
        return False
    expected = f"sha256={compute_hmac_sha256_base64(secret, body)}"
    return constant_time_compare(expected, signature)


def parse_signature_header(header: str) -> dict[str, str]:
    """Split "t=123,v1=abc" into {"t": "123", "v1": "abc"}"""
    parts = {}
    for element in (header or "").split(","):
        key, sep, value = element.strip().partition("=")
        if sep:
            parts[key] = value
    return parts


def verify_calendly_signature(body: bytes, signature: Optional[str], signing_key: str) -> bool:
    """
    Calendly-Webhook-Signature: t=<unix>,v1=<hex HMAC-SHA256 of "t.body">
    """
    if not signature or not signing_key:
        return False

    parts = parse_signature_header(signature)
    timestamp = parts.get("t")
    received = parts.get("v1")
    if not timestamp or not received:
        logger.warning("🚫 Malformed Calendly signature header")
        return False

    if not verify_timestamp(timestamp):
        return False

    signed_payload = f"{timestamp}.".encode() + body
    expected = compute_hmac_sha256(signing_key, signed_payload)
    return constant_time_compare(expected, received)


def verify_slack_signature(
    body: bytes, timestamp: Optional[str], signature: Optional[str], signing_secret: str
) -> bool:
    """
    X-Slack-Signature: v0=<hex HMAC-SHA256 of "v0:timestamp:body">
    """
    if not signature or not timestamp or not signing_secret:
        return False

    if not verify_timestamp(timestamp):
        return False

    base_string = f"v0:{timestamp}:".encode() + body
    expected = f"v0={compute_hmac_sha256(signing_secret, base_string)}"
    return constant_time_compare(expected, signature)


def verify_shared_secret(request: Request, expected_secret: Optional[str], header_name: str) -> None:
    """
    Check a plain shared secret sent in a header or ``?secret=`` query param.
    No configured secret means the endpoint is open.
    """
    if not expected_secret:
        return

    provided = request.headers.get(header_name) or request.query_params.get("secret")
    if not constant_time_compare(expected_secret, provided or ""):
        logger.warning(f"🚫 Invalid shared secret for {request.url.path}")
        raise HTTPException(status_code=401, detail="Unauthorized")
