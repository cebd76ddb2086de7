"""Slack request signature verification for the events endpoint."""

from __future__ import annotations

import hmac
import time
from hashlib import sha256
from typing import Mapping

SLACK_SIGNATURE_HEADER = "X-Slack-Signature"
SLACK_TIMESTAMP_HEADER = "X-Slack-Request-Timestamp"
SIGNATURE_VERSION = "v0"
MAX_REQUEST_AGE = 60 * 5  # seconds


def compute_signature(signing_secret: str, timestamp: str, body: str) -> str:
    """Return the Slack v0 signature for *body* sent at *timestamp*."""

    basestring = f"{SIGNATURE_VERSION}:{timestamp}:{body}".encode("utf-8")
    digest = hmac.new(signing_secret.encode("utf-8"), basestring, sha256).hexdigest()
    return f"{SIGNATURE_VERSION}={digest}"


def is_fresh(timestamp: str, *, max_age: int = MAX_REQUEST_AGE) -> bool:
    try:
        sent_at = int(timestamp)
    except (TypeError, ValueError):
        return False
    return abs(int(time.time()) - sent_at) <= max_age


def verify_slack_request(signing_secret: str, headers: Mapping[str, str], body: str) -> bool:
    """Return True when *headers* carry a fresh, valid signature for *body*."""

    timestamp = headers.get(SLACK_TIMESTAMP_HEADER, "")
    signature = headers.get(SLACK_SIGNATURE_HEADER, "")
    if not timestamp or not signature or not is_fresh(timestamp):
        return False

    expected = compute_signature(signing_secret, timestamp, body)
    return hmac.compare_digest(expected, signature)
