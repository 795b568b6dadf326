"""Shared helpers for payment gateway adapters.

Adapters turn raw gateway input into :class:`PaymentEvent` objects. They
never touch the database; signature checks always run before the body is
parsed.
"""
from __future__ import annotations

import hashlib
import hmac
import json
from typing import Any, Dict, Mapping, Optional

from billing.exceptions import InvalidSignature, MalformedPayload
from billing.services.events import PaymentEvent


class GatewayAdapter:
    gateway: str = ""
    signature_header: str = ""
    delivery_id_header: Optional[str] = None

    def parse_webhook(self, body: bytes, headers: Mapping[str, str]) -> PaymentEvent:
        raise NotImplementedError

    def delivery_id(self, body: bytes, headers: Mapping[str, str]) -> Optional[str]:
        if self.delivery_id_header:
            return headers.get(self.delivery_id_header) or None
        return None


def verify_hmac_sha256(secret: Optional[str], message: bytes, signature: Optional[str]) -> None:
    """Raise ``InvalidSignature`` unless ``signature`` is the hex HMAC-SHA256 of ``message``."""
    if not secret:
        raise InvalidSignature("Signing secret is not configured.")
    if not signature:
        raise InvalidSignature("Signature header is missing.")
    expected = hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()
    if not hmac.compare_digest(expected, signature.strip()):
        raise InvalidSignature()


def load_json_object(body: bytes) -> Dict[str, Any]:
    try:
        payload = json.loads(body)
    except (TypeError, ValueError) as exc:
        raise MalformedPayload("Body is not valid JSON.") from exc
    if not isinstance(payload, dict):
        raise MalformedPayload("Body must be a JSON object.")
    return payload


def require(mapping: Mapping[str, Any], key: str, *, context: str) -> Any:
    if not isinstance(mapping, Mapping):
        raise MalformedPayload(f"{context} must be an object.")
    value = mapping.get(key)
    if value in (None, ""):
        raise MalformedPayload(f"{context}.{key} is required.")
    return value


def coerce_amount(value: Any, *, context: str) -> int:
    if isinstance(value, bool):
        raise MalformedPayload(f"{context} must be an integer amount.")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise MalformedPayload(f"{context} must be an integer amount.") from exc
