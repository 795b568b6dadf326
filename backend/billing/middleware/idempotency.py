"""Middleware enforcing Idempotency-Key semantics for billing write operations."""
from __future__ import annotations

import hashlib
from typing import Optional

from django.db import IntegrityError
from django.http import JsonResponse
from django.utils.deprecation import MiddlewareMixin

from billing.models import BillingIdempotencyKey


IDEMPOTENT_PATH_SUFFIXES: tuple[str, ...] = (
    "/payments/upi/create/",
)


class BillingIdempotencyMiddleware(MiddlewareMixin):
    """Honour an optional Idempotency-Key on payment creation requests."""

    def _applies_to(self, request) -> bool:
        if request.method.upper() != "POST":
            return False
        if not request.headers.get("Idempotency-Key"):
            return False
        return request.path.endswith(IDEMPOTENT_PATH_SUFFIXES)

    def process_request(self, request):
        if not self._applies_to(request):
            request._billing_idempotency_record = None  # type: ignore[attr-defined]
            return None

        key = request.headers["Idempotency-Key"].strip()
        if len(key) > 255:
            return self._error_response(
                status=400,
                code="invalid_idempotency_key",
                message="Idempotency-Key must be at most 255 characters.",
            )

        payload_hash = self._hash_request(request, key)

        try:
            record, created = BillingIdempotencyKey.objects.get_or_create(
                key=key,
                defaults={"request_hash": payload_hash},
            )
        except IntegrityError:
            return self._error_response(
                status=409,
                code="idempotency_conflict",
                message="A request with this Idempotency-Key is already in progress.",
            )

        if not created and record.request_hash != payload_hash:
            return self._error_response(
                status=409,
                code="idempotency_conflict",
                message="Idempotency-Key has been used with a different request payload.",
            )

        if not created and record.last_result == BillingIdempotencyKey.LastResult.SUCCESS:
            return self._error_response(
                status=409,
                code="duplicate_request",
                message="This request has already been processed successfully.",
                details={"response_code": record.response_code},
            )

        record.last_result = BillingIdempotencyKey.LastResult.PENDING
        record.save(update_fields=["last_result", "last_seen_at"])

        request._billing_idempotency_record = record  # type: ignore[attr-defined]
        return None

    def process_response(self, request, response):
        record = getattr(request, "_billing_idempotency_record", None)
        if record:
            status_family = 200 <= response.status_code < 300
            record.last_result = (
                BillingIdempotencyKey.LastResult.SUCCESS if status_family
                else BillingIdempotencyKey.LastResult.FAILURE
            )
            record.response_code = response.status_code
            record.save(update_fields=["last_result", "response_code", "last_seen_at"])
        return response

    @staticmethod
    def _hash_request(request, key: str) -> str:
        body_bytes = request.body or b""
        digest = hashlib.sha256()
        digest.update(request.method.upper().encode("utf-8"))
        digest.update(b"|")
        digest.update(request.get_full_path().encode("utf-8"))
        digest.update(b"|")
        digest.update(body_bytes)
        digest.update(b"|")
        digest.update(key.encode("utf-8"))
        return digest.hexdigest()

    @staticmethod
    def _error_response(*, status: int, code: str, message: str, details: Optional[dict] = None):
        payload = {
            "code": code,
            "message": message,
            "details": details or {},
        }
        return JsonResponse(payload, status=status)
