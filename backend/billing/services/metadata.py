"""Typed payment metadata stored in ``Payment.metadata``.

The JSON column holds one tagged ``details`` section (checkout or UPI) plus
optional ``refund`` and ``failure`` sections. Unknown gateway keys are kept
in an opaque ``extra`` bag. Records are validated on the way in and out so
service code never reads loose dictionaries.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from typing import Any, Dict, Mapping, Optional, Union

from billing.exceptions import MalformedPayload

# Keys the checkout flow writes into gateway order notes / intent metadata.
NOTE_PLAN_ID = "planId"
NOTE_BRAND_ID = "brandId"
NOTE_USER_ID = "userId"


@dataclass(frozen=True)
class CheckoutMetadata:
    plan_id: Optional[str] = None
    brand_id: Optional[str] = None
    user_id: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    type = "checkout"


@dataclass(frozen=True)
class UPIPaymentMetadata:
    plan_id: str
    brand_id: str
    user_id: str
    upi_id: str
    transaction_id: str
    upi_link: str
    utr: Optional[str] = None
    confirmed_at: Optional[str] = None
    awaiting_reconciliation: bool = False
    extra: Dict[str, Any] = field(default_factory=dict)

    type = "upi"


@dataclass(frozen=True)
class RefundMetadata:
    refund_id: Optional[str] = None
    amount_minor_units: Optional[int] = None
    reason: Optional[str] = None


@dataclass(frozen=True)
class FailureMetadata:
    code: Optional[str] = None
    message: Optional[str] = None


PaymentDetails = Union[CheckoutMetadata, UPIPaymentMetadata]

_DETAIL_TYPES = {
    CheckoutMetadata.type: CheckoutMetadata,
    UPIPaymentMetadata.type: UPIPaymentMetadata,
}


def checkout_metadata_from_notes(notes: Optional[Mapping[str, Any]]) -> CheckoutMetadata:
    """Build checkout metadata from gateway notes, keeping unknown keys in ``extra``."""
    if notes is None:
        return CheckoutMetadata()
    if not isinstance(notes, Mapping):
        raise MalformedPayload("Payment metadata must be an object.")

    def _text(key):
        value = notes.get(key)
        return str(value) if value not in (None, "") else None

    extra = {
        key: value for key, value in notes.items()
        if key not in (NOTE_PLAN_ID, NOTE_BRAND_ID, NOTE_USER_ID)
    }
    return CheckoutMetadata(
        plan_id=_text(NOTE_PLAN_ID),
        brand_id=_text(NOTE_BRAND_ID),
        user_id=_text(NOTE_USER_ID),
        extra=extra,
    )


@dataclass(frozen=True)
class PaymentMetadataRecord:
    details: Optional[PaymentDetails] = None
    refund: Optional[RefundMetadata] = None
    failure: Optional[FailureMetadata] = None

    def with_details(self, details: Optional[PaymentDetails]) -> "PaymentMetadataRecord":
        return replace(self, details=details)

    def with_refund(self, refund: Optional[RefundMetadata]) -> "PaymentMetadataRecord":
        return replace(self, refund=refund or RefundMetadata())

    def with_failure(self, failure: Optional[FailureMetadata]) -> "PaymentMetadataRecord":
        return replace(self, failure=failure or FailureMetadata())

    def to_json(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {}
        if self.details is not None:
            payload["details"] = {"type": self.details.type, **asdict(self.details)}
        if self.refund is not None:
            payload["refund"] = asdict(self.refund)
        if self.failure is not None:
            payload["failure"] = asdict(self.failure)
        return payload

    @classmethod
    def from_json(cls, raw: Optional[Mapping[str, Any]]) -> "PaymentMetadataRecord":
        if not raw:
            return cls()
        if not isinstance(raw, Mapping):
            raise MalformedPayload("Stored payment metadata must be an object.")

        details = None
        raw_details = raw.get("details")
        if raw_details is not None:
            details = _load_section(raw_details, _DETAIL_TYPES)

        refund = _load_dataclass(RefundMetadata, raw.get("refund"))
        failure = _load_dataclass(FailureMetadata, raw.get("failure"))
        return cls(details=details, refund=refund, failure=failure)


def _load_section(raw: Any, types: Mapping[str, type]) -> PaymentDetails:
    if not isinstance(raw, Mapping):
        raise MalformedPayload("Payment metadata details must be an object.")
    data = dict(raw)
    kind = data.pop("type", None)
    target = types.get(kind)
    if target is None:
        raise MalformedPayload(f"Unknown payment metadata type: {kind!r}.")
    return _load_dataclass(target, data)


def _load_dataclass(target, raw):
    if raw is None:
        return None
    if not isinstance(raw, Mapping):
        raise MalformedPayload(f"{target.__name__} must be an object.")
    try:
        return target(**raw)
    except TypeError as exc:
        raise MalformedPayload(f"Invalid {target.__name__}: {exc}") from exc
