"""Gateway-neutral payment event contract."""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional

from billing.constants import ZERO_DECIMAL_CURRENCIES
from billing.services.metadata import FailureMetadata, PaymentDetails, RefundMetadata


class EventKind(str, Enum):
    CAPTURED = "CAPTURED"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


class TrustLevel(str, Enum):
    # Authenticated by a gateway signature.
    VERIFIED = "VERIFIED"
    # Claimed by an end user, e.g. a UPI reference typed into the app.
    USER_ASSERTED = "USER_ASSERTED"


def minor_to_major(amount_minor: int, currency: str) -> Decimal:
    if (currency or "").upper() in ZERO_DECIMAL_CURRENCIES:
        return Decimal(amount_minor)
    return (Decimal(amount_minor) / Decimal("100")).quantize(Decimal("0.01"))


def major_to_minor(amount: Decimal, currency: str) -> int:
    if (currency or "").upper() in ZERO_DECIMAL_CURRENCIES:
        return int(amount)
    return int((Decimal(amount) * 100).to_integral_value())


@dataclass(frozen=True)
class PaymentEvent:
    """A verified (or user asserted) change in a payment's state."""

    kind: EventKind
    gateway: str
    external_payment_id: str
    external_order_id: Optional[str]
    amount_minor_units: int
    currency: str
    metadata: Optional[PaymentDetails]
    trust_level: TrustLevel = TrustLevel.VERIFIED
    event_type: str = ""
    delivery_id: Optional[str] = None
    asserted_by: Optional[str] = None
    confirmation_reference: Optional[str] = None
    refund: Optional[RefundMetadata] = None
    failure: Optional[FailureMetadata] = None

    @property
    def amount(self) -> Decimal:
        return minor_to_major(self.amount_minor_units, self.currency)

    @property
    def reference(self) -> str:
        return f"{self.gateway}:{self.external_payment_id}"
