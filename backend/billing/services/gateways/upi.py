"""Direct UPI deep-link flow.

UPI intents carry no gateway callback: the payer types the bank reference
(UTR) back into the app, so events built here are ``USER_ASSERTED`` unless an
operator confirms them.
"""
from __future__ import annotations

from typing import Mapping, Optional

from billing.constants import UTR_PATTERN
from billing.exceptions import MalformedPayload, UnsupportedEventType
from billing.models import PaymentGateway
from billing.services.events import EventKind, PaymentEvent, TrustLevel, major_to_minor


class UPIGatewayAdapter:
    gateway = PaymentGateway.UPI

    def parse_webhook(self, body: bytes, headers: Mapping[str, str]) -> PaymentEvent:
        raise UnsupportedEventType("UPI deep links have no webhook.")

    @staticmethod
    def validate_utr(utr: Optional[str]) -> str:
        value = (utr or "").strip()
        if not UTR_PATTERN.match(value):
            raise MalformedPayload("UPI transaction reference must be 6-35 letters or digits.")
        return value

    def user_confirmation(self, *, transaction_id: str, utr: str, user_id: str) -> PaymentEvent:
        """Event for a payer claiming to have completed ``transaction_id``."""
        return PaymentEvent(
            kind=EventKind.CAPTURED,
            gateway=self.gateway,
            external_payment_id=transaction_id,
            external_order_id=transaction_id,
            amount_minor_units=0,
            currency="INR",
            metadata=None,
            trust_level=TrustLevel.USER_ASSERTED,
            event_type="upi.user_confirmed",
            asserted_by=str(user_id),
            confirmation_reference=self.validate_utr(utr),
        )

    def operator_confirmation(self, *, transaction_id: str, utr: Optional[str], amount, currency: str,
                              operator: str) -> PaymentEvent:
        """Event for an operator who matched the UTR against the merchant statement."""
        return PaymentEvent(
            kind=EventKind.CAPTURED,
            gateway=self.gateway,
            external_payment_id=transaction_id,
            external_order_id=transaction_id,
            amount_minor_units=major_to_minor(amount, currency),
            currency=currency,
            metadata=None,
            trust_level=TrustLevel.VERIFIED,
            event_type="upi.operator_confirmed",
            asserted_by=operator,
            confirmation_reference=utr,
        )
