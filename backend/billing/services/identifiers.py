"""Generators for licence keys, invoice numbers and UPI references."""
from __future__ import annotations

import secrets
import string
from datetime import datetime
from decimal import Decimal
from urllib.parse import quote, urlencode

_KEY_ALPHABET = string.ascii_uppercase + string.digits


def _random_block(length: int) -> str:
    return "".join(secrets.choice(_KEY_ALPHABET) for _ in range(length))


def generate_license_key() -> str:
    """``XXXX-XXXX-XXXX-XXXX`` using uppercase letters and digits."""
    return "-".join(_random_block(4) for _ in range(4))


def generate_invoice_number(now: datetime) -> str:
    return f"INV-{now:%Y%m%d}-{_random_block(8)}"


def generate_transaction_id(now: datetime) -> str:
    return f"TXN{int(now.timestamp() * 1000)}{_random_block(9)}"


def build_upi_link(*, merchant_vpa: str, merchant_name: str, amount: Decimal, transaction_id: str,
                   note: str, currency: str = "INR") -> str:
    params = {
        "pa": merchant_vpa,
        "pn": merchant_name,
        "am": f"{Decimal(amount):.2f}",
        "tr": transaction_id,
        "tn": note,
        "cu": currency,
    }
    # UPI apps expect %20 rather than '+' and a literal '@' in the VPA.
    return "upi://pay?" + urlencode(params, quote_via=quote, safe="@")
