"""Shared billing constants."""
from __future__ import annotations

import re

# Period length in days per billing period.
PERIOD_DAYS = {
    "MONTHLY": 30,
    "YEARLY": 365,
}

ZERO_DECIMAL_CURRENCIES = {
    "BIF",
    "CLP",
    "DJF",
    "GNF",
    "JPY",
    "KMF",
    "KRW",
    "MGA",
    "PYG",
    "RWF",
    "UGX",
    "VND",
    "VUV",
    "XAF",
    "XOF",
    "XPF",
}

UPI_ID_PATTERN = re.compile(r"^[\w.-]+@\w+$")
UTR_PATTERN = re.compile(r"^[A-Za-z0-9]{6,35}$")

NOTIFICATION_SYSTEM_ALERT = "SYSTEM_ALERT"
NOTIFICATION_PAYMENT = "PAYMENT"
NOTIFICATION_SUBSCRIPTION = "SUBSCRIPTION"
