"""Plan transition maths.

Upgrades apply immediately and convert the unused value of the current
period into extra days on the target plan. Downgrades are deferred to the end
of the paid period. Remaining days round up, credit days round down.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

from billing.exceptions import InvalidTransition, NoOpTransition

_MICROSECONDS_PER_DAY = 24 * 60 * 60 * 1_000_000


@dataclass(frozen=True)
class PlanTerms:
    price: Decimal
    period_days: int
    end_date: Optional[datetime] = None
    plan_id: Optional[str] = None


@dataclass(frozen=True)
class Transition:
    effective_date: datetime
    new_end_date: datetime
    is_upgrade: bool
    credit_days: int = 0
    remaining_days: int = 0

    @property
    def applies_immediately(self) -> bool:
        return self.is_upgrade


def remaining_whole_days(end_date: datetime, now: datetime) -> int:
    """Days left until ``end_date``, rounded up and never negative."""
    delta = end_date - now
    micros = (delta.days * 86400 + delta.seconds) * 1_000_000 + delta.microseconds
    if micros <= 0:
        return 0
    return -(-micros // _MICROSECONDS_PER_DAY)


def credit_days_for(current: PlanTerms, target: PlanTerms, remaining_days: int) -> int:
    """
    floor(remaining value of the current plan / daily rate of the target plan).

    Evaluated as a single exact quotient so that whole-day results are not
    lost to intermediate rounding.
    """
    if remaining_days <= 0:
        return 0
    numerator = Decimal(current.price) * remaining_days * target.period_days
    denominator = Decimal(target.price) * current.period_days
    return int(numerator // denominator)


def compute_transition(current: PlanTerms, target: PlanTerms, now: datetime) -> Transition:
    if current.end_date is None:
        raise ValueError("current.end_date is required")
    if current.plan_id is not None and current.plan_id == target.plan_id:
        raise NoOpTransition()

    current_price = Decimal(current.price)
    target_price = Decimal(target.price)
    if current_price == target_price:
        raise InvalidTransition("Already on an equivalent plan.")

    if target_price > current_price:
        remaining = remaining_whole_days(current.end_date, now)
        credit = credit_days_for(current, target, remaining)
        return Transition(
            effective_date=now,
            new_end_date=now + timedelta(days=target.period_days + credit),
            is_upgrade=True,
            credit_days=credit,
            remaining_days=remaining,
        )

    return Transition(
        effective_date=current.end_date,
        new_end_date=current.end_date + timedelta(days=target.period_days),
        is_upgrade=False,
        remaining_days=remaining_whole_days(current.end_date, now),
    )
