"""
Fixed-payment (annuity) amortization schedule.

Pure computation, no I/O. Money is handled as ``Decimal`` rounded half-up to
the currency's minor unit; the final installment absorbs rounding drift so
the principal components sum to the principal exactly.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import List

from dateutil.relativedelta import relativedelta

from bizledger.app.core.exceptions import ValidationError
from bizledger.app.domain.values import CENT, to_decimal

ZERO = Decimal(0)


@dataclass(frozen=True)
class ScheduledInstallment:
    installment_number: int
    due_date: date
    principal_component: Decimal
    interest_component: Decimal
    total_due: Decimal


@dataclass(frozen=True)
class AmortizationSchedule:
    principal: Decimal
    monthly_rate: Decimal
    level_payment: Decimal
    installments: List[ScheduledInstallment]

    @property
    def total_interest(self) -> Decimal:
        return sum((i.interest_component for i in self.installments), ZERO)

    @property
    def total_due(self) -> Decimal:
        return sum((i.total_due for i in self.installments), ZERO)


def _round(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def monthly_rate_for(annual_rate) -> Decimal:
    """Nominal annual percentage -> monthly fraction (12 -> 0.01)."""
    return to_decimal(annual_rate) / Decimal(100) / Decimal(12)


def level_payment_for(principal, annual_rate, term_months: int) -> Decimal:
    """
    PMT = P * r * (1 + r)^n / ((1 + r)^n - 1), or P / n when r is zero.
    """
    p = to_decimal(principal)
    r = monthly_rate_for(annual_rate)
    n = int(term_months)
    if r == 0:
        return _round(p / n)
    growth = (1 + r) ** n
    return _round(p * r * growth / (growth - 1))


def due_date_for(first_payment_date: date, installment_number: int) -> date:
    """Calendar-month stepping from the first due date (Jan 31 -> Feb 28 -> Mar 31)."""
    return first_payment_date + relativedelta(months=installment_number - 1)


def build_schedule(principal, annual_rate, term_months: int, first_payment_date: date) -> AmortizationSchedule:
    """
    Compute the full installment schedule for a loan.

    Args:
        principal: Amount borrowed
        annual_rate: Nominal annual interest rate in percent (12 means 12%)
        term_months: Number of monthly installments (>= 1)
        first_payment_date: Due date of installment 1

    Raises:
        ValidationError: If principal <= 0, rate < 0 or term < 1
    """
    p = _round(to_decimal(principal))
    rate = to_decimal(annual_rate)
    try:
        n = int(term_months)
    except (TypeError, ValueError):
        raise ValidationError("loan_term_months must be an integer", details={"field": "loan_term_months"})

    if p <= 0:
        raise ValidationError("loan_amount must be greater than zero", details={"field": "loan_amount"})
    if rate < 0:
        raise ValidationError("interest_rate cannot be negative", details={"field": "interest_rate"})
    if n < 1:
        raise ValidationError("loan_term_months must be at least 1", details={"field": "loan_term_months"})
    if first_payment_date is None:
        raise ValidationError("first_payment_date is required", details={"field": "first_payment_date"})

    monthly_rate = monthly_rate_for(rate)
    level = level_payment_for(p, rate, n)

    installments = []
    remaining = p
    for number in range(1, n + 1):
        if number < n:
            interest = _round(remaining * monthly_rate)
            principal_part = min(level - interest, remaining)
        else:
            # Final installment closes the balance exactly
            principal_part = remaining
            interest = max(level - principal_part, ZERO)

        installments.append(ScheduledInstallment(
            installment_number=number,
            due_date=due_date_for(first_payment_date, number),
            principal_component=principal_part,
            interest_component=interest,
            total_due=principal_part + interest,
        ))
        remaining -= principal_part

    return AmortizationSchedule(
        principal=p,
        monthly_rate=monthly_rate,
        level_payment=level,
        installments=installments,
    )
