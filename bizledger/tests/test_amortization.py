"""
Unit tests for the installment schedule.
"""

import pytest
from datetime import date
from decimal import Decimal

from bizledger.app.core.exceptions import ValidationError
from bizledger.app.domain.loans.amortization import build_schedule, level_payment_for, due_date_for


def test_twelve_million_at_twelve_percent():
    schedule = build_schedule(Decimal("12000000"), Decimal("12"), 12, date(2026, 2, 1))

    assert schedule.level_payment == Decimal("1066185.46")
    assert len(schedule.installments) == 12

    first = schedule.installments[0]
    assert first.interest_component == Decimal("120000.00")
    assert first.principal_component == Decimal("946185.46")
    assert first.total_due == Decimal("1066185.46")
    assert first.due_date == date(2026, 2, 1)
    assert schedule.installments[-1].due_date == date(2027, 1, 1)

    assert sum(i.principal_component for i in schedule.installments) == Decimal("12000000.00")
    last = schedule.installments[-1]
    assert last.installment_number == 12
    assert last.total_due == schedule.level_payment
    assert last.interest_component == schedule.level_payment - last.principal_component
    assert Decimal("0") < last.interest_component < first.interest_component


def test_principal_components_sum_to_principal():
    schedule = build_schedule("10000", "7.5", 7, date(2026, 1, 15))

    total_principal = sum(i.principal_component for i in schedule.installments)
    assert total_principal == Decimal("10000.00")
    for item in schedule.installments[:-1]:
        assert item.total_due == schedule.level_payment
    assert schedule.total_due == total_principal + schedule.total_interest


def test_zero_rate_splits_principal_evenly():
    schedule = build_schedule(1200, 0, 12, date(2026, 1, 1))

    assert schedule.level_payment == Decimal("100.00")
    assert all(i.interest_component == 0 for i in schedule.installments)
    assert all(i.principal_component == Decimal("100.00") for i in schedule.installments)


def test_zero_rate_remainder_lands_on_last_installment():
    schedule = build_schedule(100, 0, 3, date(2026, 1, 1))

    assert [i.principal_component for i in schedule.installments] == [
        Decimal("33.33"), Decimal("33.33"), Decimal("33.34")
    ]


def test_due_dates_step_by_calendar_month():
    assert due_date_for(date(2026, 1, 31), 2) == date(2026, 2, 28)
    assert due_date_for(date(2026, 1, 31), 3) == date(2026, 3, 31)
    assert due_date_for(date(2027, 12, 15), 3) == date(2028, 2, 15)


def test_level_payment_single_installment():
    assert level_payment_for(1000, 12, 1) == Decimal("1010.00")


@pytest.mark.parametrize("principal,rate,term", [
    (0, 10, 12),
    (-5, 10, 12),
    (1000, -1, 12),
    (1000, 10, 0),
    (1000, 10, "abc"),
])
def test_invalid_terms_rejected(principal, rate, term):
    with pytest.raises(ValidationError):
        build_schedule(principal, rate, term, date(2026, 1, 1))
