"""
Loan database model.

A loan owns a pre-materialized installment schedule; its totals are derived
from the installments and refreshed after every payment.
"""

from sqlalchemy import Column, String, Integer, Numeric, Date, DateTime, Text
from sqlalchemy.sql import func
from bizledger.app.db.session import Base
from bizledger.app.models.enums import LoanStatus, InstallmentFrequency


class Loan(Base):
    """
    Loan model.

    Never hard-deleted once any installment is paid.
    """
    __tablename__ = "loans"

    id = Column(String(36), primary_key=True)

    # Ownership
    user_id = Column(String(36), nullable=False, index=True)

    # Terms
    loan_amount = Column(Numeric(18, 2), nullable=False)
    interest_rate = Column(Numeric(7, 4), nullable=False)  # Annual, percent
    loan_term_months = Column(Integer, nullable=False)
    installment_amount = Column(Numeric(18, 2), nullable=False)
    installment_frequency = Column(String(20), default=InstallmentFrequency.MONTHLY.value, nullable=False)
    loan_date = Column(Date, nullable=False)
    first_payment_date = Column(Date, nullable=False)

    # Lender
    lender_name = Column(String(200), nullable=False)
    lender_contact = Column(String(200), nullable=True)
    purpose = Column(String(500), nullable=True)
    notes = Column(Text, nullable=True)

    # Derived totals
    status = Column(String(20), default=LoanStatus.ACTIVE.value, nullable=False, index=True)
    total_paid = Column(Numeric(18, 2), default=0, nullable=False)
    remaining_balance = Column(Numeric(18, 2), nullable=False)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Loan(id={self.id}, lender='{self.lender_name}', status='{self.status}')>"
