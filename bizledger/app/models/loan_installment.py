"""
Loan installment database model.
"""

from sqlalchemy import Column, String, Integer, Numeric, Date, DateTime, ForeignKey
from sqlalchemy.sql import func
from bizledger.app.db.session import Base
from bizledger.app.models.enums import InstallmentStatus


class LoanInstallment(Base):
    """
    One row of a loan's amortization schedule.

    Created in bulk with the loan. ``expense_transaction_id`` is a weak
    reference to the expense written when the installment was paid.
    """
    __tablename__ = "loan_installments"

    id = Column(String(36), primary_key=True)
    loan_id = Column(String(36), ForeignKey("loans.id"), nullable=False, index=True)

    installment_number = Column(Integer, nullable=False)
    due_date = Column(Date, nullable=False, index=True)
    principal_amount = Column(Numeric(18, 2), nullable=False)
    interest_amount = Column(Numeric(18, 2), nullable=False)
    total_amount = Column(Numeric(18, 2), nullable=False)

    # Payment
    status = Column(String(20), default=InstallmentStatus.PENDING.value, nullable=False, index=True)
    paid_date = Column(Date, nullable=True)
    paid_amount = Column(Numeric(18, 2), nullable=True)
    expense_transaction_id = Column(String(36), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<LoanInstallment(loan_id={self.loan_id}, number={self.installment_number}, status='{self.status}')>"
