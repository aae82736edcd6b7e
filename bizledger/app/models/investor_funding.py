"""
Investor funding and profit sharing payment database models.
"""

from sqlalchemy import Column, String, Integer, Numeric, Date, DateTime, Text, ForeignKey
from sqlalchemy.sql import func
from bizledger.app.db.session import Base
from bizledger.app.models.enums import FundingStatus, PaymentStatus


class InvestorFunding(Base):
    """
    Capital received from an outside investor in exchange for a profit share.
    """
    __tablename__ = "investor_funding"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(36), nullable=False, index=True)

    investor_name = Column(String(200), nullable=False)
    investor_contact = Column(String(200), nullable=True)
    investment_amount = Column(Numeric(18, 2), nullable=False)
    profit_share_percentage = Column(Numeric(5, 2), nullable=False)
    payment_frequency = Column(String(20), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    duration_months = Column(Integer, nullable=True)
    agreement_number = Column(String(100), nullable=True)

    status = Column(String(20), default=FundingStatus.ACTIVE.value, nullable=False, index=True)
    total_profit_shared = Column(Numeric(18, 2), default=0, nullable=False)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<InvestorFunding(id={self.id}, investor='{self.investor_name}')>"


class ProfitSharingPayment(Base):
    """Profit share owed (or paid) to an investor for one period."""
    __tablename__ = "profit_sharing_payments"

    id = Column(String(36), primary_key=True)
    funding_id = Column(String(36), ForeignKey("investor_funding.id"), nullable=False, index=True)

    period_start = Column(Date, nullable=False)
    period_end = Column(Date, nullable=False)
    business_revenue = Column(Numeric(18, 2), nullable=False)
    business_expenses = Column(Numeric(18, 2), nullable=False)
    net_profit = Column(Numeric(18, 2), nullable=False)
    share_percentage = Column(Numeric(5, 2), nullable=False)
    share_amount = Column(Numeric(18, 2), nullable=False)

    due_date = Column(Date, nullable=False)
    status = Column(String(20), default=PaymentStatus.PENDING.value, nullable=False, index=True)
    paid_date = Column(Date, nullable=True)
    expense_transaction_id = Column(String(36), nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<ProfitSharingPayment(id={self.id}, status='{self.status}', amount={self.share_amount})>"
