"""
Investment and investment return database models.
"""

from sqlalchemy import Column, String, Integer, Numeric, Date, DateTime, Text, ForeignKey
from sqlalchemy.sql import func
from bizledger.app.db.session import Base
from bizledger.app.models.enums import InvestmentStatus


class Investment(Base):
    """
    Investment model.

    ``total_returns`` and ``current_value`` are derived from its returns.
    """
    __tablename__ = "investments"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(36), nullable=False, index=True)

    investment_type = Column(String(30), nullable=False)
    investment_name = Column(String(200), nullable=False)
    principal_amount = Column(Numeric(18, 2), nullable=False)
    interest_rate = Column(Numeric(7, 4), nullable=True)
    investment_term_months = Column(Integer, nullable=True)
    start_date = Column(Date, nullable=False)
    maturity_date = Column(Date, nullable=True)
    bank_name = Column(String(200), nullable=True)

    # Derived totals
    current_value = Column(Numeric(18, 2), nullable=False)
    total_returns = Column(Numeric(18, 2), default=0, nullable=False)
    status = Column(String(20), default=InvestmentStatus.ACTIVE.value, nullable=False, index=True)

    expense_transaction_id = Column(String(36), nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Investment(id={self.id}, name='{self.investment_name}', status='{self.status}')>"


class InvestmentReturn(Base):
    """A dated cash return from an investment; spawns an income entry."""
    __tablename__ = "investment_returns"

    id = Column(String(36), primary_key=True)
    investment_id = Column(String(36), ForeignKey("investments.id"), nullable=False, index=True)

    return_date = Column(Date, nullable=False)
    return_amount = Column(Numeric(18, 2), nullable=False)
    return_type = Column(String(30), nullable=False)
    income_transaction_id = Column(String(36), nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<InvestmentReturn(id={self.id}, type='{self.return_type}', amount={self.return_amount})>"
