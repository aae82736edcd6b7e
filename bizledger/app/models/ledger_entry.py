"""
Ledger entry database models (expenses and incomes).

Entries generated by a domain event carry ``source_type``/``source_id`` so
the event record and the entry can always be matched.
"""

from sqlalchemy import Column, String, Numeric, Date, DateTime, Text
from sqlalchemy.sql import func
from bizledger.app.db.session import Base


class Expense(Base):
    """Expense ledger entry."""
    __tablename__ = "expenses"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(36), nullable=False, index=True)

    expense_date = Column(Date, nullable=False, index=True)
    category = Column(String(100), nullable=False)
    subcategory = Column(String(100), nullable=True)
    amount = Column(Numeric(18, 2), nullable=False)
    description = Column(String(500), nullable=True)
    payment_method = Column(String(50), nullable=True)
    notes = Column(Text, nullable=True)

    # Back-reference to the generating domain object
    source_type = Column(String(50), nullable=True)
    source_id = Column(String(36), nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Expense(id={self.id}, category='{self.category}', amount={self.amount})>"


class Income(Base):
    """Income ledger entry."""
    __tablename__ = "incomes"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(36), nullable=False, index=True)

    income_date = Column(Date, nullable=False, index=True)
    category = Column(String(100), nullable=False)
    subcategory = Column(String(100), nullable=True)
    amount = Column(Numeric(18, 2), nullable=False)
    description = Column(String(500), nullable=True)
    payment_method = Column(String(50), nullable=True)
    notes = Column(Text, nullable=True)

    source_type = Column(String(50), nullable=True)
    source_id = Column(String(36), nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Income(id={self.id}, category='{self.category}', amount={self.amount})>"
