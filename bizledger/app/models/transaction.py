"""
Sales transaction and line item database models.
"""

from sqlalchemy import Column, String, Integer, Numeric, Date, DateTime, Text, Boolean, ForeignKey
from sqlalchemy.sql import func
from bizledger.app.db.session import Base
from bizledger.app.models.enums import TransactionStatus


class Transaction(Base):
    """
    Sales transaction header.

    Ownership column is ``user_id`` here; legacy deployments use ``owner_id``.
    """
    __tablename__ = "transactions"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(36), nullable=False, index=True)

    invoice_number = Column(String(50), nullable=False, index=True)
    transaction_date = Column(Date, nullable=False)
    customer_name = Column(String(200), nullable=True)
    subtotal = Column(Numeric(18, 2), nullable=False)
    discount = Column(Numeric(18, 2), default=0, nullable=False)
    total_amount = Column(Numeric(18, 2), nullable=False)
    payment_method = Column(String(50), nullable=True)
    status = Column(String(20), default=TransactionStatus.COMPLETED.value, nullable=False)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Transaction(id={self.id}, invoice='{self.invoice_number}', total={self.total_amount})>"


class TransactionItem(Base):
    """Line item; ``stock_deducted`` records whether stock was actually moved."""
    __tablename__ = "transaction_items"

    id = Column(String(36), primary_key=True)
    transaction_id = Column(String(36), ForeignKey("transactions.id"), nullable=False, index=True)

    product_id = Column(String(36), nullable=True, index=True)
    product_name = Column(String(200), nullable=True)
    qty = Column(Integer, nullable=False)
    price = Column(Numeric(18, 2), nullable=False)
    subtotal = Column(Numeric(18, 2), nullable=False)
    stock_deducted = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<TransactionItem(product_id={self.product_id}, qty={self.qty})>"
