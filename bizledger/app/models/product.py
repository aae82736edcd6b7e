"""
Product database model.

Stock on hand lives in ``stock_quantity``; older deployments only have the
legacy ``stock`` column, and both may coexist during a migration window.
"""

from sqlalchemy import Column, String, Integer, Numeric, DateTime
from sqlalchemy.sql import func
from bizledger.app.db.session import Base


class Product(Base):
    __tablename__ = "products"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(36), nullable=True, index=True)

    name = Column(String(200), nullable=False)
    sku = Column(String(100), nullable=True)
    price = Column(Numeric(18, 2), nullable=True)

    stock_quantity = Column(Integer, default=0, nullable=False)
    stock = Column(Integer, default=0, nullable=True)  # Legacy alias

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Product(id={self.id}, name='{self.name}', stock_quantity={self.stock_quantity})>"
