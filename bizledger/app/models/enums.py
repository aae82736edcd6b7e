"""
Status and type enumerations for the ledger domain.
"""

import enum


class LoanStatus(str, enum.Enum):
    """Loan lifecycle status."""
    ACTIVE = "active"
    PAID_OFF = "paid_off"  # Every installment paid
    DEFAULTED = "defaulted"  # Set manually; keeps the loan undeletable


class InstallmentStatus(str, enum.Enum):
    """Installment status. Moves pending -> paid exactly once."""
    PENDING = "pending"
    PAID = "paid"


class InstallmentFrequency(str, enum.Enum):
    MONTHLY = "monthly"


class InvestmentType(str, enum.Enum):
    DEPOSIT = "deposit"
    STOCKS = "stocks"
    BONDS = "bonds"
    MUTUAL_FUNDS = "mutual_funds"
    PROPERTY = "property"


class InvestmentStatus(str, enum.Enum):
    ACTIVE = "active"
    MATURED = "matured"
    LIQUIDATED = "liquidated"


class ReturnType(str, enum.Enum):
    """Kind of cash an investment paid back."""
    INTEREST = "interest"
    DIVIDEND = "dividend"
    CAPITAL_GAIN = "capital_gain"
    LIQUIDATION = "liquidation"  # Closes the investment


class FundingStatus(str, enum.Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    TERMINATED = "terminated"


class PaymentStatus(str, enum.Enum):
    """Profit-sharing payment status."""
    PENDING = "pending"
    PAID = "paid"


class LedgerKind(str, enum.Enum):
    """Which ledger table an entry lives in."""
    EXPENSE = "expense"
    INCOME = "income"


class LedgerSource(str, enum.Enum):
    """Domain object a generated ledger entry points back to."""
    LOAN_INSTALLMENT = "loan_installment"
    INVESTMENT = "investment"
    INVESTMENT_RETURN = "investment_return"
    PROFIT_SHARING = "profit_sharing_payment"


class TransactionStatus(str, enum.Enum):
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class StockDirection(str, enum.Enum):
    """Effect of a transaction's line items on stock on hand."""
    OUT = "out"  # Sale: stock decreases
    IN = "in"  # Purchase / return: stock increases
