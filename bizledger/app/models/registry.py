"""
Imports every model so ``Base.metadata`` knows the full canonical schema.
"""

from bizledger.app.models.loan import Loan  # noqa: F401
from bizledger.app.models.loan_installment import LoanInstallment  # noqa: F401
from bizledger.app.models.ledger_entry import Expense, Income  # noqa: F401
from bizledger.app.models.investment import Investment, InvestmentReturn  # noqa: F401
from bizledger.app.models.investor_funding import InvestorFunding, ProfitSharingPayment  # noqa: F401
from bizledger.app.models.product import Product  # noqa: F401
from bizledger.app.models.transaction import Transaction, TransactionItem  # noqa: F401
from bizledger.app.models.activity_log import ActivityLog  # noqa: F401
