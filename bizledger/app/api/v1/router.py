"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from bizledger.app.api.v1.endpoints import loans, investments, investors, transactions, ledger, summary

router = APIRouter()

router.include_router(loans.router)
router.include_router(investments.router)
router.include_router(investors.router)
router.include_router(transactions.router)
router.include_router(ledger.router)
router.include_router(summary.router)
