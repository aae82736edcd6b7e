"""
FastAPI Application Entry Point.

This is the main application file for the Business Ledger Backend.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, Depends, HTTPException
from fastapi.exceptions import RequestValidationError
from bizledger.app.core.config import settings
from bizledger.app.api.v1.router import router as api_v1_router
from bizledger.app.core.dependencies import get_current_user
from bizledger.app.core.jwt import create_owner_token
from bizledger.app.core.observability import ObservabilityMiddleware, configure_logging
from bizledger.app.db.row_store import SqlRowStore
from bizledger.app.db.session import build_engine, create_tables
from bizledger.app.domain.schema.field_resolver import FieldResolver
from bizledger.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)

configure_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.

    1. Builds the engine, the row store and the field resolver.
    2. Creates the canonical tables when configured to.
    3. Drops the resolver cache and disposes the engine on shutdown.
    """
    engine = build_engine()
    if settings.create_tables_on_startup:
        await create_tables(engine)

    app.state.engine = engine
    app.state.store = SqlRowStore(engine)
    app.state.field_resolver = FieldResolver(app.state.store)
    yield
    app.state.field_resolver.reset()
    await engine.dispose()

# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Loans, investments, investor funding and sales over a shared expense/income ledger",
    lifespan=lifespan,
)

app.add_middleware(ObservabilityMiddleware)

# Register global exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.

    Returns:
        dict: Status and application information
    """
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.api_version,
    }


# Include API v1 router
app.include_router(api_v1_router, prefix=f"/{settings.api_version}")


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": "Welcome to Business Ledger Backend API",
        "docs": "/docs",
        "health": "/health",
    }


@app.post("/auth/test-token", tags=["Authentication"])
async def generate_test_token(user_id: str = "owner-1", username: str = "test_user"):
    """
    Generate a test JWT token.

    Only available while ``debug`` is on; real tokens come from the
    identity provider that shares ``secret_key``.
    """
    if not settings.debug:
        raise HTTPException(status_code=404, detail="Not Found")
    token = create_owner_token(user_id, username)
    return {
        "access_token": token,
        "token_type": "bearer",
        "user_id": user_id,
        "username": username,
    }


@app.get("/auth/me", tags=["Authentication"])
async def current_identity(current_user: dict = Depends(get_current_user)):
    """Echo the authenticated token payload."""
    return {"authenticated_user": current_user}
