"""
Observability middleware and logging setup.

Every request gets a correlation ID, and its log line names the acting
owner and the ledger resource it touched.
"""

import logging
import time
import uuid
from typing import Optional
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from bizledger.app.core.config import settings
from bizledger.app.core.jwt import owner_id_from_authorization

logger = logging.getLogger("bizledger")


def configure_logging(level: str = "INFO") -> None:
    """Root handler for the ``bizledger`` logger tree."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))


def ledger_resource(path: str) -> Optional[str]:
    """First segment under the API prefix: ``/v1/loans/abc`` -> ``loans``."""
    parts = [part for part in path.split("/") if part]
    if len(parts) >= 2 and parts[0] == settings.api_version:
        return parts[1]
    return None


class ObservabilityMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        correlation_id = request.headers.get("X-Correlation-ID", str(uuid.uuid4()))
        request.state.correlation_id = correlation_id
        start_time = time.time()

        response = await call_next(request)

        process_time = (time.time() - start_time) * 1000  # ms
        response.headers["X-Correlation-ID"] = correlation_id
        response.headers["X-Process-Time"] = str(process_time)

        log_data = {
            "correlation_id": correlation_id,
            "owner_id": owner_id_from_authorization(request.headers.get("Authorization")),
            "resource": ledger_resource(request.url.path),
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": round(process_time, 2),
        }

        if response.status_code >= 500:
            logger.error("Ledger request failed", extra=log_data)
        elif response.status_code >= 400:
            logger.warning("Ledger request rejected", extra=log_data)
        else:
            logger.info("Ledger request", extra=log_data)

        return response
