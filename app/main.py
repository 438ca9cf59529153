from contextlib import asynccontextmanager
from typing import List, Optional
import logging
import time
from fastapi import FastAPI, Path, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException

from .config import Settings
from .db.database import TransactionRepository
from .exceptions import ApiError, api_error_response, error_response
from .middleware.rate_limiter import RateLimitMiddleware, REMAINING_HEADER
from .models import (
    ErrorResponse,
    HealthResponse,
    RateLimitStats,
    TransactionRequest,
    TransactionResponse,
)
from .ratelimit import RateLimiter
from .service import TransactionService

logger = logging.getLogger(__name__)

DESCRIPTION = """
## Transactions API

CRUD operations on customer transactions, fronted by per-client rate limiting.

### Rate Limiting

Every `/api/transaction` endpoint is limited per client. The client is
identified by the `X-Client-Id` header, or by its network address when the
header is absent. Each client gets a fixed number of requests per window
(3 per minute by default); the whole allowance comes back at once when the
window rolls over.

- `X-Rate-Limit-Remaining`: requests left in the current window
- Over the limit the API answers `429 Too Many Requests`
"""

RATE_LIMITED_RESPONSES = {
    429: {"description": "Rate limit exceeded", "model": ErrorResponse},
    500: {"description": "Internal server error", "model": ErrorResponse},
}


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def create_app(settings: Optional[Settings] = None, limiter: Optional[RateLimiter] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    limiter = limiter or RateLimiter.from_settings(settings)
    repository = TransactionRepository(settings.database_path)
    service = TransactionService(repository, settings.max_transactions_per_client)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        repository.ensure_schema()
        yield
        logger.info(f"Application shutdown, {len(limiter.registry)} rate limit buckets discarded")

    app = FastAPI(
        title="Transactions API",
        description=DESCRIPTION,
        version="1.0.0",
        openapi_tags=[
            {"name": "transactions", "description": "Create, read, update and delete transactions."},
            {"name": "health", "description": "Service health and rate limiter diagnostics."},
        ],
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.rate_limiter = limiter
    app.state.transaction_service = service

    # Registered before CORS so that 429 responses still carry CORS headers
    app.middleware("http")(RateLimitMiddleware(limiter, settings.rate_limit_path_prefixes))
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=[REMAINING_HEADER],
        max_age=3600,
    )

    @app.get("/health", tags=["health"], summary="Health Check", response_model=HealthResponse)
    async def health_check():
        return {"status": "healthy", "service": "transactions-api", "timestamp": int(time.time())}

    @app.get(
        "/health/rate-limit-stats",
        tags=["health"],
        summary="Rate Limit Statistics",
        response_model=RateLimitStats,
    )
    async def rate_limit_stats():
        """Number of tracked clients and the active limiter configuration."""
        return limiter.get_stats()

    @app.get(
        "/api/transaction",
        tags=["transactions"],
        summary="List transactions",
        description="All transactions, newest first",
        response_model=List[TransactionResponse],
        responses=RATE_LIMITED_RESPONSES,
    )
    def list_transactions():
        logger.info("GET /api/transaction")
        return service.get_all_transactions()

    @app.get(
        "/api/transaction/user/{name}",
        tags=["transactions"],
        summary="List a customer's transactions",
        response_model=List[TransactionResponse],
        responses=RATE_LIMITED_RESPONSES,
    )
    def list_customer_transactions(name: str = Path(..., description="Customer name")):
        logger.info(f"GET /api/transaction/user/{name}")
        return service.get_transactions_by_customer(name)

    @app.get(
        "/api/transaction/{transaction_id}",
        tags=["transactions"],
        summary="Get a transaction",
        response_model=TransactionResponse,
        responses={404: {"description": "Transaction not found", "model": ErrorResponse}, **RATE_LIMITED_RESPONSES},
    )
    def get_transaction(transaction_id: int = Path(..., description="Transaction id")):
        logger.info(f"GET /api/transaction/{transaction_id}")
        return service.get_transaction(transaction_id)

    @app.post(
        "/api/transaction",
        tags=["transactions"],
        summary="Create a transaction",
        status_code=status.HTTP_201_CREATED,
        response_model=TransactionResponse,
        responses={400: {"description": "Invalid data or business rule violated", "model": ErrorResponse}, **RATE_LIMITED_RESPONSES},
    )
    def create_transaction(payload: TransactionRequest):
        logger.info("POST /api/transaction")
        return service.create_transaction(payload)

    @app.put(
        "/api/transaction/{transaction_id}",
        tags=["transactions"],
        summary="Update a transaction",
        response_model=TransactionResponse,
        responses={
            400: {"description": "Invalid data or business rule violated", "model": ErrorResponse},
            404: {"description": "Transaction not found", "model": ErrorResponse},
            **RATE_LIMITED_RESPONSES,
        },
    )
    def update_transaction(payload: TransactionRequest, transaction_id: int = Path(..., description="Transaction id")):
        logger.info(f"PUT /api/transaction/{transaction_id}")
        return service.update_transaction(transaction_id, payload)

    @app.delete(
        "/api/transaction/{transaction_id}",
        tags=["transactions"],
        summary="Delete a transaction",
        status_code=status.HTTP_204_NO_CONTENT,
        response_class=Response,
        responses={404: {"description": "Transaction not found", "model": ErrorResponse}, **RATE_LIMITED_RESPONSES},
    )
    def delete_transaction(transaction_id: int = Path(..., description="Transaction id")):
        logger.info(f"DELETE /api/transaction/{transaction_id}")
        service.delete_transaction(transaction_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError):
        return api_error_response(request, exc)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        details = [
            f"{'.'.join(str(part) for part in err['loc'] if part != 'body')}: {err['msg']}"
            for err in exc.errors()
        ]
        return error_response(request, 400, "Validation Error", "Request validation failed", details)

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return error_response(request, exc.status_code, f"http_error_{exc.status_code}", str(exc.detail))

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {str(exc)}", exc_info=True)
        return error_response(request, 500, "Internal Server Error", "An unexpected error occurred")

    app.openapi = _rate_limit_openapi(app)
    return app


def _rate_limit_openapi(app: FastAPI):
    """Document the rate limit header on every rate limited success response"""
    def custom_openapi():
        if app.openapi_schema:
            return app.openapi_schema

        from fastapi.openapi.utils import get_openapi

        openapi_schema = get_openapi(
            title=app.title,
            version=app.version,
            description=app.description,
            routes=app.routes,
            tags=app.openapi_tags,
        )
        remaining_header = {
            REMAINING_HEADER: {
                "description": "Requests remaining in the current window",
                "schema": {"type": "string"}
            }
        }
        prefixes = tuple(app.state.settings.rate_limit_path_prefixes)
        for path, path_item in openapi_schema["paths"].items():
            if not path.startswith(prefixes):
                continue
            for method, operation in path_item.items():
                for status_code in ("200", "201", "204"):
                    response = operation.get("responses", {}).get(status_code)
                    if response is not None:
                        response.setdefault("headers", {}).update(remaining_header)

        app.openapi_schema = openapi_schema
        return app.openapi_schema

    return custom_openapi


_settings = Settings.from_env()
configure_logging(_settings.log_level)
app = create_app(_settings)
