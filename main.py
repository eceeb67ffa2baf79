from fastapi import APIRouter, FastAPI, HTTPException, Request, Depends, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from starlette.concurrency import run_in_threadpool
from contextlib import asynccontextmanager
from typing import List, Optional
import logging
import sys
import structlog
import time

from accounts import AccountSnapshot
from config import Settings, get_settings
from errors import ErrorCode, LedgerError
from iban import IbanGenerator
from localization import error_message, status_label
from models import (
    AccountDetails,
    DestructionRequest,
    EmissionRequest,
    ErrorResponse,
    HealthResponse,
    IbanResponse,
    OperationResponse,
)
from repositories import AccountRepository, InMemoryAccountRepository
from services import AccountService, get_account_service

logger = structlog.get_logger()

ERROR_STATUS_CODES = {
    ErrorCode.ACCOUNT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.ACCOUNT_BLOCKED: status.HTTP_409_CONFLICT,
    ErrorCode.INSUFFICIENT_BALANCE: status.HTTP_400_BAD_REQUEST,
    ErrorCode.ACCOUNT_TYPE_MISMATCH: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCode.IBAN_MISMATCH: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCode.NEGATIVE_AMOUNT: status.HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_IBAN: status.HTTP_400_BAD_REQUEST,
    ErrorCode.ACCOUNT_CREATION_FAILED: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorCode.SERIALIZATION_FAILED: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCode.MALFORMED_REQUEST: status.HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_AMOUNT: status.HTTP_400_BAD_REQUEST,
}


def configure_logging(settings: Settings) -> None:
    """Configure structlog on top of stdlib logging."""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        force=True,
    )
    if settings.log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def build_repository(settings: Settings) -> AccountRepository:
    generator = IbanGenerator(
        country_prefix=settings.iban_country_prefix,
        max_attempts=settings.iban_max_attempts,
    )
    return InMemoryAccountRepository(
        settings.emission_iban,
        settings.destruction_iban,
        generator=generator,
        locale=settings.locale,
    )


# Dependency injection
def get_service(request: Request) -> AccountService:
    return request.app.state.service


def to_details(account: AccountSnapshot, request: Request) -> AccountDetails:
    return AccountDetails(
        iban=account.iban,
        balance=float(account.balance),
        fractions=float(account.fractions),
        status=status_label(account.status, request.app.state.settings.locale),
    )


router = APIRouter()


# Health check endpoint
@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health Check",
    description="Check API health and get the number of accounts"
)
def health_check(service: AccountService = Depends(get_service)):
    return HealthResponse(status="healthy", accounts_count=service.count_accounts())


@router.get("/accounts/emission", response_model=IbanResponse, summary="Emission Account IBAN")
def get_emission_iban(service: AccountService = Depends(get_service)):
    return IbanResponse(iban=service.get_emission_iban())


@router.get("/accounts/destruction", response_model=IbanResponse, summary="Destruction Account IBAN")
def get_destruction_iban(service: AccountService = Depends(get_service)):
    return IbanResponse(iban=service.get_destruction_iban())


@router.get(
    "/accounts",
    summary="List Accounts",
    description="IBAN, balance and status of every account, special accounts first",
    response_model=List[AccountDetails],
)
def list_accounts(service: AccountService = Depends(get_service)):
    return Response(content=service.list_accounts_as_envelope(), media_type="application/json")


# Rate-limited routes are registered by create_app against the app's own limiter
OPEN_ACCOUNT_ROUTE = dict(
    response_model=AccountDetails,
    status_code=status.HTTP_201_CREATED,
    summary="Open Account",
    responses={
        201: {"description": "Account opened"},
        429: {"description": "Rate limit exceeded"},
        503: {"description": "No unique IBAN could be generated"}
    },
)


def open_account(request: Request, service: AccountService = Depends(get_service)):
    return to_details(service.open_account(), request)


@router.get("/accounts/{iban}", response_model=AccountDetails, summary="Account Details")
def get_account(iban: str, request: Request, service: AccountService = Depends(get_service)):
    return to_details(service.get_account(iban), request)


@router.post("/accounts/{iban}/block", response_model=OperationResponse, summary="Block Account")
def block_account(iban: str, service: AccountService = Depends(get_service)):
    service.block_account(iban)
    return OperationResponse(status="processed")


@router.post("/accounts/{iban}/activate", response_model=OperationResponse, summary="Activate Account")
def activate_account(iban: str, service: AccountService = Depends(get_service)):
    service.activate_account(iban)
    return OperationResponse(status="processed")


@router.post("/emissions", response_model=OperationResponse, summary="Emit Money")
def emit_money(emission: EmissionRequest, service: AccountService = Depends(get_service)):
    service.emit_money(emission.amount)
    return OperationResponse(status="processed")


@router.post("/destructions", response_model=OperationResponse, summary="Destruct Money")
def destruct_money(destruction: DestructionRequest, service: AccountService = Depends(get_service)):
    service.destruct_money(destruction.iban, destruction.amount)
    return OperationResponse(status="processed")


TRANSFER_ROUTE = dict(
    response_model=OperationResponse,
    summary="Transfer Money",
    description="Transfer money between two accounts. The body is a JSON "
                "envelope with sender, recipient and amount.",
    responses={
        200: {"description": "Transfer processed"},
        400: {"description": "Malformed envelope, negative amount or insufficient balance"},
        404: {"description": "Account not found"},
        409: {"description": "Account blocked"},
        429: {"description": "Rate limit exceeded"}
    },
)


async def transfer_money(request: Request, service: AccountService = Depends(get_service)):
    envelope = (await request.body()).decode("utf-8", errors="replace")
    await run_in_threadpool(service.transfer_money_from_envelope, envelope)
    return OperationResponse(status="processed")


def create_app(settings: Optional[Settings] = None, repository: Optional[AccountRepository] = None) -> FastAPI:
    """Build the API around a ledger owned by the returned application."""
    settings = settings or get_settings()
    configure_logging(settings)

    # Application lifespan
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        logger.info("Starting Payments Ledger API", locale=settings.locale.value)
        yield
        # Shutdown
        logger.info("Shutting down Payments Ledger API")

    app = FastAPI(
        title=settings.app_name,
        description="In-memory payments ledger with money emission, destruction and transfers",
        version=settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )
    app.state.settings = settings
    app.state.service = get_account_service(repository or build_repository(settings))

    # Add rate limiting
    limiter = Limiter(key_func=get_remote_address, enabled=settings.enable_rate_limit)
    limit = f"{settings.rate_limit_per_minute}/minute"
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # In production, specify allowed origins
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Request logging middleware
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start_time = time.time()

        # Log request
        logger.info(
            "Request started",
            method=request.method,
            url=str(request.url),
            client_ip=request.client.host if request.client else None
        )

        response = await call_next(request)

        # Log response
        process_time = time.time() - start_time
        logger.info(
            "Request completed",
            method=request.method,
            url=str(request.url),
            status_code=response.status_code,
            process_time=round(process_time, 4)
        )

        return response

    @app.exception_handler(LedgerError)
    async def ledger_exception_handler(request: Request, exc: LedgerError):
        return JSONResponse(
            status_code=ERROR_STATUS_CODES.get(exc.code, status.HTTP_400_BAD_REQUEST),
            content=ErrorResponse(
                detail=error_message(exc.code, settings.locale),
                error_code=exc.code.name
            ).model_dump(mode="json")
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(
                detail=exc.detail,
                error_code=f"HTTP_{exc.status_code}"
            ).model_dump(mode="json")
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error(
            "Unhandled exception",
            error=str(exc),
            url=str(request.url),
            method=request.method,
            exc_info=True
        )

        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                detail="Internal server error",
                error_code="INTERNAL_ERROR"
            ).model_dump(mode="json")
        )

    app.include_router(router)
    app.add_api_route("/accounts", limiter.limit(limit)(open_account), methods=["POST"], **OPEN_ACCOUNT_ROUTE)
    app.add_api_route("/transfers", limiter.limit(limit)(transfer_money), methods=["POST"], **TRANSFER_ROUTE)

    # Root endpoint
    @app.get("/", include_in_schema=False)
    async def root():
        return {"message": settings.app_name, "docs": "/docs"}

    return app


if __name__ == "__main__":
    import uvicorn
    settings = get_settings()
    uvicorn.run(
        "main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower()
    )
