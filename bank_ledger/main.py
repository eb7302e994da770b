"""
Bank Ledger FastAPI application.

This is the entry point for the application.
All routers and the domain error handler are registered here.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from bank_ledger.config import get_settings
from bank_ledger.exceptions import (
    LedgerError,
    InvalidAmount,
    InvalidReason,
    AccountNotFound,
    CustomerReferenceError,
    AccountClosed,
    AlreadyClosed,
    DuplicateCustomer,
    ConcurrencyConflict,
    InsufficientFunds,
)
from bank_ledger.logging_config import setup_logging
from bank_ledger.api.health import router as health_router
from bank_ledger.api.customers import router as customers_router
from bank_ledger.api.accounts import router as accounts_router
from bank_ledger.api.transactions import router as transactions_router
from bank_ledger.api.reports import router as reports_router

settings = get_settings()
setup_logging(settings.LOG_LEVEL)

# HTTP status for each domain error. Subclasses not listed
# fall back to 400.
ERROR_STATUS: dict[type[LedgerError], int] = {
    InvalidAmount: 400,
    InvalidReason: 400,
    AccountNotFound: 404,
    CustomerReferenceError: 404,
    AccountClosed: 409,
    AlreadyClosed: 409,
    DuplicateCustomer: 409,
    ConcurrencyConflict: 409,
    InsufficientFunds: 422,
}

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Account ledger with atomic postings and closure auditing",
)


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    status_code = ERROR_STATUS.get(type(exc), 400)
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "error": type(exc).__name__},
    )


# Register routers
app.include_router(health_router)
app.include_router(customers_router)
app.include_router(accounts_router)
app.include_router(transactions_router)
app.include_router(reports_router)


def run():
    """Serve the API with uvicorn using HOST/PORT from settings."""
    import uvicorn

    uvicorn.run(
        "bank_ledger.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )
