import logging

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ledger.api.endpoints import beneficiaries as beneficiaries_api
from ledger.api.endpoints import earnings as earnings_api
from ledger.api.endpoints import withdrawals as withdrawals_api
from ledger.core import balance
from ledger.core.config import LOG_LEVEL
from ledger.core.dependencies import Actor, get_current_admin
from ledger.core.exceptions import (
    BeneficiaryNotFound,
    ConcurrencyConflict,
    DuplicateSourceSale,
    EarningNotFound,
    InsufficientBalance,
    InvalidEarningInput,
    InvalidStateTransition,
    InvalidWithdrawalAmount,
    LedgerError,
    PersistenceFailure,
)
from ledger.db.session import get_db
from ledger.schemas.withdrawal import LedgerStatistics

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(title="Commission Ledger API", version="0.1.0")

# Include API routers
app.include_router(earnings_api.router, prefix="/api/v1/earnings", tags=["Earnings"])
app.include_router(beneficiaries_api.router, prefix="/api/v1/beneficiaries", tags=["Beneficiaries"])
app.include_router(withdrawals_api.router, prefix="/api/v1/withdrawals", tags=["Withdrawals"])

# Checked in order, so subclasses come before their parents.
_ERROR_STATUS_CODES = (
    (EarningNotFound, 404),
    (BeneficiaryNotFound, 404),
    (InvalidStateTransition, 409),
    (DuplicateSourceSale, 409),
    (InsufficientBalance, 400),
    (InvalidEarningInput, 400),
    (ConcurrencyConflict, 503),
    (PersistenceFailure, 500),
)

@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    status_code = next((code for error_type, code in _ERROR_STATUS_CODES if isinstance(exc, error_type)), 500)
    content = {"detail": exc.user_message, "code": exc.code}
    if isinstance(exc, DuplicateSourceSale) and exc.existing_earning_id is not None:
        content["existing_earning_id"] = exc.existing_earning_id
    if isinstance(exc, InsufficientBalance) and not isinstance(exc, InvalidWithdrawalAmount):
        content["available_balance"] = exc.available_amount
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=status_code, content=content)

@app.get("/ping", tags=["Health Check"])
async def ping():
    return {"message": "pong"}

@app.get("/api/v1/statistics", response_model=LedgerStatistics, tags=["Admin"])
def read_ledger_statistics(
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_admin)
):
    """
    Ledger-wide totals for the admin dashboard.
    """
    return balance.ledger_statistics(db)
