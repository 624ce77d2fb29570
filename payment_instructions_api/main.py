"""
Payment Instructions - FastAPI Server

Parses free-text payment instructions such as

    DEBIT 500 USD FROM ACCOUNT N90394 FOR CREDIT TO ACCOUNT N9122

validates them against the account records sent with the request and
returns the transfer outcome with the post-state of the involved accounts.
Every request is recorded in an audit log database.
"""

import json
import time
from contextlib import asynccontextmanager
from datetime import date
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, HTTPException, Depends, Request, Response, Security
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.security import APIKeyHeader
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .config import settings
from .db import init_db, close_db, session_scope, RequestLog
from .instructions import process_instruction, utc_today
from .logging_config import get_logger, setup_logging
from .models import InstructionResponse, PaymentInstructionRequest
from .status import INTERNAL_ERROR_REASON, Status, StatusCode

INSTRUCTIONS_PATH = "/payment-instructions"

# Signed 64-bit range of the parsed_amount column
MAX_LOGGED_AMOUNT = 2**63 - 1

logger = get_logger("payment_instructions.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize and cleanup resources."""
    setup_logging(settings.log_level, settings.log_file)
    if not settings.disable_request_log:
        await init_db(settings.database_url)
    logger.info("Payment instructions service starting up")
    yield
    await close_db()
    logger.info("Payment instructions service shutting down")


app = FastAPI(
    title="Payment Instructions",
    description="Parse payment instructions and apply them to account balances",
    version="1.0.0",
    lifespan=lifespan,
)

# API Key security (optional - for protecting your endpoint)
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


async def verify_api_key(api_key: str = Security(api_key_header)):
    """Verify API key if one is configured"""
    if settings.api_key and api_key != settings.api_key:
        raise HTTPException(status_code=403, detail="Invalid API key")
    return api_key


def get_today() -> date:
    """Reference date for scheduled instructions"""
    return utc_today()


async def get_log_session() -> AsyncGenerator[Optional[AsyncSession], None]:
    """Audit log session, or None when request logging is disabled"""
    if settings.disable_request_log:
        yield None
        return
    async with session_scope() as session:
        yield session


def failed_response(status_code: StatusCode, reason: str) -> InstructionResponse:
    """Failure with no parsed fields and no accounts"""
    return InstructionResponse(
        status=Status.FAILED,
        status_code=status_code,
        status_reason=reason,
    )


def loggable_amount(amount: Optional[int]) -> Optional[int]:
    """Amount as stored in the audit log; out-of-range values are dropped"""
    if amount is None or abs(amount) > MAX_LOGGED_AMOUNT:
        return None
    return amount


def http_status_for(response: InstructionResponse) -> int:
    """Any failed instruction is a client error; successful and pending are 200"""
    return 400 if response.status == Status.FAILED else 200


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    if request.url.path != INSTRUCTIONS_PATH:
        return await request_validation_exception_handler(request, exc)

    logger.warning("Malformed payment instruction payload: %s", exc.errors())
    payload = failed_response(StatusCode.SY03, "Malformed request payload")
    return JSONResponse(status_code=400, content=payload.model_dump(mode="json"))


@app.post(INSTRUCTIONS_PATH, response_model=InstructionResponse)
async def payment_instructions(
    request: PaymentInstructionRequest,
    http_response: Response,
    today: date = Depends(get_today),
    db: Optional[AsyncSession] = Depends(get_log_session),
    _: str = Depends(verify_api_key),
) -> InstructionResponse:
    """
    Process a payment instruction:
    1. Parse the instruction text
    2. Validate it against the supplied accounts
    3. Execute it, or mark it pending if dated in the future
    4. Log the request to the audit database
    """
    start_time = time.time()

    # Snapshot before the executor mutates balances
    log_entry = RequestLog(
        instruction=request.instruction,
        accounts_snapshot=json.dumps([a.model_dump() for a in request.accounts]),
    )

    try:
        response = process_instruction(
            request.instruction,
            request.accounts,
            today=today,
            supported_currencies=settings.supported_currencies,
        )
    except Exception as e:
        logger.exception("Internal error processing payment instruction")
        log_entry.error_message = f"Internal error: {str(e)}"
        response = failed_response(StatusCode.SY03, INTERNAL_ERROR_REASON)

    log_entry.latency_ms = int((time.time() - start_time) * 1000)
    log_entry.parsed_type = response.type.value if response.type else None
    log_entry.parsed_amount = loggable_amount(response.amount)
    log_entry.parsed_currency = response.currency
    log_entry.parsed_debit_account = response.debit_account
    log_entry.parsed_credit_account = response.credit_account
    log_entry.parsed_execute_by = response.execute_by
    log_entry.status = response.status.value
    log_entry.status_code = response.status_code.value
    log_entry.status_reason = response.status_reason
    log_entry.response = response.model_dump_json()
    log_entry.success = response.status != Status.FAILED

    if db is not None:
        try:
            db.add(log_entry)
            await db.commit()
        except Exception:
            # drivers can raise outside SQLAlchemyError, e.g. sqlite OverflowError
            logger.exception("Failed to write request log")
            await db.rollback()

    http_response.status_code = http_status_for(response)
    logger.info(
        "payment-instruction-request-completed status=%s code=%s http=%s latency_ms=%s",
        response.status.value,
        response.status_code.value,
        http_response.status_code,
        log_entry.latency_ms,
    )
    return response


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy"}


def require_log_session(db: Optional[AsyncSession]) -> AsyncSession:
    if db is None:
        raise HTTPException(status_code=404, detail="Request logging is disabled")
    return db


@app.get("/logs")
async def get_logs(
    db: Optional[AsyncSession] = Depends(get_log_session),
    _: str = Depends(verify_api_key),
    limit: int = 100,
    offset: int = 0,
):
    """Get recent request logs for analysis."""
    db = require_log_session(db)

    try:
        stmt = (
            select(RequestLog)
            .order_by(RequestLog.created_at.desc(), RequestLog.id.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await db.execute(stmt)
        logs = result.scalars().all()
    except SQLAlchemyError as e:
        raise HTTPException(status_code=500, detail=f"Failed to fetch logs: {str(e)}")

    return [
        {
            "id": log.id,
            "created_at": log.created_at.isoformat() if log.created_at else None,
            "instruction": log.instruction[:100] + "..."
            if len(log.instruction) > 100
            else log.instruction,
            "parsed_type": log.parsed_type,
            "parsed_amount": log.parsed_amount,
            "status": log.status,
            "status_code": log.status_code,
            "success": log.success,
            "error_message": log.error_message,
            "latency_ms": log.latency_ms,
        }
        for log in logs
    ]


@app.get("/logs/{log_id}")
async def get_log_detail(
    log_id: int,
    db: Optional[AsyncSession] = Depends(get_log_session),
    _: str = Depends(verify_api_key),
):
    """Get full details of a specific log entry."""
    db = require_log_session(db)

    try:
        stmt = select(RequestLog).where(RequestLog.id == log_id)
        result = await db.execute(stmt)
        log = result.scalar_one_or_none()
    except SQLAlchemyError as e:
        raise HTTPException(
            status_code=500, detail=f"Failed to fetch log detail: {str(e)}"
        )

    if not log:
        raise HTTPException(status_code=404, detail="Log entry not found")

    return {
        "id": log.id,
        "created_at": log.created_at.isoformat() if log.created_at else None,
        "instruction": log.instruction,
        "accounts_snapshot": json.loads(log.accounts_snapshot)
        if log.accounts_snapshot
        else None,
        "parsed_type": log.parsed_type,
        "parsed_amount": log.parsed_amount,
        "parsed_currency": log.parsed_currency,
        "parsed_debit_account": log.parsed_debit_account,
        "parsed_credit_account": log.parsed_credit_account,
        "parsed_execute_by": log.parsed_execute_by,
        "status": log.status,
        "status_code": log.status_code,
        "status_reason": log.status_reason,
        "response": json.loads(log.response) if log.response else None,
        "latency_ms": log.latency_ms,
        "success": log.success,
        "error_message": log.error_message,
    }


# Run with: uvicorn payment_instructions_api.main:app --reload

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
