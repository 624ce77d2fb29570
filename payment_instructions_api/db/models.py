"""SQLAlchemy models for the request audit log."""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, String, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class RequestLog(Base):
    """Log of every payment instruction request and its outcome."""

    __tablename__ = "request_logs"

    id: Mapped[int] = mapped_column(primary_key=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    # Input
    instruction: Mapped[str] = mapped_column(Text, nullable=False)
    accounts_snapshot: Mapped[Optional[str]] = mapped_column(
        Text, nullable=True
    )  # JSON, balances before the call

    # Parsed output
    parsed_type: Mapped[Optional[str]] = mapped_column(
        String(10), nullable=True
    )  # DEBIT or CREDIT
    parsed_amount: Mapped[Optional[int]] = mapped_column(nullable=True)
    parsed_currency: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    parsed_debit_account: Mapped[Optional[str]] = mapped_column(
        String(200), nullable=True
    )
    parsed_credit_account: Mapped[Optional[str]] = mapped_column(
        String(200), nullable=True
    )
    parsed_execute_by: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    # Result
    status: Mapped[Optional[str]] = mapped_column(
        String(20), nullable=True
    )  # successful, pending or failed
    status_code: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    status_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    response: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    latency_ms: Mapped[Optional[int]] = mapped_column(nullable=True)
    success: Mapped[bool] = mapped_column(default=False)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<RequestLog(id={self.id}, status_code={self.status_code})>"
