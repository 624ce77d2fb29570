"""
Pydantic models for request/response handling.
"""

from typing import Optional
from pydantic import BaseModel, Field

from .status import InstructionType, Status, StatusCode


class Account(BaseModel):
    """Account record supplied with the request; balance is in minor units"""

    id: str
    balance: int
    currency: str


class PaymentInstructionRequest(BaseModel):
    """Incoming payment instruction with the accounts it may touch"""

    accounts: list[Account] = Field(default_factory=list)
    instruction: str = Field(
        default="",
        description="e.g. DEBIT 500 USD FROM ACCOUNT N90394 FOR CREDIT TO ACCOUNT N9122",
    )


class ParsedInstruction(BaseModel):
    """Structured result of parsing an instruction string"""

    type: Optional[InstructionType] = None
    amount: Optional[int] = None
    currency: Optional[str] = None
    debit_account: Optional[str] = None
    credit_account: Optional[str] = None
    execute_by: Optional[str] = None  # YYYY-MM-DD
    status_code: StatusCode
    status_reason: str

    @property
    def ok(self) -> bool:
        return self.status_code == StatusCode.OK


class AccountOut(BaseModel):
    """Post-state of an involved account"""

    id: str
    balance: int
    balance_before: int
    currency: str


class InstructionResponse(BaseModel):
    """Result of applying a payment instruction"""

    type: Optional[InstructionType] = None
    amount: Optional[int] = None
    currency: Optional[str] = None
    debit_account: Optional[str] = None
    credit_account: Optional[str] = None
    execute_by: Optional[str] = None
    status: Status
    status_reason: str
    status_code: StatusCode
    accounts: list[AccountOut] = Field(default_factory=list)
