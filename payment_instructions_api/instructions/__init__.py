"""
Payment instruction parsing and execution.
"""

from datetime import date
from typing import Iterable, Optional, Sequence

from ..logging_config import get_logger
from ..models import Account, InstructionResponse
from .executor import SUPPORTED_CURRENCIES, apply_instruction, utc_today
from .parser import parse_instruction

logger = get_logger("payment_instructions.service")


def process_instruction(
    instruction: str,
    accounts: Sequence[Account],
    today: Optional[date] = None,
    supported_currencies: Iterable[str] = SUPPORTED_CURRENCIES,
) -> InstructionResponse:
    """Parse an instruction and apply it to the given accounts."""
    parsed = parse_instruction(instruction)
    if not parsed.ok:
        logger.info(
            "Instruction rejected by parser: %s (%s)",
            parsed.status_code.value,
            parsed.status_reason,
        )

    response = apply_instruction(
        parsed, accounts, today=today, supported_currencies=supported_currencies
    )
    logger.info(
        "Instruction %s: code=%s type=%s debit=%s credit=%s amount=%s",
        response.status.value,
        response.status_code.value,
        response.type.value if response.type else None,
        response.debit_account,
        response.credit_account,
        response.amount,
    )
    return response


__all__ = [
    "SUPPORTED_CURRENCIES",
    "apply_instruction",
    "parse_instruction",
    "process_instruction",
    "utc_today",
]
