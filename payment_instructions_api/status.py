"""
Closed sets of instruction types, outcome statuses and status codes.
"""

from enum import Enum


class InstructionType(str, Enum):
    """Which side of the transfer the instruction is phrased from"""

    DEBIT = "DEBIT"
    CREDIT = "CREDIT"


class Status(str, Enum):
    """Outcome of applying an instruction"""

    SUCCESSFUL = "successful"
    PENDING = "pending"
    FAILED = "failed"


class StatusCode(str, Enum):
    """
    Status codes grouped by family.

    SY*: syntax, AC*: account, CU*: currency, AM*: amount, DT*: date,
    AP*: applied or scheduled. OK is only produced by the parser.
    """

    OK = "OK"

    SY01 = "SY01"  # missing required keyword
    SY02 = "SY02"  # invalid keyword order
    SY03 = "SY03"  # malformed instruction

    AC01 = "AC01"  # insufficient funds
    AC02 = "AC02"  # same debit and credit account
    AC03 = "AC03"  # account not found
    AC04 = "AC04"  # invalid account id format

    CU01 = "CU01"  # account currency mismatch
    CU02 = "CU02"  # unsupported currency

    AM01 = "AM01"  # amount not a positive integer

    DT01 = "DT01"  # invalid date format

    AP00 = "AP00"  # executed
    AP02 = "AP02"  # scheduled for future execution


REASONS: dict[StatusCode, str] = {
    StatusCode.OK: "Parsed",
    StatusCode.SY03: "Malformed instruction: unable to parse keywords",
    StatusCode.AC02: "Debit and credit accounts cannot be the same",
    StatusCode.AC03: "Account not found",
    StatusCode.AC04: "Invalid account ID format",
    StatusCode.CU01: "Account currency mismatch",
    StatusCode.AM01: "Amount must be a positive integer",
    StatusCode.DT01: "Invalid date format",
    StatusCode.AP00: "Transaction executed successfully",
    StatusCode.AP02: "Transaction scheduled for future execution",
}

# Reasons for SY01, SY02, AC01 and CU02 carry details and are built where raised.

INTERNAL_ERROR_REASON = "Internal server error"
