"""
Validation and execution of parsed instructions against account records.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Iterable, Optional, Sequence

from ..models import Account, AccountOut, InstructionResponse, ParsedInstruction
from ..status import REASONS, Status, StatusCode

SUPPORTED_CURRENCIES = ("NGN", "USD", "GBP", "GHS")


def utc_today() -> date:
    """Current date in UTC"""
    return datetime.now(timezone.utc).date()


def find_account(accounts: Sequence[Account], account_id: Optional[str]) -> Optional[Account]:
    """First account with a matching id"""
    if account_id is None:
        return None
    return next((a for a in accounts if a.id == account_id), None)


def involved_accounts(
    accounts: Sequence[Account],
    debit_id: Optional[str],
    credit_id: Optional[str],
    transfer: Optional[tuple[Account, Account, int]] = None,
) -> list[AccountOut]:
    """
    Snapshot the accounts referenced by an instruction, in input order.

    transfer is (debited, credited, amount) when this call just moved funds;
    only those two objects report a balance_before different from balance.
    """

    def balance_before(account: Account) -> int:
        if transfer is not None:
            debited, credited, amount = transfer
            if account is debited:
                return account.balance + amount
            if account is credited:
                return account.balance - amount
        return account.balance

    return [
        AccountOut(
            id=a.id,
            balance=a.balance,
            balance_before=balance_before(a),
            currency=(a.currency or "").upper(),
        )
        for a in accounts
        if a.id in (debit_id, credit_id)
    ]


def schedule_date(execute_by: str) -> date:
    """
    Calendar date for a YYYY-MM-DD token.

    Days past the end of the month roll over into the next one, so
    2025-02-31 is 2025-03-03. Year 0000 is clamped to year 1.
    """
    year, month, day = (int(part) for part in execute_by.split("-"))
    return date(max(year, 1), month, 1) + timedelta(days=day - 1)


def _unsupported_currency_reason(supported: Iterable[str]) -> str:
    codes = list(supported)
    if len(codes) > 1:
        listed = f"{', '.join(codes[:-1])}, and {codes[-1]}"
    else:
        listed = "".join(codes)
    return f"Unsupported currency. Only {listed} are supported"


def apply_instruction(
    parsed: ParsedInstruction,
    accounts: Sequence[Account],
    today: Optional[date] = None,
    supported_currencies: Iterable[str] = SUPPORTED_CURRENCIES,
) -> InstructionResponse:
    """
    Validate a parsed instruction and execute it if it is due.

    Rules are checked in order and the first failure is returned:
    parse status, account lookup (AC03), supported currency (CU02),
    account currencies (CU01), distinct accounts (AC02), positive amount
    (AM01), sufficient funds (AC01). A valid instruction dated after
    `today` is reported pending (AP02); anything else is executed (AP00)
    by adjusting the balances of the matching Account objects in place.

    Args:
        parsed: Parser output
        accounts: Account records for this call; mutated only on AP00
        today: Reference date for scheduled instructions, UTC today if omitted
        supported_currencies: Currency codes transfers are allowed in

    Returns:
        InstructionResponse echoing the parsed fields and the involved accounts
    """
    response = InstructionResponse(
        type=parsed.type,
        amount=parsed.amount,
        currency=parsed.currency,
        debit_account=parsed.debit_account,
        credit_account=parsed.credit_account,
        execute_by=parsed.execute_by,
        status=Status.FAILED,
        status_code=parsed.status_code,
        status_reason=parsed.status_reason,
    )

    if not parsed.ok:
        return response

    debit_id, credit_id = parsed.debit_account, parsed.credit_account
    amount = parsed.amount
    currency = (parsed.currency or "").upper()

    def respond(
        status_code: StatusCode,
        reason: Optional[str] = None,
        status: Status = Status.FAILED,
    ) -> InstructionResponse:
        response.status = status
        response.status_code = status_code
        response.status_reason = reason or REASONS[status_code]
        response.accounts = involved_accounts(accounts, debit_id, credit_id)
        return response

    debit_account = find_account(accounts, debit_id)
    credit_account = find_account(accounts, credit_id)
    if debit_account is None or credit_account is None:
        return respond(StatusCode.AC03)

    supported = [c.upper() for c in supported_currencies]
    if currency not in supported:
        return respond(StatusCode.CU02, _unsupported_currency_reason(supported))

    debit_currency = (debit_account.currency or "").upper()
    credit_currency = (credit_account.currency or "").upper()
    if debit_currency != currency or credit_currency != currency:
        return respond(StatusCode.CU01)

    if debit_id == credit_id:
        return respond(StatusCode.AC02)

    if not isinstance(amount, int) or amount < 1:
        return respond(StatusCode.AM01)

    if not isinstance(debit_account.balance, int) or debit_account.balance < amount:
        return respond(
            StatusCode.AC01,
            f"Insufficient funds in debit account {debit_id}: "
            f"has {debit_account.balance} {debit_currency}, needs {amount} {currency}",
        )

    today = today or utc_today()
    if parsed.execute_by and schedule_date(parsed.execute_by) > today:
        return respond(StatusCode.AP02, status=Status.PENDING)

    debit_account.balance -= amount
    credit_account.balance += amount

    response.status = Status.SUCCESSFUL
    response.status_code = StatusCode.AP00
    response.status_reason = REASONS[StatusCode.AP00]
    response.accounts = involved_accounts(
        accounts, debit_id, credit_id, (debit_account, credit_account, amount)
    )
    return response
