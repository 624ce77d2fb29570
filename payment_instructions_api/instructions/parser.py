"""
Instruction grammar parsing.

Two fixed keyword grammars are supported:

    DEBIT <amount> <currency> FROM ACCOUNT <id> FOR CREDIT TO ACCOUNT <id> [ON <date>]
    CREDIT <amount> <currency> TO ACCOUNT <id> FOR DEBIT FROM ACCOUNT <id> [ON <date>]

Each grammar is a tuple of steps run by GrammarMatcher, a small state machine
over the token list. The state is the grammar position plus a cursor into the
tokens; every step either advances the cursor or fails with a status code.
"""

import re
from enum import Enum
from typing import NamedTuple, Optional

from ..models import ParsedInstruction
from ..status import REASONS, InstructionType, StatusCode

MIN_TOKENS = 7

# Tokens 0-2 are type, amount and currency
GRAMMAR_START = 3

# Digit cap matches the interpreter's default int-from-string limit
AMOUNT_PATTERN = re.compile(r"[+-]?[0-9]{1,4300}")
ACCOUNT_ID_PATTERN = re.compile(r"[A-Za-z0-9\-.@]+")
DATE_PATTERN = re.compile(r"([0-9]{4})-([0-9]{2})-([0-9]{2})")


class Action(Enum):
    SEARCH = "search"  # first occurrence at or after the cursor
    EXPECT = "expect"  # exactly at the cursor
    ACCOUNT = "account"  # account id at the cursor, stored in a field


class Step(NamedTuple):
    action: Action
    value: str  # keyword, or the field name for ACCOUNT steps


GRAMMARS: dict[InstructionType, tuple[Step, ...]] = {
    InstructionType.DEBIT: (
        Step(Action.SEARCH, "FROM"),
        Step(Action.EXPECT, "ACCOUNT"),
        Step(Action.ACCOUNT, "debit_account"),
        Step(Action.SEARCH, "FOR"),
        Step(Action.EXPECT, "CREDIT"),
        Step(Action.EXPECT, "TO"),
        Step(Action.EXPECT, "ACCOUNT"),
        Step(Action.ACCOUNT, "credit_account"),
    ),
    InstructionType.CREDIT: (
        Step(Action.SEARCH, "TO"),
        Step(Action.EXPECT, "ACCOUNT"),
        Step(Action.ACCOUNT, "credit_account"),
        Step(Action.SEARCH, "FOR"),
        Step(Action.EXPECT, "DEBIT"),
        Step(Action.EXPECT, "FROM"),
        Step(Action.EXPECT, "ACCOUNT"),
        Step(Action.ACCOUNT, "debit_account"),
    ),
}


class GrammarError(Exception):
    """Raised by GrammarMatcher when a step fails."""

    def __init__(self, status_code: StatusCode, reason: Optional[str] = None):
        self.status_code = status_code
        self.reason = reason or REASONS[status_code]
        super().__init__(self.reason)


def tokenize(instruction: str) -> list[str]:
    """Split on runs of whitespace"""
    return instruction.split()


def parse_amount(token: str) -> Optional[int]:
    """
    Parse an amount token as a base-10 integer.

    Decimal amounts ("10.50"), digit separators and anything other than an
    optional sign followed by digits return None. Sign is kept so the
    validator can report non-positive amounts.
    """
    if not AMOUNT_PATTERN.fullmatch(token):
        return None
    try:
        return int(token)
    except ValueError:
        # the limit can be lowered with sys.set_int_max_str_digits
        return None


def is_valid_account_id(account_id: Optional[str]) -> bool:
    """Letters, digits, '-', '.' and '@' only"""
    if not account_id:
        return False
    return ACCOUNT_ID_PATTERN.fullmatch(account_id) is not None


def parse_date(token: Optional[str]) -> Optional[str]:
    """
    Validate a YYYY-MM-DD token and return it unchanged.

    Month must be 1-12 and day 1-31; days per month are not checked.
    """
    if token is None:
        return None
    match = DATE_PATTERN.fullmatch(token)
    if not match:
        return None
    month, day = int(match.group(2)), int(match.group(3))
    if not 1 <= month <= 12 or not 1 <= day <= 31:
        return None
    return token


class GrammarMatcher:
    """Runs a grammar over the tokens of one instruction."""

    def __init__(self, tokens: list[str]):
        self.tokens = tokens
        self.lowered = [t.lower() for t in tokens]
        self.cursor = GRAMMAR_START
        self.previous: Optional[str] = None

    def run(self, grammar: tuple[Step, ...], fields: dict) -> None:
        """
        Apply each step in order, writing account ids into fields.

        Raises:
            GrammarError: on the first step that does not match. fields keeps
                whatever was resolved before the failure.
        """
        for step in grammar:
            if step.action is Action.SEARCH:
                self._search(step.value)
            elif step.action is Action.EXPECT:
                self._expect(step.value)
            else:
                fields[step.value] = self._account_id()

    def _search(self, keyword: str) -> None:
        try:
            index = self.lowered.index(keyword.lower(), self.cursor)
        except ValueError:
            raise GrammarError(
                StatusCode.SY01, f"Missing required keyword {keyword}"
            ) from None
        self.cursor = index + 1
        self.previous = keyword

    def _expect(self, keyword: str) -> None:
        if self._lowered_at(self.cursor) != keyword.lower():
            raise GrammarError(
                StatusCode.SY02,
                f"Invalid keyword order: {self.previous} must be followed by {keyword}",
            )
        self.cursor += 1
        self.previous = keyword

    def _account_id(self) -> str:
        if self.cursor >= len(self.tokens):
            raise GrammarError(StatusCode.SY03)
        account_id = self.tokens[self.cursor]
        if not is_valid_account_id(account_id):
            raise GrammarError(StatusCode.AC04)
        self.cursor += 1
        self.previous = None
        return account_id

    def _lowered_at(self, index: int) -> Optional[str]:
        if index < len(self.lowered):
            return self.lowered[index]
        return None

    def schedule(self) -> Optional[str]:
        """
        Read an optional ON <date> clause at the cursor.

        Anything other than ON at the cursor, and any trailing tokens, are
        ignored.
        """
        if self._lowered_at(self.cursor) != "on":
            return None
        date_index = self.cursor + 1
        token = self.tokens[date_index] if date_index < len(self.tokens) else None
        execute_by = parse_date(token)
        if execute_by is None:
            raise GrammarError(StatusCode.DT01)
        self.cursor = date_index + 1
        return execute_by


def _malformed() -> ParsedInstruction:
    return ParsedInstruction(
        status_code=StatusCode.SY03, status_reason=REASONS[StatusCode.SY03]
    )


def parse_instruction(instruction: str) -> ParsedInstruction:
    """
    Parse a payment instruction into a ParsedInstruction.

    Never raises: every input, including non-strings, produces a result with
    a status code. OK means the grammar matched fully; any other code
    describes the first problem found, with the fields resolved up to that
    point.
    """
    if not isinstance(instruction, str) or not instruction.strip():
        return _malformed()

    tokens = tokenize(instruction)
    if len(tokens) < MIN_TOKENS:
        return _malformed()

    try:
        instruction_type = InstructionType(tokens[0].upper())
    except ValueError:
        return _malformed()

    amount = parse_amount(tokens[1])
    if amount is None:
        return ParsedInstruction(
            type=instruction_type,
            status_code=StatusCode.AM01,
            status_reason=REASONS[StatusCode.AM01],
        )

    fields: dict = {
        "type": instruction_type,
        "amount": amount,
        "currency": tokens[2].upper(),
    }

    matcher = GrammarMatcher(tokens)
    try:
        matcher.run(GRAMMARS[instruction_type], fields)
        fields["execute_by"] = matcher.schedule()
    except GrammarError as e:
        if e.status_code == StatusCode.SY03:
            return _malformed()
        return ParsedInstruction(
            **fields, status_code=e.status_code, status_reason=e.reason
        )

    return ParsedInstruction(
        **fields,
        status_code=StatusCode.OK,
        status_reason=REASONS[StatusCode.OK],
    )
