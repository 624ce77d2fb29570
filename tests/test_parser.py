import pytest

from payment_instructions_api.instructions.parser import (
    GRAMMARS,
    GrammarError,
    GrammarMatcher,
    is_valid_account_id,
    parse_amount,
    parse_date,
    parse_instruction,
    tokenize,
)
from payment_instructions_api.status import InstructionType, StatusCode


def test_debit_instruction_fields():
    parsed = parse_instruction(
        "DEBIT 500 USD FROM ACCOUNT N90394 FOR CREDIT TO ACCOUNT N9122"
    )
    assert parsed.type == InstructionType.DEBIT
    assert parsed.amount == 500
    assert parsed.currency == "USD"
    assert parsed.debit_account == "N90394"
    assert parsed.credit_account == "N9122"
    assert parsed.execute_by is None
    assert parsed.status_code == StatusCode.OK
    assert parsed.status_reason == "Parsed"


def test_credit_instruction_with_date():
    parsed = parse_instruction(
        "CREDIT 300 NGN TO ACCOUNT acc-002 FOR DEBIT FROM ACCOUNT acc-001 ON 2099-12-31"
    )
    assert parsed.type == InstructionType.CREDIT
    assert parsed.amount == 300
    assert parsed.currency == "NGN"
    assert parsed.credit_account == "acc-002"
    assert parsed.debit_account == "acc-001"
    assert parsed.execute_by == "2099-12-31"
    assert parsed.status_code == StatusCode.OK


def test_keywords_are_case_insensitive_and_spacing_collapses():
    parsed = parse_instruction(
        "  debit   10   usd from  account x.y@z for credit to account Q-1  "
    )
    assert parsed.status_code == StatusCode.OK
    assert parsed.type == InstructionType.DEBIT
    assert parsed.currency == "USD"
    assert parsed.debit_account == "x.y@z"
    assert parsed.credit_account == "Q-1"


@pytest.mark.parametrize(
    "instruction",
    [
        "",
        "   ",
        "DEBIT 10 USD FROM ACCOUNT a",
        "TRANSFER 10 USD FROM ACCOUNT a FOR CREDIT TO ACCOUNT b",
        "PAY 10 USD TO ACCOUNT b FOR DEBIT FROM ACCOUNT a",
    ],
)
def test_malformed_instructions(instruction):
    parsed = parse_instruction(instruction)
    assert parsed.status_code == StatusCode.SY03
    assert parsed.status_reason == "Malformed instruction: unable to parse keywords"
    assert parsed.type is None
    assert parsed.amount is None
    assert parsed.debit_account is None
    assert parsed.credit_account is None


def test_non_string_input_is_malformed():
    assert parse_instruction(None).status_code == StatusCode.SY03
    assert parse_instruction(42).status_code == StatusCode.SY03


@pytest.mark.parametrize("amount", ["10.50", "abc", "1_000", "10USD", "1,000"])
def test_invalid_amount_echoes_type_only(amount):
    parsed = parse_instruction(
        f"CREDIT {amount} USD TO ACCOUNT b FOR DEBIT FROM ACCOUNT a"
    )
    assert parsed.status_code == StatusCode.AM01
    assert parsed.status_reason == "Amount must be a positive integer"
    assert parsed.type == InstructionType.CREDIT
    assert parsed.amount is None
    assert parsed.currency is None


def test_negative_amount_is_left_for_validation():
    parsed = parse_instruction("DEBIT -5 USD FROM ACCOUNT a FOR CREDIT TO ACCOUNT b")
    assert parsed.status_code == StatusCode.OK
    assert parsed.amount == -5


def test_missing_from_keyword():
    parsed = parse_instruction("DEBIT 10 usd ACCOUNT a FOR CREDIT TO ACCOUNT b")
    assert parsed.status_code == StatusCode.SY01
    assert parsed.status_reason == "Missing required keyword FROM"
    assert parsed.type == InstructionType.DEBIT
    assert parsed.amount == 10
    assert parsed.currency == "USD"
    assert parsed.debit_account is None


def test_missing_for_keyword():
    parsed = parse_instruction("DEBIT 10 USD FROM ACCOUNT a CREDIT TO ACCOUNT b")
    assert parsed.status_code == StatusCode.SY01
    assert parsed.status_reason == "Missing required keyword FOR"


def test_missing_to_keyword_in_credit_grammar():
    parsed = parse_instruction("CREDIT 10 USD ACCOUNT b FOR DEBIT FROM ACCOUNT a")
    assert parsed.status_code == StatusCode.SY01
    assert parsed.status_reason == "Missing required keyword TO"


def test_from_must_be_followed_by_account():
    parsed = parse_instruction("DEBIT 10 USD FROM a ACCOUNT FOR CREDIT TO ACCOUNT b")
    assert parsed.status_code == StatusCode.SY02
    assert parsed.status_reason == "Invalid keyword order: FROM must be followed by ACCOUNT"
    assert parsed.currency == "USD"


def test_for_must_be_followed_by_credit():
    parsed = parse_instruction("DEBIT 10 USD FROM ACCOUNT a FOR DEBIT TO ACCOUNT b")
    assert parsed.status_code == StatusCode.SY02
    assert parsed.status_reason == "Invalid keyword order: FOR must be followed by CREDIT"


def test_credit_grammar_requires_from_right_after_debit():
    parsed = parse_instruction(
        "CREDIT 10 USD TO ACCOUNT b FOR DEBIT NOW FROM ACCOUNT a"
    )
    assert parsed.status_code == StatusCode.SY02
    assert parsed.status_reason == "Invalid keyword order: DEBIT must be followed by FROM"


def test_first_keyword_is_searched_not_adjacent():
    parsed = parse_instruction(
        "DEBIT 10 USD please FROM ACCOUNT a FOR CREDIT TO ACCOUNT b"
    )
    assert parsed.status_code == StatusCode.OK
    assert parsed.debit_account == "a"


def test_invalid_first_account_id():
    parsed = parse_instruction("DEBIT 10 USD FROM ACCOUNT a#1 FOR CREDIT TO ACCOUNT b")
    assert parsed.status_code == StatusCode.AC04
    assert parsed.status_reason == "Invalid account ID format"
    assert parsed.debit_account is None
    assert parsed.credit_account is None
    assert parsed.amount == 10


def test_invalid_second_account_id_echoes_first():
    parsed = parse_instruction("DEBIT 10 USD FROM ACCOUNT a FOR CREDIT TO ACCOUNT b$")
    assert parsed.status_code == StatusCode.AC04
    assert parsed.debit_account == "a"
    assert parsed.credit_account is None


def test_missing_account_id_token_is_malformed():
    parsed = parse_instruction("DEBIT 10 USD FROM ACCOUNT a FOR CREDIT TO ACCOUNT")
    assert parsed.status_code == StatusCode.SY03
    assert parsed.type is None


@pytest.mark.parametrize(
    "suffix", ["ON 2025-13-01", "ON 2025-1-01", "ON 25-01-01", "ON 2025/01/01", "ON"]
)
def test_invalid_date(suffix):
    parsed = parse_instruction(
        f"DEBIT 10 USD FROM ACCOUNT a FOR CREDIT TO ACCOUNT b {suffix}"
    )
    assert parsed.status_code == StatusCode.DT01
    assert parsed.status_reason == "Invalid date format"
    assert parsed.debit_account == "a"
    assert parsed.credit_account == "b"
    assert parsed.execute_by is None


def test_date_without_calendar_check():
    parsed = parse_instruction(
        "DEBIT 10 USD FROM ACCOUNT a FOR CREDIT TO ACCOUNT b on 2025-02-31"
    )
    assert parsed.status_code == StatusCode.OK
    assert parsed.execute_by == "2025-02-31"


def test_trailing_tokens_without_on_are_ignored():
    parsed = parse_instruction(
        "DEBIT 10 USD FROM ACCOUNT a FOR CREDIT TO ACCOUNT b PLEASE ON 2099-01-01"
    )
    assert parsed.status_code == StatusCode.OK
    assert parsed.execute_by is None


@pytest.mark.parametrize(
    "instruction",
    [
        "DEBIT",
        "debit credit debit credit debit credit debit",
        "CREDIT 1 X TO TO TO TO TO",
        "DEBIT 1 X FROM ACCOUNT FROM ACCOUNT FOR CREDIT",
        "\t\n",
        "CREDIT 5 USD TO ACCOUNT b FOR DEBIT FROM ACCOUNT a ON",
        "DEBIT 99999999999999999999 USD FROM ACCOUNT a FOR CREDIT TO ACCOUNT b",
        "DEBIT " + "9" * 5000 + " USD FROM ACCOUNT a FOR CREDIT TO ACCOUNT b",
    ],
)
def test_parsing_is_total(instruction):
    parsed = parse_instruction(instruction)
    assert parsed.status_code


def test_tokenize_collapses_whitespace():
    assert tokenize(" DEBIT  10\tUSD \n") == ["DEBIT", "10", "USD"]


def test_parse_amount():
    assert parse_amount("500") == 500
    assert parse_amount("+7") == 7
    assert parse_amount("-3") == -3
    assert parse_amount("1.0") is None
    assert parse_amount("") is None
    assert parse_amount("١٢") is None  # non-ASCII digits
    assert parse_amount("9" * 5000) is None


def test_account_id_format():
    assert is_valid_account_id("N90394")
    assert is_valid_account_id("user.name@bank-1")
    assert not is_valid_account_id("")
    assert not is_valid_account_id(None)
    assert not is_valid_account_id("a_b")
    assert not is_valid_account_id("a/b")


def test_parse_date():
    assert parse_date("2024-12-31") == "2024-12-31"
    assert parse_date("2024-00-10") is None
    assert parse_date("2024-01-32") is None
    assert parse_date("2024-1-1") is None
    assert parse_date(None) is None


def test_matcher_stops_at_failing_state():
    tokens = tokenize("DEBIT 10 USD FROM ACCOUNT a FOR CREDIT FROM ACCOUNT b")
    matcher = GrammarMatcher(tokens)
    fields = {}
    with pytest.raises(GrammarError) as exc_info:
        matcher.run(GRAMMARS[InstructionType.DEBIT], fields)
    assert exc_info.value.status_code == StatusCode.SY02
    assert exc_info.value.reason == "Invalid keyword order: CREDIT must be followed by TO"
    assert fields == {"debit_account": "a"}
    # cursor sits on the offending token
    assert tokens[matcher.cursor] == "FROM"


def test_matcher_cursor_after_full_grammar():
    tokens = tokenize("CREDIT 10 USD TO ACCOUNT b FOR DEBIT FROM ACCOUNT a ON 2030-01-01")
    matcher = GrammarMatcher(tokens)
    fields = {}
    matcher.run(GRAMMARS[InstructionType.CREDIT], fields)
    assert fields == {"credit_account": "b", "debit_account": "a"}
    assert matcher.schedule() == "2030-01-01"
    assert matcher.cursor == len(tokens)


def test_amount_past_digit_limit_is_invalid_amount():
    parsed = parse_instruction(
        "DEBIT " + "9" * 5000 + " USD FROM ACCOUNT a FOR CREDIT TO ACCOUNT b"
    )
    assert parsed.status_code == StatusCode.AM01
    assert parsed.type == InstructionType.DEBIT
    assert parsed.amount is None
