from datetime import date

from payment_instructions_api.instructions import process_instruction
from payment_instructions_api.models import Account
from payment_instructions_api.status import Status, StatusCode


def test_simple_debit_transaction():
    accounts = [
        Account(id="N90394", balance=1000, currency="USD"),
        Account(id="N9122", balance=500, currency="USD"),
    ]
    response = process_instruction(
        "DEBIT 500 USD FROM ACCOUNT N90394 FOR CREDIT TO ACCOUNT N9122", accounts
    )

    assert response.status == Status.SUCCESSFUL
    assert response.status_code == StatusCode.AP00
    by_id = {a.id: a for a in response.accounts}
    assert by_id["N90394"].balance == 500
    assert by_id["N9122"].balance == 1000


def test_future_on_date_is_pending():
    accounts = [
        Account(id="acc-001", balance=1000, currency="NGN"),
        Account(id="acc-002", balance=500, currency="NGN"),
    ]
    response = process_instruction(
        "CREDIT 300 NGN TO ACCOUNT acc-002 FOR DEBIT FROM ACCOUNT acc-001 ON 2099-12-31",
        accounts,
    )

    assert response.status == Status.PENDING
    assert response.status_code == StatusCode.AP02
    assert [a.balance for a in accounts] == [1000, 500]


def test_injected_today_decides_pending():
    instruction = "DEBIT 10 GHS FROM ACCOUNT x FOR CREDIT TO ACCOUNT y ON 2030-06-01"

    def fresh():
        return [
            Account(id="x", balance=10, currency="GHS"),
            Account(id="y", balance=0, currency="GHS"),
        ]

    before = process_instruction(instruction, fresh(), today=date(2030, 5, 31))
    on_the_day = process_instruction(instruction, fresh(), today=date(2030, 6, 1))

    assert before.status_code == StatusCode.AP02
    assert on_the_day.status_code == StatusCode.AP00


def test_currency_mismatch():
    accounts = [
        Account(id="a", balance=100, currency="USD"),
        Account(id="b", balance=500, currency="GBP"),
    ]
    response = process_instruction(
        "DEBIT 50 USD FROM ACCOUNT a FOR CREDIT TO ACCOUNT b", accounts
    )
    assert response.status_code == StatusCode.CU01


def test_insufficient_funds():
    accounts = [
        Account(id="a", balance=100, currency="USD"),
        Account(id="b", balance=500, currency="USD"),
    ]
    response = process_instruction(
        "DEBIT 500 USD FROM ACCOUNT a FOR CREDIT TO ACCOUNT b", accounts
    )
    assert response.status_code == StatusCode.AC01
    assert [a.balance for a in accounts] == [100, 500]


def test_unknown_first_keyword():
    response = process_instruction(
        "TRANSFER 10 USD FROM ACCOUNT a FOR CREDIT TO ACCOUNT b", []
    )
    assert response.status == Status.FAILED
    assert response.status_code == StatusCode.SY03
    assert response.accounts == []
    assert response.type is None
