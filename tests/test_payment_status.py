from decimal import Decimal

import pytest

from aquadesk.core.exceptions import InvalidAmountError
from aquadesk.models.order import PaymentMethod, PaymentStatus
from aquadesk.utils.payment_status import (
    balance_label,
    derive_payment_status,
    to_money,
    to_positive_money,
    validate_payment_method,
)


@pytest.mark.parametrize(
    "total, paid, expected",
    [
        ("0", "0", PaymentStatus.PAID),
        ("0", "50", PaymentStatus.PAID),
        ("300", "0", PaymentStatus.NOT_PAID),
        ("300", "100", PaymentStatus.PARTIAL),
        ("300", "300", PaymentStatus.PAID),
        ("300", "500", PaymentStatus.OVERPAID),
        ("300", "-50", PaymentStatus.REFUND),
        ("-200", "-200", PaymentStatus.PAID),
        ("-200", "-100", PaymentStatus.PARTIAL),
        ("-200", "-300", PaymentStatus.OVERPAID),
        ("-200", "100", PaymentStatus.REFUND),
        ("-200", "0", PaymentStatus.NOT_PAID),
    ],
)
def test_derive_payment_status(total, paid, expected):
    assert derive_payment_status(Decimal(total), Decimal(paid)) == expected


def test_to_money_quantizes_half_up():
    assert to_money("10.005") == Decimal("10.01")
    assert to_money(3) == Decimal("3.00")
    assert to_money(2.5) == Decimal("2.50")


@pytest.mark.parametrize("bad", ["abc", "", None, True, "NaN", "Infinity"])
def test_to_money_rejects_garbage(bad):
    with pytest.raises(InvalidAmountError):
        to_money(bad)


def test_to_positive_money():
    assert to_positive_money("1") == Decimal("1.00")
    with pytest.raises(InvalidAmountError):
        to_positive_money("0")
    with pytest.raises(InvalidAmountError):
        to_positive_money("-5", "Payment amount")


def test_validate_payment_method_accepts_names():
    assert validate_payment_method(PaymentMethod.CARD) == PaymentMethod.CARD
    assert validate_payment_method("cash") == PaymentMethod.CASH
    assert validate_payment_method("Bank Transfer") == PaymentMethod.BANK_TRANSFER
    assert validate_payment_method("jazzcash") == PaymentMethod.JAZZCASH


def test_validate_payment_method_rejects_unknown():
    with pytest.raises(InvalidAmountError):
        validate_payment_method("cheque")
    with pytest.raises(InvalidAmountError):
        validate_payment_method(None)


def test_balance_label():
    assert balance_label(Decimal("10")) == "Receivable"
    assert balance_label(Decimal("-0.01")) == "Payable"
    assert balance_label(Decimal("0")) == "Clear"
