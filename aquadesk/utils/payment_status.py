from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Union

from aquadesk.core.exceptions import InvalidAmountError
from aquadesk.models.order import PaymentMethod, PaymentStatus

CENT = Decimal("0.01")

AmountInput = Union[Decimal, int, float, str]


def to_money(value: AmountInput) -> Decimal:
    """
    Coerce input to a 2-decimal Decimal.

    Raises:
        InvalidAmountError on non-numeric, NaN or infinite input
    """
    if isinstance(value, bool):
        raise InvalidAmountError(f"Invalid amount: {value!r}")
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidAmountError(f"Invalid amount: {value!r}")

    if not amount.is_finite():
        raise InvalidAmountError(f"Invalid amount: {value!r}")

    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def to_positive_money(value: AmountInput, field: str = "Amount") -> Decimal:
    amount = to_money(value)
    if amount <= 0:
        raise InvalidAmountError(f"{field} must be greater than 0")
    return amount


def validate_payment_method(method) -> PaymentMethod:
    """Accepts a PaymentMethod or its name in any case ("cash", "Bank Transfer")."""
    if isinstance(method, PaymentMethod):
        return method
    if not method:
        raise InvalidAmountError("Payment method is required")

    method_key = str(method).strip().upper().replace(" ", "_")
    if method_key not in PaymentMethod.__members__:
        raise InvalidAmountError(f"Invalid payment method: {method}")
    return PaymentMethod[method_key]


def _sign(value: Decimal) -> int:
    return (value > 0) - (value < 0)


def derive_payment_status(total_amount: Decimal, paid_amount: Decimal) -> PaymentStatus:
    """
    Payment status of a settled order. Pure function of (total, paid).

    total == 0                          -> PAID (nothing owed either way)
    paid == 0                           -> NOT_PAID
    same sign, |paid| <  |total|        -> PARTIAL
    same sign, |paid| == |total|        -> PAID
    same sign, |paid| >  |total|        -> OVERPAID
    opposite signs                      -> REFUND
    """
    total = to_money(total_amount)
    paid = to_money(paid_amount)

    if total == 0:
        return PaymentStatus.PAID
    if paid == 0:
        return PaymentStatus.NOT_PAID
    if _sign(paid) != _sign(total):
        return PaymentStatus.REFUND
    if abs(paid) < abs(total):
        return PaymentStatus.PARTIAL
    if abs(paid) == abs(total):
        return PaymentStatus.PAID
    return PaymentStatus.OVERPAID


def balance_label(balance: Decimal) -> str:
    balance = to_money(balance)
    if balance > 0:
        return "Receivable"
    if balance < 0:
        return "Payable"
    return "Clear"
