from datetime import date
from decimal import Decimal

import pytest

from aquadesk.core.exceptions import ClosingPreconditionFailedError, NotFoundError
from aquadesk.models.daily_closing import DailyClosing
from aquadesk.models.order import OrderType, PaymentMethod
from aquadesk.services.daily_closing_service import DailyClosingService
from aquadesk.services.order_service import OrderService

DAY = date(2026, 3, 10)


@pytest.fixture()
def orders(db, events, clock):
    return OrderService(db, events=events, clock=clock)


@pytest.fixture()
def closing(db, clock):
    return DailyClosingService(db, clock=clock)


def deliver(orders, customer, rider, amount, paid, method=PaymentMethod.CASH, bottles=1):
    order = orders.create_order(
        order_type=OrderType.DELIVERY,
        number_of_bottles=bottles,
        customer_id=customer.id,
        current_order_amount=Decimal(amount),
        rider_id=rider.id,
    )
    return orders.deliver_order(order.id, Decimal(paid), method)


def test_today_is_the_business_date(closing, clock):
    # 2026-03-10 21:00 UTC is already the 11th in Karachi
    clock.set(2026, 3, 10, 21, 0)
    assert closing.today() == date(2026, 3, 11)


def test_empty_day(closing):
    summary = closing.compute_summary(DAY)
    assert summary["can_close"] is True
    assert summary["already_exists"] is False
    assert summary["total_orders"] == 0
    assert summary["total_paid_amount"] == Decimal("0.00")
    assert summary["balance_movement_label"] == "Udhaar"
    assert summary["rider_collections"] == []


def test_open_order_blocks_closing(db, orders, closing, customer, rider):
    orders.create_order(
        order_type=OrderType.DELIVERY,
        number_of_bottles=2,
        customer_id=customer.id,
        current_order_amount=Decimal("200"),
        rider_id=rider.id,
    )

    summary = closing.compute_summary(DAY)
    assert summary["can_close"] is False
    assert summary["in_progress_orders_count"] == 1

    with pytest.raises(ClosingPreconditionFailedError) as exc:
        closing.save(DAY)
    assert "1 order(s) currently in progress" in exc.value.message
    assert db.query(DailyClosing).count() == 0


def test_summary_figures(orders, closing, clock, customer, other_customer, rider, second_rider):
    clock.set(2026, 3, 10, 5, 0)
    deliver(orders, customer, rider, "500", "300", bottles=5)
    clock.set(2026, 3, 10, 5, 10)
    deliver(orders, other_customer, second_rider, "300", "400", PaymentMethod.JAZZCASH, bottles=3)

    clock.set(2026, 3, 10, 5, 20)
    walk_in = orders.create_order(order_type=OrderType.WALKIN, number_of_bottles=2, unit_price=Decimal("100"))
    orders.complete_order(walk_in.id, Decimal("200"), PaymentMethod.CASH)

    clock.set(2026, 3, 10, 5, 30)
    cancelled = orders.create_order(
        order_type=OrderType.DELIVERY,
        number_of_bottles=1,
        customer_id=customer.id,
        current_order_amount=Decimal("100"),
    )
    orders.cancel_order(cancelled.id)

    clock.set(2026, 3, 10, 5, 40)
    orders.clear_bill(customer.id, Decimal("50"), PaymentMethod.CASH)

    summary = closing.compute_summary(DAY)

    assert summary["can_close"] is True
    assert summary["total_orders"] == 4
    assert summary["cancelled_orders"] == 1
    assert summary["total_bottles"] == 10
    assert summary["total_current_order_amount"] == Decimal("1000.00")
    assert summary["total_paid_amount"] == Decimal("950.00")
    assert summary["balance_cleared_today"] == Decimal("50.00")
    assert summary["balance_movement_label"] == "Udhaar"
    assert summary["walk_in_amount"] == Decimal("200.00")
    assert summary["clear_bill_amount"] == Decimal("50.00")
    assert summary["customer_receivable"] == Decimal("150.00")
    assert summary["customer_payable"] == Decimal("100.00")

    riders = {r["rider_id"]: r for r in summary["rider_collections"]}
    assert riders[rider.id]["amount"] == Decimal("300.00")
    assert riders[rider.id]["rider_name"] == "Bilal"
    assert riders[second_rider.id]["amount"] == Decimal("400.00")
    assert riders[second_rider.id]["orders_count"] == 1

    methods = {m["method"]: m for m in summary["payment_methods"]}
    assert methods["CASH"]["amount"] == Decimal("550.00")
    assert methods["CASH"]["orders_count"] == 3
    assert methods["JAZZCASH"]["amount"] == Decimal("400.00")


def test_recovery_day(db, orders, closing, clock, customer, rider):
    # yesterday's debt collected today
    clock.set(2026, 3, 9, 6, 0)
    deliver(orders, customer, rider, "500", "0", bottles=5)

    clock.set(2026, 3, 10, 6, 0)
    orders.clear_bill(customer.id, Decimal("500"), PaymentMethod.CASH)

    summary = closing.compute_summary(DAY)
    assert summary["total_current_order_amount"] == Decimal("0.00")
    assert summary["total_paid_amount"] == Decimal("500.00")
    assert summary["balance_cleared_today"] == Decimal("-500.00")
    assert summary["balance_movement_label"] == "Recovery"


def test_business_day_boundaries(orders, closing, clock, customer, rider):
    # 18:59 UTC on the 9th is 23:59 PKT on the 9th
    clock.set(2026, 3, 9, 18, 59)
    deliver(orders, customer, rider, "100", "100")
    # 19:00 UTC on the 9th is midnight PKT on the 10th
    clock.set(2026, 3, 9, 19, 0)
    deliver(orders, customer, rider, "200", "200")
    # 18:59 UTC on the 10th is still the 10th in Karachi
    clock.set(2026, 3, 10, 18, 59)
    deliver(orders, customer, rider, "300", "300")
    clock.set(2026, 3, 10, 19, 0)
    deliver(orders, customer, rider, "400", "400")

    assert closing.compute_summary(date(2026, 3, 9))["total_paid_amount"] == Decimal("100.00")
    assert closing.compute_summary(DAY)["total_paid_amount"] == Decimal("500.00")
    assert closing.compute_summary(date(2026, 3, 11))["total_paid_amount"] == Decimal("400.00")


def test_open_order_from_another_day_does_not_block(orders, closing, clock, customer, rider):
    clock.set(2026, 3, 9, 6, 0)
    orders.create_order(
        order_type=OrderType.DELIVERY,
        number_of_bottles=1,
        customer_id=customer.id,
        current_order_amount=Decimal("100"),
    )
    assert closing.compute_summary(DAY)["can_close"] is True
    assert closing.compute_summary(date(2026, 3, 9))["can_close"] is False


def test_save_is_an_upsert(db, orders, closing, clock, customer, rider):
    deliver(orders, customer, rider, "500", "300", bottles=5)

    first = closing.save(DAY)
    assert first.closing_date == DAY
    assert first.total_paid_amount == Decimal("300.00")
    assert first.rider_collections[0]["rider_id"] == rider.id
    assert Decimal(first.rider_collections[0]["amount"]) == Decimal("300.00")
    assert closing.compute_summary(DAY)["already_exists"] is True

    clock.set(2026, 3, 10, 9, 0)
    deliver(orders, customer, rider, "100", "300")

    second = closing.save(DAY)
    assert second.id == first.id
    assert second.total_orders == 2
    assert second.total_paid_amount == Decimal("600.00")
    assert db.query(DailyClosing).count() == 1


def test_save_defaults_to_today(closing):
    saved = closing.save()
    assert saved.closing_date == DAY


def test_list_and_get(closing):
    closing.save(date(2026, 3, 8))
    closing.save(date(2026, 3, 9))

    closings, total = closing.list_closings()
    assert total == 2
    assert [c.closing_date for c in closings] == [date(2026, 3, 9), date(2026, 3, 8)]
    assert closing.get_closing(date(2026, 3, 8)).closing_date == date(2026, 3, 8)

    with pytest.raises(NotFoundError):
        closing.get_closing(date(2026, 1, 1))
