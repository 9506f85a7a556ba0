from decimal import Decimal
from typing import List, Tuple

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from aquadesk.common.events import LedgerChanged
from aquadesk.core.exceptions import NotFoundError
from aquadesk.logger_config import logger
from aquadesk.models.customer import Customer
from aquadesk.utils.payment_status import balance_label, to_money


class CustomerLedger:
    """
    Authoritative signed balance per customer.

    Positive = receivable (customer owes the business),
    negative = payable (business owes the customer).

    Mutations are staged on the session and never committed here: the order
    transition that triggers them commits order and customer together. The
    LedgerChanged events produced are held until the caller has committed
    and drains them.
    """

    def __init__(self, db: Session):
        self.db = db
        self._changes: List[LedgerChanged] = []

    # ================= READ =================

    def _get_customer(self, customer_id: str, for_update: bool = False) -> Customer:
        query = self.db.query(Customer).filter(Customer.id == customer_id)
        if for_update:
            query = query.with_for_update()
        customer = query.first()
        if not customer:
            logger.error(f"Ledger lookup failed: customer {customer_id} not found")
            raise NotFoundError(f"Customer {customer_id} not found")
        return customer

    def get_balance(self, customer_id: str) -> Decimal:
        customer = self._get_customer(customer_id)
        return to_money(customer.current_balance or 0)

    def get_label(self, customer_id: str) -> str:
        return balance_label(self.get_balance(customer_id))

    def totals(self) -> Tuple[Decimal, Decimal]:
        """(receivable, payable) across all customers; payable is returned as a positive figure."""
        row = self.db.query(
            func.coalesce(
                func.sum(case((Customer.current_balance > 0, Customer.current_balance), else_=0)), 0
            ),
            func.coalesce(
                func.sum(case((Customer.current_balance < 0, -Customer.current_balance), else_=0)), 0
            ),
        ).one()

        receivable, payable = to_money(row[0]), to_money(row[1])
        logger.debug(f"Ledger totals: receivable={receivable}, payable={payable}")
        return receivable, payable

    # ================= WRITE (staged, not committed) =================

    def apply_delta(self, customer_id: str, delta: Decimal) -> Decimal:
        customer = self._get_customer(customer_id, for_update=True)
        previous = to_money(customer.current_balance or 0)
        current = previous + to_money(delta)
        return self._set(customer, previous, current)

    def restore_balance(self, customer_id: str, balance: Decimal) -> Decimal:
        """Point restoration: put the balance back to an exact snapshot."""
        customer = self._get_customer(customer_id, for_update=True)
        previous = to_money(customer.current_balance or 0)
        return self._set(customer, previous, to_money(balance))

    def _set(self, customer: Customer, previous: Decimal, current: Decimal) -> Decimal:
        if current == previous:
            logger.debug(f"Ledger unchanged for {customer.id}: {previous}")
            return current

        customer.current_balance = current
        self._changes.append(
            LedgerChanged(customer_id=customer.id, previous_balance=previous, current_balance=current)
        )
        logger.info(
            f"Ledger staged - Customer: {customer.id}, "
            f"Balance: {previous} → {current} ({balance_label(current)})"
        )
        return current

    def drain_changes(self) -> List[LedgerChanged]:
        changes, self._changes = self._changes, []
        return changes

    def discard_changes(self) -> None:
        self._changes = []
