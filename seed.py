from aquadesk.core.database import Base, SessionLocal, engine
from aquadesk.models import Customer, DailyClosing, Order, OrderPriority, OrderType, PaymentMethod, Rider
from aquadesk.services.customer_service import create_customer
from aquadesk.services.order_service import OrderService
from aquadesk.services.rider_service import create_rider

from faker import Faker
from decimal import Decimal
import random

fake = Faker()
BOTTLE_PRICE = Decimal("100.00")


def _phone():
    return "03" + "".join(str(random.randint(0, 9)) for _ in range(9))


Base.metadata.create_all(bind=engine)
db = SessionLocal()

try:
    print("🔄 Clearing existing data...")
    db.query(DailyClosing).delete()
    db.query(Order).delete()
    db.query(Rider).delete()
    db.query(Customer).delete()
    db.commit()
    print("✅ Data cleared.")

    print("🔄 Creating customers and riders...")
    customers = [
        create_customer(
            db,
            name=fake.name(),
            phone=_phone(),
            house_no=str(random.randint(1, 400)),
            street_no=str(random.randint(1, 40)),
            area=fake.street_name(),
            city="Karachi",
            bottle_count=random.randint(1, 6),
            avg_days_to_refill=random.choice([3, 5, 7, 10]),
        )
        for _ in range(random.randint(20, 30))
    ]
    riders = [create_rider(db, name=fake.first_name(), phone=_phone()) for _ in range(4)]
    print(f"✅ Seeded {len(customers)} customers")
    print(f"✅ Seeded {len(riders)} riders")

    print("🔄 Creating orders...")
    service = OrderService(db)
    delivered = 0
    for customer in random.sample(customers, k=min(15, len(customers))):
        bottles = random.randint(1, 5)
        order = service.create_order(
            order_type=OrderType.DELIVERY,
            number_of_bottles=bottles,
            customer_id=customer.id,
            unit_price=BOTTLE_PRICE,
            priority=random.choice(list(OrderPriority)),
            rider_id=random.choice(riders).id,
        )
        if random.random() < 0.6:
            paid = random.choice([order.total_amount, order.current_order_amount, Decimal("0.00")])
            service.deliver_order(order.id, paid, random.choice(list(PaymentMethod)))
            delivered += 1

    walk_in = service.create_order(order_type=OrderType.WALKIN, number_of_bottles=2, unit_price=BOTTLE_PRICE)
    service.complete_order(walk_in.id, walk_in.total_amount, PaymentMethod.CASH)
    print(f"✅ Seeded orders ({delivered} delivered, 1 walk-in)")

except Exception as e:
    db.rollback()
    print(f"❌ Seeding failed: {e}")
    raise
finally:
    db.close()
