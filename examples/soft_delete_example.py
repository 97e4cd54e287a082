#!/usr/bin/env python3
"""
Soft Delete Example - Soft Delete Toolkit

Walks through the life of a soft-deleted record:
- Filtered reads and the with_deleted opt-out
- Cascading a delete to dependent records
- Listeners and rules that veto a delete
- Restore, hard delete and retention-based purging
"""

from sqlalchemy import Column, ForeignKey, Integer, String, create_engine, select
from sqlalchemy.orm import declarative_base, relationship, sessionmaker

from softdelete_toolkit import (
    FindOptions,
    RetentionPolicy,
    SoftDeleteMixin,
    SoftDeleteService,
    register_soft_delete_listeners,
)
from softdelete_toolkit.soft_delete import BEFORE_DELETE

Base = declarative_base()


class Customer(Base, SoftDeleteMixin):
    """Customer whose orders are deleted along with it."""

    __tablename__ = "customers"

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False)
    tier = Column(String(20), default="standard")

    orders = relationship("Order", back_populates="customer", cascade="all, delete")


class Order(Base, SoftDeleteMixin):
    """Order placed by a customer."""

    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    reference = Column(String(20), nullable=False)
    customer_id = Column(Integer, ForeignKey("customers.id"))

    customer = relationship("Customer", back_populates="orders")


def demonstrate_soft_delete() -> None:
    """Show soft delete functionality."""
    print("🗑️  Soft Delete Example\n")

    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    Session = sessionmaker(bind=engine)
    register_soft_delete_listeners(Base, Session)
    session = Session()

    # 1. Create test data
    print("1️⃣ Creating Test Data:")

    acme = Customer(name="Acme Corp", tier="gold")
    acme.orders = [Order(reference="ORD-001"), Order(reference="ORD-002")]
    globex = Customer(name="Globex")
    session.add_all([acme, globex])
    session.commit()

    customers = SoftDeleteService(session, Customer)
    orders = customers.for_model(Order)
    print(f"  ✓ Created {customers.count()} customers and {orders.count()} orders\n")

    # 2. Soft delete with cascade
    print("2️⃣ Soft Deleting With Cascade:")

    customers.delete(acme)
    session.commit()

    print(f"  Active customers: {customers.count()}")
    print(f"  Active orders: {orders.count()}")
    everything = orders.count(FindOptions(with_deleted=True))
    print(f"  Orders kept in the table: {everything}\n")

    # 3. Reads skip deleted records unless asked
    print("3️⃣ Reading Deleted Records:")

    names = session.scalars(select(Customer.name)).all()
    print(f"  Default read: {names}")
    names = session.scalars(
        select(Customer.name).execution_options(with_deleted=True)
    ).all()
    print(f"  With deleted: {names}\n")

    # 4. Vetoing a delete
    print("4️⃣ Vetoing a Delete:")

    def protect_gold(event):
        if event.subject.tier == "gold":
            event.stop(False)

    customers.events.on(BEFORE_DELETE, protect_gold, model=Customer)
    customers.rules.add_delete(
        lambda record, options: record.name != "Globex" or "Globex is under audit"
    )

    print(f"  Delete Acme again: {customers.delete(acme)}")
    print(f"  Delete Globex: {customers.delete(globex)}")
    print(f"  Rule errors: {customers.rules.errors}\n")

    # 5. Restore
    print("5️⃣ Restoring:")

    customers.restore(acme)
    session.commit()
    print(f"  Acme deleted_date after restore: {acme.deleted_date!r}")
    print(f"  Active customers: {customers.count()}\n")

    # 6. Purging
    print("6️⃣ Purging Expired Records:")

    purged = orders.purge_expired(RetentionPolicy(retention_days=30))
    print(f"  Orders purged under a 30 day policy: {purged}")
    purged = orders.hard_delete_all(orders.now())
    session.commit()
    print(f"  Orders purged up to now: {purged}")

    session.close()
    print("\n✅ Soft delete demonstration complete!")


if __name__ == "__main__":
    demonstrate_soft_delete()
