"""
store.py — Order Store (SQLAlchemy)

Persists order records in the `orders` table. Every public method runs in its own
transaction, so each operation is atomic for the single record it touches; no
multi-record transaction is offered.

"Not found" is a normal result here (`None` / `False`), database failures are not:
every SQLAlchemyError is rolled back and re-raised as PersistenceError.
"""

import json
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterator, List, Optional

from sqlalchemy import DateTime, Integer, Numeric, String, Text, create_engine, delete, select, text, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from .errors import PersistenceError
from .models import CartItem, Customer, Order, OrderDraft, OrderStatus

log = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class OrderRecord(Base):
    """Row of the `orders` table. The item snapshot is stored as JSON text."""
    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    username: Mapped[str] = mapped_column(String(255), nullable=False)
    city: Mapped[str] = mapped_column(String(255), nullable=False)
    district: Mapped[str] = mapped_column(String(255), nullable=False)
    phone_number: Mapped[str] = mapped_column(String(50), nullable=False)
    payment_method: Mapped[str] = mapped_column(String(50), nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    order_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=OrderStatus.PENDING.value,
    )
    cart_items: Mapped[str] = mapped_column(Text, nullable=False)
    external_authorization_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    @classmethod
    def from_draft(cls, draft: OrderDraft) -> "OrderRecord":
        customer = draft.customer
        return cls(
            email=customer.email,
            username=customer.name,
            city=customer.city,
            district=customer.district,
            phone_number=customer.phoneNumber,
            payment_method=draft.paymentMethod,
            total_amount=draft.totalAmount,
            order_status=draft.status.value,
            cart_items=json.dumps([item.model_dump(mode="json") for item in draft.items]),
            external_authorization_id=draft.externalAuthorizationId,
        )

    def to_model(self) -> Order:
        return Order(
            id=self.id,
            customer=Customer(
                email=self.email,
                name=self.username,
                city=self.city,
                district=self.district,
                phoneNumber=self.phone_number,
            ),
            items=[CartItem(**item) for item in json.loads(self.cart_items)],
            totalAmount=self.total_amount,
            paymentMethod=self.payment_method,
            status=OrderStatus(self.order_status),
            externalAuthorizationId=self.external_authorization_id,
            createdAt=self.created_at,
        )


def create_db_engine(database_url: str):
    """
    Creates the SQLAlchemy engine. SQLite connections are shared across the
    request threads; an in-memory database uses a single static connection.
    """
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, **kwargs)
    return create_engine(database_url, pool_pre_ping=True, pool_recycle=3600, pool_timeout=5)


class OrderStore:
    """Create, read, update and delete order records."""

    def __init__(self, engine):
        self.engine = engine
        self._session_factory = sessionmaker(engine, expire_on_commit=False)

    @classmethod
    def from_url(cls, database_url: str) -> "OrderStore":
        return cls(create_db_engine(database_url))

    def create_schema(self):
        """Creates the `orders` table if it does not exist."""
        try:
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as e:
            log.critical(f"Order-Tabelle konnte nicht angelegt werden: {e}")
            raise PersistenceError("Database error during schema creation", str(e)) from e

    @contextmanager
    def _session(self, operation: str) -> Iterator[Session]:
        """Session that commits on success and rolls back on any database error."""
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            log.error(f"DB-Fehler bei '{operation}': {e}")
            raise PersistenceError(f"Database error during order {operation}", str(e)) from e
        finally:
            session.close()

    def create(self, draft: OrderDraft) -> int:
        """
        Inserts a new order.
        Returns:
            int: The id assigned by the database.
        Raises:
            PersistenceError: If the insert fails.
        """
        with self._session("creation") as session:
            record = OrderRecord.from_draft(draft)
            session.add(record)
            session.flush()
            order_id = record.id
        return order_id

    def get(self, order_id: int) -> Optional[Order]:
        with self._session("retrieval") as session:
            record = session.get(OrderRecord, order_id)
            return record.to_model() if record is not None else None

    def list(self) -> List[Order]:
        with self._session("retrieval") as session:
            records = session.scalars(select(OrderRecord).order_by(OrderRecord.id)).all()
            return [record.to_model() for record in records]

    def update_status(self, order_id: int, status: OrderStatus) -> bool:
        """
        Overwrites the status of an order, whatever its current status is.
        Returns:
            bool: False if no order has this id.
        """
        with self._session("update") as session:
            result = session.execute(
                update(OrderRecord)
                .where(OrderRecord.id == order_id)
                .values(order_status=OrderStatus(status).value)
            )
            return result.rowcount > 0

    def delete(self, order_id: int) -> bool:
        """Deletes an order. Returns False if no order has this id."""
        with self._session("deletion") as session:
            result = session.execute(delete(OrderRecord).where(OrderRecord.id == order_id))
            return result.rowcount > 0

    def ping(self) -> bool:
        """Checks database connectivity (health endpoint)."""
        try:
            with self._session("health check") as session:
                session.execute(text("SELECT 1"))
            return True
        except PersistenceError:
            return False
