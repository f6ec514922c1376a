from datetime import datetime, timezone
from enum import Enum

from pydantic import field_validator
from sqlalchemy import Index, text
from sqlmodel import Field, Relationship, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TableStatus(str, Enum):
    free = "free"
    occupied = "occupied"
    reserved = "reserved"


class OrderType(str, Enum):
    dine_in = "dine_in"
    takeaway = "takeaway"


class OrderStatus(str, Enum):
    created = "created"
    in_progress = "in_progress"  # Kitchen is cooking
    ready = "ready"  # Kitchen finished, waiting to be served/paid
    completed = "completed"  # Only reachable through payment


class PaymentMethod(str, Enum):
    cash = "cash"
    upi = "upi"
    card = "card"


class PaymentStatus(str, Enum):
    pending = "pending"
    completed = "completed"
    failed = "failed"


# ============ MASTER DATA ============

class Branch(SQLModel, table=True):
    id: int | None = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    address: str | None = None
    created_at: datetime = Field(default_factory=utcnow)


class User(SQLModel, table=True):
    """Staff member (cashier, waiter, kitchen)."""
    id: int | None = Field(default=None, primary_key=True)
    name: str
    email: str = Field(unique=True, index=True)
    hashed_password: str
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=utcnow)


class Terminal(SQLModel, table=True):
    id: int | None = Field(default=None, primary_key=True)
    name: str  # e.g. "Counter 1"
    branch_id: int = Field(foreign_key="branch.id", index=True)
    # Bound only while a session is open on this terminal
    user_id: int | None = Field(default=None, foreign_key="user.id")
    created_at: datetime = Field(default_factory=utcnow)


class PosSession(SQLModel, table=True):
    __tablename__ = "pos_session"
    __table_args__ = (
        # At most one open session per terminal
        Index(
            "uq_pos_session_open_terminal",
            "terminal_id",
            unique=True,
            postgresql_where=text("closed_at IS NULL"),
            sqlite_where=text("closed_at IS NULL"),
        ),
    )

    id: int | None = Field(default=None, primary_key=True)
    terminal_id: int = Field(foreign_key="terminal.id", index=True)
    opened_by_user_id: int | None = Field(default=None, foreign_key="user.id")
    opened_at: datetime = Field(default_factory=utcnow)
    closed_at: datetime | None = Field(default=None, index=True)
    total_sales_cents: int = Field(default=0)  # Computed once, at close time

    @property
    def is_open(self) -> bool:
        return self.closed_at is None


class Floor(SQLModel, table=True):
    """Restaurant floor/zone (e.g., Ground Floor, Terrace)"""
    id: int | None = Field(default=None, primary_key=True)
    name: str
    branch_id: int = Field(foreign_key="branch.id", index=True)
    sort_order: int = Field(default=0)


class Table(SQLModel, table=True):
    id: int | None = Field(default=None, primary_key=True)
    floor_id: int = Field(foreign_key="floor.id", index=True)
    table_number: str  # e.g. "T5"
    seats: int = Field(default=4)
    status: TableStatus = Field(default=TableStatus.free, index=True)


class Category(SQLModel, table=True):
    id: int | None = Field(default=None, primary_key=True)
    name: str = Field(index=True)


class Product(SQLModel, table=True):
    id: int | None = Field(default=None, primary_key=True)
    name: str
    price_cents: int
    is_active: bool = Field(default=True, index=True)
    category_id: int | None = Field(default=None, foreign_key="category.id")


class Customer(SQLModel, table=True):
    id: int | None = Field(default=None, primary_key=True)
    name: str
    phone: str | None = Field(default=None, index=True)
    email: str | None = None


# ============ ORDERS & PAYMENTS ============

class Order(SQLModel, table=True):
    id: int | None = Field(default=None, primary_key=True)
    branch_id: int = Field(foreign_key="branch.id", index=True)
    session_id: int = Field(foreign_key="pos_session.id", index=True)
    table_id: int | None = Field(default=None, foreign_key="table.id", index=True)  # Dine-in only
    customer_id: int | None = Field(default=None, foreign_key="customer.id")
    order_type: OrderType
    status: OrderStatus = Field(default=OrderStatus.created, index=True)
    # Always equals sum(price_cents * quantity) over items
    total_cents: int = Field(default=0)
    created_by_user_id: int | None = Field(default=None, foreign_key="user.id")
    created_at: datetime = Field(default_factory=utcnow, index=True)
    updated_at: datetime = Field(default_factory=utcnow)

    items: list["OrderItem"] = Relationship(
        back_populates="order",
        sa_relationship_kwargs={"order_by": "OrderItem.id"},
    )
    payments: list["Payment"] = Relationship(
        back_populates="order",
        sa_relationship_kwargs={"order_by": "Payment.id"},
    )


class OrderItem(SQLModel, table=True):
    """Line item. Immutable once written."""
    id: int | None = Field(default=None, primary_key=True)
    order_id: int = Field(foreign_key="order.id", index=True)
    product_id: int = Field(foreign_key="product.id")
    product_name: str  # Snapshot of product name at order time
    quantity: int
    price_cents: int  # Snapshot of price at order time
    created_at: datetime = Field(default_factory=utcnow)

    order: Order = Relationship(back_populates="items")

    @property
    def line_total_cents(self) -> int:
        return self.price_cents * self.quantity


class Payment(SQLModel, table=True):
    id: int | None = Field(default=None, primary_key=True)
    order_id: int = Field(foreign_key="order.id", index=True)
    method: PaymentMethod
    amount_cents: int
    status: PaymentStatus = Field(default=PaymentStatus.pending)
    transaction_reference: str | None = None  # UPI/card reference, if any
    created_at: datetime = Field(default_factory=utcnow)

    order: Order = Relationship(back_populates="payments")


class Receipt(SQLModel, table=True):
    """Write-once record of an issued receipt."""
    id: int | None = Field(default=None, primary_key=True)
    order_id: int = Field(foreign_key="order.id", index=True)
    receipt_number: str = Field(unique=True, index=True)
    issued_at: datetime = Field(default_factory=utcnow)


# Request/Response Models
class SessionOpen(SQLModel):
    terminal_id: int
    # Defaults to the authenticated user
    staff_id: int | None = None


class PosSessionRead(SQLModel):
    id: int
    terminal_id: int
    opened_by_user_id: int | None
    opened_at: datetime
    closed_at: datetime | None
    total_sales_cents: int


class FloorRead(SQLModel):
    id: int
    name: str
    branch_id: int
    sort_order: int


class TableRead(SQLModel):
    id: int
    floor_id: int
    table_number: str
    seats: int
    status: TableStatus


class OrderItemCreate(SQLModel):
    product_id: int
    quantity: int

    @field_validator("quantity")
    @classmethod
    def quantity_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("quantity must be at least 1")
        return v


class OrderCreate(SQLModel):
    branch_id: int
    session_id: int
    order_type: OrderType
    table_id: int | None = None  # Required for dine-in, ignored for takeaway
    customer_id: int | None = None
    items: list[OrderItemCreate] = []


class OrderItemsAdd(SQLModel):
    items: list[OrderItemCreate]


class OrderStatusUpdate(SQLModel):
    status: OrderStatus


class OrderItemRead(SQLModel):
    id: int
    product_id: int
    product_name: str
    quantity: int
    price_cents: int
    line_total_cents: int


class OrderRead(SQLModel):
    id: int
    branch_id: int
    session_id: int
    table_id: int | None
    customer_id: int | None
    order_type: OrderType
    status: OrderStatus
    total_cents: int
    created_by_user_id: int | None
    created_at: datetime
    updated_at: datetime


class OrderReadWithItems(OrderRead):
    items: list[OrderItemRead] = []


class SessionReadWithOrders(PosSessionRead):
    orders: list[OrderRead] = []


class PaymentCreate(SQLModel):
    order_id: int
    amount_cents: int
    method: PaymentMethod
    transaction_reference: str | None = None

    @field_validator("amount_cents")
    @classmethod
    def amount_not_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("amount_cents cannot be negative")
        return v


class PaymentRead(SQLModel):
    id: int
    order_id: int
    method: PaymentMethod
    amount_cents: int
    status: PaymentStatus
    transaction_reference: str | None
    created_at: datetime


class ReceiptLine(SQLModel):
    name: str
    qty: int
    unit_price_cents: int
    line_total_cents: int


class ReceiptView(SQLModel):
    receipt_number: str
    issued_at: datetime
    order_id: int
    branch_id: int
    branch_name: str | None = None
    table: str  # Table number, or "Takeaway"
    order_type: OrderType
    status: OrderStatus
    items: list[ReceiptLine]
    total_cents: int
    payments: list[PaymentRead]
