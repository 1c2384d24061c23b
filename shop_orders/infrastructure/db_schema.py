from sqlalchemy import Table, Column, String, Integer, Enum, DateTime, Numeric, ForeignKey, MetaData
from sqlalchemy.sql import func

from shop_orders.domain.models import OrderStatus, PaymentStatus

metadata = MetaData()

MONEY = Numeric(12, 2, asdecimal=True)


orders_tbl = Table(
    "orders",
    metadata,
    Column("id", String, primary_key=True),
    Column("order_number", String, unique=True, nullable=False, index=True),
    Column("user_id", String, nullable=False, index=True),
    Column("status", Enum(OrderStatus), nullable=False, default=OrderStatus.PENDING),
    Column("payment_status", Enum(PaymentStatus), nullable=False, default=PaymentStatus.PENDING),
    Column("subtotal", MONEY, nullable=False),
    Column("tax_amount", MONEY, nullable=False),
    Column("shipping_cost", MONEY, nullable=False),
    Column("discount_code", String, nullable=True),
    Column("discount_amount", MONEY, nullable=True),
    Column("total", MONEY, nullable=False),
    Column("tracking_number", String, nullable=True),
    # Адрес доставки неизменяем, храним плоско
    Column("shipping_street", String, nullable=False),
    Column("shipping_city", String, nullable=False),
    Column("shipping_state", String, nullable=False),
    Column("shipping_postal_code", String, nullable=False),
    Column("shipping_country", String, nullable=False),
    Column("version", Integer, nullable=False, default=1),
    Column("created_at", DateTime(timezone=True), server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), server_default=func.now(), onupdate=func.now()),
    Column("paid_at", DateTime(timezone=True), nullable=True),
    Column("shipped_at", DateTime(timezone=True), nullable=True),
    Column("delivered_at", DateTime(timezone=True), nullable=True),
    Column("cancelled_at", DateTime(timezone=True), nullable=True)
)


order_items_tbl = Table(
    "order_items",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("order_id", String, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("position", Integer, nullable=False),
    Column("product_id", String, nullable=False),
    Column("product_name", String, nullable=False),
    Column("product_sku", String, nullable=False),
    Column("unit_price", MONEY, nullable=False),
    Column("quantity", Integer, nullable=False),
    Column("subtotal", MONEY, nullable=False)
)
