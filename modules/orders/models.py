from sqlalchemy import Boolean, Column, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship

from core.models import Base, TimestampMixin
from modules.clients.models import Client
from modules.products.models import Product


class Order(Base, TimestampMixin):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    client_id = Column(Integer, ForeignKey("clients.id", ondelete="SET NULL"), nullable=True)
    # Main product of the order; further products go in lines
    product_id = Column(Integer, ForeignKey("products.id", ondelete="RESTRICT"), nullable=True)
    quantity = Column(Integer, nullable=True)
    status = Column(String(32), nullable=False, default="pending")
    has_freight = Column(Boolean, nullable=False, default=False)
    freight_amount = Column(Numeric(14, 4), nullable=False, default=0)
    notes = Column(String(2048), nullable=True)
    # BV-<sequence>-<yy>; sequence restarts every year
    quote_number = Column(String(32), nullable=True, unique=True)
    quote_sequence = Column(Integer, nullable=True)
    quote_year = Column(Integer, nullable=True)

    product = relationship(Product)
    client = relationship(Client)
    lines = relationship("OrderLine", cascade="all, delete-orphan", back_populates="order", order_by="OrderLine.id")
    extra_items = relationship(
        "OrderExtraItem", cascade="all, delete-orphan", back_populates="order", order_by="OrderExtraItem.id"
    )
    taxes = relationship(
        "OrderTax",
        cascade="all, delete-orphan",
        back_populates="order",
        order_by="OrderTax.position",
    )
    status_history = relationship(
        "OrderStatusHistory", cascade="all, delete-orphan", back_populates="order", order_by="OrderStatusHistory.id"
    )


class OrderLine(Base, TimestampMixin):
    __tablename__ = "order_lines"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="RESTRICT"), nullable=False)
    quantity = Column(Integer, nullable=False)

    order = relationship("Order", back_populates="lines")
    product = relationship(Product)


class OrderExtraItem(Base, TimestampMixin):
    __tablename__ = "order_extra_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(String(1024), nullable=True)
    value = Column(Numeric(14, 4), nullable=False)

    order = relationship("Order", back_populates="extra_items")


class OrderTax(Base, TimestampMixin):
    __tablename__ = "order_taxes"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    # Application order of the chain; assigned on insert and never rewritten
    position = Column(Integer, nullable=False)
    tax_type = Column(String(64), nullable=False)
    percent = Column(Numeric(7, 4), nullable=False)

    order = relationship("Order", back_populates="taxes")


class OrderStatusHistory(Base, TimestampMixin):
    __tablename__ = "order_status_history"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    from_status = Column(String(32), nullable=True)
    to_status = Column(String(32), nullable=False)
    changed_by = Column(String(64), nullable=False)

    order = relationship("Order", back_populates="status_history")
