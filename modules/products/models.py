from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import relationship

from core.models import Base, TimestampMixin

MONEY = Numeric(14, 4)
QUANTITY = Numeric(14, 4)
CACHED_COST = String(64)


class Product(Base, TimestampMixin):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(String(1024), nullable=True)
    kind = Column(String(16), nullable=False, default="simple")
    unit_price = Column(MONEY, nullable=True)
    stock_quantity = Column(QUANTITY, nullable=False, default=0)
    is_raw_material = Column(Boolean, nullable=False, default=False)
    margin_percent = Column(Numeric(7, 4), nullable=False, default=0)

    # Last successful cost resolution as unrounded decimal text
    cached_materials = Column(CACHED_COST, nullable=True)
    cached_processes = Column(CACHED_COST, nullable=True)
    cached_labor = Column(CACHED_COST, nullable=True)
    cost_computed_at = Column(DateTime, nullable=True)

    dependencies = relationship(
        "ProductDependency",
        foreign_keys="ProductDependency.parent_id",
        cascade="all, delete-orphan",
        back_populates="parent",
        order_by="ProductDependency.id",
    )
    used_in = relationship(
        "ProductDependency",
        foreign_keys="ProductDependency.child_id",
        back_populates="child",
    )
    processes = relationship(
        "ProductProcess", cascade="all, delete-orphan", back_populates="product", order_by="ProductProcess.id"
    )
    labor = relationship("ProductLabor", cascade="all, delete-orphan", back_populates="product", order_by="ProductLabor.id")


class ProductDependency(Base, TimestampMixin):
    __tablename__ = "product_dependencies"
    __table_args__ = (UniqueConstraint("parent_id", "child_id", name="uq_product_dependency_edge"),)

    id = Column(Integer, primary_key=True, index=True)
    parent_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    child_id = Column(Integer, ForeignKey("products.id", ondelete="RESTRICT"), nullable=False, index=True)
    quantity_required = Column(QUANTITY, nullable=False, default=1)

    parent = relationship("Product", foreign_keys=[parent_id], back_populates="dependencies")
    child = relationship("Product", foreign_keys=[child_id], back_populates="used_in")


class Process(Base, TimestampMixin):
    __tablename__ = "processes"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    price_per_unit = Column(MONEY, nullable=False)
    estimated_minutes = Column(Integer, nullable=False, default=0)


class Labor(Base, TimestampMixin):
    __tablename__ = "labor"

    id = Column(Integer, primary_key=True, index=True)
    labor_type = Column(String(128), nullable=False)
    price_per_hour = Column(MONEY, nullable=False)


class ProductProcess(Base, TimestampMixin):
    __tablename__ = "product_processes"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    process_id = Column(Integer, ForeignKey("processes.id", ondelete="RESTRICT"), nullable=False)
    quantity = Column(QUANTITY, nullable=False, default=1)

    product = relationship("Product", back_populates="processes")
    process = relationship("Process")


class ProductLabor(Base, TimestampMixin):
    __tablename__ = "product_labor"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    labor_id = Column(Integer, ForeignKey("labor.id", ondelete="RESTRICT"), nullable=False)
    hours = Column(QUANTITY, nullable=False, default=1)

    product = relationship("Product", back_populates="labor")
    labor = relationship("Labor")
