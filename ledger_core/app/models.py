from datetime import datetime
from enum import Enum

from sqlalchemy import (
    Column, Integer, String, DateTime, ForeignKey, Text, Boolean, Float,
    Enum as SQLEnum, Index, CheckConstraint, UniqueConstraint,
)
from sqlalchemy.orm import relationship, validates

from .db import Base


class TransactionType(str, Enum):
    IN = "IN"    # stock received back from a vendor
    OUT = "OUT"  # stock issued to a vendor


UNKNOWN_VENDOR = "Unknown Vendor"


class WireThickness(str, Enum):
    MM_22 = "22mm"
    MM_28 = "28mm"
    MM_30 = "30mm"
    MM_32 = "32mm"


# =============================================================================
# MASTER DATA
# =============================================================================

class Vendor(Base):
    __tablename__ = "vendors"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), unique=True, nullable=False, index=True)
    phone = Column(String(50), nullable=False, default="")
    address = Column(Text, nullable=False, default="")
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    assigned_wires = relationship(
        "VendorWire",
        back_populates="vendor",
        order_by="VendorWire.id",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        CheckConstraint("length(name) > 0", name="ck_vendor_name_not_empty"),
    )

    @validates("name")
    def validate_name(self, key, value):
        value = (value or "").strip()
        if not value:
            raise ValueError("Vendor name is required")
        return value


class VendorWire(Base):
    """Vendor-specific price override for a (wire, payal type) pair."""
    __tablename__ = "vendor_wires"

    id = Column(Integer, primary_key=True, index=True)
    vendor_id = Column(Integer, ForeignKey("vendors.id", ondelete="CASCADE"), nullable=False, index=True)
    wire_name = Column(String(50), nullable=False)
    payal_type = Column(String(100), nullable=False)
    price_per_kg = Column(Float, nullable=False)

    vendor = relationship("Vendor", back_populates="assigned_wires")

    __table_args__ = (
        CheckConstraint("price_per_kg >= 0", name="ck_vendor_wire_price_positive"),
    )


class Item(Base):
    __tablename__ = "items"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), unique=True, nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        CheckConstraint("length(name) > 0", name="ck_item_name_not_empty"),
    )

    @validates("name")
    def validate_name(self, key, value):
        value = (value or "").strip()
        if not value:
            raise ValueError("Item name is required")
        return value


class VendorItemPrice(Base):
    __tablename__ = "vendor_item_prices"

    id = Column(Integer, primary_key=True, index=True)
    vendor_id = Column(Integer, ForeignKey("vendors.id"), nullable=False)
    item_id = Column(Integer, ForeignKey("items.id"), nullable=False)
    price = Column(Float, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    vendor = relationship("Vendor")
    item = relationship("Item")

    __table_args__ = (
        UniqueConstraint("vendor_id", "item_id", name="uq_vendor_item_price"),
        CheckConstraint("price >= 0", name="ck_vendor_item_price_positive"),
    )


class PayalPriceChart(Base):
    """General price per kg by wire thickness and payal type."""
    __tablename__ = "payal_price_chart"

    id = Column(Integer, primary_key=True, index=True)
    wire_thickness = Column(String(10), nullable=False)
    payal_type = Column(String(100), nullable=False)
    price_per_kg = Column(Float, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("wire_thickness", "payal_type", name="uq_chart_thickness_payal"),
        CheckConstraint("price_per_kg >= 0", name="ck_chart_price_positive"),
    )

    @validates("wire_thickness")
    def validate_thickness(self, key, value):
        return WireThickness(value).value


# =============================================================================
# LEDGER
# =============================================================================

class Transaction(Base):
    """
    Append-only IN/OUT event log.

    Rows are never edited after creation, only deleted. IN rows carry a
    payal type and an in_date; OUT rows carry an out_date and no payal type.
    """
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, index=True)
    sr_no = Column(Integer, unique=True, nullable=False)
    type = Column(SQLEnum(TransactionType), nullable=False)
    vendor_id = Column(Integer, ForeignKey("vendors.id"), nullable=False)
    item_id = Column(Integer, ForeignKey("items.id"), nullable=False)
    quantity = Column(Float, nullable=False)
    payal_type = Column(String(100), nullable=True)
    price_per_unit = Column(Float, nullable=False, default=0.0)
    total_amount = Column(Float, nullable=False, default=0.0)
    in_date = Column(DateTime, nullable=True)
    out_date = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    vendor = relationship("Vendor")
    item = relationship("Item")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_transaction_quantity_positive"),
        CheckConstraint("price_per_unit >= 0", name="ck_transaction_price_positive"),
        CheckConstraint(
            "(type = 'IN' AND payal_type IS NOT NULL AND in_date IS NOT NULL)"
            " OR (type = 'OUT' AND payal_type IS NULL AND out_date IS NOT NULL)",
            name="ck_transaction_shape",
        ),
        Index("ix_transaction_type_created", "type", "created_at"),
        Index("ix_transaction_type_vendor_item", "type", "vendor_id", "item_id"),
    )


class InventoryBalance(Base):
    """
    Running OUT/IN totals per (vendor, item), kept in step with the
    transaction log inside the same database transaction.
    """
    __tablename__ = "inventory_balances"

    id = Column(Integer, primary_key=True, index=True)
    vendor_id = Column(Integer, ForeignKey("vendors.id"), nullable=False)
    item_id = Column(Integer, ForeignKey("items.id"), nullable=False)
    total_out = Column(Float, nullable=False, default=0.0)
    total_in = Column(Float, nullable=False, default=0.0)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("vendor_id", "item_id", name="uq_balance_vendor_item"),
    )

    @property
    def available(self) -> float:
        return self.total_out - self.total_in


class NumberSequence(Base):
    """Named counters, e.g. the `transaction` sequence behind sr_no."""
    __tablename__ = "number_sequences"

    id = Column(Integer, primary_key=True, index=True)
    sequence_name = Column(String(50), unique=True, nullable=False)
    current_number = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


# =============================================================================
# PAYMENTS & BOOKKEEPING
# =============================================================================

class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    vendor_id = Column(Integer, ForeignKey("vendors.id"), nullable=False)
    wire = Column(String(50), nullable=False)
    payal_type = Column(String(100), nullable=False)
    amount = Column(Float, nullable=False)
    date = Column(DateTime, nullable=False)
    notes = Column(Text, nullable=False, default="")
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    vendor = relationship("Vendor")

    @property
    def vendor_name(self) -> str:
        return self.vendor.name if self.vendor is not None else UNKNOWN_VENDOR

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_payment_amount_positive"),
        Index("ix_payment_vendor_wire_payal", "vendor_id", "wire", "payal_type"),
        Index("ix_payment_date", "date"),
    )


class PrintStatus(Base):
    __tablename__ = "print_status"

    id = Column(Integer, primary_key=True, index=True)
    vendor_name = Column(String(200), nullable=False)
    page_number = Column(Integer, nullable=False)
    is_printed = Column(Boolean, nullable=False, default=True)
    printed_at = Column(DateTime, default=datetime.utcnow)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("vendor_name", "page_number", name="uq_print_vendor_page"),
    )


class VendorTransactionRecord(Base):
    __tablename__ = "vendor_transaction_records"

    id = Column(Integer, primary_key=True, index=True)
    vendor = Column(String(200), nullable=False)
    wire = Column(String(50), nullable=False)
    design = Column(String(200), nullable=False, default="N/A")
    payable_price = Column(Float, nullable=False, default=0.0)
    qty_out = Column(Float, nullable=False, default=0.0)
    qty_in = Column(Float, nullable=False, default=0.0)
    date = Column(DateTime, nullable=False, default=datetime.utcnow)
    # stored file name and absolute path of the uploaded attachments
    pdf_file = Column(String(255), nullable=True)
    pdf_path = Column(String(1024), nullable=True)
    img_file = Column(String(255), nullable=True)
    img_path = Column(String(1024), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("vendor", "wire", name="uq_record_vendor_wire"),
        Index("ix_record_date", "date"),
    )


class User(Base):
    """Contact card linking a vendor to the item they handle."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    vendor_name = Column(String(50), nullable=False, index=True)
    item_name = Column(String(50), nullable=False, index=True)
    phone = Column(String(10), nullable=False, index=True)
    address = Column(String(200), nullable=False)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
