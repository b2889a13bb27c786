from datetime import datetime
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Discriminator, Field, Tag, field_validator


class ApiModel(BaseModel):
    """Snake-case fields, camelCase on the wire."""

    class Config:
        from_attributes = True
        populate_by_name = True


# =============================================================================
# VENDORS & ITEMS
# =============================================================================

class VendorWireIn(ApiModel):
    wire_name: str = Field(..., alias="wireName", min_length=1)
    payal_type: str = Field(..., alias="payalType", min_length=1)
    price_per_kg: float = Field(..., alias="pricePerKg", ge=0, allow_inf_nan=False)


class VendorWireOut(ApiModel):
    id: int
    wire_name: str = Field(serialization_alias="wireName")
    payal_type: str = Field(serialization_alias="payalType")
    price_per_kg: float = Field(serialization_alias="pricePerKg")


class VendorCreate(ApiModel):
    name: str
    phone: Optional[str] = None
    address: Optional[str] = None
    assigned_wires: List[VendorWireIn] = Field(default_factory=list, alias="assignedWires")


class VendorUpdate(ApiModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None


class VendorOut(ApiModel):
    id: int
    name: str
    phone: str
    address: str
    assigned_wires: List[VendorWireOut] = Field(default_factory=list, serialization_alias="assignedWires")
    created_at: Optional[datetime] = Field(None, serialization_alias="createdAt")
    updated_at: Optional[datetime] = Field(None, serialization_alias="updatedAt")


class VendorUpdateOut(BaseModel):
    message: str
    vendor: VendorOut


class DeletedVendorOut(BaseModel):
    id: int
    name: str
    phone: str
    address: str


class VendorDeleteOut(BaseModel):
    message: str
    deletedVendor: DeletedVendorOut


class ItemCreate(ApiModel):
    name: str


class ItemOut(ApiModel):
    id: int
    name: str
    created_at: Optional[datetime] = Field(None, serialization_alias="createdAt")


class VendorItemPriceIn(ApiModel):
    vendor: str
    item: str
    price: float = Field(..., ge=0, allow_inf_nan=False)


class VendorItemPriceOut(BaseModel):
    vendor: str
    item: str
    price: float


class VendorSummaryOut(BaseModel):
    vendor: str
    in_total: float
    out_total: float
    in_count: int
    out_count: int
    net_amount: float


class ResolvedPriceOut(BaseModel):
    vendor: str
    wire: str
    payalType: str
    pricePerKg: float
    source: str


# =============================================================================
# TRANSACTIONS
# =============================================================================

def _upper(value):
    return value.upper() if isinstance(value, str) else value


class InTransactionCreate(ApiModel):
    """Stock coming back from a vendor: needs payal type, price and in-date."""
    type: Literal["IN"]
    vendor: str = Field(..., min_length=1)
    item: str = Field(..., min_length=1)
    qty: float = Field(..., gt=0, allow_inf_nan=False)
    price: float = Field(..., ge=0, allow_inf_nan=False)
    payal_type: str = Field(..., alias="payalType", min_length=1)
    in_date: Optional[datetime] = Field(None, alias="inDate")

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, v):
        return _upper(v)


class OutTransactionCreate(ApiModel):
    """Stock issued to a vendor: needs an out-date; never carries a payal type."""
    type: Literal["OUT"]
    vendor: str = Field(..., min_length=1)
    item: str = Field(..., min_length=1)
    qty: float = Field(..., gt=0, allow_inf_nan=False)
    price: float = Field(0.0, ge=0, allow_inf_nan=False)
    out_date: Optional[datetime] = Field(None, alias="outDate")

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, v):
        return _upper(v)


def _transaction_kind(value) -> Optional[str]:
    if isinstance(value, dict):
        kind = value.get("type")
    else:
        kind = getattr(value, "type", None)
    return _upper(kind) if isinstance(kind, str) else None


TransactionCreate = Annotated[
    Union[
        Annotated[InTransactionCreate, Tag("IN")],
        Annotated[OutTransactionCreate, Tag("OUT")],
    ],
    Discriminator(
        _transaction_kind,
        custom_error_type="invalid_transaction_type",
        custom_error_message="Type must be IN or OUT",
    ),
]


class TransactionOut(BaseModel):
    id: int
    srNo: int
    type: str
    vendor: str
    item: str
    qty: float
    price: float
    payalType: str
    total: float
    timestamp: Optional[datetime]
    inDate: Optional[datetime]
    outDate: Optional[datetime]
    createdAt: Optional[datetime]

    @classmethod
    def from_transaction(cls, txn) -> "TransactionOut":
        return cls(
            id=txn.id,
            srNo=txn.sr_no,
            type=txn.type.value,
            vendor=txn.vendor.name,
            item=txn.item.name,
            qty=txn.quantity,
            price=txn.price_per_unit,
            payalType=txn.payal_type or "",
            total=txn.total_amount,
            timestamp=txn.created_at,
            inDate=txn.in_date,
            outDate=txn.out_date,
            createdAt=txn.created_at,
        )


class AvailableInventoryOut(BaseModel):
    vendor: str
    item: str
    totalOut: float
    totalIn: float
    available: float


# =============================================================================
# PRICE CHART
# =============================================================================

class PriceChartEntryIn(ApiModel):
    wire_thickness: str = Field(..., alias="wireThickness", min_length=1)
    payal_type: str = Field(..., alias="payalType", min_length=1)
    price_per_kg: float = Field(..., alias="pricePerKg", ge=0, allow_inf_nan=False)


class PriceChartPriceIn(ApiModel):
    price_per_kg: float = Field(..., alias="pricePerKg", ge=0, allow_inf_nan=False)


class PriceChartEntryOut(ApiModel):
    id: int
    wire_thickness: str = Field(serialization_alias="wireThickness")
    payal_type: str = Field(serialization_alias="payalType")
    price_per_kg: float = Field(serialization_alias="pricePerKg")


# =============================================================================
# PAYMENTS
# =============================================================================

class PaymentCreate(ApiModel):
    vendor: str = Field(..., min_length=1)
    wire: str = Field(..., min_length=1)
    payal_type: str = Field(..., alias="payalType", min_length=1)
    amount: float = Field(..., gt=0, allow_inf_nan=False)
    date: datetime
    notes: Optional[str] = ""


class PaymentUpdate(ApiModel):
    vendor: Optional[str] = None
    wire: Optional[str] = None
    payal_type: Optional[str] = Field(None, alias="payalType")
    amount: Optional[float] = Field(None, gt=0, allow_inf_nan=False)
    date: Optional[datetime] = None
    notes: Optional[str] = None


class PaymentOut(BaseModel):
    id: int
    vendor: str
    wire: str
    payalType: str
    amount: float
    date: datetime
    notes: str
    createdAt: Optional[datetime]

    @classmethod
    def from_payment(cls, payment) -> "PaymentOut":
        return cls(
            id=payment.id,
            vendor=payment.vendor_name,
            wire=payment.wire,
            payalType=payment.payal_type,
            amount=payment.amount,
            date=payment.date,
            notes=payment.notes or "",
            createdAt=payment.created_at,
        )


class VendorPaymentStat(BaseModel):
    vendor: str
    totalAmount: float
    paymentCount: int


class PaymentStatsOut(BaseModel):
    totalPayments: int
    totalAmount: float
    vendorStats: List[VendorPaymentStat]


# =============================================================================
# PRINT STATUS
# =============================================================================

class PrintStatusMark(ApiModel):
    vendor_name: str = Field(..., alias="vendorName", min_length=1)
    page_number: int = Field(..., alias="pageNumber")


class PrintStatusBatch(ApiModel):
    pages: List[PrintStatusMark] = Field(..., min_length=1)


class PrintStatusOut(ApiModel):
    id: int
    vendor_name: str = Field(serialization_alias="vendorName")
    page_number: int = Field(serialization_alias="pageNumber")
    is_printed: bool = Field(serialization_alias="isPrinted")
    printed_at: Optional[datetime] = Field(None, serialization_alias="printedAt")


# =============================================================================
# VENDOR TRANSACTION RECORDS
# =============================================================================

class VendorRecordIn(ApiModel):
    vendor: str = Field(..., min_length=1)
    wire: str = Field(..., min_length=1)
    design: Optional[str] = None
    payable_price: Optional[float] = Field(None, alias="payablePrice")
    qty_out: Optional[float] = Field(None, alias="qtyOut")
    qty_in: Optional[float] = Field(None, alias="qtyIn")
    date: Optional[datetime] = None


class VendorRecordOut(ApiModel):
    id: int
    vendor: str
    wire: str
    design: str
    payable_price: float = Field(serialization_alias="payablePrice")
    qty_out: float = Field(serialization_alias="qtyOut")
    qty_in: float = Field(serialization_alias="qtyIn")
    date: datetime
    pdf_file: Optional[str] = Field(None, serialization_alias="pdfFile")
    img_file: Optional[str] = Field(None, serialization_alias="imgFile")


class VendorRecordUploadOut(BaseModel):
    message: str
    record: VendorRecordOut


# =============================================================================
# USERS
# =============================================================================

class UserCreate(ApiModel):
    vendor_name: str = Field(..., alias="vendorName", min_length=2, max_length=50)
    item_name: str = Field(..., alias="itemName", min_length=2, max_length=50)
    phone: str = Field(..., pattern=r"^[0-9]{10}$")
    address: str = Field(..., min_length=5, max_length=200)

    @field_validator("vendor_name", "item_name", "phone", "address", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v


class UserUpdate(ApiModel):
    vendor_name: Optional[str] = Field(None, alias="vendorName", min_length=2, max_length=50)
    item_name: Optional[str] = Field(None, alias="itemName", min_length=2, max_length=50)
    phone: Optional[str] = Field(None, pattern=r"^[0-9]{10}$")
    address: Optional[str] = Field(None, min_length=5, max_length=200)
    is_active: Optional[bool] = Field(None, alias="isActive")

    @field_validator("vendor_name", "item_name", "phone", "address", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v


class UserOut(ApiModel):
    id: int
    vendor_name: str = Field(serialization_alias="vendorName")
    item_name: str = Field(serialization_alias="itemName")
    phone: str
    address: str
    is_active: bool = Field(serialization_alias="isActive")
    created_at: Optional[datetime] = Field(None, serialization_alias="createdAt")


class MessageOut(BaseModel):
    message: str


class DeletedCountOut(BaseModel):
    message: str
    deletedCount: int
