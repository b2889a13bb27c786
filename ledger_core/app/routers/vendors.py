"""
Vendors API Router
==================
Vendor master data and everything keyed by a vendor:
- Vendors with their wire/payal price assignments
- Items and per vendor-item prices
- Per-vendor transaction list, summary and price lookup
"""

from typing import Dict, List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..db import get_db
from ..schemas import (
    DeletedVendorOut, ItemCreate, ItemOut, MessageOut, ResolvedPriceOut,
    TransactionOut, VendorCreate, VendorDeleteOut, VendorItemPriceIn,
    VendorItemPriceOut, VendorOut, VendorSummaryOut, VendorUpdate,
    VendorUpdateOut, VendorWireIn,
)
from ..services import (
    ItemService, LedgerQueryService, TransactionService, VendorItemPriceService,
    VendorService, resolve_price,
)

router = APIRouter(prefix="/api/vendors", tags=["Vendors"])


# =============================================================================
# VENDORS
# =============================================================================

@router.get("", response_model=List[VendorOut])
def list_vendors(db: Session = Depends(get_db)):
    return VendorService.list_vendors(db)


@router.post("", response_model=VendorOut, status_code=201)
def create_vendor(data: VendorCreate, db: Session = Depends(get_db)):
    vendor = VendorService.create_vendor(
        db,
        name=data.name,
        phone=data.phone,
        address=data.address,
        assigned_wires=[wire.model_dump() for wire in data.assigned_wires],
    )
    db.commit()
    db.refresh(vendor)
    return vendor


# =============================================================================
# ITEMS & PRICES
# =============================================================================

@router.get("/items", response_model=List[ItemOut])
def list_items(db: Session = Depends(get_db)):
    return ItemService.list_items(db)


@router.post("/items", response_model=ItemOut, status_code=201)
def create_item(data: ItemCreate, db: Session = Depends(get_db)):
    item = ItemService.create_item(db, data.name)
    db.commit()
    db.refresh(item)
    return item


@router.delete("/items/{name}", response_model=MessageOut)
def delete_item(name: str, db: Session = Depends(get_db)):
    item = ItemService.delete_item(db, name)
    db.commit()
    return {"message": f'Item "{item.name}" deleted successfully'}


@router.get("/prices", response_model=Dict[str, Dict[str, float]])
def list_prices(db: Session = Depends(get_db)):
    return VendorItemPriceService.price_map(db)


@router.put("/prices", response_model=VendorItemPriceOut)
def set_price(data: VendorItemPriceIn, db: Session = Depends(get_db)):
    entry = VendorItemPriceService.upsert(db, data.vendor, data.item, data.price)
    db.commit()
    return {"vendor": data.vendor.strip(), "item": data.item.strip(), "price": entry.price}


@router.get("/{vendor_name}/items/{item_name}/price", response_model=VendorItemPriceOut)
def get_price(vendor_name: str, item_name: str, db: Session = Depends(get_db)):
    price = VendorItemPriceService.get_price(db, vendor_name, item_name)
    return {"vendor": vendor_name, "item": item_name, "price": price}


# =============================================================================
# PER-VENDOR VIEWS
# =============================================================================

@router.get("/{vendor_name}/summary", response_model=VendorSummaryOut)
def vendor_summary(vendor_name: str, db: Session = Depends(get_db)):
    return LedgerQueryService.vendor_summary(db, vendor_name)


@router.get("/{vendor_name}/transactions", response_model=List[TransactionOut])
def vendor_transactions(vendor_name: str, db: Session = Depends(get_db)):
    vendor = VendorService.get_by_name(db, vendor_name)
    transactions = TransactionService.list_transactions(db, vendor_id=vendor.id)
    return [TransactionOut.from_transaction(txn) for txn in transactions]


@router.get("/{vendor_name}/wires/{wire}/price", response_model=ResolvedPriceOut)
def wire_price(
    vendor_name: str,
    wire: str,
    payal_type: str = Query(..., alias="payalType", min_length=1),
    db: Session = Depends(get_db),
):
    """Vendor's own price for the wire/payal type, falling back to the chart."""
    resolved = resolve_price(db, vendor_name, wire, payal_type)
    return {
        "vendor": vendor_name,
        "wire": wire,
        "payalType": payal_type,
        "pricePerKg": resolved.price_per_kg,
        "source": resolved.source,
    }


# =============================================================================
# VENDOR BY ID
# =============================================================================

@router.post("/{vendor_id}/wires", response_model=VendorOut)
def add_wire(vendor_id: int, data: VendorWireIn, db: Session = Depends(get_db)):
    vendor = VendorService.add_wire(
        db, vendor_id, data.wire_name, data.payal_type, data.price_per_kg
    )
    db.commit()
    db.refresh(vendor)
    return vendor


@router.delete("/{vendor_id}/wires/{assignment_id}", response_model=VendorOut)
def remove_wire(vendor_id: int, assignment_id: int, db: Session = Depends(get_db)):
    vendor = VendorService.remove_wire(db, vendor_id, assignment_id)
    db.commit()
    db.refresh(vendor)
    return vendor


@router.put("/{vendor_id}", response_model=VendorUpdateOut)
def update_vendor(vendor_id: int, data: VendorUpdate, db: Session = Depends(get_db)):
    vendor = VendorService.update_vendor(
        db, vendor_id, name=data.name, phone=data.phone, address=data.address
    )
    db.commit()
    db.refresh(vendor)
    return {"message": "Vendor updated successfully", "vendor": VendorOut.model_validate(vendor)}


@router.delete("/{vendor_id}", response_model=VendorDeleteOut)
def delete_vendor(vendor_id: int, db: Session = Depends(get_db)):
    vendor = VendorService.delete_vendor(db, vendor_id)
    deleted = DeletedVendorOut(
        id=vendor_id, name=vendor.name, phone=vendor.phone or "", address=vendor.address or ""
    )
    db.commit()
    return {"message": f'Vendor "{vendor.name}" deleted successfully', "deletedVendor": deleted}
