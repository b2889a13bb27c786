"""
Catalog Service
===============
Vendors (with their wire price assignments), items, vendor-item prices
and user contact cards.

Services add and flush; callers own the commit.
"""

from typing import Dict, Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..logging_config import get_logger
from ..models import (
    InventoryBalance, Item, Payment, Transaction, User, Vendor, VendorItemPrice, VendorWire,
)
from .errors import DuplicateKey, NotFound, ValidationFailed

logger = get_logger("catalog")


def _clean_name(value: Optional[str], label: str) -> str:
    name = (value or "").strip()
    if not name:
        raise ValidationFailed(f"{label} name is required")
    return name


def flush_or_duplicate(db: Session, message: str) -> None:
    """Flush pending writes, turning a unique-constraint hit into DuplicateKey."""
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        raise DuplicateKey(message)


# =============================================================================
# VENDORS
# =============================================================================

class VendorService:

    @staticmethod
    def list_vendors(db: Session) -> List[Vendor]:
        return db.query(Vendor).order_by(Vendor.name.asc()).all()

    @staticmethod
    def get_vendor(db: Session, vendor_id: int) -> Vendor:
        vendor = db.query(Vendor).filter(Vendor.id == vendor_id).first()
        if not vendor:
            raise NotFound("Vendor not found")
        return vendor

    @staticmethod
    def find_by_name(db: Session, name: str) -> Optional[Vendor]:
        return db.query(Vendor).filter(Vendor.name == (name or "").strip()).first()

    @staticmethod
    def get_by_name(db: Session, name: str) -> Vendor:
        vendor = VendorService.find_by_name(db, name)
        if not vendor:
            raise NotFound("Vendor not found")
        return vendor

    @staticmethod
    def create_vendor(
        db: Session,
        name: str,
        phone: Optional[str] = None,
        address: Optional[str] = None,
        assigned_wires: Optional[Iterable[dict]] = None,
    ) -> Vendor:
        name = _clean_name(name, "Vendor")
        if VendorService.find_by_name(db, name):
            raise DuplicateKey("Vendor already exists")

        vendor = Vendor(name=name, phone=(phone or "").strip(), address=(address or "").strip())
        for wire in assigned_wires or []:
            vendor.assigned_wires.append(VendorWire(
                wire_name=wire["wire_name"],
                payal_type=wire["payal_type"],
                price_per_kg=wire["price_per_kg"],
            ))
        db.add(vendor)
        flush_or_duplicate(db, "Vendor already exists")
        logger.info("Created vendor %s (id=%s)", vendor.name, vendor.id)
        return vendor

    @staticmethod
    def update_vendor(
        db: Session,
        vendor_id: int,
        name: Optional[str] = None,
        phone: Optional[str] = None,
        address: Optional[str] = None,
    ) -> Vendor:
        vendor = VendorService.get_vendor(db, vendor_id)

        if name is not None and name.strip() and name.strip() != vendor.name:
            new_name = name.strip()
            if VendorService.find_by_name(db, new_name):
                raise DuplicateKey("A vendor with this name already exists")
            vendor.name = new_name

        if phone is not None:
            vendor.phone = phone.strip()
        if address is not None:
            vendor.address = address.strip()

        flush_or_duplicate(db, "A vendor with this name already exists")
        return vendor

    @staticmethod
    def count_transactions(db: Session, vendor_id: int) -> int:
        return db.query(func.count(Transaction.id)).filter(
            Transaction.vendor_id == vendor_id
        ).scalar() or 0

    @staticmethod
    def count_payments(db: Session, vendor_id: int) -> int:
        return db.query(func.count(Payment.id)).filter(
            Payment.vendor_id == vendor_id
        ).scalar() or 0

    @staticmethod
    def delete_vendor(db: Session, vendor_id: int) -> Vendor:
        """
        Delete a vendor that no transaction or payment references.

        Raises:
            NotFound: vendor does not exist
            ValidationFailed: transactions or payments still reference the vendor
        """
        vendor = VendorService.get_vendor(db, vendor_id)

        transaction_count = VendorService.count_transactions(db, vendor.id)
        if transaction_count > 0:
            raise ValidationFailed(
                f'Cannot delete vendor "{vendor.name}" because they have '
                f"{transaction_count} transaction(s). Please delete all transactions first."
            )

        payment_count = VendorService.count_payments(db, vendor.id)
        if payment_count > 0:
            raise ValidationFailed(
                f'Cannot delete vendor "{vendor.name}" because they have '
                f"{payment_count} payment(s). Please delete all payments first."
            )

        db.query(InventoryBalance).filter(InventoryBalance.vendor_id == vendor.id).delete(
            synchronize_session=False
        )
        db.query(VendorItemPrice).filter(VendorItemPrice.vendor_id == vendor.id).delete(
            synchronize_session=False
        )
        db.delete(vendor)
        db.flush()
        logger.info("Deleted vendor %s (id=%s)", vendor.name, vendor_id)
        return vendor

    @staticmethod
    def add_wire(
        db: Session,
        vendor_id: int,
        wire_name: str,
        payal_type: str,
        price_per_kg: float,
    ) -> Vendor:
        vendor = VendorService.get_vendor(db, vendor_id)

        for existing in vendor.assigned_wires:
            if existing.wire_name == wire_name and existing.payal_type == payal_type:
                raise DuplicateKey("This wire-payal combination already exists for this vendor")

        vendor.assigned_wires.append(VendorWire(
            wire_name=wire_name,
            payal_type=payal_type,
            price_per_kg=price_per_kg,
        ))
        db.flush()
        return vendor

    @staticmethod
    def remove_wire(db: Session, vendor_id: int, assignment_id: int) -> Vendor:
        vendor = VendorService.get_vendor(db, vendor_id)

        assignment = next((w for w in vendor.assigned_wires if w.id == assignment_id), None)
        if assignment is None:
            raise NotFound("Wire assignment not found")

        vendor.assigned_wires.remove(assignment)
        db.flush()
        return vendor

    @staticmethod
    def ensure_vendor(db: Session, name: str) -> Vendor:
        """Return the named vendor, creating it when missing."""
        vendor = VendorService.find_by_name(db, name)
        if vendor:
            return vendor
        return VendorService.create_vendor(db, name)


# =============================================================================
# ITEMS
# =============================================================================

class ItemService:

    @staticmethod
    def list_items(db: Session) -> List[Item]:
        return db.query(Item).order_by(Item.name.asc()).all()

    @staticmethod
    def find_by_name(db: Session, name: str) -> Optional[Item]:
        return db.query(Item).filter(Item.name == (name or "").strip()).first()

    @staticmethod
    def get_by_name(db: Session, name: str) -> Item:
        item = ItemService.find_by_name(db, name)
        if not item:
            raise NotFound("Item not found")
        return item

    @staticmethod
    def create_item(db: Session, name: str) -> Item:
        name = _clean_name(name, "Item")
        if ItemService.find_by_name(db, name):
            raise DuplicateKey("Item already exists")

        item = Item(name=name)
        db.add(item)
        flush_or_duplicate(db, "Item already exists")
        logger.info("Created item %s (id=%s)", item.name, item.id)
        return item

    @staticmethod
    def delete_item(db: Session, name: str) -> Item:
        item = ItemService.get_by_name(db, name)

        transaction_count = db.query(func.count(Transaction.id)).filter(
            Transaction.item_id == item.id
        ).scalar() or 0
        if transaction_count > 0:
            raise ValidationFailed(
                f'Cannot delete item "{item.name}" because it has '
                f"{transaction_count} transaction(s). Please delete all transactions first."
            )

        db.query(InventoryBalance).filter(InventoryBalance.item_id == item.id).delete(
            synchronize_session=False
        )
        db.query(VendorItemPrice).filter(VendorItemPrice.item_id == item.id).delete(
            synchronize_session=False
        )
        db.delete(item)
        db.flush()
        return item

    @staticmethod
    def ensure_item(db: Session, name: str) -> Item:
        item = ItemService.find_by_name(db, name)
        if item:
            return item
        return ItemService.create_item(db, name)


# =============================================================================
# VENDOR-ITEM PRICES
# =============================================================================

class VendorItemPriceService:

    @staticmethod
    def upsert(db: Session, vendor_name: str, item_name: str, price: float) -> VendorItemPrice:
        if price is None or price < 0:
            raise ValidationFailed("Price must be zero or greater")

        vendor = VendorService.find_by_name(db, vendor_name)
        item = ItemService.find_by_name(db, item_name)
        if not vendor or not item:
            raise NotFound("Vendor or item not found")

        entry = db.query(VendorItemPrice).filter(
            VendorItemPrice.vendor_id == vendor.id,
            VendorItemPrice.item_id == item.id,
        ).first()
        if entry:
            entry.price = price
        else:
            entry = VendorItemPrice(vendor_id=vendor.id, item_id=item.id, price=price)
            db.add(entry)
        flush_or_duplicate(db, "Price already exists for this vendor-item combination")
        return entry

    @staticmethod
    def get_price(db: Session, vendor_name: str, item_name: str) -> float:
        vendor = VendorService.find_by_name(db, vendor_name)
        item = ItemService.find_by_name(db, item_name)
        if not vendor or not item:
            raise NotFound("Vendor or item not found")

        entry = db.query(VendorItemPrice).filter(
            VendorItemPrice.vendor_id == vendor.id,
            VendorItemPrice.item_id == item.id,
        ).first()
        if not entry:
            raise NotFound("Price not found for this vendor-item combination")
        return entry.price

    @staticmethod
    def price_map(db: Session) -> Dict[str, Dict[str, float]]:
        """Nested {vendor name: {item name: price}} mapping."""
        rows = db.query(
            Vendor.name.label("vendor_name"),
            Item.name.label("item_name"),
            VendorItemPrice.price,
        ).join(
            Vendor, VendorItemPrice.vendor_id == Vendor.id
        ).join(
            Item, VendorItemPrice.item_id == Item.id
        ).order_by(Vendor.name.asc(), Item.name.asc()).all()

        prices: Dict[str, Dict[str, float]] = {}
        for row in rows:
            prices.setdefault(row.vendor_name, {})[row.item_name] = row.price
        return prices


# =============================================================================
# USERS
# =============================================================================

class UserService:

    @staticmethod
    def list_active(db: Session) -> List[User]:
        return db.query(User).filter(User.is_active == True).order_by(  # noqa: E712
            User.created_at.desc(), User.id.desc()
        ).all()

    @staticmethod
    def get_user(db: Session, user_id: int) -> User:
        user = db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFound("User not found")
        return user

    @staticmethod
    def create_user(db: Session, vendor_name: str, item_name: str, phone: str, address: str) -> User:
        """Create a contact card and make sure its vendor and item exist."""
        user = User(vendor_name=vendor_name, item_name=item_name, phone=phone, address=address)
        db.add(user)
        db.flush()
        VendorService.ensure_vendor(db, vendor_name)
        ItemService.ensure_item(db, item_name)
        return user

    @staticmethod
    def update_user(db: Session, user_id: int, **changes) -> User:
        user = UserService.get_user(db, user_id)
        for field_name in ("vendor_name", "item_name", "address", "phone", "is_active"):
            value = changes.get(field_name)
            if value is not None:
                setattr(user, field_name, value)
        db.flush()

        if changes.get("vendor_name"):
            VendorService.ensure_vendor(db, changes["vendor_name"])
        if changes.get("item_name"):
            ItemService.ensure_item(db, changes["item_name"])
        return user

    @staticmethod
    def deactivate_user(db: Session, user_id: int) -> User:
        user = UserService.get_user(db, user_id)
        user.is_active = False
        db.flush()
        return user
