"""
Inventory Ledger Service
========================
IN/OUT transaction log for wire stock held by vendors:
- Availability of a (vendor, item) pair derived from the log
- Admission of IN transactions against what was issued OUT
- Serial numbers (sr_no) from an atomic counter
- Available-inventory and per-vendor summary reports

Race handling: each (vendor, item) pair has an InventoryBalance row. An IN
is admitted by a single conditional UPDATE on that row
(``total_out - total_in >= qty``), and sr_no comes from a single UPDATE on
the sequence row. Both run in the same database transaction as the insert,
so concurrent requests queue on the row (or, on SQLite, the database) lock
instead of reading stale totals.
"""

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional

from sqlalchemy import case, func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..logging_config import get_logger
from ..models import (
    InventoryBalance, Item, NumberSequence, Transaction, TransactionType, Vendor,
)
from .catalog_service import ItemService, VendorService
from .errors import (
    DuplicateKey, InsufficientInventory, LedgerError, NotFound, ValidationFailed,
)

logger = get_logger("ledger")

TRANSACTION_SEQUENCE = "transaction"
MAX_CREATE_ATTEMPTS = 3
NOT_AVAILABLE_MESSAGE = "Item not available for import. Please export it first."


def format_quantity(value: float) -> str:
    """20.0 -> '20', 12.5 -> '12.5'"""
    return f"{value:g}"


def is_unique_violation(exc: IntegrityError) -> bool:
    """True for UNIQUE hits (sqlite message or postgres SQLSTATE 23505)."""
    if getattr(exc.orig, "pgcode", None) == "23505":
        return True
    return "unique" in str(exc.orig).lower()


# =============================================================================
# AVAILABILITY
# =============================================================================

@dataclass(frozen=True)
class Availability:
    total_out: float
    total_in: float
    transaction_count: int

    @property
    def available(self) -> float:
        return self.total_out - self.total_in


def availability(db: Session, vendor_id: int, item_id: int) -> Availability:
    """Scan the log for the pair and total its OUT and IN quantities."""
    row = db.query(
        func.count(Transaction.id).label("transaction_count"),
        func.coalesce(func.sum(case(
            (Transaction.type == TransactionType.OUT, Transaction.quantity), else_=0.0
        )), 0.0).label("total_out"),
        func.coalesce(func.sum(case(
            (Transaction.type == TransactionType.IN, Transaction.quantity), else_=0.0
        )), 0.0).label("total_in"),
    ).filter(
        Transaction.vendor_id == vendor_id,
        Transaction.item_id == item_id,
    ).one()

    return Availability(
        total_out=float(row.total_out or 0),
        total_in=float(row.total_in or 0),
        transaction_count=int(row.transaction_count or 0),
    )


def check_admissible(avail: Availability, requested_qty: float) -> None:
    """
    Raise InsufficientInventory unless an IN of `requested_qty` fits.

    A pair with no history, or with nothing outstanding, gets the
    "export it first" message; an oversized request gets the quantity left.
    """
    if avail.transaction_count == 0 or avail.available <= 0:
        raise InsufficientInventory(
            NOT_AVAILABLE_MESSAGE,
            available=max(avail.available, 0.0),
            requested=requested_qty,
        )

    if requested_qty > avail.available:
        shown_available = format_quantity(avail.available)
        shown_requested = format_quantity(requested_qty)
        if shown_available == shown_requested:
            # short forms collide (0.2 vs 0.19999999999999998), show full precision
            shown_available = repr(float(avail.available))
            shown_requested = repr(float(requested_qty))
        raise InsufficientInventory(
            f"Only {shown_available} units available. "
            f"You requested {shown_requested} units.",
            available=avail.available,
            requested=requested_qty,
        )


# =============================================================================
# NUMBER SEQUENCE
# =============================================================================

def get_next_sequence(
    db: Session,
    sequence_name: str,
    floor: Optional[Callable[[], int]] = None,
) -> int:
    """
    Atomically increment a named counter and return the new value.

    The increment is a single UPDATE, so it takes the row lock before
    reading. When the row does not exist yet it is created starting after
    `floor()` (e.g. the highest number already in use).
    """
    result = db.execute(
        update(NumberSequence)
        .where(NumberSequence.sequence_name == sequence_name)
        .values(current_number=NumberSequence.current_number + 1, updated_at=datetime.utcnow())
        .execution_options(synchronize_session=False)
    )

    if result.rowcount == 0:
        start = floor() if floor else 0
        seq = NumberSequence(sequence_name=sequence_name, current_number=(start or 0) + 1)
        db.add(seq)
        db.flush()
        return seq.current_number

    return db.query(NumberSequence.current_number).filter(
        NumberSequence.sequence_name == sequence_name
    ).scalar()


def _highest_sr_no(db: Session) -> int:
    return db.query(func.max(Transaction.sr_no)).scalar() or 0


# =============================================================================
# BALANCE ROWS
# =============================================================================

def _pair_filter(vendor_id: int, item_id: int):
    return (InventoryBalance.vendor_id == vendor_id, InventoryBalance.item_id == item_id)


def _consume_for_in(db: Session, vendor_id: int, item_id: int, quantity: float) -> bool:
    """Compare-and-swap: book an IN only if that much is outstanding."""
    result = db.execute(
        update(InventoryBalance)
        .where(
            *_pair_filter(vendor_id, item_id),
            InventoryBalance.total_out - InventoryBalance.total_in >= quantity,
        )
        .values(total_in=InventoryBalance.total_in + quantity, updated_at=datetime.utcnow())
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def _record_out(db: Session, vendor_id: int, item_id: int, quantity: float) -> None:
    result = db.execute(
        update(InventoryBalance)
        .where(*_pair_filter(vendor_id, item_id))
        .values(total_out=InventoryBalance.total_out + quantity, updated_at=datetime.utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        db.add(InventoryBalance(
            vendor_id=vendor_id, item_id=item_id, total_out=quantity, total_in=0.0
        ))
        db.flush()


def _resync_pair(db: Session, vendor_id: int, item_id: int, avail: Availability) -> None:
    balance = db.query(InventoryBalance).filter(*_pair_filter(vendor_id, item_id)).first()
    if balance is None:
        balance = InventoryBalance(vendor_id=vendor_id, item_id=item_id)
        db.add(balance)
    balance.total_out = avail.total_out
    balance.total_in = avail.total_in
    db.flush()


def _reverse(db: Session, txn: Transaction) -> None:
    if txn.type == TransactionType.IN:
        values = {"total_in": InventoryBalance.total_in - txn.quantity}
    else:
        values = {"total_out": InventoryBalance.total_out - txn.quantity}
    values["updated_at"] = datetime.utcnow()

    db.execute(
        update(InventoryBalance)
        .where(*_pair_filter(txn.vendor_id, txn.item_id))
        .values(**values)
        .execution_options(synchronize_session=False)
    )


# =============================================================================
# TRANSACTIONS
# =============================================================================

class TransactionService:

    @staticmethod
    def create_transaction(
        db: Session,
        txn_type: TransactionType,
        vendor_name: str,
        item_name: str,
        quantity: float,
        price_per_unit: float = 0.0,
        payal_type: Optional[str] = None,
        in_date: Optional[datetime] = None,
        out_date: Optional[datetime] = None,
    ) -> Transaction:
        """
        Record an IN or OUT transaction and commit it.

        IN transactions are admitted only up to what is outstanding for the
        (vendor, item) pair; OUT transactions are never gated. A unique
        violation on commit (another writer took the same sr_no or created
        the same balance row) is retried with fresh values; any other
        integrity error is raised as is.

        Raises:
            ValidationFailed: malformed request, or unknown vendor or item
            InsufficientInventory: IN exceeds the outstanding quantity
        """
        txn_type = TransactionType(txn_type)
        TransactionService._validate(txn_type, quantity, price_per_unit, payal_type)

        for attempt in range(1, MAX_CREATE_ATTEMPTS + 1):
            try:
                txn = TransactionService._insert(
                    db, txn_type, vendor_name, item_name, float(quantity),
                    float(price_per_unit or 0), payal_type, in_date, out_date,
                )
                db.commit()
            except IntegrityError as exc:
                db.rollback()
                if not is_unique_violation(exc):
                    raise
                logger.warning(
                    "Conflict recording %s transaction for %s/%s (attempt %s of %s)",
                    txn_type.value, vendor_name, item_name, attempt, MAX_CREATE_ATTEMPTS,
                )
                continue
            except LedgerError:
                db.rollback()
                raise

            db.refresh(txn)
            logger.info(
                "Recorded %s #%s: %s x %s for %s",
                txn.type.value, txn.sr_no, format_quantity(txn.quantity), item_name, vendor_name,
            )
            return txn

        raise DuplicateKey("Could not assign a unique serial number. Please retry.")

    @staticmethod
    def _validate(txn_type: TransactionType, quantity, price_per_unit, payal_type) -> None:
        errors = []
        if quantity is None or quantity <= 0:
            errors.append("Quantity must be greater than 0")
        elif not math.isfinite(quantity):
            errors.append("Quantity must be a finite number")
        if price_per_unit is not None and price_per_unit < 0:
            errors.append("Price cannot be negative")
        elif price_per_unit is not None and not math.isfinite(price_per_unit):
            errors.append("Price must be a finite number")
        if txn_type == TransactionType.IN and not payal_type:
            errors.append("PayalType is required for IN transactions")
        if txn_type == TransactionType.OUT and payal_type:
            errors.append("PayalType is only recorded for IN transactions")
        if errors:
            raise ValidationFailed(errors[0], details=errors)

    @staticmethod
    def _insert(
        db: Session,
        txn_type: TransactionType,
        vendor_name: str,
        item_name: str,
        quantity: float,
        price_per_unit: float,
        payal_type: Optional[str],
        in_date: Optional[datetime],
        out_date: Optional[datetime],
    ) -> Transaction:
        vendor = VendorService.find_by_name(db, vendor_name)
        item = ItemService.find_by_name(db, item_name)
        if not vendor or not item:
            raise ValidationFailed("Vendor or item not found")

        # the balance write comes first so the pair is locked before any read
        if txn_type == TransactionType.IN:
            if not _consume_for_in(db, vendor.id, item.id, quantity):
                avail = availability(db, vendor.id, item.id)
                check_admissible(avail, quantity)
                # the log allows it, so the balance row is stale; the log wins
                logger.warning(
                    "Balance row for vendor=%s item=%s out of step with the log, resyncing",
                    vendor.id, item.id,
                )
                _resync_pair(db, vendor.id, item.id, avail)
                if not _consume_for_in(db, vendor.id, item.id, quantity):
                    raise InsufficientInventory(NOT_AVAILABLE_MESSAGE, requested=quantity)
        else:
            _record_out(db, vendor.id, item.id, quantity)

        now = datetime.utcnow()
        txn = Transaction(
            sr_no=get_next_sequence(db, TRANSACTION_SEQUENCE, floor=lambda: _highest_sr_no(db)),
            type=txn_type,
            vendor_id=vendor.id,
            item_id=item.id,
            quantity=quantity,
            payal_type=payal_type if txn_type == TransactionType.IN else None,
            price_per_unit=price_per_unit,
            total_amount=quantity * price_per_unit,
            in_date=(in_date or now) if txn_type == TransactionType.IN else None,
            out_date=(out_date or now) if txn_type == TransactionType.OUT else None,
            created_at=now,
        )
        db.add(txn)
        db.flush()
        return txn

    @staticmethod
    def delete_transaction(db: Session, transaction_id: int) -> Transaction:
        """Delete a transaction and take its quantity back out of the balance."""
        txn = db.query(Transaction).filter(Transaction.id == transaction_id).first()
        if not txn:
            raise NotFound("Transaction not found")

        _reverse(db, txn)
        db.delete(txn)
        db.flush()
        logger.info("Deleted %s #%s (id=%s)", txn.type.value, txn.sr_no, transaction_id)
        return txn

    @staticmethod
    def list_transactions(
        db: Session,
        txn_type: Optional[TransactionType] = None,
        vendor_id: Optional[int] = None,
    ) -> List[Transaction]:
        query = db.query(Transaction)
        if txn_type is not None:
            query = query.filter(Transaction.type == TransactionType(txn_type))
        if vendor_id is not None:
            query = query.filter(Transaction.vendor_id == vendor_id)
        return query.order_by(Transaction.created_at.desc(), Transaction.id.desc()).all()


# =============================================================================
# REPORTS
# =============================================================================

class LedgerQueryService:
    """Read-side aggregates over the transaction log"""

    @staticmethod
    def available_inventory(db: Session) -> List[dict]:
        """
        Per (vendor, item): total OUT and IN, keeping only pairs with
        something still outstanding. Sorted by vendor, then item.
        """
        total_out = func.sum(case(
            (Transaction.type == TransactionType.OUT, Transaction.quantity), else_=0.0
        ))
        total_in = func.sum(case(
            (Transaction.type == TransactionType.IN, Transaction.quantity), else_=0.0
        ))

        rows = db.query(
            Vendor.name.label("vendor"),
            Item.name.label("item"),
            total_out.label("total_out"),
            total_in.label("total_in"),
        ).join(
            Vendor, Transaction.vendor_id == Vendor.id
        ).join(
            Item, Transaction.item_id == Item.id
        ).group_by(
            Vendor.name, Item.name
        ).having(
            total_out - total_in > 0
        ).order_by(
            Vendor.name.asc(), Item.name.asc()
        ).all()

        return [
            {
                "vendor": row.vendor,
                "item": row.item,
                "totalOut": float(row.total_out or 0),
                "totalIn": float(row.total_in or 0),
                "available": float((row.total_out or 0) - (row.total_in or 0)),
            }
            for row in rows
        ]

    @staticmethod
    def vendor_summary(db: Session, vendor_name: str) -> dict:
        vendor = VendorService.get_by_name(db, vendor_name)

        rows = db.query(
            Transaction.type,
            func.count(Transaction.id).label("transaction_count"),
            func.coalesce(func.sum(Transaction.total_amount), 0.0).label("total_amount"),
        ).filter(
            Transaction.vendor_id == vendor.id
        ).group_by(Transaction.type).all()

        summary = {
            "vendor": vendor.name,
            "in_total": 0.0,
            "out_total": 0.0,
            "in_count": 0,
            "out_count": 0,
            "net_amount": 0.0,
        }
        for row in rows:
            if row.type == TransactionType.IN:
                summary["in_total"] = float(row.total_amount or 0)
                summary["in_count"] = int(row.transaction_count or 0)
            elif row.type == TransactionType.OUT:
                summary["out_total"] = float(row.total_amount or 0)
                summary["out_count"] = int(row.transaction_count or 0)

        summary["net_amount"] = summary["in_total"] - summary["out_total"]
        return summary

    @staticmethod
    def rebuild_balances(db: Session) -> int:
        """
        Recompute every InventoryBalance row from the log.

        Used at startup for databases that predate the balance table.
        Returns the number of rows written; caller commits.
        """
        rows = db.query(
            Transaction.vendor_id,
            Transaction.item_id,
            func.sum(case(
                (Transaction.type == TransactionType.OUT, Transaction.quantity), else_=0.0
            )).label("total_out"),
            func.sum(case(
                (Transaction.type == TransactionType.IN, Transaction.quantity), else_=0.0
            )).label("total_in"),
        ).group_by(Transaction.vendor_id, Transaction.item_id).all()

        db.query(InventoryBalance).delete(synchronize_session="fetch")
        for row in rows:
            db.add(InventoryBalance(
                vendor_id=row.vendor_id,
                item_id=row.item_id,
                total_out=float(row.total_out or 0),
                total_in=float(row.total_in or 0),
            ))
        db.flush()
        logger.info("Rebuilt %s inventory balance row(s) from the transaction log", len(rows))
        return len(rows)

    @staticmethod
    def balances_missing(db: Session) -> bool:
        has_transactions = db.query(Transaction.id).first() is not None
        has_balances = db.query(InventoryBalance.id).first() is not None
        return has_transactions and not has_balances

