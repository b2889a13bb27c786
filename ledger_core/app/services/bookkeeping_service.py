"""
Bookkeeping Service
===================
Side records kept next to the ledger:
- Payments made to vendors per (wire, payal type)
- Which pages of a vendor's printed statement are already printed
- Per (vendor, wire) transaction record sheets with PDF/image attachments
"""

from datetime import datetime
from typing import List, Optional

from fastapi import UploadFile
from fastapi.concurrency import run_in_threadpool
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..logging_config import get_logger
from ..models import UNKNOWN_VENDOR, Payment, PrintStatus, Vendor, VendorTransactionRecord
from .attachments import AttachmentStore
from .catalog_service import VendorService, flush_or_duplicate
from .errors import NotFound, ValidationFailed

logger = get_logger("bookkeeping")

ATTACHMENT_KINDS = ("pdf", "image")


# =============================================================================
# PAYMENTS
# =============================================================================

class PaymentService:

    @staticmethod
    def _ordered(query):
        return query.order_by(Payment.date.desc(), Payment.id.desc())

    @staticmethod
    def list_payments(db: Session) -> List[Payment]:
        return PaymentService._ordered(db.query(Payment)).all()

    @staticmethod
    def list_for_vendor(db: Session, vendor_name: str, wire: Optional[str] = None) -> List[Payment]:
        vendor = VendorService.find_by_name(db, vendor_name)
        if not vendor:
            return []
        query = db.query(Payment).filter(Payment.vendor_id == vendor.id)
        if wire is not None:
            query = query.filter(Payment.wire == wire)
        return PaymentService._ordered(query).all()

    @staticmethod
    def get_payment(db: Session, payment_id: int) -> Payment:
        payment = db.query(Payment).filter(Payment.id == payment_id).first()
        if not payment:
            raise NotFound("Payment not found")
        return payment

    @staticmethod
    def create_payment(
        db: Session,
        vendor_name: str,
        wire: str,
        payal_type: str,
        amount: float,
        date: datetime,
        notes: Optional[str] = "",
    ) -> Payment:
        if amount is None or amount <= 0:
            raise ValidationFailed("Amount must be greater than 0")
        vendor = VendorService.get_by_name(db, vendor_name)

        payment = Payment(
            vendor_id=vendor.id,
            wire=wire,
            payal_type=payal_type,
            amount=amount,
            date=date,
            notes=notes or "",
        )
        db.add(payment)
        db.flush()
        logger.info("Recorded payment of %s to %s (%s %s)", amount, vendor.name, wire, payal_type)
        return payment

    @staticmethod
    def update_payment(db: Session, payment_id: int, **changes) -> Payment:
        payment = PaymentService.get_payment(db, payment_id)

        amount = changes.get("amount")
        if amount is not None and amount <= 0:
            raise ValidationFailed("Amount must be greater than 0")

        if changes.get("vendor"):
            payment.vendor_id = VendorService.get_by_name(db, changes["vendor"]).id
        for field_name in ("wire", "payal_type", "amount", "date", "notes"):
            value = changes.get(field_name)
            if value is not None:
                setattr(payment, field_name, value)
        db.flush()
        return payment

    @staticmethod
    def delete_payment(db: Session, payment_id: int) -> Payment:
        payment = PaymentService.get_payment(db, payment_id)
        db.delete(payment)
        db.flush()
        return payment

    @staticmethod
    def stats(db: Session) -> dict:
        """Overall totals plus per-vendor totals, largest first."""
        total_count, total_amount = db.query(
            func.count(Payment.id), func.coalesce(func.sum(Payment.amount), 0.0)
        ).one()

        amount_sum = func.sum(Payment.amount)
        vendor_name = func.coalesce(Vendor.name, UNKNOWN_VENDOR)
        rows = db.query(
            vendor_name.label("vendor"),
            amount_sum.label("total_amount"),
            func.count(Payment.id).label("payment_count"),
        ).outerjoin(
            Vendor, Payment.vendor_id == Vendor.id
        ).group_by(vendor_name).order_by(amount_sum.desc()).all()

        return {
            "totalPayments": int(total_count or 0),
            "totalAmount": float(total_amount or 0),
            "vendorStats": [
                {
                    "vendor": row.vendor,
                    "totalAmount": float(row.total_amount or 0),
                    "paymentCount": int(row.payment_count),
                }
                for row in rows
            ],
        }


# =============================================================================
# PRINT STATUS
# =============================================================================

class PrintStatusService:

    @staticmethod
    def list_status(db: Session, vendor_name: Optional[str] = None) -> List[PrintStatus]:
        query = db.query(PrintStatus)
        if vendor_name is not None:
            query = query.filter(PrintStatus.vendor_name == vendor_name)
        return query.order_by(PrintStatus.vendor_name.asc(), PrintStatus.page_number.asc()).all()

    @staticmethod
    def mark_printed(db: Session, vendor_name: str, page_number: int) -> PrintStatus:
        entry = db.query(PrintStatus).filter(
            PrintStatus.vendor_name == vendor_name,
            PrintStatus.page_number == page_number,
        ).first()
        now = datetime.utcnow()
        if entry:
            entry.is_printed = True
            entry.printed_at = now
        else:
            entry = PrintStatus(
                vendor_name=vendor_name, page_number=page_number, is_printed=True, printed_at=now
            )
            db.add(entry)
        flush_or_duplicate(db, "Page is already being marked as printed")
        return entry

    @staticmethod
    def mark_batch(db: Session, pages: List[tuple]) -> List[PrintStatus]:
        return [PrintStatusService.mark_printed(db, vendor, page) for vendor, page in pages]

    @staticmethod
    def unmark(db: Session, vendor_name: str, page_number: int) -> None:
        deleted = db.query(PrintStatus).filter(
            PrintStatus.vendor_name == vendor_name,
            PrintStatus.page_number == page_number,
        ).delete(synchronize_session=False)
        if deleted == 0:
            raise NotFound("Print status not found")

    @staticmethod
    def clear(db: Session, vendor_name: Optional[str] = None) -> int:
        query = db.query(PrintStatus)
        if vendor_name is not None:
            query = query.filter(PrintStatus.vendor_name == vendor_name)
        return query.delete(synchronize_session=False)


# =============================================================================
# VENDOR TRANSACTION RECORDS
# =============================================================================

class VendorRecordService:

    @staticmethod
    def list_records(db: Session, vendor_name: Optional[str] = None) -> List[VendorTransactionRecord]:
        query = db.query(VendorTransactionRecord)
        if vendor_name is not None:
            query = query.filter(VendorTransactionRecord.vendor == vendor_name)
        return query.order_by(
            VendorTransactionRecord.date.desc(), VendorTransactionRecord.id.desc()
        ).all()

    @staticmethod
    def get_record(db: Session, record_id: int) -> VendorTransactionRecord:
        record = db.query(VendorTransactionRecord).filter(
            VendorTransactionRecord.id == record_id
        ).first()
        if not record:
            raise NotFound("Record not found")
        return record

    @staticmethod
    def upsert(
        db: Session,
        vendor: str,
        wire: str,
        design: Optional[str] = None,
        payable_price: Optional[float] = None,
        qty_out: Optional[float] = None,
        qty_in: Optional[float] = None,
        date: Optional[datetime] = None,
    ) -> VendorTransactionRecord:
        """Create or overwrite the sheet for (vendor, wire); attachments are kept."""
        record = db.query(VendorTransactionRecord).filter(
            VendorTransactionRecord.vendor == vendor,
            VendorTransactionRecord.wire == wire,
        ).first()
        if record is None:
            record = VendorTransactionRecord(vendor=vendor, wire=wire)
            db.add(record)

        record.design = design or "N/A"
        record.payable_price = payable_price or 0.0
        record.qty_out = qty_out or 0.0
        record.qty_in = qty_in or 0.0
        record.date = date or datetime.utcnow()
        flush_or_duplicate(db, "Record for this vendor and wire already exists")
        return record

    @staticmethod
    async def attach(
        db: Session,
        store: AttachmentStore,
        record_id: int,
        upload: UploadFile,
        kind: str,
    ) -> VendorTransactionRecord:
        """
        Store `upload` as the record's PDF or image and commit.

        The new file is removed again if the record update fails; the file
        it replaces is removed only after the commit. Database calls run in
        the threadpool, off the event loop.
        """
        if kind not in ATTACHMENT_KINDS:
            raise ValueError(f"Unknown attachment kind: {kind}")
        if upload is None or not upload.filename:
            raise ValidationFailed("No file uploaded")

        record = await run_in_threadpool(VendorRecordService.get_record, db, record_id)
        stored = await store.save(upload, field_name="pdf" if kind == "pdf" else "image")

        if kind == "pdf":
            previous = record.pdf_path
            record.pdf_file, record.pdf_path = stored.filename, stored.path
        else:
            previous = record.img_path
            record.img_file, record.img_path = stored.filename, stored.path

        try:
            await run_in_threadpool(db.commit)
        except Exception:
            await run_in_threadpool(db.rollback)
            store.remove(stored.path)
            raise

        if previous and previous != stored.path:
            store.remove(previous)
        await run_in_threadpool(db.refresh, record)
        return record

    @staticmethod
    def attachment_path(db: Session, store: AttachmentStore, record_id: int, kind: str) -> str:
        record = VendorRecordService.get_record(db, record_id)
        path = record.pdf_path if kind == "pdf" else record.img_path
        if not store.exists(path):
            raise NotFound("PDF not found" if kind == "pdf" else "Image not found")
        return path

    @staticmethod
    def delete_record(db: Session, store: AttachmentStore, record_id: int) -> VendorTransactionRecord:
        record = VendorRecordService.get_record(db, record_id)
        paths = [record.pdf_path, record.img_path]
        db.delete(record)
        db.commit()
        for path in paths:
            store.remove(path)
        return record
