from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db import get_db
from ..schemas import (
    DeletedCountOut, MessageOut, PrintStatusBatch, PrintStatusMark, PrintStatusOut,
)
from ..services import PrintStatusService

router = APIRouter(prefix="/api/print-status", tags=["Print Status"])


@router.get("", response_model=List[PrintStatusOut])
def list_print_status(db: Session = Depends(get_db)):
    return PrintStatusService.list_status(db)


@router.get("/vendor/{vendor_name}", response_model=List[PrintStatusOut])
def vendor_print_status(vendor_name: str, db: Session = Depends(get_db)):
    return PrintStatusService.list_status(db, vendor_name=vendor_name)


@router.post("/mark-printed", response_model=PrintStatusOut)
def mark_printed(data: PrintStatusMark, db: Session = Depends(get_db)):
    entry = PrintStatusService.mark_printed(db, data.vendor_name, data.page_number)
    db.commit()
    db.refresh(entry)
    return entry


@router.post("/mark-printed-batch", response_model=List[PrintStatusOut])
def mark_printed_batch(data: PrintStatusBatch, db: Session = Depends(get_db)):
    entries = PrintStatusService.mark_batch(
        db, [(page.vendor_name, page.page_number) for page in data.pages]
    )
    db.commit()
    for entry in entries:
        db.refresh(entry)
    return entries


@router.delete("/clear/all", response_model=DeletedCountOut)
def clear_all(db: Session = Depends(get_db)):
    deleted = PrintStatusService.clear(db)
    db.commit()
    return {"message": "All print statuses cleared", "deletedCount": deleted}


@router.delete("/clear/vendor/{vendor_name}", response_model=DeletedCountOut)
def clear_vendor(vendor_name: str, db: Session = Depends(get_db)):
    deleted = PrintStatusService.clear(db, vendor_name=vendor_name)
    db.commit()
    return {"message": f"Print statuses cleared for {vendor_name}", "deletedCount": deleted}


@router.delete("/{vendor_name}/{page_number}", response_model=MessageOut)
def unmark_printed(vendor_name: str, page_number: int, db: Session = Depends(get_db)):
    PrintStatusService.unmark(db, vendor_name, page_number)
    db.commit()
    return {"message": "Print status removed"}
