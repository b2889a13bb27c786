"""
Vendor Transaction Records API Router
=====================================
Per (vendor, wire) record sheets and their PDF / image attachments.
"""

from typing import List

from fastapi import APIRouter, Depends, File, Request, UploadFile
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from ..db import get_db
from ..schemas import MessageOut, VendorRecordIn, VendorRecordOut, VendorRecordUploadOut
from ..services import AttachmentStore, VendorRecordService

router = APIRouter(prefix="/api/vendor-transaction-records", tags=["Vendor Transaction Records"])


def get_attachments(request: Request) -> AttachmentStore:
    return request.app.state.attachments


@router.get("", response_model=List[VendorRecordOut])
def list_records(db: Session = Depends(get_db)):
    return VendorRecordService.list_records(db)


@router.get("/vendor/{vendor_name}", response_model=List[VendorRecordOut])
def vendor_records(vendor_name: str, db: Session = Depends(get_db)):
    return VendorRecordService.list_records(db, vendor_name=vendor_name)


@router.post("", response_model=VendorRecordOut)
def save_record(data: VendorRecordIn, db: Session = Depends(get_db)):
    """Create the sheet for (vendor, wire) or overwrite the existing one."""
    record = VendorRecordService.upsert(
        db,
        vendor=data.vendor,
        wire=data.wire,
        design=data.design,
        payable_price=data.payable_price,
        qty_out=data.qty_out,
        qty_in=data.qty_in,
        date=data.date,
    )
    db.commit()
    db.refresh(record)
    return record


@router.post("/{record_id}/upload-pdf", response_model=VendorRecordUploadOut)
async def upload_pdf(
    record_id: int,
    pdf: UploadFile = File(...),
    db: Session = Depends(get_db),
    attachments: AttachmentStore = Depends(get_attachments),
):
    record = await VendorRecordService.attach(db, attachments, record_id, pdf, kind="pdf")
    return {"message": "PDF uploaded successfully", "record": VendorRecordOut.model_validate(record)}


@router.post("/{record_id}/upload-image", response_model=VendorRecordUploadOut)
async def upload_image(
    record_id: int,
    image: UploadFile = File(...),
    db: Session = Depends(get_db),
    attachments: AttachmentStore = Depends(get_attachments),
):
    record = await VendorRecordService.attach(db, attachments, record_id, image, kind="image")
    return {"message": "Image uploaded successfully", "record": VendorRecordOut.model_validate(record)}


@router.get("/{record_id}/download-pdf")
def download_pdf(
    record_id: int,
    db: Session = Depends(get_db),
    attachments: AttachmentStore = Depends(get_attachments),
):
    path = VendorRecordService.attachment_path(db, attachments, record_id, kind="pdf")
    return FileResponse(path, media_type="application/pdf")


@router.get("/{record_id}/download-image")
def download_image(
    record_id: int,
    db: Session = Depends(get_db),
    attachments: AttachmentStore = Depends(get_attachments),
):
    path = VendorRecordService.attachment_path(db, attachments, record_id, kind="image")
    return FileResponse(path)


@router.delete("/{record_id}", response_model=MessageOut)
def delete_record(
    record_id: int,
    db: Session = Depends(get_db),
    attachments: AttachmentStore = Depends(get_attachments),
):
    VendorRecordService.delete_record(db, attachments, record_id)
    return {"message": "Record deleted successfully"}
