from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db import get_db
from ..schemas import MessageOut, PaymentCreate, PaymentOut, PaymentStatsOut, PaymentUpdate
from ..services import PaymentService

router = APIRouter(prefix="/api/payments", tags=["Payments"])


@router.get("", response_model=List[PaymentOut])
def list_payments(db: Session = Depends(get_db)):
    return [PaymentOut.from_payment(p) for p in PaymentService.list_payments(db)]


@router.post("", response_model=PaymentOut, status_code=201)
def create_payment(data: PaymentCreate, db: Session = Depends(get_db)):
    payment = PaymentService.create_payment(
        db,
        vendor_name=data.vendor,
        wire=data.wire,
        payal_type=data.payal_type,
        amount=data.amount,
        date=data.date,
        notes=data.notes,
    )
    db.commit()
    db.refresh(payment)
    return PaymentOut.from_payment(payment)


@router.get("/stats", response_model=PaymentStatsOut)
def payment_stats(db: Session = Depends(get_db)):
    return PaymentService.stats(db)


@router.get("/vendor/{vendor_name}", response_model=List[PaymentOut])
def vendor_payments(vendor_name: str, db: Session = Depends(get_db)):
    return [PaymentOut.from_payment(p) for p in PaymentService.list_for_vendor(db, vendor_name)]


@router.get("/vendor/{vendor_name}/wire/{wire}", response_model=List[PaymentOut])
def vendor_wire_payments(vendor_name: str, wire: str, db: Session = Depends(get_db)):
    payments = PaymentService.list_for_vendor(db, vendor_name, wire=wire)
    return [PaymentOut.from_payment(p) for p in payments]


@router.put("/{payment_id}", response_model=PaymentOut)
def update_payment(payment_id: int, data: PaymentUpdate, db: Session = Depends(get_db)):
    payment = PaymentService.update_payment(
        db, payment_id, **data.model_dump(exclude_unset=True)
    )
    db.commit()
    db.refresh(payment)
    return PaymentOut.from_payment(payment)


@router.delete("/{payment_id}", response_model=MessageOut)
def delete_payment(payment_id: int, db: Session = Depends(get_db)):
    PaymentService.delete_payment(db, payment_id)
    db.commit()
    return {"message": "Payment deleted successfully"}
