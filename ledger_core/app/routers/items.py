"""
Transactions API Router
=======================
IN/OUT ledger entries and the available-inventory report.
"""

from typing import List

from fastapi import APIRouter, Body, Depends
from fastapi.exceptions import RequestValidationError
from pydantic import TypeAdapter, ValidationError
from sqlalchemy.orm import Session

from ..db import get_db
from ..models import TransactionType
from ..schemas import (
    AvailableInventoryOut, InTransactionCreate, MessageOut, TransactionCreate,
    TransactionOut,
)
from ..services import LedgerQueryService, TransactionService, ValidationFailed

router = APIRouter(prefix="/api/items", tags=["Transactions"])

_transaction_request = TypeAdapter(TransactionCreate)


def _parse_transaction(payload: dict):
    try:
        return _transaction_request.validate_python(payload)
    except ValidationError as e:
        raise RequestValidationError(e.errors(include_url=False, include_context=False))


def _parse_type(value: str) -> TransactionType:
    try:
        return TransactionType(value.upper())
    except ValueError:
        raise ValidationFailed("Type must be IN or OUT")


@router.get("/transactions", response_model=List[TransactionOut])
def list_transactions(db: Session = Depends(get_db)):
    return [TransactionOut.from_transaction(t) for t in TransactionService.list_transactions(db)]


@router.post("/transactions", response_model=TransactionOut, status_code=201)
def create_transaction(payload: dict = Body(...), db: Session = Depends(get_db)):
    """
    Record an IN or OUT entry.

    IN needs `payalType` and `price`; OUT carries neither payal type nor
    (if omitted) a price. Any client-supplied total is ignored and
    recomputed as qty * price.
    """
    data = _parse_transaction(payload)
    if isinstance(data, InTransactionCreate):
        txn = TransactionService.create_transaction(
            db,
            TransactionType.IN,
            vendor_name=data.vendor,
            item_name=data.item,
            quantity=data.qty,
            price_per_unit=data.price,
            payal_type=data.payal_type,
            in_date=data.in_date,
        )
    else:
        txn = TransactionService.create_transaction(
            db,
            TransactionType.OUT,
            vendor_name=data.vendor,
            item_name=data.item,
            quantity=data.qty,
            price_per_unit=data.price,
            out_date=data.out_date,
        )
    return TransactionOut.from_transaction(txn)


@router.get("/transactions/{txn_type}", response_model=List[TransactionOut])
def list_transactions_by_type(txn_type: str, db: Session = Depends(get_db)):
    transactions = TransactionService.list_transactions(db, txn_type=_parse_type(txn_type))
    return [TransactionOut.from_transaction(t) for t in transactions]


@router.delete("/transactions/{transaction_id}", response_model=MessageOut)
def delete_transaction(transaction_id: int, db: Session = Depends(get_db)):
    TransactionService.delete_transaction(db, transaction_id)
    db.commit()
    return {"message": "Transaction deleted successfully"}


@router.get("/inventory/available", response_model=List[AvailableInventoryOut])
def available_inventory(db: Session = Depends(get_db)):
    return LedgerQueryService.available_inventory(db)
