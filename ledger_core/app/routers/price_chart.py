from typing import Dict, List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db import get_db
from ..schemas import (
    DeletedCountOut, MessageOut, PriceChartEntryIn, PriceChartEntryOut,
    PriceChartPriceIn,
)
from ..services import PriceChartService

router = APIRouter(prefix="/api/payal-price-chart", tags=["Payal Price Chart"])


@router.get("", response_model=Dict[str, Dict[str, float]])
def get_price_chart(db: Session = Depends(get_db)):
    return PriceChartService.price_chart(db)


@router.post("", response_model=PriceChartEntryOut)
def upsert_price(data: PriceChartEntryIn, db: Session = Depends(get_db)):
    entry = PriceChartService.upsert(db, data.wire_thickness, data.payal_type, data.price_per_kg)
    db.commit()
    db.refresh(entry)
    return entry


@router.post("/seed", response_model=List[PriceChartEntryOut], status_code=201)
def seed_price_chart(db: Session = Depends(get_db)):
    """Replace the chart with the default prices."""
    entries = PriceChartService.seed(db)
    db.commit()
    for entry in entries:
        db.refresh(entry)
    return entries


@router.delete("/wire/{wire_thickness}", response_model=DeletedCountOut)
def delete_wire(wire_thickness: str, db: Session = Depends(get_db)):
    deleted = PriceChartService.delete_wire(db, wire_thickness)
    db.commit()
    return {"message": f"Deleted all prices for {wire_thickness}", "deletedCount": deleted}


@router.get("/{wire_thickness}/{payal_type}", response_model=PriceChartEntryOut)
def get_price(wire_thickness: str, payal_type: str, db: Session = Depends(get_db)):
    return PriceChartService.get_entry(db, wire_thickness, payal_type)


@router.put("/{wire_thickness}/{payal_type}", response_model=PriceChartEntryOut)
def update_price(
    wire_thickness: str,
    payal_type: str,
    data: PriceChartPriceIn,
    db: Session = Depends(get_db),
):
    entry = PriceChartService.update(db, wire_thickness, payal_type, data.price_per_kg)
    db.commit()
    db.refresh(entry)
    return entry


@router.delete("/{wire_thickness}/{payal_type}", response_model=MessageOut)
def delete_price(wire_thickness: str, payal_type: str, db: Session = Depends(get_db)):
    PriceChartService.delete(db, wire_thickness, payal_type)
    db.commit()
    return {"message": "Price entry deleted successfully"}
