"""
Pricing Service
===============
Price per kg for a (wire, payal type) combination. A vendor's own
assigned price wins over the general payal price chart.
"""

from dataclasses import dataclass
from typing import Dict, List

from sqlalchemy.orm import Session

from ..logging_config import get_logger
from ..models import PayalPriceChart, WireThickness
from .catalog_service import VendorService, flush_or_duplicate
from .errors import NotFound, PriceNotFound, ValidationFailed

logger = get_logger("pricing")

PRICE_SOURCE_VENDOR = "vendor"
PRICE_SOURCE_CHART = "chart"

# (wire thickness, payal type, price per kg)
DEFAULT_PRICE_CHART = [
    ("22mm", "Moorni", 120), ("22mm", "Silver", 200), ("22mm", "Golden", 350), ("22mm", "Diamond", 700),
    ("28mm", "Moorni", 150), ("28mm", "Silver", 250), ("28mm", "Golden", 400), ("28mm", "Diamond", 800),
    ("30mm", "Moorni", 180), ("30mm", "Silver", 280), ("30mm", "Golden", 450), ("30mm", "Diamond", 850),
    ("32mm", "Moorni", 200), ("32mm", "Silver", 300), ("32mm", "Golden", 500), ("32mm", "Diamond", 900),
]


@dataclass(frozen=True)
class ResolvedPrice:
    price_per_kg: float
    source: str


def _check_thickness(wire_thickness: str) -> str:
    try:
        return WireThickness(wire_thickness).value
    except ValueError:
        allowed = ", ".join(t.value for t in WireThickness)
        raise ValidationFailed(f"Wire thickness must be one of: {allowed}")


def resolve_price(db: Session, vendor_name: str, wire: str, payal_type: str) -> ResolvedPrice:
    """
    Unit price for a vendor/wire/payal type.

    Looks for a matching (wire_name, payal_type) entry in the vendor's
    assigned wires first, then the chart entry for (wire thickness, payal
    type).

    Raises:
        NotFound: vendor does not exist
        PriceNotFound: neither source prices the combination
    """
    vendor = VendorService.get_by_name(db, vendor_name)

    for assignment in vendor.assigned_wires:
        if assignment.wire_name == wire and assignment.payal_type == payal_type:
            return ResolvedPrice(assignment.price_per_kg, PRICE_SOURCE_VENDOR)

    entry = db.query(PayalPriceChart).filter(
        PayalPriceChart.wire_thickness == wire,
        PayalPriceChart.payal_type == payal_type,
    ).first()
    if entry:
        return ResolvedPrice(entry.price_per_kg, PRICE_SOURCE_CHART)

    raise PriceNotFound(f"No price found for {wire} {payal_type} (vendor {vendor.name})")


class PriceChartService:

    @staticmethod
    def price_chart(db: Session) -> Dict[str, Dict[str, float]]:
        """Nested {wire thickness: {payal type: price per kg}} mapping."""
        entries = db.query(PayalPriceChart).order_by(
            PayalPriceChart.wire_thickness.asc(), PayalPriceChart.payal_type.asc()
        ).all()

        chart: Dict[str, Dict[str, float]] = {}
        for entry in entries:
            chart.setdefault(entry.wire_thickness, {})[entry.payal_type] = entry.price_per_kg
        return chart

    @staticmethod
    def get_entry(db: Session, wire_thickness: str, payal_type: str) -> PayalPriceChart:
        entry = db.query(PayalPriceChart).filter(
            PayalPriceChart.wire_thickness == wire_thickness,
            PayalPriceChart.payal_type == payal_type,
        ).first()
        if not entry:
            raise PriceNotFound("Price not found for this combination")
        return entry

    @staticmethod
    def upsert(db: Session, wire_thickness: str, payal_type: str, price_per_kg: float) -> PayalPriceChart:
        wire_thickness = _check_thickness(wire_thickness)
        if price_per_kg is None or price_per_kg < 0:
            raise ValidationFailed("pricePerKg must be zero or greater")

        entry = db.query(PayalPriceChart).filter(
            PayalPriceChart.wire_thickness == wire_thickness,
            PayalPriceChart.payal_type == payal_type,
        ).first()
        if entry:
            entry.price_per_kg = price_per_kg
        else:
            entry = PayalPriceChart(
                wire_thickness=wire_thickness, payal_type=payal_type, price_per_kg=price_per_kg
            )
            db.add(entry)
        flush_or_duplicate(db, "Price entry already exists")
        return entry

    @staticmethod
    def update(db: Session, wire_thickness: str, payal_type: str, price_per_kg: float) -> PayalPriceChart:
        if price_per_kg is None or price_per_kg < 0:
            raise ValidationFailed("pricePerKg must be zero or greater")

        entry = db.query(PayalPriceChart).filter(
            PayalPriceChart.wire_thickness == wire_thickness,
            PayalPriceChart.payal_type == payal_type,
        ).first()
        if not entry:
            raise NotFound("Price entry not found")

        entry.price_per_kg = price_per_kg
        db.flush()
        return entry

    @staticmethod
    def delete(db: Session, wire_thickness: str, payal_type: str) -> None:
        entry = db.query(PayalPriceChart).filter(
            PayalPriceChart.wire_thickness == wire_thickness,
            PayalPriceChart.payal_type == payal_type,
        ).first()
        if not entry:
            raise NotFound("Price entry not found")
        db.delete(entry)
        db.flush()

    @staticmethod
    def delete_wire(db: Session, wire_thickness: str) -> int:
        deleted = db.query(PayalPriceChart).filter(
            PayalPriceChart.wire_thickness == wire_thickness
        ).delete(synchronize_session=False)
        if deleted == 0:
            raise NotFound("No price entries found for this wire thickness")
        return deleted

    @staticmethod
    def seed(db: Session) -> List[PayalPriceChart]:
        """Replace the whole chart with the default entries."""
        db.query(PayalPriceChart).delete(synchronize_session="fetch")
        entries = [
            PayalPriceChart(wire_thickness=thickness, payal_type=payal_type, price_per_kg=price)
            for thickness, payal_type, price in DEFAULT_PRICE_CHART
        ]
        db.add_all(entries)
        db.flush()
        logger.info("Seeded payal price chart with %s entries", len(entries))
        return entries
