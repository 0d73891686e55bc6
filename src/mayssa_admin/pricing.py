"""Delivery eligibility and order pricing.

The same functions back the customer checkout quote and the operator edit
path, so the fee a customer sees is always the fee an edited order carries.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Optional, Protocol

from .catalog import Catalog
from .config import Settings, get_settings
from .models import DeliveryMode

EARTH_RADIUS_KM = 6371.0


@dataclass(frozen=True, slots=True)
class Coordinates:
    lat: float
    lng: float


@dataclass(frozen=True, slots=True)
class DeliveryZone:
    reference: Coordinates
    radius_km: float
    flat_fee: float
    free_threshold: float

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "DeliveryZone":
        settings = settings or get_settings()
        return cls(
            reference=Coordinates(settings.reference_lat, settings.reference_lng),
            radius_km=settings.delivery_radius_km,
            flat_fee=settings.delivery_fee,
            free_threshold=settings.free_delivery_threshold,
        )


@dataclass(frozen=True, slots=True)
class DeliveryQuote:
    """Outcome of a delivery pricing request.

    ``eligible`` is ``None`` when no coordinates were supplied and ``False``
    outside the zone; in both cases ``fee`` is ``None`` and the fee has to be
    agreed with the customer by hand.
    """

    eligible: Optional[bool]
    fee: Optional[float]
    distance_km: Optional[float] = None

    @property
    def negotiate(self) -> bool:
        return self.fee is None


@dataclass(frozen=True, slots=True)
class PricedLine:
    item_id: str
    size_label: Optional[str]
    name: str
    unit_price: float
    quantity: int

    @property
    def amount(self) -> float:
        return self.unit_price * self.quantity


@dataclass(frozen=True, slots=True)
class OrderQuote:
    lines: tuple[PricedLine, ...]
    subtotal: float
    delivery: DeliveryQuote

    @property
    def grand_total(self) -> Optional[float]:
        if self.delivery.fee is None:
            return None
        return round(self.subtotal + self.delivery.fee, 2)


class LineRequest(Protocol):
    item_id: str
    quantity: int
    size_label: Optional[str]


def haversine_km(origin: Coordinates, target: Coordinates) -> float:
    """Great-circle distance between two points in kilometres."""

    d_lat = math.radians(target.lat - origin.lat)
    d_lng = math.radians(target.lng - origin.lng)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(origin.lat)) * math.cos(math.radians(target.lat)) * math.sin(d_lng / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def compute_delivery_quote(
    mode: DeliveryMode | str,
    coordinates: Optional[Coordinates],
    subtotal: float,
    zone: Optional[DeliveryZone] = None,
) -> DeliveryQuote:
    zone = zone or DeliveryZone.from_settings()
    if DeliveryMode(mode) is DeliveryMode.PICKUP:
        return DeliveryQuote(eligible=True, fee=0.0)
    if coordinates is None:
        return DeliveryQuote(eligible=None, fee=None)

    distance = haversine_km(coordinates, zone.reference)
    if distance > zone.radius_km:
        return DeliveryQuote(eligible=False, fee=None, distance_km=distance)
    fee = 0.0 if subtotal >= zone.free_threshold else zone.flat_fee
    return DeliveryQuote(eligible=True, fee=fee, distance_km=distance)


def price_lines(lines: Iterable[LineRequest], catalog: Catalog) -> tuple[PricedLine, ...]:
    """Resolve names and unit prices from the catalog, ignoring client prices."""

    priced = []
    for line in lines:
        if line.quantity <= 0:
            raise ValueError(f"Quantity for '{line.item_id}' must be positive")
        priced.append(
            PricedLine(
                item_id=line.item_id,
                size_label=line.size_label,
                name=catalog.line_name(line.item_id, line.size_label),
                unit_price=catalog.unit_price(line.item_id, line.size_label),
                quantity=line.quantity,
            )
        )
    return tuple(priced)


def subtotal_of(lines: Iterable[PricedLine]) -> float:
    return round(sum(line.amount for line in lines), 2)


def quote_order(
    lines: Iterable[LineRequest],
    mode: DeliveryMode | str,
    coordinates: Optional[Coordinates],
    catalog: Catalog,
    zone: Optional[DeliveryZone] = None,
) -> OrderQuote:
    priced = price_lines(lines, catalog)
    subtotal = subtotal_of(priced)
    return OrderQuote(
        lines=priced,
        subtotal=subtotal,
        delivery=compute_delivery_quote(mode, coordinates, subtotal, zone),
    )
