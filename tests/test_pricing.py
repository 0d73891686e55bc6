import pytest

from mayssa_admin.errors import NotFoundError
from mayssa_admin.models import DeliveryMode
from mayssa_admin.pricing import (
    Coordinates,
    DeliveryZone,
    compute_delivery_quote,
    haversine_km,
    price_lines,
    quote_order,
)
from mayssa_admin.schemas import LineIn

NEAR = Coordinates(45.9050, 6.1250)
LYON = Coordinates(45.7640, 4.8357)


def test_haversine_is_zero_for_same_point() -> None:
    assert haversine_km(NEAR, NEAR) == pytest.approx(0.0)


def test_haversine_annecy_to_lyon(zone) -> None:
    assert haversine_km(zone.reference, LYON) == pytest.approx(100, abs=10)


def test_pickup_is_always_free(zone) -> None:
    quote = compute_delivery_quote(DeliveryMode.PICKUP, None, 10.0, zone)
    assert quote.eligible is True
    assert quote.fee == 0.0
    assert not quote.negotiate


def test_delivery_without_coordinates_needs_negotiation(zone) -> None:
    quote = compute_delivery_quote(DeliveryMode.DELIVERY, None, 10.0, zone)
    assert quote.eligible is None
    assert quote.fee is None
    assert quote.negotiate


def test_delivery_outside_zone_has_no_fee(zone) -> None:
    quote = compute_delivery_quote(DeliveryMode.DELIVERY, LYON, 100.0, zone)
    assert quote.eligible is False
    assert quote.fee is None
    assert quote.distance_km > zone.radius_km


@pytest.mark.parametrize(
    ("subtotal", "expected_fee"),
    [(10.0, 5.0), (44.99, 5.0), (45.0, 0.0), (80.0, 0.0)],
)
def test_delivery_fee_threshold(zone, subtotal: float, expected_fee: float) -> None:
    quote = compute_delivery_quote("delivery", NEAR, subtotal, zone)
    assert quote.eligible is True
    assert quote.fee == expected_fee


def test_price_lines_uses_catalog_prices(catalog) -> None:
    priced = price_lines(
        [LineIn(item_id="brownie", quantity=2), LineIn(item_id="layer-cup", quantity=1, size_label="500 ml")],
        catalog,
    )
    assert [line.unit_price for line in priced] == [3.5, 8.0]
    assert priced[1].name == "Layer Cup (500 ml)"
    assert sum(line.amount for line in priced) == 15.0


def test_price_lines_rejects_unknown_item_and_size(catalog) -> None:
    with pytest.raises(NotFoundError):
        price_lines([LineIn(item_id="macaron", quantity=1)], catalog)
    with pytest.raises(NotFoundError):
        price_lines([LineIn(item_id="layer-cup", quantity=1, size_label="1 l")], catalog)


def test_quote_order_grand_total(catalog, zone) -> None:
    quote = quote_order([LineIn(item_id="cookie", quantity=3)], DeliveryMode.DELIVERY, NEAR, catalog, zone)
    assert quote.subtotal == 9.0
    assert quote.delivery.fee == 5.0
    assert quote.grand_total == 14.0


def test_quote_order_grand_total_unknown_when_negotiated(catalog, zone) -> None:
    quote = quote_order([LineIn(item_id="box-mixte", quantity=1)], DeliveryMode.DELIVERY, None, catalog, zone)
    assert quote.subtotal == 25.0
    assert quote.grand_total is None


def test_zone_boundary_is_inclusive(zone) -> None:
    edge = Coordinates(45.9300, 6.1217)
    on_edge = DeliveryZone(
        reference=zone.reference,
        radius_km=haversine_km(edge, zone.reference),
        flat_fee=zone.flat_fee,
        free_threshold=zone.free_threshold,
    )
    quote = compute_delivery_quote(DeliveryMode.DELIVERY, edge, 20.0, on_edge)
    assert quote.eligible is True
    assert quote.fee == 5.0


def test_delivery_totals_inside_zone(catalog, zone) -> None:
    lines = [LineIn(item_id="cookie", quantity=4), LineIn(item_id="layer-cup", quantity=1, size_label="500 ml")]
    small = quote_order(lines, DeliveryMode.DELIVERY, NEAR, catalog, zone)
    assert small.subtotal == 20.0
    assert small.delivery.fee == 5.0
    assert small.grand_total == 25.0

    large = quote_order([LineIn(item_id="box-mixte", quantity=2)], DeliveryMode.DELIVERY, NEAR, catalog, zone)
    assert large.subtotal == 50.0
    assert large.delivery.fee == 0.0
    assert large.grand_total == 50.0
