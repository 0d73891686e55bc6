from fastapi import APIRouter, Depends

from ..catalog import Catalog, get_catalog
from ..pricing import quote_order
from ..schemas import CustomerForm, QuoteRead, QuoteRequest, ValidationResult
from ..validation import generate_time_slots, validate_customer

router = APIRouter(prefix="/checkout", tags=["checkout"])


@router.post("/quote", response_model=QuoteRead)
def quote(payload: QuoteRequest, catalog: Catalog = Depends(get_catalog)) -> QuoteRead:
    coordinates = payload.coordinates.to_point() if payload.coordinates else None
    result = quote_order(payload.lines, payload.delivery_mode, coordinates, catalog)
    return QuoteRead(
        subtotal=result.subtotal,
        delivery_fee=result.delivery.fee,
        eligible=result.delivery.eligible,
        distance_km=result.delivery.distance_km,
        grand_total=result.grand_total,
        negotiate=result.delivery.negotiate,
    )


@router.post("/validate", response_model=ValidationResult)
def validate(payload: CustomerForm) -> ValidationResult:
    errors = validate_customer(payload)
    return ValidationResult(errors=errors, submittable=not errors)


@router.get("/slots", response_model=list[str])
def slots(delivery: bool = False) -> list[str]:
    return generate_time_slots(delivery)
