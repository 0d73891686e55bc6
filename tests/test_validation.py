import pytest

from mayssa_admin.models import DeliveryMode
from mayssa_admin.schemas import CustomerForm
from mayssa_admin.validation import generate_time_slots, is_submittable, validate_customer


def _form(**overrides) -> CustomerForm:
    data = {
        "first_name": "Inès",
        "last_name": "Benali",
        "phone": "06 12 34 56 78",
        "delivery_mode": DeliveryMode.PICKUP,
        "date": "2099-03-05",
        "time": "20:00",
    }
    data.update(overrides)
    return CustomerForm(**data)


def test_complete_form_is_submittable(now) -> None:
    assert validate_customer(_form(), now) == {}
    assert is_submittable(_form(), now)


def test_blank_form_reports_every_required_field(now) -> None:
    errors = validate_customer(CustomerForm(), now)
    assert set(errors) == {"first_name", "last_name", "phone", "date", "time"}


def test_whitespace_only_names_are_blank(now) -> None:
    errors = validate_customer(_form(first_name="   ", last_name="\t"), now)
    assert "first_name" in errors
    assert "last_name" in errors


@pytest.mark.parametrize("phone", ["0612345678", "+33612345678", "06 12 34 56 78", "+33 6 12 34 56 78"])
def test_french_phone_numbers_are_accepted(now, phone: str) -> None:
    assert "phone" not in validate_customer(_form(phone=phone), now)


@pytest.mark.parametrize("phone", ["12345", "0012345678", "06123456789", "+44612345678"])
def test_malformed_phone_numbers_are_rejected(now, phone: str) -> None:
    assert validate_customer(_form(phone=phone), now)["phone"] == "Format de téléphone invalide"


def test_address_required_only_for_delivery(now) -> None:
    assert "address" not in validate_customer(_form(), now)
    errors = validate_customer(_form(delivery_mode=DeliveryMode.DELIVERY, address="  "), now)
    assert "address" in errors
    assert "address" not in validate_customer(
        _form(delivery_mode=DeliveryMode.DELIVERY, address="12 rue Royale, Annecy"), now
    )


def test_past_slot_is_rejected(now) -> None:
    errors = validate_customer(_form(date="2099-03-04", time="11:30"), now)
    assert errors == {"date": "Ce créneau est déjà passé"}


def test_unparseable_date_is_rejected(now) -> None:
    errors = validate_customer(_form(date="2099-13-40"), now)
    assert errors == {"date": "Date ou heure invalide"}


def test_pickup_slots_start_earlier_than_delivery() -> None:
    pickup = generate_time_slots(False)
    delivery = generate_time_slots(True)
    assert pickup[0] == "18:30"
    assert delivery[0] == "20:00"
    assert pickup[-1] == delivery[-1] == "02:00"
    assert "00:30" in delivery
    assert "02:30" not in pickup
