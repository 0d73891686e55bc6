"""Checkout form validation.

``validate_customer`` is the single authority on whether an order may be
sent: an empty result means the form is submittable.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Mapping, Optional

from .models import DeliveryMode
from .schemas import CustomerForm
from .timeutils import local_now, to_local

PHONE_PATTERN = re.compile(r"^(\+33|0)[1-9](\d{2}){4}$")


def _compose_requested(date: str, time: str) -> Optional[datetime]:
    try:
        return datetime.strptime(f"{date.strip()} {time.strip()}", "%Y-%m-%d %H:%M")
    except ValueError:
        return None


def validate_contact(fields: Mapping[str, object]) -> dict[str, str]:
    """Check whichever of first_name, last_name and phone are present in *fields*."""

    errors: dict[str, str] = {}
    if "first_name" in fields and not str(fields["first_name"] or "").strip():
        errors["first_name"] = "Le prénom est requis"
    if "last_name" in fields and not str(fields["last_name"] or "").strip():
        errors["last_name"] = "Le nom est requis"
    if "phone" in fields:
        phone = str(fields["phone"] or "")
        if not phone.strip():
            errors["phone"] = "Le téléphone est requis"
        elif not PHONE_PATTERN.match(re.sub(r"\s", "", phone)):
            errors["phone"] = "Format de téléphone invalide"
    return errors


def validate_customer(form: CustomerForm, now: Optional[datetime] = None) -> dict[str, str]:
    errors = validate_contact(form.model_dump(include={"first_name", "last_name", "phone"}))

    if form.delivery_mode is DeliveryMode.DELIVERY and not form.address.strip():
        errors["address"] = "L'adresse est requise pour la livraison"

    if not form.date.strip():
        errors["date"] = "La date est requise"
    if not form.time.strip():
        errors["time"] = "L'heure est requise"

    if "date" not in errors and "time" not in errors:
        requested = _compose_requested(form.date, form.time)
        if requested is None:
            errors["date"] = "Date ou heure invalide"
        elif to_local(requested) < to_local(now or local_now()):
            errors["date"] = "Ce créneau est déjà passé"

    return errors


def is_submittable(form: CustomerForm, now: Optional[datetime] = None) -> bool:
    return not validate_customer(form, now)


def generate_time_slots(wants_delivery: bool) -> list[str]:
    """Half-hour slots offered at checkout, running past midnight until 02:00."""

    slots: list[str] = [] if wants_delivery else ["18:30"]
    for hour in range(20 if wants_delivery else 19, 24):
        slots.extend((f"{hour:02d}:00", f"{hour:02d}:30"))
    for hour in range(0, 3):
        slots.append(f"{hour:02d}:00")
        if hour < 2:
            slots.append(f"{hour:02d}:30")
    return slots
