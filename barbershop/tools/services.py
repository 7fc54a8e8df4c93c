"""Barbershop service catalog with durations and prices."""

import logging
from decimal import Decimal
from typing import Iterable

from barbershop.schemas.booking_schema import Service

logger = logging.getLogger(__name__)

SERVICE_CATALOG: dict[str, dict] = {
    "haircut": {
        "name": "Classic Haircut",
        "duration_minutes": 30,
        "price": "5.000",
        "category": "hair",
    },
    "skin-fade": {
        "name": "Skin Fade",
        "duration_minutes": 45,
        "price": "6.500",
        "category": "hair",
    },
    "beard-trim": {
        "name": "Beard Trim",
        "duration_minutes": 15,
        "price": "2.500",
        "category": "beard",
    },
    "hot-towel-shave": {
        "name": "Hot Towel Shave",
        "duration_minutes": 30,
        "price": "4.000",
        "category": "beard",
    },
    "kids-cut": {
        "name": "Kids Haircut",
        "duration_minutes": 20,
        "price": "3.500",
        "category": "hair",
    },
    "hair-colour": {
        "name": "Hair Colour",
        "duration_minutes": 60,
        "price": "12.000",
        "category": "colour",
    },
}


def build_catalog() -> dict[str, Service]:
    """Materialize the default catalog as Service models keyed by id."""
    return {
        sid: Service(id=sid, **{**info, "price": Decimal(info["price"])})
        for sid, info in SERVICE_CATALOG.items()
    }


def summarize_services(services: Iterable[Service]) -> tuple[int, Decimal]:
    """Total duration in minutes and total price for a multi-service booking."""
    total_duration = 0
    total_price = Decimal("0")
    for service in services:
        total_duration += service.duration_minutes
        total_price += service.price
    return total_duration, total_price
