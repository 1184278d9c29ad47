from __future__ import annotations

import decimal
from decimal import Decimal
from typing import Iterable

from prodtrack.core.schema import WorkItemSpec
from prodtrack.core.settings import EngineSettings, get_settings
from prodtrack.core.spec_parser import parse_items


def quantize(value: Decimal, settings: EngineSettings | None = None) -> Decimal:
    settings = settings or get_settings()
    rounding = getattr(decimal, settings.price_rounding)
    return value.quantize(settings.price_quantum, rounding=rounding)


def item_price(item: WorkItemSpec, settings: EngineSettings | None = None) -> Decimal:
    """Price of a single item: flat unit price, carousels by pairs of pages."""

    settings = settings or get_settings()
    if item.type == "Carrousel":
        pages = Decimal(item.page_count or 0)
        return quantize(pages / Decimal("2") * settings.unit_price, settings)
    return quantize(settings.unit_price, settings)


def specification_price(items: Iterable[WorkItemSpec], settings: EngineSettings | None = None) -> Decimal:
    settings = settings or get_settings()
    total = sum((item_price(item, settings) for item in items), Decimal("0"))
    return quantize(total, settings)


def price_text(text: str | None, settings: EngineSettings | None = None) -> Decimal:
    return specification_price(parse_items(text, settings), settings)
