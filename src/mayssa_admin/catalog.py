"""Read-only access to the sellable items."""

from __future__ import annotations

import json
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Iterable, Optional

from .config import get_settings
from .errors import NotFoundError


@dataclass(frozen=True, slots=True)
class SizeVariant:
    label: str
    price: float


@dataclass(frozen=True, slots=True)
class CatalogItem:
    id: str
    name: str
    price: float
    category: str
    sizes: tuple[SizeVariant, ...] = ()


DEFAULT_ITEMS: tuple[CatalogItem, ...] = (
    CatalogItem("mini-box-brownies-6", "Mini Brownies (box de 6)", 4.5, "Mini Gourmandises"),
    CatalogItem("mini-box-cookies-6", "Mini Cookies (box de 6)", 4.0, "Mini Gourmandises"),
    CatalogItem("mini-box-pancakes-6", "Mini Pancakes (box de 6)", 4.5, "Mini Gourmandises"),
    CatalogItem("mini-box-mix-15", "Box Mixte mini (15 pièces)", 13.0, "Mini Gourmandises"),
    CatalogItem("brownie-pistache-framboise", "Brownie Pistache Framboise", 3.5, "Brownies"),
    CatalogItem("brownie-caramel-cacahuete", "Brownie Caramel Cacahuète", 3.5, "Brownies"),
    CatalogItem("brownie-tiramisu-cafe", "Brownie Tiramisu Café", 4.0, "Brownies"),
    CatalogItem("cookie-nutella-kinder", "Cookie Nutella Kinder", 3.0, "Cookies"),
    CatalogItem("cookie-fruit-rouge", "Cookie Fruits rouges", 3.0, "Cookies"),
    CatalogItem("cookie-creme-brulee", "Cookie Crème brûlée vanille", 4.0, "Cookies"),
    CatalogItem(
        "layer-cup",
        "Layer Cup (parfum au choix)",
        4.0,
        "Layer Cups",
        (SizeVariant("250 ml", 4.0), SizeVariant("360 ml", 6.0), SizeVariant("500 ml", 8.0)),
    ),
    CatalogItem("box-cookie-6", "Box Cookies x6 (parfums au choix)", 18.0, "Boxes"),
    CatalogItem("box-brownie-6", "Box Brownies x6 (parfums au choix)", 20.0, "Boxes"),
    CatalogItem("box-mixte-6", "Box Mixte x6 (3 cookies + 3 brownies)", 25.0, "Boxes"),
    CatalogItem("trompe-loeil-citron", "Trompe-l'oeil Citron", 7.5, "Trompe l'oeil"),
    CatalogItem("trompe-loeil-mangue", "Trompe-l'oeil Mangue", 7.5, "Trompe l'oeil"),
)


class Catalog:
    """Immutable lookup over catalog items keyed by their stable id."""

    def __init__(self, items: Iterable[CatalogItem]) -> None:
        self._items = {item.id: item for item in items}

    def get_items(self) -> list[CatalogItem]:
        return list(self._items.values())

    def get(self, item_id: str) -> CatalogItem:
        try:
            return self._items[item_id]
        except KeyError:
            raise NotFoundError("Catalog item", item_id) from None

    def unit_price(self, item_id: str, size_label: Optional[str] = None) -> float:
        """Price of one unit, using the size variant when one is named."""

        item = self.get(item_id)
        if size_label is None:
            return item.price
        for size in item.sizes:
            if size.label == size_label:
                return size.price
        raise NotFoundError("Size", f"{item_id}/{size_label}")

    def line_name(self, item_id: str, size_label: Optional[str] = None) -> str:
        item = self.get(item_id)
        return f"{item.name} ({size_label})" if size_label else item.name


def load_catalog(path: Path) -> Catalog:
    """Load a catalog from a JSON list of ``{id, name, price, category, sizes?}``."""

    raw = json.loads(path.read_text(encoding="utf-8"))
    items = [
        CatalogItem(
            id=entry["id"],
            name=entry["name"],
            price=float(entry["price"]),
            category=entry.get("category", ""),
            sizes=tuple(SizeVariant(s["label"], float(s["price"])) for s in entry.get("sizes") or ()),
        )
        for entry in raw
    ]
    return Catalog(items)


@lru_cache(maxsize=1)
def get_catalog() -> Catalog:
    """Return the configured catalog, falling back to the built-in items."""

    settings = get_settings()
    if settings.catalog_path is not None:
        return load_catalog(settings.catalog_path)
    return Catalog(DEFAULT_ITEMS)
