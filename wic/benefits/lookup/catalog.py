"""Lookup backend answering from the local general_foods table."""

from __future__ import annotations

from typing import TYPE_CHECKING

from . import ProductInfo, ProductLookup

if TYPE_CHECKING:
    from ..db import ApprovedFoodCatalog


class CatalogLookup(ProductLookup):
    """Resolve codes against the seeded product catalog (works offline)."""

    def __init__(self, catalog: ApprovedFoodCatalog) -> None:
        self._catalog = catalog

    async def lookup(self, code: str) -> ProductInfo | None:
        food = self._catalog.get_general_food(code)
        if food is None:
            return None
        return ProductInfo(
            code=food.upc_code or food.plu_code,
            name=food.name,
            brand=food.brand,
            size_text=food.unit_size,
            image_url=food.image_url,
        )
