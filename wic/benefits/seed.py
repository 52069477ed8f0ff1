"""Demo data: WIC stores, the approved-food catalog and three test cards."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from .db import ApprovedFoodCatalog, BenefitLedger, StoreDB
from .periods import Clock, current_period, system_clock

logger = logging.getLogger(__name__)

# Three test WIC cards
CARD_NUMBERS: dict[str, str] = {
    "heavy": "1234567890",  # low remaining benefits
    "moderate": "0987654321",
    "light": "5555555555",  # high remaining benefits
}

ALLOTMENTS: dict[str, float] = {
    "dairy": 4.0,
    "grains": 16.0,
    "protein": 2.0,
    "fruits": 12.0,
    "vegetables": 12.0,
}

REMAINING: dict[str, dict[str, float]] = {
    "heavy": {
        "dairy": 0.5,
        "grains": 2.0,
        "protein": 0.25,
        "fruits": 1.5,
        "vegetables": 2.0,
    },
    "moderate": {
        "dairy": 2.0,
        "grains": 8.0,
        "protein": 1.0,
        "fruits": 6.0,
        "vegetables": 6.0,
    },
    "light": {
        "dairy": 3.5,
        "grains": 14.0,
        "protein": 1.75,
        "fruits": 10.5,
        "vegetables": 11.0,
    },
}

STORES: list[dict] = [
    {
        "name": "Walmart Supercenter",
        "chain": "Walmart",
        "address": "100 Main St",
        "city": "York",
        "state": "PA",
        "zip_code": "17401",
        "phone": "(717) 555-0100",
    },
    {
        "name": "Giant Food Store",
        "chain": "Giant",
        "address": "200 Market St",
        "city": "York",
        "state": "PA",
        "zip_code": "17402",
        "phone": "(717) 555-0200",
    },
    {
        "name": "Weis Markets",
        "chain": "Weis",
        "address": "300 Commerce Ave",
        "city": "York",
        "state": "PA",
        "zip_code": "17403",
        "phone": "(717) 555-0300",
    },
    {
        "name": "Target",
        "chain": "Target",
        "address": "400 Shopping Plaza",
        "city": "York",
        "state": "PA",
        "zip_code": "17404",
        "phone": "(717) 555-0400",
    },
    {
        "name": "ALDI",
        "chain": "ALDI",
        "address": "500 Budget Lane",
        "city": "York",
        "state": "PA",
        "zip_code": "17405",
        "phone": "(717) 555-0500",
    },
]


@dataclass(frozen=True)
class SeedFood:
    name: str
    category: str
    subcategory: str
    unit_size: str
    upc_code: str = ""
    plu_code: str = ""
    brand: str = "Generic"
    is_approved: bool = True
    notes: str = ""


FOODS: list[SeedFood] = [
    # Dairy
    SeedFood("Whole Milk", "dairy", "milk", "1 gallon", upc_code="011110123456"),
    SeedFood("2% Reduced Fat Milk", "dairy", "milk", "1 gallon", upc_code="011110123457"),
    SeedFood("Whole Milk", "dairy", "milk", "half gallon", upc_code="011110123460"),
    SeedFood("1% Low Fat Milk", "dairy", "milk", "64 fl oz", upc_code="011110123461"),
    SeedFood(
        "Chocolate Milk", "dairy", "milk", "half gallon",
        upc_code="011110123462", is_approved=False,
        notes="Flavored milk is not WIC-approved",
    ),
    SeedFood("Cheddar Cheese", "dairy", "cheese", "16 oz", upc_code="011110123458"),
    SeedFood("Plain Yogurt", "dairy", "yogurt", "32 oz", upc_code="011110123459"),
    # Grains
    SeedFood("Whole Wheat Bread", "grains", "bread", "24 oz", upc_code="011110234567"),
    SeedFood("Whole Wheat Bread", "grains", "bread", "16 oz", upc_code="011110234570"),
    SeedFood("Brown Rice", "grains", "rice", "32 oz", upc_code="011110234568"),
    SeedFood("Whole Grain Cereal", "grains", "cereal", "18 oz", upc_code="011110234569"),
    # Protein
    SeedFood("Large Eggs", "protein", "eggs", "12 count", upc_code="011110345678"),
    SeedFood("Peanut Butter", "protein", "nut-butter", "18 oz", upc_code="011110345679"),
    SeedFood("Dried Pinto Beans", "protein", "beans", "16 oz", upc_code="011110345680"),
    # Fruits
    SeedFood("Fresh Apples", "fruits", "fresh", "per lb", plu_code="4131"),
    SeedFood("Fresh Bananas", "fruits", "fresh", "per lb", plu_code="4011"),
    SeedFood("Fresh Strawberries", "fruits", "fresh", "16 oz", upc_code="011110456789"),
    # Vegetables
    SeedFood("Fresh Carrots", "vegetables", "fresh", "per lb", plu_code="4562"),
    SeedFood("Fresh Spinach", "vegetables", "leafy", "10 oz", upc_code="011110567890"),
    SeedFood("Fresh Broccoli", "vegetables", "fresh", "per lb", plu_code="4060"),
]


def seed_database(
    db_path: str | Path,
    *,
    clock: Clock = system_clock,
    reset: bool = True,
) -> dict[str, int]:
    """Fill the database with demo stores, catalog and card balances.

    Args:
        db_path: SQLite database path.
        clock: Determines the month period the cards are seeded for.
        reset: Clear the catalog, stores and this period's card balances
            first.

    Returns:
        Counts of seeded rows by kind.
    """
    period = current_period(clock)
    logger.info("Seeding %s for period %s", db_path, period)

    stores = StoreDB(db_path)
    catalog = ApprovedFoodCatalog(db_path)
    ledger = BenefitLedger(db_path, clock=clock)
    try:
        if reset:
            catalog.clear()
            stores.clear()
            for card in CARD_NUMBERS.values():
                ledger.delete_benefits(card, period)

        store_ids = stores.add_stores(STORES)

        approved = 0
        for food in FOODS:
            food_id = catalog.add_general_food(
                food.name,
                food.category,
                brand=food.brand,
                subcategory=food.subcategory,
                upc_code=food.upc_code,
                plu_code=food.plu_code,
                unit_size=food.unit_size,
            )
            catalog.approve_food(
                food_id,
                food.category,
                is_approved=food.is_approved,
                notes=food.notes or f"WIC approved {food.name.lower()}",
            )
            approved += int(food.is_approved)

        benefits = 0
        for profile, card in CARD_NUMBERS.items():
            rows = ledger.issue_benefits(card, period, ALLOTMENTS, REMAINING[profile])
            benefits += len(rows)
    finally:
        ledger.close()
        catalog.close()
        stores.close()

    summary = {
        "stores": len(store_ids),
        "foods": len(FOODS),
        "approved_foods": approved,
        "benefits": benefits,
    }
    logger.info("Seed complete: %s", summary)
    return summary
