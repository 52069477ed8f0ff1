"""Tests for demo data seeding."""

from datetime import datetime

import pytest

from wic.benefits.db import ApprovedFoodCatalog, BenefitLedger, StoreDB
from wic.benefits.periods import fixed_clock
from wic.benefits.seed import ALLOTMENTS, CARD_NUMBERS, FOODS, REMAINING, seed_database


@pytest.fixture
def clock():
    return fixed_clock(datetime(2024, 3, 2, 8, 0))


def test_seed_summary(tmp_path, clock):
    summary = seed_database(tmp_path / "seed.db", clock=clock)
    assert summary == {
        "stores": 5,
        "foods": len(FOODS),
        "approved_foods": sum(f.is_approved for f in FOODS),
        "benefits": 15,
    }


def test_seeded_balances(tmp_path, clock):
    path = tmp_path / "seed.db"
    seed_database(path, clock=clock)

    ledger = BenefitLedger(path, clock=clock)
    try:
        for profile, card in CARD_NUMBERS.items():
            benefits = {b.category.value: b for b in ledger.get_benefits(card, "2024-03")}
            assert set(benefits) == set(ALLOTMENTS)
            for category, remaining in REMAINING[profile].items():
                assert benefits[category].remaining_amount == remaining
                assert benefits[category].total_amount == ALLOTMENTS[category]
                assert benefits[category].expires_at == "2024-03-31"
    finally:
        ledger.close()


def test_reseed_does_not_duplicate(tmp_path, clock):
    path = tmp_path / "seed.db"
    seed_database(path, clock=clock)

    ledger = BenefitLedger(path, clock=clock)
    ledger.apply_purchase(CARD_NUMBERS["light"], "dairy", 0.5, "gallons")
    ledger.close()

    seed_database(path, clock=clock)

    catalog = ApprovedFoodCatalog(path)
    stores = StoreDB(path)
    ledger = BenefitLedger(path, clock=clock)
    try:
        assert len(catalog.find_by_code("011110123460")) == 1
        assert len(stores.list_stores()) == 5
        assert ledger.get_benefit(CARD_NUMBERS["light"], "dairy").remaining_amount == 3.5
        # Purchase history survives reseeding
        assert len(ledger.get_transactions(CARD_NUMBERS["light"])) == 1
    finally:
        ledger.close()
        stores.close()
        catalog.close()


def test_reseed_keeps_stores_used_by_purchases(tmp_path, clock):
    path = tmp_path / "seed.db"
    seed_database(path, clock=clock)

    stores = StoreDB(path)
    store = stores.list_stores()[0]
    ledger = BenefitLedger(path, clock=clock)
    ledger.apply_purchase(
        CARD_NUMBERS["light"], "dairy", 0.5, "gallons", store_id=store.id
    )
    ledger.close()

    seed_database(path, clock=clock)

    ledger = BenefitLedger(path, clock=clock)
    try:
        listed = stores.list_stores()
        assert len(listed) == 5
        assert store.id in [s.id for s in listed]
        [txn] = ledger.get_transactions(CARD_NUMBERS["light"])
        assert txn.store_name == store.name
    finally:
        ledger.close()
        stores.close()


def test_catalog_contents(tmp_path, clock):
    path = tmp_path / "seed.db"
    seed_database(path, clock=clock)

    catalog = ApprovedFoodCatalog(path)
    try:
        gallon = catalog.find_by_code("011110123456")[0]
        assert gallon.subcategory == "milk"
        assert gallon.unit_size == "1 gallon"

        chocolate = catalog.find_by_code("011110123462")[0]
        assert chocolate.is_approved is False

        bananas = catalog.find_by_code("4011")[0]
        assert bananas.category.value == "fruits"
    finally:
        catalog.close()
