"""Tests for ApprovedFoodCatalog and StoreDB."""

import pytest

from wic.benefits.db import ApprovedFoodCatalog, StoreDB
from wic.benefits.db.catalog import normalize_code
from wic.benefits.models import BenefitCategory


@pytest.fixture
def catalog(tmp_path):
    catalog = ApprovedFoodCatalog(tmp_path / "test.db")
    yield catalog
    catalog.close()


@pytest.fixture
def stores(tmp_path):
    db = StoreDB(tmp_path / "test.db")
    yield db
    db.close()


def _add(catalog, name, category, *, approved=True, **kwargs):
    food_id = catalog.add_general_food(name, category, **kwargs)
    catalog.approve_food(food_id, category, is_approved=approved)
    return food_id


def test_normalize_code():
    assert normalize_code("0-11110-12345-6") == "011110123456"
    assert normalize_code(" 4011 ") == "4011"
    assert normalize_code("") == ""


class TestFindByCode:
    def test_by_upc(self, catalog):
        _add(catalog, "Whole Milk", "dairy", subcategory="milk",
             upc_code="011110123460", unit_size="half gallon")

        rows = catalog.find_by_code("011110123460")
        assert len(rows) == 1
        food = rows[0]
        assert food.name == "Whole Milk"
        assert food.category is BenefitCategory.DAIRY
        assert food.subcategory == "milk"
        assert food.unit_size == "half gallon"
        assert food.is_approved is True
        assert food.is_generic is True

    def test_by_plu(self, catalog):
        _add(catalog, "Fresh Bananas", "fruits", plu_code="4011", unit_size="per lb")
        rows = catalog.find_by_code("4011")
        assert [r.name for r in rows] == ["Fresh Bananas"]
        assert rows[0].upc_code == ""

    def test_separators_ignored(self, catalog):
        _add(catalog, "Whole Milk", "dairy", upc_code="011110123460")
        assert len(catalog.find_by_code("0 11110 12346 0")) == 1

    def test_unknown_code(self, catalog):
        assert catalog.find_by_code("999999999999") == []
        assert catalog.find_by_code("") == []

    def test_not_approved_row_returned(self, catalog):
        _add(catalog, "Chocolate Milk", "dairy", approved=False, upc_code="011110123462")
        rows = catalog.find_by_code("011110123462")
        assert rows[0].is_approved is False

    def test_brand_specific_and_generic_rows(self, catalog):
        _add(catalog, "Whole Milk", "dairy", upc_code="011110123460")
        _add(catalog, "Whole Milk", "dairy", brand="Dairy Farms", upc_code="011110123460")
        rows = catalog.find_by_code("011110123460")
        assert {r.brand for r in rows} == {"Generic", "Dairy Farms"}


class TestQueries:
    def test_find_by_category_only_approved(self, catalog):
        _add(catalog, "Whole Milk", "dairy", upc_code="1")
        _add(catalog, "Chocolate Milk", "dairy", approved=False, upc_code="2")
        _add(catalog, "Brown Rice", "grains", upc_code="3")

        names = [f.name for f in catalog.find_by_category("dairy")]
        assert names == ["Whole Milk"]

    def test_search(self, catalog):
        _add(catalog, "Whole Milk", "dairy", upc_code="1")
        _add(catalog, "Whole Wheat Bread", "grains", upc_code="2")
        _add(catalog, "Brown Rice", "grains", upc_code="3")

        names = [f.name for f in catalog.search("whole")]
        assert names == ["Whole Milk", "Whole Wheat Bread"]
        assert len(catalog.search("whole", limit=1)) == 1

    def test_get_general_food(self, catalog):
        _add(catalog, "Fresh Spinach", "vegetables", subcategory="leafy",
             upc_code="011110567890", unit_size="10 oz")
        food = catalog.get_general_food("011110567890")
        assert food.name == "Fresh Spinach"
        assert food.category is BenefitCategory.VEGETABLES
        assert food.unit_size == "10 oz"
        assert catalog.get_general_food("123") is None

    def test_unknown_category_rejected(self, catalog):
        with pytest.raises(ValueError, match="Unknown benefit category"):
            catalog.add_general_food("Soda", "snacks")

    def test_clear(self, catalog):
        _add(catalog, "Whole Milk", "dairy", upc_code="1")
        catalog.clear()
        assert catalog.find_by_code("1") == []
        assert catalog.get_general_food("1") is None


class TestStoreDB:
    def test_add_and_list(self, stores):
        ids = stores.add_stores([
            {"name": "Weis Markets", "zip_code": "17403", "city": "York", "state": "PA"},
            {"name": "ALDI", "zip_code": "17405"},
        ])
        assert len(ids) == 2

        listed = stores.list_stores()
        assert [s.name for s in listed] == ["ALDI", "Weis Markets"]
        assert stores.get_store(ids[0]).city == "York"

    def test_filter_by_zip(self, stores):
        stores.add_stores([
            {"name": "Weis Markets", "zip_code": "17403"},
            {"name": "ALDI", "zip_code": "17405"},
        ])
        assert [s.name for s in stores.list_stores(zip_code="17405")] == ["ALDI"]

    def test_inactive_hidden(self, stores):
        stores.add_stores([{"name": "Closed Store", "is_active": False}])
        assert stores.list_stores() == []
        assert len(stores.list_stores(active_only=False)) == 1

    def test_get_missing_store(self, stores):
        assert stores.get_store(42) is None

    def test_clear(self, stores):
        stores.add_stores([{"name": "Target"}])
        stores.clear()
        assert stores.list_stores() == []

    def test_same_name_and_address_updates_row(self, stores):
        store = {"name": "Giant", "address": "1 Main St", "phone": "555-0100"}
        first = stores.add_stores([store])
        second = stores.add_stores([{**store, "phone": "555-0199"}])

        assert first == second
        listed = stores.list_stores()
        assert len(listed) == 1
        assert listed[0].phone == "555-0199"

    def test_same_name_other_address_is_new_store(self, stores):
        ids = stores.add_stores([
            {"name": "Giant", "address": "1 Main St"},
            {"name": "Giant", "address": "9 Oak Ave"},
        ])
        assert ids[0] != ids[1]
        assert len(stores.list_stores()) == 2
