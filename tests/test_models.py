"""Tests for benefit data models."""

import pytest

from wic.benefits.models import (
    ApprovedFood,
    Benefit,
    BenefitCategory,
    PurchaseResult,
    Transaction,
    TransactionItem,
)


class TestBenefitCategory:
    def test_canonical_units(self):
        assert BenefitCategory.DAIRY.unit == "gallons"
        assert BenefitCategory.GRAINS.unit == "oz"
        assert BenefitCategory.PROTEIN.unit == "lbs"
        assert BenefitCategory.FRUITS.unit == "dollars"
        assert BenefitCategory.VEGETABLES.unit == "dollars"

    def test_parse(self):
        assert BenefitCategory.parse(" Dairy ") is BenefitCategory.DAIRY
        assert BenefitCategory.parse(BenefitCategory.FRUITS) is BenefitCategory.FRUITS

    def test_parse_unknown(self):
        with pytest.raises(ValueError, match="Unknown benefit category"):
            BenefitCategory.parse("snacks")


def test_benefit_used_amount():
    benefit = Benefit(
        card_number="1234567890",
        category=BenefitCategory.DAIRY,
        total_amount=4.0,
        remaining_amount=0.5,
        unit="gallons",
        month_period="2024-01",
        expires_at="2024-01-31",
    )
    assert benefit.used_amount == 3.5


def test_approved_food_is_generic():
    food = ApprovedFood(
        id=1, general_food_id=1, name="Whole Milk", brand=" generic ",
        category=BenefitCategory.DAIRY,
    )
    assert food.is_generic is True


def test_transaction_total_items():
    items = (
        TransactionItem(BenefitCategory.DAIRY, 0.5, "gallons"),
        TransactionItem(BenefitCategory.GRAINS, 16.0, "oz"),
    )
    tx = Transaction(id=1, card_number="1234567890", created_at="2024-01-15T10:00:00",
                     month_period="2024-01", items=items)
    assert tx.total_items == 2


def test_purchase_result_balance_empty():
    assert PurchaseResult(accepted=False).balance is None
