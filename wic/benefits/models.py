"""Data models for benefits, purchases and catalog entries."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class BenefitCategory(str, Enum):
    DAIRY = "dairy"
    GRAINS = "grains"
    PROTEIN = "protein"
    FRUITS = "fruits"
    VEGETABLES = "vegetables"

    @property
    def unit(self) -> str:
        return CANONICAL_UNITS[self]

    @classmethod
    def parse(cls, value: str | BenefitCategory) -> BenefitCategory:
        """Accept an enum member or its (case-insensitive) string value."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(
                f"Unknown benefit category: {value!r} "
                f"(choose from {', '.join(c.value for c in cls)})"
            ) from None


CANONICAL_UNITS: dict[BenefitCategory, str] = {
    BenefitCategory.DAIRY: "gallons",
    BenefitCategory.GRAINS: "oz",
    BenefitCategory.PROTEIN: "lbs",
    BenefitCategory.FRUITS: "dollars",
    BenefitCategory.VEGETABLES: "dollars",
}


class Reason(str, Enum):
    """Why a scan or purchase was not accepted as-is."""

    NOT_FOUND = "not_found"
    NOT_ELIGIBLE = "not_eligible"
    WRONG_SIZE = "wrong_size"
    UNIT_MISMATCH = "unit_mismatch"
    INSUFFICIENT_BENEFIT = "insufficient_benefit"
    SIZE_UNKNOWN = "size_unknown"
    NO_BENEFIT = "no_benefit"
    BENEFIT_EXPIRED = "benefit_expired"
    INVALID_QUANTITY = "invalid_quantity"


@dataclass(frozen=True)
class Benefit:
    """Balance of one category for one card and month period."""

    card_number: str
    category: BenefitCategory
    total_amount: float
    remaining_amount: float
    unit: str
    month_period: str
    expires_at: str  # ISO date, last day of the period
    id: int | None = None

    @property
    def used_amount(self) -> float:
        return self.total_amount - self.remaining_amount

    @classmethod
    def from_row(cls, row) -> Benefit:
        return cls(
            id=row["id"],
            card_number=row["card_number"],
            category=BenefitCategory(row["category"]),
            total_amount=row["total_amount"],
            remaining_amount=row["remaining_amount"],
            unit=row["unit"],
            month_period=row["month_period"],
            expires_at=row["expires_at"],
        )


@dataclass
class PurchaseItem:
    """One line of a purchase request."""

    category: BenefitCategory
    quantity: float
    unit: str
    product_name: str = ""
    approved_food_id: int | None = None


@dataclass(frozen=True)
class TransactionItem:
    category: BenefitCategory
    quantity: float
    unit: str
    product_name: str = ""
    approved_food_id: int | None = None


@dataclass(frozen=True)
class Transaction:
    """An immutable purchase record."""

    id: int
    card_number: str
    created_at: str
    month_period: str
    store_id: int | None = None
    store_name: str = ""
    items: tuple[TransactionItem, ...] = ()

    @property
    def total_items(self) -> int:
        return len(self.items)


@dataclass
class PurchaseResult:
    """Outcome of applying a purchase to the ledger.

    ``balances`` holds the updated benefit of every category touched when the
    purchase went through; on rejection it holds the unchanged balances that
    were checked, if any.
    """

    accepted: bool
    reason: Reason | None = None
    message: str = ""
    balances: list[Benefit] = field(default_factory=list)
    transaction_id: int | None = None

    @property
    def balance(self) -> Benefit | None:
        return self.balances[0] if self.balances else None


@dataclass(frozen=True)
class GeneralFood:
    """A product in the general catalog."""

    id: int
    name: str
    brand: str
    category: BenefitCategory
    subcategory: str = ""
    upc_code: str = ""
    plu_code: str = ""
    unit_size: str = ""
    image_url: str = ""


@dataclass(frozen=True)
class ApprovedFood:
    """A catalog product paired with its WIC approval status."""

    id: int
    general_food_id: int
    name: str
    brand: str
    category: BenefitCategory
    subcategory: str = ""
    upc_code: str = ""
    plu_code: str = ""
    unit_size: str = ""
    is_approved: bool = True
    notes: str = ""

    @property
    def is_generic(self) -> bool:
        return self.brand.strip().lower() in ("", "generic")

    @classmethod
    def from_row(cls, row) -> ApprovedFood:
        return cls(
            id=row["id"],
            general_food_id=row["general_food_id"],
            name=row["name"],
            brand=row["brand"] or "",
            category=BenefitCategory(row["wic_category"]),
            subcategory=row["subcategory"] or "",
            upc_code=row["upc_code"] or "",
            plu_code=row["plu_code"] or "",
            unit_size=row["unit_size"] or "",
            is_approved=bool(row["is_approved"]),
            notes=row["notes"] or "",
        )


@dataclass(frozen=True)
class Store:
    id: int
    name: str
    chain: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    phone: str = ""
    is_active: bool = True
