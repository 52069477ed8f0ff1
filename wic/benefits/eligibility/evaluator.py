"""WIC approval and benefit-impact evaluation for scanned products."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from ..models import ApprovedFood, Benefit, BenefitCategory, Reason
from .rules import check_rule, rule_for
from .units import PackageSize, convert, format_quantity, parse_size

_EPSILON = 1e-9


class EvaluationStatus(str, Enum):
    APPROVED = "approved"
    NOT_APPROVED = "not_approved"
    APPROVED_EXCEEDS_LIMIT = "approved_exceeds_limit"


@dataclass(frozen=True)
class ScannedProduct:
    """What the scanner knows about the product in the shopper's hand."""

    code: str
    name: str = ""
    brand: str = ""
    size_text: str = ""
    price: float | None = None


@dataclass(frozen=True)
class Evaluation:
    """Outcome of evaluating one scanned product.

    ``APPROVED_EXCEEDS_LIMIT`` is advisory: the ledger enforces the real limit
    when the purchase is applied.
    """

    status: EvaluationStatus
    reason: Reason | None = None
    message: str = ""
    suggestion: str = ""
    matched: ApprovedFood | None = None
    size: PackageSize | None = None
    quantity: float | None = None  # package size in the category's unit
    unit: str = ""
    remaining_after: float | None = None
    max_quantity: int | None = None  # whole packages the balance still covers

    @property
    def approved(self) -> bool:
        return self.status is not EvaluationStatus.NOT_APPROVED

    @property
    def category(self) -> BenefitCategory | None:
        return self.matched.category if self.matched else None


class CatalogSource(Protocol):
    def find_by_code(self, code: str) -> list[ApprovedFood]: ...


def best_match(
    rows: list[ApprovedFood],
    product: ScannedProduct,
    category: BenefitCategory | None = None,
) -> ApprovedFood | None:
    """Pick the most specific catalog row for a product.

    Brand-specific rows matching the scanned brand win over generic rows,
    which win over other brands. Rows in the requested category break ties.
    """
    if not rows:
        return None
    brand = product.brand.strip().lower()

    def rank(row: ApprovedFood) -> tuple[bool, bool, bool]:
        brand_match = bool(brand) and not row.is_generic and row.brand.strip().lower() == brand
        in_category = category is not None and row.category == category
        return (brand_match, row.is_generic, in_category)

    return max(rows, key=rank)


def preferred_category(value: BenefitCategory | str | None) -> BenefitCategory | None:
    """Category used to break ties; unrecognized values mean no preference."""
    if value is None:
        return None
    try:
        return BenefitCategory.parse(value)
    except ValueError:
        return None


def packages_covered(remaining: float, quantity: float) -> int:
    """Number of whole packages of ``quantity`` that ``remaining`` pays for."""
    if quantity <= 0:
        return 0
    return max(math.floor((remaining + _EPSILON) / quantity), 0)


def package_quantity(
    size: PackageSize, category: BenefitCategory, price: float | None = None
) -> float | None:
    """Express a package in the benefit unit of its category.

    Dollar categories use the shelf price. Returns None when the size (or
    price) is unknown or not convertible.
    """
    if category.unit == "dollars":
        return price if price is not None and price > 0 else None
    if not size.known:
        return None
    return convert(size.quantity, size.unit, category.unit)


class EligibilityEvaluator:
    """Evaluate scanned products against the approved-food catalog.

    Pure with respect to its arguments and the catalog: no balances are
    read or written here.
    """

    def __init__(self, catalog: CatalogSource) -> None:
        self._catalog = catalog

    def evaluate(
        self,
        product: ScannedProduct,
        category: BenefitCategory | str | None = None,
        available_benefit: Benefit | None = None,
        *,
        purchased_this_period: float = 0.0,
    ) -> Evaluation:
        """Decide approval status and benefit impact of a scanned product.

        Args:
            product: Scanned product data.
            category: Category the shopper is buying under. Only used to
                break ties between catalog rows; unrecognized values are
                ignored.
            available_benefit: Current balance of the product's category.
                When missing or for another category, no limit check is made.
            purchased_this_period: Amount of the same size-capped product
                bought this period (e.g. cereal ounces), in the rule's unit.
        """
        category = preferred_category(category)

        rows = self._catalog.find_by_code(product.code) if product.code else []
        match = best_match(rows, product, category)
        if match is None:
            return Evaluation(
                status=EvaluationStatus.NOT_APPROVED,
                reason=Reason.NOT_FOUND,
                message=f"Product {product.code or '(no code)'} is not in the WIC catalog",
            )

        if not match.is_approved:
            return Evaluation(
                status=EvaluationStatus.NOT_APPROVED,
                reason=Reason.NOT_ELIGIBLE,
                message=f"{match.name} ({match.brand}) is not WIC-approved",
                matched=match,
            )

        size = parse_size(product.size_text or match.unit_size)

        check = check_rule(rule_for(match.subcategory), size, purchased_this_period)
        if check.passed is False:
            return Evaluation(
                status=EvaluationStatus.NOT_APPROVED,
                reason=Reason.WRONG_SIZE,
                message=f"{size.display} is not an approved {match.subcategory} size",
                suggestion=check.suggestion,
                matched=match,
                size=size,
            )

        unit = match.category.unit
        quantity = package_quantity(size, match.category, product.price)
        if quantity is None:
            return Evaluation(
                status=EvaluationStatus.APPROVED,
                reason=Reason.SIZE_UNKNOWN,
                message=f"Approved; package size {size.display!r} could not be read",
                matched=match,
                size=size,
                unit=unit,
            )

        benefit = available_benefit
        if benefit is None or benefit.category != match.category:
            return Evaluation(
                status=EvaluationStatus.APPROVED,
                message=f"Approved under {match.category.value}",
                matched=match,
                size=size,
                quantity=quantity,
                unit=unit,
            )

        remaining_after = benefit.remaining_amount - quantity
        if remaining_after < -_EPSILON:
            return Evaluation(
                status=EvaluationStatus.APPROVED_EXCEEDS_LIMIT,
                message=(
                    f"Approved, but {format_quantity(quantity, unit)} exceeds the "
                    f"{format_quantity(benefit.remaining_amount, unit)} "
                    f"{match.category.value} left this month"
                ),
                matched=match,
                size=size,
                quantity=quantity,
                unit=unit,
                remaining_after=0.0,
                max_quantity=0,
            )

        return Evaluation(
            status=EvaluationStatus.APPROVED,
            message=(
                f"Approved; {format_quantity(max(remaining_after, 0.0), unit)} "
                f"{match.category.value} left after purchase"
            ),
            matched=match,
            size=size,
            quantity=quantity,
            unit=unit,
            remaining_after=max(remaining_after, 0.0),
            max_quantity=packages_covered(benefit.remaining_amount, quantity),
        )
