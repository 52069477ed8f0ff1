"""Scan flow: product lookup, eligibility evaluation and benefit impact."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .eligibility import (
    EligibilityEvaluator,
    Evaluation,
    EvaluationStatus,
    MonthlyCap,
    ScannedProduct,
    best_match,
    convert,
    preferred_category,
    rule_for,
)
from .lookup import ProductInfo, ProductLookup, ProductLookupError
from .models import Benefit, BenefitCategory, PurchaseResult, Reason
from .periods import Clock, current_period, system_clock

if TYPE_CHECKING:
    from .db import ApprovedFoodCatalog, BenefitLedger

logger = logging.getLogger(__name__)


@dataclass
class ScanResult:
    """Everything the UI needs to show after a scan."""

    code: str
    found: bool
    evaluation: Evaluation
    product: ProductInfo | None = None
    benefit: Benefit | None = None
    month_period: str = ""

    def to_dict(self) -> dict:
        ev = self.evaluation
        data: dict = {
            "code": self.code,
            "found": self.found,
            "status": ev.status.value,
            "reason": ev.reason.value if ev.reason else None,
            "message": ev.message,
            "suggestion": ev.suggestion,
            "category": ev.category.value if ev.category else None,
            "quantity": ev.quantity,
            "unit": ev.unit,
        }
        if self.product is not None:
            data["product"] = {
                "name": self.product.name,
                "brand": self.product.brand,
                "size": self.product.size_text,
                "image_url": self.product.image_url,
            }
        if self.benefit is not None:
            data["benefit"] = {
                "month_period": self.benefit.month_period,
                "remaining": self.benefit.remaining_amount,
                "remaining_after": ev.remaining_after,
                "max_quantity": ev.max_quantity,
                "unit": self.benefit.unit,
            }
        return data


class BenefitScanner:
    """Runs a scanned code through lookup, the catalog and the ledger.

    Lookup transport errors never escape: they are logged and reported as a
    NOT_FOUND evaluation.
    """

    def __init__(
        self,
        lookup: ProductLookup,
        catalog: ApprovedFoodCatalog,
        ledger: BenefitLedger | None = None,
        *,
        clock: Clock = system_clock,
    ) -> None:
        self._lookup = lookup
        self._catalog = catalog
        self._ledger = ledger
        self._clock = clock
        self._evaluator = EligibilityEvaluator(catalog)

    async def scan(
        self,
        code: str,
        card_number: str | None = None,
        *,
        category: BenefitCategory | str | None = None,
        price: float | None = None,
        month_period: str | None = None,
    ) -> ScanResult:
        """Scan a UPC or PLU.

        Args:
            code: Scanned UPC or PLU.
            card_number: When given (and a ledger is configured), the
                evaluation includes the card's current balance.
            category: Category the shopper expects; used for tie-breaks.
            price: Shelf price, needed for fruit/vegetable dollar benefits.
            month_period: Period to check; defaults to the current one.
        """
        period = month_period or current_period(self._clock)
        code = code.strip()

        try:
            info = await self._lookup.lookup(code)
        except ProductLookupError as e:
            logger.warning("Product lookup failed for %s: %s", code, e)
            info = None

        if info is None:
            return ScanResult(
                code=code,
                found=False,
                evaluation=Evaluation(
                    status=EvaluationStatus.NOT_APPROVED,
                    reason=Reason.NOT_FOUND,
                    message=f"Product {code} was not found",
                ),
                month_period=period,
            )

        product = ScannedProduct(
            code=code,
            name=info.name,
            brand=info.brand,
            size_text=info.size_text,
            price=price if price is not None else info.price,
        )

        benefit = None
        purchased = 0.0
        if card_number and self._ledger is not None:
            wanted = preferred_category(category)
            match = best_match(self._catalog.find_by_code(code), product, wanted)
            if match is not None and match.is_approved:
                benefit = self._ledger.get_benefit(card_number, match.category, period)
                purchased = self._purchased_under_cap(card_number, period, match)

        evaluation = self._evaluator.evaluate(
            product, category, benefit, purchased_this_period=purchased
        )
        logger.debug("Scan %s -> %s", code, evaluation.status.value)
        return ScanResult(
            code=code,
            found=True,
            evaluation=evaluation,
            product=info,
            benefit=benefit,
            month_period=period,
        )

    def purchase(
        self,
        result: ScanResult,
        card_number: str,
        *,
        store_id: int | None = None,
        count: int = 1,
    ) -> PurchaseResult:
        """Apply a scanned product to the card's balance.

        The ledger is authoritative: an APPROVED_EXCEEDS_LIMIT scan is
        attempted and rejected there if the balance really is too low.
        """
        if self._ledger is None:
            raise RuntimeError("BenefitScanner has no ledger configured")

        ev = result.evaluation
        if not ev.approved:
            return PurchaseResult(accepted=False, reason=ev.reason, message=ev.message)
        if ev.quantity is None or ev.matched is None:
            return PurchaseResult(
                accepted=False,
                reason=Reason.SIZE_UNKNOWN,
                message="Package size unknown; enter the quantity manually",
            )

        return self._ledger.apply_purchase(
            card_number,
            ev.matched.category,
            ev.quantity * count,
            ev.unit,
            result.month_period or None,
            store_id=store_id,
            product_name=ev.matched.name,
            approved_food_id=ev.matched.id,
        )

    def _purchased_under_cap(self, card_number: str, period: str, match) -> float:
        """Amount bought this period of the match's subcategory, in the cap's unit."""
        rule = rule_for(match.subcategory)
        if not isinstance(rule, MonthlyCap):
            return 0.0
        ids = [
            f.id
            for f in self._catalog.find_by_category(match.category)
            if f.subcategory == match.subcategory
        ]
        if not ids:
            return 0.0
        total = self._ledger.purchased_in_period(
            card_number, period, category=match.category, approved_food_ids=ids
        )
        return convert(total, match.category.unit, rule.unit) or 0.0

    async def aclose(self) -> None:
        await self._lookup.aclose()
