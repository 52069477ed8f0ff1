"""Fixed package-size rules keyed by product subcategory."""

from __future__ import annotations

import math
from dataclasses import dataclass

from .units import PackageSize, convert, format_quantity

# Declared sizes are rounded on labels (1.89 L half gallons, etc.)
_SIZE_TOLERANCE = 0.02


@dataclass(frozen=True)
class ExactSize:
    """The package must be exactly this size."""

    quantity: float
    unit: str
    suggestion: str = ""


@dataclass(frozen=True)
class MonthlyCap:
    """Purchases this period, this package included, may not exceed the cap."""

    max_quantity: float
    unit: str
    suggestion: str = ""


SizeRule = ExactSize | MonthlyCap


@dataclass(frozen=True)
class RuleCheck:
    """Result of a size rule. ``passed`` is None when the size is unknown."""

    passed: bool | None
    suggestion: str = ""


SIZE_RULES: dict[str, SizeRule] = {
    "milk": ExactSize(
        0.5,
        "gallons",
        "Try a ½ gallon instead. WIC covers half gallons, not gallons; "
        "buy 2 half gallons to get a full gallon.",
    ),
    "bread": ExactSize(16.0, "oz", "Try a 16 oz loaf. WIC only covers 16 oz bread."),
    "cereal": MonthlyCap(
        72.0,
        "oz",
        "Try a smaller box that stays within your 72 oz monthly cereal allowance.",
    ),
}


def rule_for(subcategory: str) -> SizeRule | None:
    return SIZE_RULES.get((subcategory or "").strip().lower())


def register_rule(subcategory: str, rule: SizeRule) -> None:
    """Add or replace the size rule of a subcategory."""
    SIZE_RULES[subcategory.strip().lower()] = rule


def check_rule(
    rule: SizeRule | None,
    size: PackageSize,
    purchased_this_period: float = 0.0,
) -> RuleCheck:
    """Check a package size against a rule.

    Args:
        rule: Rule to apply, or None when the product has no size rule.
        size: Parsed package size.
        purchased_this_period: Amount already bought this period, in the
            rule's unit. Only used by MonthlyCap.
    """
    if rule is None:
        return RuleCheck(True)
    if not size.known:
        return RuleCheck(None)

    match rule:
        case ExactSize(quantity=required, unit=unit, suggestion=suggestion):
            value = convert(size.quantity, size.unit, unit)
            if value is None:
                return RuleCheck(None)
            if math.isclose(value, required, rel_tol=_SIZE_TOLERANCE):
                return RuleCheck(True)
            return RuleCheck(
                False,
                suggestion or f"Choose a {format_quantity(required, unit)} package",
            )
        case MonthlyCap(max_quantity=cap, unit=unit, suggestion=suggestion):
            value = convert(size.quantity, size.unit, unit)
            if value is None:
                return RuleCheck(None)
            if value + purchased_this_period <= cap + 1e-9:
                return RuleCheck(True)
            return RuleCheck(
                False,
                suggestion or f"Stay within {format_quantity(cap, unit)} per month",
            )
        case _:
            raise TypeError(f"Unsupported size rule: {rule!r}")
