"""Package size parsing and unit conversion.

Fluid ounces (``fl oz``) measure volume and ounces (``oz``) measure weight;
the two never convert into each other.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

# Metric units folded into fluid or weight ounces
_METRIC: dict[str, tuple[float, str]] = {
    "ml": (0.033814, "fl oz"),
    "l": (33.814, "fl oz"),
    "g": (0.035274, "oz"),
    "kg": (35.274, "oz"),
}

# Spellings → normalized unit
_UNIT_ALIASES: dict[str, str] = {
    "gallon": "gallons",
    "gallons": "gallons",
    "gal": "gallons",
    "floz": "fl oz",
    "flounce": "fl oz",
    "flounces": "fl oz",
    "fluidoz": "fl oz",
    "fluidounce": "fl oz",
    "fluidounces": "fl oz",
    "oz": "oz",
    "ounce": "oz",
    "ounces": "oz",
    "lb": "lbs",
    "lbs": "lbs",
    "pound": "lbs",
    "pounds": "lbs",
    "ml": "ml",
    "milliliter": "ml",
    "milliliters": "ml",
    "millilitre": "ml",
    "l": "l",
    "liter": "l",
    "liters": "l",
    "litre": "l",
    "g": "g",
    "gram": "g",
    "grams": "g",
    "kg": "kg",
    "kilogram": "kg",
    "kilograms": "kg",
}

_FRACTION_WORDS: dict[str, float] = {
    "half": 0.5,
    "½": 0.5,
    "quarter": 0.25,
    "¼": 0.25,
}

# Base ounces per unit, one table per measure
_VOLUME: dict[str, float] = {
    "fl oz": 1.0,
    "gallons": 128.0,
}
_WEIGHT: dict[str, float] = {
    "oz": 1.0,
    "lbs": 16.0,
}

_SIZE_PATTERN = re.compile(
    r"(?P<num>\d+\s+\d+\s*/\s*\d+|\d+\s*[½¼]|"
    r"\d+(?:\.\d+)?(?:\s*/\s*\d+)?|\.\d+|half|quarter|½|¼)"
    r"\s*-?\s*"
    r"(?P<unit>fl(?:uid)?\.?\s?(?:oz|ounces?)|gallons?|gal|ounces?|oz|pounds?|lbs?|"
    r"milliliters?|millilitre|ml|liters?|litre|l|kilograms?|kg|grams?|g)\b",
    re.IGNORECASE,
)

# Whole number followed by a fraction: "1 1/2", "1½"
_MIXED_NUMBER = re.compile(r"^(\d+)(?:\s+(\d+\s*/\s*\d+)|\s*([½¼]))$")


@dataclass(frozen=True)
class PackageSize:
    """Normalized package size. ``quantity == 0`` means the size is unknown."""

    quantity: float
    unit: str
    display: str

    @property
    def known(self) -> bool:
        return self.quantity > 0


def parse_size(text: str) -> PackageSize:
    """Parse a free-text package size.

    Args:
        text: e.g. "1 gallon", "500 ml", "2 L", "16 oz", "1 1/2 lb"

    Returns:
        PackageSize in gallons, fl oz, oz or lbs. Metric volumes become
        fluid ounces, metric weights become ounces. Unparseable text yields
        quantity 0 with the original text kept as the display value.
    """
    raw = (text or "").strip()
    if not raw:
        return PackageSize(0.0, "", "Unknown")

    m = _SIZE_PATTERN.search(raw)
    if not m:
        return PackageSize(0.0, "", raw)

    amount = _parse_number(m.group("num"))
    unit = _UNIT_ALIASES.get(re.sub(r"[\s.]", "", m.group("unit").lower()))
    if unit is None or amount <= 0:
        return PackageSize(0.0, "", raw)

    if unit in _METRIC:
        factor, unit = _METRIC[unit]
        return PackageSize(round(amount * factor, 3), unit, raw)
    return PackageSize(amount, unit, raw)


def _parse_number(s: str) -> float:
    """Parse a number that may be a fraction, a mixed number or a fraction word."""
    s = s.strip().lower()
    if s in _FRACTION_WORDS:
        return _FRACTION_WORDS[s]

    mixed = _MIXED_NUMBER.match(s)
    if mixed:
        fraction = _parse_number(mixed.group(2) or mixed.group(3))
        return float(mixed.group(1)) + fraction if fraction > 0 else 0.0

    if "/" in s:
        num, _, den = s.partition("/")
        try:
            return float(num) / float(den)
        except (ValueError, ZeroDivisionError):
            return 0.0

    try:
        return float(s)
    except ValueError:
        return 0.0


def convert(quantity: float, unit: str, target_unit: str) -> float | None:
    """Convert within one measure.

    Gallons and fluid ounces convert as volume (128 fl oz per gallon), pounds
    and ounces as weight (16 oz per pound).

    Returns:
        The converted quantity, or None if the units are not convertible
        (weight to volume, anything to dollars).
    """
    if unit == target_unit:
        return quantity
    for table in (_VOLUME, _WEIGHT):
        if unit in table and target_unit in table:
            return quantity * table[unit] / table[target_unit]
    return None


def format_quantity(quantity: float, unit: str) -> str:
    """Human-readable quantity, e.g. ``0.5 gallons`` or ``$12.00``."""
    if unit == "dollars":
        return f"${quantity:.2f}"
    text = f"{quantity:.3f}".rstrip("0").rstrip(".")
    return f"{text} {unit}"
