"""Scanned-product eligibility: size parsing, size rules and evaluation."""

from .evaluator import (
    EligibilityEvaluator,
    Evaluation,
    EvaluationStatus,
    ScannedProduct,
    best_match,
    preferred_category,
)
from .rules import SIZE_RULES, ExactSize, MonthlyCap, check_rule, rule_for
from .units import PackageSize, convert, parse_size

__all__ = [
    "EligibilityEvaluator",
    "Evaluation",
    "EvaluationStatus",
    "ScannedProduct",
    "best_match",
    "preferred_category",
    "SIZE_RULES",
    "ExactSize",
    "MonthlyCap",
    "check_rule",
    "rule_for",
    "PackageSize",
    "convert",
    "parse_size",
]
