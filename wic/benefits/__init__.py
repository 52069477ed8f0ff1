"""WIC benefit ledger and scanned-product eligibility."""

from .config import (
    BenefitsConfig,
    DatabaseConfig,
    LookupConfig,
    OpenFoodFactsConfig,
    SchedulerConfig,
    load_config,
)
from .db import ApprovedFoodCatalog, BenefitLedger, StoreDB
from .eligibility import (
    EligibilityEvaluator,
    Evaluation,
    EvaluationStatus,
    ScannedProduct,
)
from .lookup import ProductInfo, ProductLookup, ProductLookupError, create_lookup
from .models import (
    ApprovedFood,
    Benefit,
    BenefitCategory,
    PurchaseItem,
    PurchaseResult,
    Reason,
    Transaction,
)
from .scanner import BenefitScanner, ScanResult

__all__ = [
    "BenefitLedger",
    "ApprovedFoodCatalog",
    "StoreDB",
    "EligibilityEvaluator",
    "Evaluation",
    "EvaluationStatus",
    "ScannedProduct",
    "BenefitScanner",
    "ScanResult",
    "ProductLookup",
    "ProductInfo",
    "ProductLookupError",
    "create_lookup",
    "ApprovedFood",
    "Benefit",
    "BenefitCategory",
    "PurchaseItem",
    "PurchaseResult",
    "Reason",
    "Transaction",
    "BenefitsConfig",
    "DatabaseConfig",
    "LookupConfig",
    "OpenFoodFactsConfig",
    "SchedulerConfig",
    "load_config",
]
