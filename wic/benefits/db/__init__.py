"""SQLite storage for benefits, transactions, the food catalog and stores."""

from .catalog import ApprovedFoodCatalog
from .ledger import DEFAULT_DB_PATH, BenefitLedger
from .schema import ensure_schema
from .stores import StoreDB

__all__ = [
    "ApprovedFoodCatalog",
    "BenefitLedger",
    "DEFAULT_DB_PATH",
    "StoreDB",
    "ensure_schema",
]
