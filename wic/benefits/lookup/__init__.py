"""Product lookup base class, data types, and factory."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..config import BenefitsConfig
    from ..db import ApprovedFoodCatalog


@dataclass(frozen=True)
class ProductInfo:
    """Plain product data as reported by a lookup service."""

    code: str  # UPC or PLU
    name: str
    brand: str = ""
    size_text: str = ""
    image_url: str = ""
    price: float | None = None  # shelf price, needed for dollar categories


class ProductLookupError(RuntimeError):
    """The lookup service could not be reached or answered garbage."""


class ProductLookup(ABC):
    """Abstract base for UPC/PLU product lookup."""

    @abstractmethod
    async def lookup(self, code: str) -> ProductInfo | None:
        """Look up a product by UPC or PLU.

        Returns:
            ProductInfo, or None if the service does not know the product.

        Raises:
            ProductLookupError: On transport failures.
        """
        ...

    async def aclose(self) -> None:
        """Release network resources, if any."""


def create_lookup(
    config: BenefitsConfig, catalog: ApprovedFoodCatalog | None = None
) -> ProductLookup:
    """Create a lookup backend based on configuration."""
    backend_name = config.lookup.backend

    match backend_name:
        case "openfoodfacts":
            from .openfoodfacts import OpenFoodFactsLookup

            return OpenFoodFactsLookup(
                base_url=config.lookup.openfoodfacts.base_url,
                user_agent=config.lookup.openfoodfacts.user_agent,
                timeout=config.lookup.timeout,
            )
        case "catalog":
            from ..db import ApprovedFoodCatalog
            from .catalog import CatalogLookup

            return CatalogLookup(catalog or ApprovedFoodCatalog(config.database.path))
        case _:
            raise ValueError(
                f"Unknown lookup backend: {backend_name!r} "
                f"(choose from openfoodfacts / catalog)"
            )
