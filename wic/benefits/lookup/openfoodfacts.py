"""OpenFoodFacts product lookup backend."""

from __future__ import annotations

from typing import Any

from . import ProductInfo, ProductLookup, ProductLookupError

DEFAULT_BASE_URL = "https://world.openfoodfacts.org/api/v2"
DEFAULT_USER_AGENT = "wic-benefits/0.1 (benefit scanner)"


class OpenFoodFactsLookup(ProductLookup):
    """Look up UPCs in the OpenFoodFacts product database."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float = 10.0,
        client: Any = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._user_agent = user_agent
        self._timeout = timeout
        self._client = client
        self._owns_client = client is None

    def _get_client(self):
        if self._client is None:
            try:
                import httpx
            except ImportError:
                raise ImportError(
                    "httpx is required for OpenFoodFacts lookup: "
                    "pip install 'wic-benefits[lookup]'"
                ) from None
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                headers={"User-Agent": self._user_agent},
            )
        return self._client

    async def lookup(self, code: str) -> ProductInfo | None:
        import httpx

        client = self._get_client()
        url = f"{self._base_url}/product/{code}.json"
        try:
            response = await client.get(url)
        except httpx.HTTPError as e:
            raise ProductLookupError(f"OpenFoodFacts request failed: {e}") from e

        if response.status_code == 404:
            return None
        if response.status_code >= 400:
            raise ProductLookupError(
                f"OpenFoodFacts returned HTTP {response.status_code} for {code}"
            )

        try:
            data = response.json()
        except ValueError as e:
            raise ProductLookupError(f"OpenFoodFacts returned invalid JSON: {e}") from e
        return _parse_product(code, data)

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None


def _parse_product(code: str, data: dict) -> ProductInfo | None:
    """Turn an OpenFoodFacts product response into ProductInfo."""
    if not isinstance(data, dict) or data.get("status") != 1:
        return None
    product = data.get("product") or {}
    if not product:
        return None

    # Package size lives in "quantity"; serving_size is a poor fallback
    size_text = product.get("quantity") or product.get("serving_size") or ""
    return ProductInfo(
        code=code,
        name=product.get("product_name") or "Unknown Product",
        brand=(product.get("brands") or "Unknown Brand").split(",")[0].strip(),
        size_text=size_text,
        image_url=product.get("image_url") or "",
    )
