"""
Product catalogue service.
"""

from typing import Any, Dict, List, Optional

from ..core.models import Page, Product, ProductCategory, ProductStatus
from ..data.cancellation import CancelToken
from ..data.query import with_query
from .base import SEARCH, BaseApiService, ServiceConfig, segment, service_method

PRODUCT_SERVICE = ServiceConfig(
    name="ProductService",
    endpoint="/products",
    collection="products",
    item="product",
    list_key="products",
    policies={"search_products": SEARCH},
)


class ProductService(BaseApiService[Product]):
    config = PRODUCT_SERVICE
    model = Product

    @service_method
    async def get_products(
        self,
        page: int = 1,
        limit: int = 20,
        cancel_token: Optional[CancelToken] = None,
        **filters,
    ) -> Page[Product]:
        params = {"page": page, "limit": limit, **filters}
        response = await self._read(
            with_query("/products", params),
            "get_products",
            self.key("products", params),
            cancel_token,
        )
        return self._page(response, page, limit)

    @service_method
    async def get_product_by_id(
        self, product_id: Any, cancel_token: Optional[CancelToken] = None
    ) -> Product:
        response = await self._read(
            f"/products/{segment(product_id)}",
            "get_product_by_id",
            self.key("product", product_id),
            cancel_token,
        )
        return self._record(response.data)

    @service_method
    async def get_products_by_clinic(
        self,
        clinic_name: str,
        status: ProductStatus = ProductStatus.ACTIVE,
        cancel_token: Optional[CancelToken] = None,
    ) -> List[Product]:
        response = await self._read(
            with_query(f"/products/clinic/{segment(clinic_name)}", {"status": status}),
            "get_products_by_clinic",
            self.key(f"products_clinic_{clinic_name}", ProductStatus(status).value),
            cancel_token,
        )
        return self._records(response.data)

    @service_method
    async def get_products_by_category(
        self, category: ProductCategory, cancel_token: Optional[CancelToken] = None
    ) -> List[Product]:
        category = ProductCategory(category).value
        response = await self._read(
            f"/products/category/{segment(category)}",
            "get_products_by_category",
            self.key("products_category", category),
            cancel_token,
        )
        return self._records(response.data)

    @service_method
    async def get_popular_products(
        self, limit: int = 10, cancel_token: Optional[CancelToken] = None
    ) -> List[Product]:
        response = await self._read(
            with_query("/products/popular", {"limit": limit}),
            "get_popular_products",
            self.key("products_popular", limit),
            cancel_token,
        )
        return self._records(response.data)

    @service_method
    async def search_products(
        self, term: str, cancel_token: Optional[CancelToken] = None
    ) -> List[Product]:
        if not term or not term.strip():
            return []
        response = await self._read(
            with_query("/products/search", {"q": term.strip()}),
            "search_products",
            self.key("products_search", term.strip()),
            cancel_token,
        )
        return self._records(response.data)

    @service_method
    async def get_product_analytics(
        self, cancel_token: Optional[CancelToken] = None
    ) -> List[Dict[str, Any]]:
        """Per-category product counts, appointments and average price."""
        response = await self._read(
            "/products/analytics",
            "get_product_analytics",
            self.key("products_analytics"),
            cancel_token,
        )
        return response.data

    @service_method
    async def create_product(self, payload: Any) -> Product:
        response = await self._write("POST", "/products", payload)
        return self._record(response.data)

    @service_method
    async def update_product(self, product_id: Any, payload: Any) -> Product:
        response = await self._write(
            "PUT", f"/products/{segment(product_id)}", payload, item_id=product_id
        )
        return self._record(response.data)

    @service_method
    async def deactivate_product(self, product_id: Any) -> Product:
        """Soft delete; the backend answers with the deactivated product."""
        response = await self._write(
            "DELETE", f"/products/{segment(product_id)}", item_id=product_id
        )
        return self._record(response.data)

    def clear_product_cache(self) -> None:
        self.clear_cache()
