"""
In-process product catalog fed by the storefront's product source.
"""
import logging
from typing import Dict, Iterable, List, Optional

from shopcart.models import CatalogItem

logger = logging.getLogger(__name__)


class ProductCatalog:
    """Read-only lookup of purchasable items by id"""

    def __init__(self, products: Optional[Iterable[CatalogItem]] = None):
        self._products: Dict[str, CatalogItem] = {}
        if products is not None:
            self.set_products(products)

    def set_products(self, products: Iterable[CatalogItem]) -> None:
        """Replace the whole catalog"""
        items: Dict[str, CatalogItem] = {}
        for product in products:
            if product.id in items:
                logger.warning(f"Duplicate product id in catalog, keeping last: {product.id}")
            items[product.id] = product
        self._products = items

    def get_product(self, product_id: str) -> Optional[CatalogItem]:
        return self._products.get(product_id)

    def list_products(self) -> List[CatalogItem]:
        return list(self._products.values())

    def __len__(self) -> int:
        return len(self._products)
