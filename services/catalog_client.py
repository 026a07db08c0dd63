"""
HTTP client for the WooCommerce product catalog.
Uses browser UA + query-string auth, paging until the store runs out.
"""

from typing import List, Optional

import requests

from app_config import (
    BROWSER_HEADERS,
    CATALOG_MAX_PRODUCTS,
    CATALOG_PAGE_SIZE,
    CATALOG_TIMEOUT_SECONDS,
    WOO_BASE_URL,
    WOO_CONSUMER_KEY,
    WOO_CONSUMER_SECRET,
)
from chat_logger import get_logger, sanitize_url
from models import Product
from services.product_formatter import format_product

logger = get_logger("shopping_assistant.catalog")


class CatalogClient:
    """Reads published, priced products from the WooCommerce REST API."""

    def __init__(
        self,
        base_url: str = WOO_BASE_URL,
        consumer_key: str = WOO_CONSUMER_KEY,
        consumer_secret: str = WOO_CONSUMER_SECRET,
        page_size: int = CATALOG_PAGE_SIZE,
        max_products: int = CATALOG_MAX_PRODUCTS,
        timeout: float = CATALOG_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        self.base = base_url.rstrip("/")
        self.consumer_key = consumer_key
        self.consumer_secret = consumer_secret
        self.page_size = page_size
        self.max_products = max_products
        self.timeout = timeout

        self.session = session or requests.Session()
        self.session.headers.update(BROWSER_HEADERS)

    def fetch_all(self) -> List[Product]:
        """
        Fetch every published product, up to max_products.

        Unpriced or malformed rows are skipped. Transport and HTTP errors
        propagate to the caller.

        Raises:
            requests.RequestException: on network or HTTP failure
        """
        url = f"{self.base}/products"
        products: List[Product] = []
        skipped = 0
        page = 1

        while len(products) < self.max_products:
            params = {
                "per_page": self.page_size,
                "page": page,
                "status": "publish",
                "consumer_key": self.consumer_key,
                "consumer_secret": self.consumer_secret,
            }

            with self.session.get(url, params=params, timeout=self.timeout) as resp:
                if not resp.ok:
                    logger.warning(
                        f"Catalog HTTP {resp.status_code} | url={sanitize_url(resp.url)} | "
                        f"body={resp.text[:300]}"
                    )
                resp.raise_for_status()
                rows = resp.json()
                total_pages = int(resp.headers.get("X-WP-TotalPages", 1) or 1)

            if not rows:
                break

            for raw in rows:
                product = format_product(raw) if isinstance(raw, dict) else None
                if product is None:
                    skipped += 1
                    continue
                products.append(product)

            if page >= total_pages:
                break
            page += 1

        logger.info(f"Catalog loaded | products={len(products[:self.max_products])} | skipped={skipped} | pages={page}")
        return products[:self.max_products]
