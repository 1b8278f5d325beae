import html
import re
from typing import Any, Dict, List

import httpx
import structlog

from ..config import settings
from ..errors import CatalogUnavailable
from ..schemas.catalog import Product, Variant


logger = structlog.get_logger("shapefit")

_TAG_RE = re.compile(r"<[^>]+>")
_SPACE_RE = re.compile(r"\s+")


def _plain_text(body_html: str | None) -> str:
    if not body_html:
        return ""
    text = html.unescape(_TAG_RE.sub(" ", body_html))
    return _SPACE_RE.sub(" ", text).strip()


def _tags(raw: Any) -> List[str]:
    if isinstance(raw, list):
        return [str(t).strip() for t in raw if str(t).strip()]
    if isinstance(raw, str):
        return [t.strip() for t in raw.split(",") if t.strip()]
    return []


def parse_product(raw: Dict[str, Any]) -> Product:
    variants = [
        Variant(
            id=str(v.get("id")) if v.get("id") is not None else None,
            title=v.get("title"),
            price=str(v["price"]) if v.get("price") is not None else None,
            available=bool(v.get("available", False)),
        )
        for v in raw.get("variants") or []
    ]
    images = [img.get("src") for img in raw.get("images") or [] if img.get("src")]
    return Product(
        id=str(raw.get("id")),
        title=raw.get("title") or "",
        description=_plain_text(raw.get("body_html")),
        handle=raw.get("handle"),
        product_type=raw.get("product_type") or "",
        tags=_tags(raw.get("tags")),
        price=variants[0].price if variants else None,
        images=images,
        variants=variants,
    )


class CatalogApiClient:
    """Reads a shop's public storefront product listing, page by page."""

    def __init__(self, page_size: int | None = None, max_pages: int | None = None) -> None:
        self.page_size = page_size or settings.catalog_page_size
        self.max_pages = max_pages or settings.catalog_max_pages
        self.timeout = settings.catalog_timeout_seconds

    def _base(self, store_domain: str) -> str:
        domain = store_domain.strip().rstrip("/")
        if not domain.startswith(("http://", "https://")):
            domain = f"https://{domain}"
        return domain

    async def fetch_products(self, store_domain: str) -> List[Product]:
        base = self._base(store_domain)
        products: List[Product] = []
        seen: set[str] = set()

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            for page in range(1, self.max_pages + 1):
                try:
                    resp = await client.get(
                        f"{base}/products.json",
                        params={"limit": self.page_size, "page": page},
                        headers={"Accept": "application/json"},
                    )
                    resp.raise_for_status()
                    payload = resp.json()
                except (httpx.HTTPError, ValueError) as e:
                    logger.error("catalog_fetch_failed", store_domain=store_domain, page=page, error=str(e))
                    raise CatalogUnavailable(f"catalog fetch failed on page {page}: {e}") from e

                if not isinstance(payload, dict):
                    raise CatalogUnavailable(f"unexpected catalog payload on page {page}")
                batch = payload.get("products") or []
                if not batch:
                    break
                for raw in batch:
                    product = parse_product(raw)
                    if product.id in seen:
                        continue
                    seen.add(product.id)
                    products.append(product)
            else:
                logger.warning("catalog_page_limit_reached", store_domain=store_domain, max_pages=self.max_pages)

        logger.info("catalog_fetched", store_domain=store_domain, products=len(products))
        return products
