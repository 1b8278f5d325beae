from typing import Iterable, List, Optional

import pytest

from shapefit.schemas.catalog import Product, Variant
from shapefit.services.ai_providers.base import Completion


def make_product(
    pid: str,
    title: str,
    description: str = "",
    product_type: str = "",
    tags: Iterable[str] = (),
    available: Optional[bool] = True,
    inventory_quantity: Optional[int] = None,
    image: Optional[str] = None,
    price: str = "49.00",
) -> Product:
    # available=None builds a product without variant data
    variants: List[Variant] = []
    if available is not None:
        variants = [Variant(id=f"{pid}-v1", title="Default", price=price, available=available)]
    return Product(
        id=pid,
        title=title,
        description=description,
        product_type=product_type,
        tags=list(tags),
        price=price,
        images=[image] if image else [],
        variants=variants,
        inventory_quantity=inventory_quantity,
    )


class StubProvider:
    """In-memory StylistProvider that records its calls."""

    def __init__(self, text="", truncated=False, error=None, configured=True):
        self.text = text
        self.truncated = truncated
        self.error = error
        self._configured = configured
        self.calls = []

    @property
    def configured(self):
        return self._configured

    async def complete(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return Completion(text=self.text, truncated=self.truncated)


@pytest.fixture
def stub_provider():
    return StubProvider


@pytest.fixture
def product_factory():
    return make_product


@pytest.fixture(autouse=True)
def _reset_rate_limit():
    from shapefit import main

    main._buckets.clear()
    yield
    main._buckets.clear()
