from typing import List, Optional
from pydantic import BaseModel, Field, computed_field


class Variant(BaseModel):
    id: Optional[str] = None
    title: Optional[str] = None
    price: Optional[str] = None
    available: bool = False


class Product(BaseModel):
    id: str
    title: str
    description: str = ""
    handle: Optional[str] = None
    product_type: str = ""
    tags: List[str] = Field(default_factory=list)
    price: Optional[str] = None
    images: List[str] = Field(default_factory=list)
    variants: List[Variant] = Field(default_factory=list)
    # Catalog-level stock, only consulted when no variant data is present
    inventory_quantity: Optional[int] = None

    @computed_field  # type: ignore[misc]
    @property
    def available(self) -> bool:
        if self.variants:
            return any(v.available for v in self.variants)
        if self.inventory_quantity is not None:
            return self.inventory_quantity > 0
        return True

    @property
    def display_price(self) -> str:
        if self.variants and self.variants[0].price:
            return self.variants[0].price
        return self.price or "N/A"

    @property
    def numeric_price(self) -> Optional[float]:
        try:
            return float(self.display_price.replace(",", ""))
        except ValueError:
            return None

    @property
    def image_url(self) -> Optional[str]:
        return self.images[0] if self.images else None

    def searchable_text(self) -> str:
        return f"{self.title} {self.description} {self.product_type} {' '.join(self.tags)}".lower()
