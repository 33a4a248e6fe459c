# src/pipeline/products.py - v1
"""Read-only product source used by the pipeline.

The products table belongs to the surrounding application; the pipeline
only needs to look a product up by tenant and id.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from pathlib import Path

from pydantic import BaseModel


class Product(BaseModel):
    """Product fields the prompts need."""

    id: str
    tenant_id: str
    name: str
    description: str | None = None
    price: float = 0.0
    currency: str = "SAR"
    image_url: str | None = None


class BaseProductRepository(ABC):
    @abstractmethod
    async def get(self, tenant_id: str, product_id: str) -> Product | None:
        """Product owned by the tenant, or None."""


class InMemoryProductRepository(BaseProductRepository):
    """Dict-backed repository for tests and the CLI."""

    def __init__(self, products: list[Product] | None = None) -> None:
        self._products: dict[tuple[str, str], Product] = {}
        for product in products or []:
            self.add(product)

    def add(self, product: Product) -> None:
        self._products[(product.tenant_id, product.id)] = product

    async def get(self, tenant_id: str, product_id: str) -> Product | None:
        return self._products.get((tenant_id, product_id))


def load_product_file(path: Path, tenant_id: str) -> Product:
    """Read one product from a JSON file, binding it to ``tenant_id``."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    data["tenant_id"] = tenant_id
    data["id"] = str(data.get("id", ""))
    return Product(**data)
