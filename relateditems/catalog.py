from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Protocol


@dataclass(frozen=True)
class ProductRecord:
    id: int
    title: str = ""
    content: str = ""
    excerpt: str = ""
    display_price: str = ""
    average_rating: Optional[float] = None
    categories: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    visible: bool = True
    product_type: str = "product"


class ProductCatalog(Protocol):
    """Read-only access to the shop's product records."""

    def all_products(self, product_type: str, **filters: Any) -> Iterable[ProductRecord]:
        """Every record of ``product_type`` matching ``filters``, without a page limit."""
        ...


class InMemoryCatalog:
    """Catalog backed by a list of records, keyed by ID."""

    def __init__(self, records: Iterable[ProductRecord] = ()) -> None:
        self._records: Dict[int, ProductRecord] = {}
        for record in records:
            self.add(record)

    def add(self, record: ProductRecord) -> None:
        self._records[record.id] = record

    def get(self, product_id: int) -> Optional[ProductRecord]:
        return self._records.get(product_id)

    def all_products(
        self,
        product_type: str,
        *,
        categories: Optional[Iterable[str]] = None,
    ) -> List[ProductRecord]:
        """Records of ``product_type``; with ``categories``, only those in any of them."""
        wanted = set(categories) if categories is not None else None
        return [
            r
            for r in self._records.values()
            if r.product_type == product_type
            and (wanted is None or wanted.intersection(r.categories))
        ]
