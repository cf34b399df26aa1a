from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class SearchHit:
    id: int
    score: float


@dataclass
class IndexDocument:
    """Search engine document built from one visible product."""

    product_title: str = ""
    product_content: str = ""
    product_excerpt: str = ""
    product_display_price: str = ""
    product_rate: Optional[float] = None
    product_tag: List[str] = field(default_factory=list)
    product_cat: List[str] = field(default_factory=list)

    def to_source(self) -> Dict[str, Any]:
        return {
            "product_title": self.product_title,
            "product_content": self.product_content,
            "product_excerpt": self.product_excerpt,
            "product_display_price": self.product_display_price,
            "product_rate": self.product_rate,
            "product_tag": list(self.product_tag),
            "product_cat": list(self.product_cat),
        }


def format_search_hit(hit: "SearchHit") -> str:
    """Create a compact string representation for logs/printing.

    Example: "id=12; score=0.9312"
    """
    return f"id={hit.id}; score={hit.score:.4f}"
