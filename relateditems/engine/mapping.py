from __future__ import annotations

from typing import Any, Dict, Optional

from relateditems.config import load_config


ANALYZED_FIELDS = (
    "product_title",
    "product_content",
    "product_excerpt",
    "product_tag",
    "product_cat",
)


def default_mapping(analyzer: Optional[str] = None) -> Dict[str, Any]:
    """Field mapping for product documents.

    Text fields go through ``analyzer`` (``index.analyzer`` in config.yaml when
    not given); the display price is indexed with the engine's default analyzer.
    """
    if analyzer is None:
        analyzer = (load_config().get("index") or {}).get("analyzer")

    mapping: Dict[str, Any] = {}
    for name in ANALYZED_FIELDS:
        field_def: Dict[str, Any] = {"type": "string"}
        if analyzer:
            field_def["analyzer"] = analyzer
        mapping[name] = field_def
    mapping["product_display_price"] = {"type": "string"}
    return mapping
