from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from .catalog import ProductRecord


def _identity(value):
    return value


def _keep_document(source: Dict[str, Any], record: ProductRecord) -> Optional[Dict[str, Any]]:
    return source


@dataclass(frozen=True)
class Overrides:
    """Replaceable pieces of the import and search pipeline.

    Each hook receives the default value and returns the one to use:
      - base_query: more-like-this base query string
      - search_fields: fields queried one by one for related items
      - mapping: field mapping applied before every import
      - document_transform: per-record document source; returning ``None``
        leaves the record out of the bulk write
      - catalog_query: keyword arguments of ``ProductCatalog.all_products``
        used to enumerate products for an import
    """

    base_query: Callable[[str], str] = _identity
    search_fields: Callable[[List[str]], List[str]] = _identity
    mapping: Callable[[Dict[str, Any]], Dict[str, Any]] = _identity
    document_transform: Callable[
        [Dict[str, Any], ProductRecord], Optional[Dict[str, Any]]
    ] = _keep_document
    catalog_query: Callable[[Dict[str, Any]], Dict[str, Any]] = _identity
