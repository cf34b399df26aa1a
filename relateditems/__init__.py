"""Related items for an e-commerce catalog.

Products are indexed into an Elasticsearch-compatible search engine and
related items are looked up with per-field more-like-this queries.
"""

from .catalog import InMemoryCatalog, ProductCatalog, ProductRecord
from .config import EndpointConfig, SiteSettings, load_settings
from .errors import ConfigError, EngineError, RelatedItemsError, TransportError
from .indexing import ProductImporter
from .overrides import Overrides
from .search import RelatedItemSearcher, SearcherConfig

__all__ = [
    "ConfigError",
    "EndpointConfig",
    "EngineError",
    "InMemoryCatalog",
    "Overrides",
    "ProductCatalog",
    "ProductImporter",
    "ProductRecord",
    "RelatedItemSearcher",
    "RelatedItemsError",
    "SearcherConfig",
    "SiteSettings",
    "TransportError",
    "load_settings",
]
