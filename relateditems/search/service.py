from __future__ import annotations

import asyncio
import logging
from contextlib import closing
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple
from urllib.parse import parse_qsl

from relateditems.catalog import ProductRecord
from relateditems.config import SiteSettings, load_config
from relateditems.engine.client import ClientFactory, get_search_client
from relateditems.engine.index_store import ProductIndexStore
from relateditems.engine.schemas import SearchHit
from relateditems.overrides import Overrides


logger = logging.getLogger(__name__)

DEFAULT_BASE_QUERY = "min_term_freq=1&min_doc_freq=1"
DEFAULT_SEARCH_FIELDS: Tuple[str, ...] = ("excerpt", "content", "display_price", "cat", "tag", "title")
DEFAULT_FIELD_PREFIX = "product_"
DEFAULT_SCORE_THRESHOLD = 0.8


@dataclass(frozen=True)
class SearcherConfig:
    base_query: str = DEFAULT_BASE_QUERY
    search_fields: Tuple[str, ...] = field(default=DEFAULT_SEARCH_FIELDS)
    field_prefix: str = DEFAULT_FIELD_PREFIX
    score_threshold: float = DEFAULT_SCORE_THRESHOLD

    @classmethod
    def from_config(cls, cfg: Optional[Dict[str, Any]] = None) -> "SearcherConfig":
        """Build from the ``search`` section of config.yaml (or a given dict)."""
        if cfg is None:
            cfg = load_config()
        search_cfg = cfg.get("search") or {}
        return cls(
            base_query=search_cfg.get("base_query", DEFAULT_BASE_QUERY),
            search_fields=tuple(search_cfg.get("fields") or DEFAULT_SEARCH_FIELDS),
            field_prefix=search_cfg.get("field_prefix", DEFAULT_FIELD_PREFIX),
            score_threshold=float(search_cfg.get("score_threshold", DEFAULT_SCORE_THRESHOLD)),
        )


def filter_hits(hits: Iterable[SearchHit], threshold: float = DEFAULT_SCORE_THRESHOLD) -> List[int]:
    """IDs of hits scoring at least ``threshold``, in engine order."""
    return [hit.id for hit in hits if hit.score >= threshold]


def merge_ids(id_lists: Iterable[Iterable[int]]) -> List[int]:
    """Union of the lists, first occurrence wins."""
    seen = set()
    merged: List[int] = []
    for ids in id_lists:
        for item_id in ids:
            if item_id not in seen:
                seen.add(item_id)
                merged.append(item_id)
    return merged


class RelatedItemSearcher:
    """Finds products related to a given one with per-field more-like-this queries.

    Each search field is queried separately. Hits under the score threshold are
    dropped, and the remaining IDs are merged in field order without
    duplicates. A failure on any field fails the whole lookup.
    """

    def __init__(
        self,
        settings: SiteSettings,
        *,
        config: SearcherConfig | None = None,
        overrides: Overrides | None = None,
        client_factory: ClientFactory = get_search_client,
    ) -> None:
        self.settings = settings
        self.config = config or SearcherConfig.from_config()
        self.overrides = overrides or Overrides()
        self.client_factory = client_factory

    def get_related_items(self, product: ProductRecord) -> List[int]:
        return self.get_related_items_by_id(product.id)

    def get_related_items_by_id(self, product_id: int) -> List[int]:
        index = self._prepare("search")
        params = self._base_params()
        fields = self._search_fields()

        with closing(self.client_factory(self.settings.endpoint)) as client:
            store = ProductIndexStore(client, index, self.settings.product_type)
            results = [store.more_like_this(product_id, f, params) for f in fields]

        return self._merge(product_id, fields, results)

    async def aget_related_items(self, product: ProductRecord) -> List[int]:
        """Same as get_related_items, with the per-field queries run concurrently.

        Queries run in worker threads; results are merged in field order,
        not completion order. The client is closed only after every query has
        finished. When several fields fail, the error of the first one in field
        order is raised, as the sequential variant would.
        """
        index = self._prepare("search")
        params = self._base_params()
        fields = self._search_fields()

        with closing(self.client_factory(self.settings.endpoint)) as client:
            store = ProductIndexStore(client, index, self.settings.product_type)
            results = await asyncio.gather(
                *(asyncio.to_thread(store.more_like_this, product.id, f, params) for f in fields),
                return_exceptions=True,
            )

        for result in results:
            if isinstance(result, BaseException):
                raise result
        return self._merge(product.id, fields, list(results))

    def _prepare(self, operation: str) -> str:
        self.settings.endpoint.require_complete(operation)
        return self.settings.index_name(operation)

    def _base_params(self) -> List[Tuple[str, str]]:
        query = self.overrides.base_query(self.config.base_query)
        return parse_qsl(query or "", keep_blank_values=True)

    def _search_fields(self) -> List[str]:
        fields = self.overrides.search_fields(list(self.config.search_fields))
        prefix = self.config.field_prefix
        return [f if f.startswith(prefix) else f"{prefix}{f}" for f in fields]

    def _merge(
        self,
        product_id: int,
        fields: Sequence[str],
        results: Sequence[List[SearchHit]],
    ) -> List[int]:
        threshold = self.config.score_threshold
        per_field = []
        for name, hits in zip(fields, results):
            kept = filter_hits(hits, threshold)
            logger.debug("Field %s: %d hits, %d above %.2f", name, len(hits), len(kept), threshold)
            per_field.append(kept)
        related = merge_ids(per_field)
        logger.info("Found %d related items for product %s.", len(related), product_id)
        return related
