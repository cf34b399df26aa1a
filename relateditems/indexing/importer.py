from __future__ import annotations

import logging
from contextlib import closing
from typing import Any, Dict, Optional

from relateditems.catalog import ProductCatalog, ProductRecord
from relateditems.config import SiteSettings
from relateditems.engine.client import ClientFactory, get_search_client
from relateditems.engine.index_store import IndexManager, ProductIndexStore
from relateditems.engine.mapping import default_mapping
from relateditems.engine.schemas import IndexDocument
from relateditems.overrides import Overrides
from relateditems.utils.text_cleaning import clean_term_names, strip_all_tags


logger = logging.getLogger(__name__)


def is_search_target(record: ProductRecord) -> bool:
    return bool(record.visible)


def build_document(record: ProductRecord) -> IndexDocument:
    return IndexDocument(
        product_title=record.title or "",
        product_content=strip_all_tags(record.content),
        product_excerpt=strip_all_tags(record.excerpt),
        product_display_price=record.display_price or "",
        product_rate=record.average_rating,
        product_tag=clean_term_names(record.tags),
        product_cat=clean_term_names(record.categories),
    )


class ProductImporter:
    """Sends every visible product of the catalog to the search engine.

    One run = one bulk request. The index is created when missing and the
    mapping is (re)applied first, so repeated runs are safe. Products that
    became invisible are skipped but not removed from the index.
    """

    def __init__(
        self,
        catalog: ProductCatalog,
        settings: SiteSettings,
        *,
        overrides: Overrides | None = None,
        client_factory: ClientFactory = get_search_client,
    ) -> None:
        self.catalog = catalog
        self.settings = settings
        self.overrides = overrides or Overrides()
        self.client_factory = client_factory

    def import_all_products(self) -> int:
        """Import all products; returns the number of documents written.

        Raises:
            ConfigError: endpoint or site URL unusable (no request is made).
            TransportError: the engine could not be reached.
            EngineError: the engine rejected the mapping or the bulk write.
        """
        endpoint = self.settings.endpoint
        endpoint.require_complete("import")
        index = self.settings.index_name("import")
        doc_type = self.settings.product_type

        documents = self._collect_documents()
        mapping = self.overrides.mapping(default_mapping())

        with closing(self.client_factory(endpoint)) as client:
            manager = IndexManager(client, index, doc_type)
            manager.ensure_index()
            manager.put_mapping(mapping)
            count = ProductIndexStore(client, index, doc_type).bulk_upsert(documents)

        logger.info("Imported %d products into '%s/%s'.", count, index, doc_type)
        return count

    def _collect_documents(self) -> Dict[int, Dict[str, Any]]:
        documents: Dict[int, Dict[str, Any]] = {}
        skipped = 0
        query = self.overrides.catalog_query({"product_type": self.settings.product_type})
        for record in self.catalog.all_products(**query):
            source = self._document_source(record)
            if source is None:
                skipped += 1
                continue
            documents[int(record.id)] = source
        if skipped:
            logger.debug("Skipped %d products (not visible or dropped by transform).", skipped)
        return documents

    def _document_source(self, record: ProductRecord) -> Optional[Dict[str, Any]]:
        if not is_search_target(record):
            return None
        return self.overrides.document_transform(build_document(record).to_source(), record)
