import logging
from typing import Any, Dict, Iterable, List, Mapping, Tuple
from urllib.parse import quote

from elasticsearch import BadRequestError, Elasticsearch, NotFoundError, helpers
from elasticsearch.helpers import BulkIndexError

from relateditems.errors import EngineError

from .client import JSON_HEADERS, checked_body, engine_errors, error_detail
from .schemas import SearchHit, format_search_hit


logger = logging.getLogger(__name__)

_ALREADY_EXISTS_MARKERS = ("already_exists", "AlreadyExists")


def _path(*parts: Any) -> str:
    return "/" + "/".join(quote(str(p), safe="") for p in parts)


def _is_already_exists(error: BadRequestError) -> bool:
    body = error.body
    detail = error_detail(body.get("error")) if isinstance(body, dict) else str(error.message)
    return any(marker in detail for marker in _ALREADY_EXISTS_MARKERS)


class IndexManager:
    """Manages index lifecycle and mapping for product documents."""

    def __init__(self, client: Elasticsearch, index: str, doc_type: str) -> None:
        self.client = client
        self.index = index
        self.doc_type = doc_type

    def index_exists(self) -> bool:
        with engine_errors("ensure_index"):
            return bool(self.client.indices.exists(index=self.index))

    def ensure_index(self) -> bool:
        """Create the index when absent. Returns True when it was created."""
        if self.index_exists():
            return False

        with engine_errors("ensure_index"):
            try:
                self.client.indices.create(index=self.index)
            except BadRequestError as e:
                # Another writer created it between our check and create.
                if _is_already_exists(e):
                    return False
                raise
        logger.info("Created index '%s'.", self.index)
        return True

    def put_mapping(self, mapping: Dict[str, Any]) -> None:
        """Apply ``mapping`` as the properties of this document type."""
        body = {self.doc_type: {"properties": mapping}}
        with engine_errors("put_mapping"):
            resp = self.client.perform_request(
                "PUT",
                _path(self.index, "_mapping", self.doc_type),
                headers=JSON_HEADERS,
                body=body,
            )
        result = checked_body("put_mapping", resp.body)
        if result.get("acknowledged") is False:
            raise EngineError("put_mapping", f"Mapping for '{self.doc_type}' was not acknowledged.")
        logger.info("Applied mapping to '%s/%s' (%d fields).", self.index, self.doc_type, len(mapping))

    def get_mapping(self) -> Dict[str, Any]:
        with engine_errors("get_mapping"):
            resp = self.client.perform_request(
                "GET",
                _path(self.index, "_mapping", self.doc_type),
                headers={"accept": "application/json"},
            )
        return checked_body("get_mapping", resp.body)

    def drop_index(self) -> bool:
        """Delete the index. Returns False when there was nothing to delete."""
        with engine_errors("drop_index"):
            try:
                self.client.indices.delete(index=self.index)
            except NotFoundError:
                logger.info("Index '%s' does not exist; nothing to drop.", self.index)
                return False
        logger.info("Dropped index '%s'.", self.index)
        return True


class ProductIndexStore:
    """Bulk writes and more-like-this queries against one index/type."""

    def __init__(self, client: Elasticsearch, index: str, doc_type: str) -> None:
        self.client = client
        self.index = index
        self.doc_type = doc_type

    def _expand_action(self, item: Tuple[int, Dict[str, Any]]) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        doc_id, source = item
        action = {"_index": self.index, "_type": self.doc_type, "_id": str(int(doc_id))}
        return {"index": action}, source

    def bulk_upsert(self, documents: Mapping[int, Dict[str, Any]]) -> int:
        """Index all documents in one bulk request, keyed by product ID.

        Documents with an existing ID are overwritten. The batch succeeds or
        fails as a whole; returns the number of documents sent.
        """
        if not documents:
            logger.info("No documents to send to '%s/%s'.", self.index, self.doc_type)
            return 0

        try:
            with engine_errors("bulk"):
                helpers.bulk(
                    self.client,
                    documents.items(),
                    expand_action_callback=self._expand_action,
                    chunk_size=max(len(documents), 1),
                    max_chunk_bytes=2**31 - 1,
                )
        except BulkIndexError as e:
            raise EngineError("bulk", self._first_item_error(e.errors)) from e
        return len(documents)

    def more_like_this(
        self,
        doc_id: int,
        field: str,
        base_params: Iterable[Tuple[str, str]] = (),
    ) -> List[SearchHit]:
        """Documents similar to ``doc_id`` on a single field, in engine order."""
        params = dict(base_params)
        params["mlt_fields"] = field
        with engine_errors("mlt"):
            resp = self.client.perform_request(
                "GET",
                _path(self.index, self.doc_type, doc_id, "_mlt"),
                params=params,
                headers={"accept": "application/json"},
            )
        result = checked_body("mlt", resp.body)
        hits = (result.get("hits") or {}).get("hits") or []
        try:
            items = [
                SearchHit(id=int(hit["_id"]), score=float(hit.get("_score") or 0.0))
                for hit in hits
            ]
        except (KeyError, TypeError, ValueError) as e:
            raise EngineError("mlt", f"Malformed hit in response for field '{field}': {e}") from e
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("mlt %s -> [%s]", field, ", ".join(format_search_hit(h) for h in items))
        return items

    @staticmethod
    def _first_item_error(errors: List[Dict[str, Any]]) -> str:
        for item in errors:
            for outcome in item.values():
                if isinstance(outcome, dict) and outcome.get("error"):
                    return f"document {outcome.get('_id')}: {error_detail(outcome['error'])}"
        return "Bulk request reported errors."
