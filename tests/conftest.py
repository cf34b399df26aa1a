import json
import sys
import threading
import time
from pathlib import Path
from typing import Any, Dict, List, NamedTuple, Optional, Tuple
from urllib.parse import parse_qsl, unquote, urlsplit

import pytest
from elastic_transport import ApiResponseMeta, BaseNode, HttpHeaders

# Ensure repo root on sys.path for imports from anywhere in tests tree.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from relateditems.config import EndpointConfig, SiteSettings  # noqa: E402
from relateditems.engine.client import get_search_client  # noqa: E402


class Recorded(NamedTuple):
    method: str
    path: str
    params: List[Tuple[str, str]]
    headers: Dict[str, str]
    body: bytes
    node: Any


class Reply(NamedTuple):
    status: int
    payload: Any = None


class NodeResponse(NamedTuple):
    meta: ApiResponseMeta
    body: bytes


class FakeEngine:
    """In-memory stand-in for the search engine, served through the real client.

    ``mlt`` maps an indexed field name to what the _mlt endpoint answers for it:
    a list of (id, score) pairs, a JSON dict, a ``Reply`` with another status,
    or an exception to raise from the node.
    """

    def __init__(self) -> None:
        self.requests: List[Recorded] = []
        self.index_exists = False
        self.mapping: Any = None
        self.documents: Dict[str, Dict[str, Any]] = {}
        self.bulk_bodies: List[List[Dict[str, Any]]] = []
        self.bulk_errors: Dict[str, Any] = {}
        self.create_reply: Optional[Reply] = None
        self.mapping_reply: Optional[Reply] = None
        self.mlt: Dict[str, Any] = {}
        self.delays: Dict[str, float] = {}
        self.events: List[str] = []
        self._lock = threading.Lock()

    def node_class(self):
        engine = self

        class FakeNode(BaseNode):
            _CLIENT_META_HTTP_CLIENT = ("fk", "0.0")

            def perform_request(self, method, target, body=None, headers=None, **kwargs):
                return engine.handle(self.config, method, target, body, headers)

            def close(self):
                engine.record_event("close")

        return FakeNode

    def record_event(self, event: str) -> None:
        with self._lock:
            self.events.append(event)

    def handle(self, node, method, target, body, headers) -> NodeResponse:
        url = urlsplit(target)
        path = unquote(url.path)
        parts = [p for p in path.split("/") if p]
        request = Recorded(
            method=method,
            path=path,
            params=parse_qsl(url.query, keep_blank_values=True),
            headers={k.lower(): v for k, v in (headers or {}).items()},
            body=body or b"",
            node=node,
        )
        with self._lock:
            self.requests.append(request)

        status, payload = self._route(request, parts)
        return self._respond(node, status, payload)

    def _route(self, request: Recorded, parts: List[str]) -> Reply:
        method = request.method
        if parts and parts[-1] == "_bulk":
            return self._bulk(request)
        if method == "HEAD":
            return Reply(200 if self.index_exists else 404)
        if method == "PUT" and len(parts) == 1:
            if self.create_reply is not None:
                return self.create_reply
            self.index_exists = True
            return Reply(200, {"acknowledged": True})
        if method == "PUT" and "_mapping" in parts:
            if self.mapping_reply is not None:
                return self.mapping_reply
            self.mapping = json.loads(request.body)
            return Reply(200, {"acknowledged": True})
        if method == "GET" and "_mapping" in parts:
            return Reply(200, {parts[0]: {"mappings": self.mapping or {}}})
        if method == "DELETE":
            if not self.index_exists:
                return Reply(404, {"error": "IndexMissingException[[x] missing]", "status": 404})
            self.index_exists = False
            self.documents.clear()
            return Reply(200, {"acknowledged": True})
        if method == "GET" and parts and parts[-1] == "_mlt":
            return self._mlt(request)
        return Reply(400, {"error": f"unexpected {method} {request.path}"})

    def _bulk(self, request: Recorded) -> Reply:
        lines = [json.loads(line) for line in request.body.decode("utf-8").splitlines() if line]
        self.bulk_bodies.append(lines)
        items = []
        for action, source in zip(lines[::2], lines[1::2]):
            meta = dict(action["index"])
            error = self.bulk_errors.get(meta["_id"])
            if error is not None:
                items.append({"index": {**meta, "status": 400, "error": error}})
                continue
            self.documents[meta["_id"]] = source
            items.append({"index": {**meta, "status": 201, "result": "created"}})
        failed = any("error" in item["index"] for item in items)
        return Reply(200, {"took": 3, "errors": failed, "items": items})

    def _mlt(self, request: Recorded) -> Reply:
        field = dict(request.params).get("mlt_fields")
        if field in self.delays:
            time.sleep(self.delays[field])
        answer = self.mlt.get(field, [])
        self.record_event(f"done {field}")
        if isinstance(answer, Exception):
            raise answer
        if isinstance(answer, Reply):
            return answer
        if isinstance(answer, dict):
            return Reply(200, answer)
        hits = [{"_index": "i", "_type": "product", "_id": str(i), "_score": s} for i, s in answer]
        return Reply(200, {"took": 2, "hits": {"total": len(hits), "hits": hits}})

    @staticmethod
    def _respond(node, status: int, payload: Any) -> NodeResponse:
        headers = HttpHeaders({"x-elastic-product": "Elasticsearch"})
        raw = b""
        if isinstance(payload, str):
            headers["content-type"] = "text/plain; charset=utf-8"
            raw = payload.encode("utf-8")
        elif payload is not None:
            headers["content-type"] = "application/json"
            raw = json.dumps(payload).encode("utf-8")
        meta = ApiResponseMeta(
            status=status, http_version="1.1", headers=headers, duration=0.0, node=node
        )
        return NodeResponse(meta=meta, body=raw)

    def calls(self, method: str = None) -> List[Recorded]:
        return [r for r in self.requests if method is None or r.method == method]

    def paths(self) -> List[Tuple[str, str]]:
        return [(r.method, r.path) for r in self.requests]


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def client_factory(engine):
    def factory(endpoint: EndpointConfig):
        return get_search_client(endpoint, node_class=engine.node_class())

    return factory


@pytest.fixture
def settings() -> SiteSettings:
    return SiteSettings(
        endpoint=EndpointConfig(host="search.example.com:9200"),
        site_url="https://Shop.Example.com/store/",
        product_type="product",
    )
