import json
import logging
from contextlib import contextmanager
from typing import Any, Callable, Iterator
from urllib.parse import urlsplit

from elasticsearch import ApiError, Elasticsearch
from elasticsearch import TransportError as ESTransportError

from relateditems.config import EndpointConfig
from relateditems.errors import EngineError, TransportError


logger = logging.getLogger(__name__)

JSON_HEADERS = {"accept": "application/json", "content-type": "application/json"}
_DEFAULT_PORTS = {"http": 80, "https": 443}

ClientFactory = Callable[[EndpointConfig], Elasticsearch]


def node_url(endpoint: EndpointConfig) -> str:
    """``scheme://host:port[/prefix]`` for the endpoint; the port defaults by scheme."""
    parts = urlsplit(endpoint.base_url)
    port = parts.port or _DEFAULT_PORTS[endpoint.scheme]
    return f"{parts.scheme}://{parts.hostname}:{port}{parts.path.rstrip('/')}"


def get_search_client(endpoint: EndpointConfig, **transport_options: Any) -> Elasticsearch:
    """
    Create an Elasticsearch client for the configured endpoint.

    Failed requests are not retried. Extra keyword arguments go to the
    ``Elasticsearch`` constructor (e.g. ``node_class``).
    """
    endpoint.require_complete("client")
    logger.debug("Connecting to search engine at %s", endpoint.base_url)
    return Elasticsearch(
        hosts=[node_url(endpoint)],
        basic_auth=endpoint.auth,
        request_timeout=endpoint.timeout,
        max_retries=0,
        retry_on_timeout=False,
        **transport_options,
    )


def error_detail(error: Any) -> str:
    """Human readable text of an engine ``error`` member (string or object)."""
    if isinstance(error, str):
        return error
    if isinstance(error, dict):
        reason = error.get("reason")
        kind = error.get("type")
        if reason and kind:
            return f"{kind}: {reason}"
        if reason:
            return str(reason)
    return json.dumps(error, ensure_ascii=False)


def api_error_to_result(operation: str, error: ApiError) -> Exception:
    """An engine error envelope becomes EngineError; any other HTTP failure is a TransportError."""
    body = error.body
    if isinstance(body, dict) and body.get("error"):
        return EngineError(operation, error_detail(body["error"]))
    return TransportError(
        operation,
        f"Connection failed to search engine API. HTTP code is {error.meta.status}",
    )


@contextmanager
def engine_errors(operation: str) -> Iterator[None]:
    """Translate client exceptions raised in the block into this package's errors."""
    try:
        yield
    except ApiError as e:
        raise api_error_to_result(operation, e) from e
    except ESTransportError as e:
        raise TransportError(operation, str(e)) from e


def checked_body(operation: str, body: Any) -> dict:
    """Return a JSON object answer, or raise on an error envelope or other shape."""
    if not isinstance(body, dict):
        raise EngineError(operation, f"Unexpected response body: {body!r}")
    if body.get("error"):
        raise EngineError(operation, error_detail(body["error"]))
    return body
