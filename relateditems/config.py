from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import yaml
from dotenv import find_dotenv, load_dotenv

from .errors import ConfigError


CONFIG_FILE_PATH = Path(__file__).parent / "config.yaml"
DEFAULT_PRODUCT_TYPE = "product"
DEFAULT_TIMEOUT_SEC = 10.0

logger = logging.getLogger(__name__)


def load_config(config_path: Path | str = CONFIG_FILE_PATH) -> Dict[str, Any]:
    """Load configuration from a YAML file path.

    Args:
        config_path: Path to the configuration file. Defaults to the
            ``config.yaml`` shipped next to this module.

    Returns:
        Parsed configuration dictionary.

    Raises:
        FileNotFoundError: If the configuration file is not found.
        ValueError: If there is an error parsing the YAML file.
    """
    path = Path(config_path)

    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise FileNotFoundError(f"Configuration file not found: {path}") from e

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ValueError(f"Error parsing YAML file '{path}': {e}") from e

    return data or {}


@dataclass(frozen=True)
class EndpointConfig:
    """Connection parameters for the search engine."""

    host: Optional[str] = None
    scheme: str = "https"
    username: Optional[str] = None
    password: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT_SEC

    @property
    def base_url(self) -> str:
        return f"{self.scheme}://{(self.host or '').strip().rstrip('/')}"

    @property
    def auth(self) -> Optional[tuple[str, str]]:
        if self.username and self.password:
            return (self.username, self.password)
        return None

    def require_complete(self, operation: str) -> None:
        """Raise ConfigError unless a client can be built from these parameters."""
        if not self.host or not self.host.strip():
            raise ConfigError(
                operation,
                "Couldn't make search engine client. Endpoint host is not set.",
            )
        if self.scheme not in ("http", "https"):
            raise ConfigError(operation, f"Unsupported endpoint scheme '{self.scheme}'.")
        if bool(self.username) != bool(self.password):
            raise ConfigError(
                operation, "Endpoint credentials need both a username and a password."
            )


def resolve_index_name(site_url: Optional[str], operation: str) -> str:
    """Index name is the canonical site host name, e.g. ``shop.example.com``."""
    host = urlparse(site_url).hostname if site_url else None
    if not host:
        raise ConfigError(operation, f"Can't resolve site host from {site_url!r}.")
    return host


@dataclass(frozen=True)
class SiteSettings:
    """Settings shared by the importer and the searcher."""

    endpoint: EndpointConfig = field(default_factory=EndpointConfig)
    site_url: Optional[str] = None
    product_type: str = DEFAULT_PRODUCT_TYPE

    def index_name(self, operation: str) -> str:
        return resolve_index_name(self.site_url, operation)


def load_settings(env_file: Path | str | None = None) -> SiteSettings:
    """Build SiteSettings from the environment, after loading a ``.env`` file.

    Env:
      - ESCR_ENDPOINT      search engine host (and port), e.g. ``search.example.com:9200``
      - ESCR_SCHEME        ``https`` (default) or ``http``
      - ESCR_USERNAME / ESCR_PASSWORD   optional basic auth
      - ESCR_TIMEOUT       request timeout in seconds (default 10)
      - ESCR_SITE_URL      canonical site URL; its host names the index
      - ESCR_PRODUCT_TYPE  document type name (default ``product``)
    """
    load_dotenv(env_file or find_dotenv(usecwd=True))

    raw_timeout = os.getenv("ESCR_TIMEOUT")
    try:
        timeout = float(raw_timeout) if raw_timeout else DEFAULT_TIMEOUT_SEC
    except ValueError as e:
        raise ConfigError("settings", f"ESCR_TIMEOUT is not a number: {raw_timeout!r}") from e

    endpoint = EndpointConfig(
        host=os.getenv("ESCR_ENDPOINT"),
        scheme=os.getenv("ESCR_SCHEME", "https").lower(),
        username=os.getenv("ESCR_USERNAME") or None,
        password=os.getenv("ESCR_PASSWORD") or None,
        timeout=timeout,
    )
    settings = SiteSettings(
        endpoint=endpoint,
        site_url=os.getenv("ESCR_SITE_URL"),
        product_type=os.getenv("ESCR_PRODUCT_TYPE") or DEFAULT_PRODUCT_TYPE,
    )
    logger.debug(
        "Loaded settings: endpoint=%s site_url=%s product_type=%s",
        endpoint.host,
        settings.site_url,
        settings.product_type,
    )
    return settings
