from __future__ import annotations

from functools import lru_cache

from relateditems.config import SiteSettings, load_settings
from relateditems.engine.client import ClientFactory, get_search_client


@lru_cache(maxsize=1)
def get_settings() -> SiteSettings:
    return load_settings()


def get_client_factory() -> ClientFactory:
    return get_search_client
