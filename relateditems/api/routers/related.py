from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from relateditems.api.dependencies import get_client_factory, get_settings
from relateditems.catalog import ProductRecord
from relateditems.config import SiteSettings
from relateditems.engine.client import ClientFactory
from relateditems.search import RelatedItemSearcher


router = APIRouter(prefix="/related", tags=["related"])


class RelatedItemsResponse(BaseModel):
    product_id: int = Field(..., description="Product the lookup was made for.")
    related: List[int] = Field(
        default_factory=list,
        description="Related product IDs, best matching fields first, without duplicates.",
    )


def get_searcher(
    settings: SiteSettings = Depends(get_settings),
    client_factory: ClientFactory = Depends(get_client_factory),
) -> RelatedItemSearcher:
    return RelatedItemSearcher(settings, client_factory=client_factory)


@router.get(
    "/{product_id}",
    summary="Related items for a product",
    response_model=RelatedItemsResponse,
)
async def related_items(
    product_id: int,
    searcher: RelatedItemSearcher = Depends(get_searcher),
) -> RelatedItemsResponse:
    """Look up products similar to an already indexed product."""
    related = await searcher.aget_related_items(ProductRecord(id=product_id))
    return RelatedItemsResponse(product_id=product_id, related=related)
