from __future__ import annotations

from contextlib import closing
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from relateditems.api.dependencies import get_client_factory, get_settings
from relateditems.catalog import InMemoryCatalog, ProductRecord
from relateditems.config import SiteSettings
from relateditems.engine.client import ClientFactory
from relateditems.engine.index_store import IndexManager
from relateditems.indexing import ProductImporter


router = APIRouter(prefix="/index", tags=["index"])


class ProductPayload(BaseModel):
    id: int = Field(..., description="Stable product ID, used as the document ID.")
    title: str = ""
    content: str = Field("", description="Product body; HTML is stripped before indexing.")
    excerpt: str = Field("", description="Short description; HTML is stripped before indexing.")
    display_price: str = Field("", description="Price as displayed in the shop.")
    average_rating: Optional[float] = None
    categories: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    visible: bool = Field(True, description="Invisible products are not indexed.")


class ImportRequest(BaseModel):
    products: List[ProductPayload] = Field(
        ..., description="The full product catalog to send to the search engine."
    )


class ImportResponse(BaseModel):
    status: str
    index: str
    documents: int = Field(..., description="Number of documents written.")


class DropIndexResponse(BaseModel):
    status: str
    index: str


def _to_record(payload: ProductPayload, product_type: str) -> ProductRecord:
    return ProductRecord(
        id=payload.id,
        title=payload.title,
        content=payload.content,
        excerpt=payload.excerpt,
        display_price=payload.display_price,
        average_rating=payload.average_rating,
        categories=list(payload.categories),
        tags=list(payload.tags),
        visible=payload.visible,
        product_type=product_type,
    )


@router.post(
    "/import",
    summary="Import all products into the search index",
    response_model=ImportResponse,
)
def import_products(
    request: ImportRequest,
    settings: SiteSettings = Depends(get_settings),
    client_factory: ClientFactory = Depends(get_client_factory),
) -> ImportResponse:
    catalog = InMemoryCatalog(_to_record(p, settings.product_type) for p in request.products)
    importer = ProductImporter(catalog, settings, client_factory=client_factory)
    count = importer.import_all_products()
    index = settings.index_name("import")
    return ImportResponse(status="imported", index=index, documents=count)


@router.get("/mapping", summary="Get the live mapping of the product index")
def get_mapping(
    settings: SiteSettings = Depends(get_settings),
    client_factory: ClientFactory = Depends(get_client_factory),
) -> Dict[str, Any]:
    settings.endpoint.require_complete("get_mapping")
    index = settings.index_name("get_mapping")
    with closing(client_factory(settings.endpoint)) as client:
        return IndexManager(client, index, settings.product_type).get_mapping()


@router.delete("", summary="Delete the product index", response_model=DropIndexResponse)
def drop_index(
    settings: SiteSettings = Depends(get_settings),
    client_factory: ClientFactory = Depends(get_client_factory),
) -> DropIndexResponse:
    settings.endpoint.require_complete("drop_index")
    index = settings.index_name("drop_index")
    with closing(client_factory(settings.endpoint)) as client:
        dropped = IndexManager(client, index, settings.product_type).drop_index()
    return DropIndexResponse(status="dropped" if dropped else "missing", index=index)
