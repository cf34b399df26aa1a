from __future__ import annotations

import logging
import os

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from relateditems.errors import ConfigError, RelatedItemsError

from .routers.index import router as index_router
from .routers.related import router as related_router


logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)


app = FastAPI(title="Related Items API")

app.include_router(index_router)
app.include_router(related_router)


@app.exception_handler(RelatedItemsError)
async def related_items_error_handler(request: Request, exc: RelatedItemsError) -> JSONResponse:
    """Bad config is ours (500); engine or network trouble is upstream (502)."""
    logger.error("%s failed: %s", exc.operation, exc.detail)
    status_code = 500 if isinstance(exc, ConfigError) else 502
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


@app.get("/health", tags=["ops"], summary="Health check")
async def health():
    return {"status": "ok"}
