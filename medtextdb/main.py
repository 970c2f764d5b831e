# medtextdb/main.py
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from . import __version__
from .accounts.router import router as accounts_router
from .catalog.router import router as catalog_router
from .catalog.store import CatalogStore
from .config import settings
from .deps import get_store
from .errors import MedTextError, ValidationError


logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.SEED:
        store = app.dependency_overrides.get(get_store, get_store)()
        CatalogStore(store, prefix=settings.KEY_PREFIX).seed_if_empty()
    yield


app = FastAPI(
    title="MedTextDB",
    description=(
        "Local catalogue of medical textbooks with ratings and comments. "
        "All data is kept in a local key-value store for demonstration."
    ),
    version=__version__,
    lifespan=lifespan,
)


@app.exception_handler(MedTextError)
async def medtext_error_handler(request: Request, exc: MedTextError):
    body = {"detail": exc.message}
    if isinstance(exc, ValidationError) and exc.errors:
        body["errors"] = exc.errors
    return JSONResponse(status_code=exc.status_code, content=body)


@app.get("/")
def health_check():
    return {"status": "ok", "name": "MedTextDB"}


app.include_router(catalog_router)
app.include_router(accounts_router)


def run():
    logger.info("Starting server at http://%s:%s", settings.HOST, settings.PORT)
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    run()
