import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Depends
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy import text

from gfscore.db.base import get_db
from gfscore.core.config import settings
from gfscore.core.logging import setup_logging
from gfscore.routers import votes as votes_router
from gfscore.routers import products as products_router
from gfscore.routers import jobs as jobs_router
from gfscore.routers import settings as settings_router
from gfscore.core.errors import (
    GFScoreException,
    gfscore_exception_handler,
    validation_exception_handler,
    unhandled_exception_handler,
)

setup_logging(settings.LOG_LEVEL, json_output=settings.LOG_JSON)
logger = logging.getLogger("gfscore")

API_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("gfscore API %s starting (env=%s)", API_VERSION, settings.APP_ENV)
    yield
    logger.info("gfscore API shutting down")


app = FastAPI(
    title="gfscore API",
    description=(
        "**Gluten-free product scoring**\n\n"
        "Crowd-sourced safety / taste / price votes folded into a time-decayed, "
        "identity-weighted score per product. Daily jobs re-apply decay and "
        "record price history.\n\n"
        "All error responses follow the `{code, message, details}` envelope."
    ),
    version=API_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Most specific first; the bare Exception handler turns anything else into a 500 envelope.
app.add_exception_handler(GFScoreException, gfscore_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

for module in (votes_router, products_router, jobs_router, settings_router):
    app.include_router(module.router)


@app.get("/health", tags=["health"], summary="Liveness and database check")
def health(db: Session = Depends(get_db)):
    """
    `{"status": "ok", "db": "ok", ...}` when the database answers,
    HTTP 503 otherwise.
    """
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.warning("Health check: database unreachable", exc_info=True)
        return JSONResponse(
            status_code=503,
            content={"status": "error", "db": "unreachable"},
        )
    return {"status": "ok", "db": "ok", "env": settings.APP_ENV, "version": API_VERSION}
