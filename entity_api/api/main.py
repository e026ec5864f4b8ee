"""
FastAPI app assembly: logging, middleware and router wiring.
"""
import logging

from fastapi import FastAPI, Depends
from fastapi.middleware.cors import CORSMiddleware
from starlette.requests import Request

from entity_api.utils.settings import get_settings

settings = get_settings()

# Configure logging
LOG_LEVEL = getattr(logging, settings.log_level, logging.INFO)
logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)
logger.setLevel(LOG_LEVEL)
logger.info("app_startup: log_level=%s", settings.log_level)

import entity_api.entities  # noqa: F401,E402 - registers the bundled entities
from entity_api.api.deps import get_current_user_context  # noqa: E402
from entity_api.api.router import render_response, router as entities_router  # noqa: E402
from entity_api.registry import registered_entities  # noqa: E402
from entity_api.responses import APIException  # noqa: E402

# Database schema is managed by Alembic migrations.

app = FastAPI(
    title="Entity API",
    description="Generic CRUD API over database-backed entities with per-field access control.",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
    expose_headers=["ETag"],
)


@app.exception_handler(APIException)
async def api_exception_handler(request: Request, exc: APIException):
    if exc.code >= 500:
        logger.warning("api_error: path=%s code=%s detail=%s", request.url.path, exc.code, exc.message)
    else:
        logger.debug("api_error: path=%s code=%s detail=%s", request.url.path, exc.code, exc.message)
    return render_response(exc.response())


@app.get("/health")
def health():
    return {"status": "ok", "entities": sorted(registered_entities())}


@app.get("/me")
def me(user_context=Depends(get_current_user_context)):
    _user, current_user = user_context
    return current_user


app.include_router(entities_router)
