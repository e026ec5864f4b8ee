"""
Entity API endpoints.

Bridges HTTP requests to registered entity handlers:
``GET|POST /entities/{entity}/{action}/{path...}``.
"""
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Header, Request
from fastapi.encoders import jsonable_encoder
from starlette.responses import JSONResponse, Response
from sqlalchemy.orm import Session

from entity_api.api.deps import get_optional_user_context
from entity_api.db.database import get_db
from entity_api.registry import dispatch
from entity_api.responses import APIResponse, HTTP_NO_CONTENT, HTTP_NOT_MODIFIED

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/entities", tags=["entities"])

_EMPTY_BODY_CODES = (HTTP_NO_CONTENT, HTTP_NOT_MODIFIED)


def render_response(response: APIResponse) -> Response:
    headers = {}
    if response.cache is not None and response.cache >= 0:
        headers["Cache-Control"] = f"max-age={response.cache}"
    if response.etag:
        headers["ETag"] = f'"{response.etag}"'
    if response.code in _EMPTY_BODY_CODES:
        return Response(status_code=response.code, headers=headers)
    return JSONResponse(jsonable_encoder(response.data), status_code=response.code, headers=headers)


def _split_path(path: str):
    return [segment for segment in (path or "").split("/") if segment]


def _etag_value(if_none_match: Optional[str]) -> Optional[str]:
    if not if_none_match:
        return None
    value = if_none_match.strip()
    if value.startswith("W/"):
        value = value[2:]
    value = value.strip('"')
    if not value or value == "*" or "," in value:
        return None
    return value


def _build_params(request: Request, path: str, data=None) -> Dict[str, Any]:
    return {
        "path": _split_path(path),
        "query": dict(request.query_params),
        "data": data,
    }


@router.get("/{entity}/{action}")
@router.get("/{entity}/{action}/{path:path}")
def get_entity_action(
    entity: str,
    action: str,
    request: Request,
    path: str = "",
    db: Session = Depends(get_db),
    current_user: Optional[Dict[str, Any]] = Depends(get_optional_user_context),
    if_none_match: Optional[str] = Header(default=None),
):
    params = _build_params(request, path)
    etag = _etag_value(if_none_match)
    # A conditional single fetch behaves like "<id>:<hash>"
    if etag and action == "get" and len(params["path"]) == 1:
        entity_id = params["path"][0]
        if "," not in entity_id and ":" not in entity_id:
            params["path"] = [f"{entity_id}:{etag}"]
    response = dispatch(entity, "get", action, params, db=db, user=current_user)
    return render_response(response)


@router.post("/{entity}/{action}")
@router.post("/{entity}/{action}/{path:path}")
def post_entity_action(
    entity: str,
    action: str,
    request: Request,
    path: str = "",
    payload: Optional[Dict[str, Any]] = Body(default=None),
    db: Session = Depends(get_db),
    current_user: Optional[Dict[str, Any]] = Depends(get_optional_user_context),
):
    params = _build_params(request, path, payload)
    response = dispatch(entity, "post", action, params, db=db, user=current_user)
    return render_response(response)
