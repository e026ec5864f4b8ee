"""
Generic CRUD handler for database-backed entities.

Subclasses describe an entity through ``entity_options`` and override
``entity_access`` to grant a per-request access level. Actions are methods
named ``<http method>_<action>`` (``get_get``, ``post_set``, ``get_list``);
the registry resolves and invokes them.

Access control is a flat comparison: the requester's level on an entity
against each column's ``read``/``write`` level from ``entity_options["props"]``.
"""
import logging
import math
from typing import Any, Dict, Optional

from entity_api.db.store import EntityFieldError, EntityNotFoundError
from entity_api.responses import (
    APIException,
    APIResponse,
    HTTP_BAD_REQUEST,
    HTTP_FORBIDDEN,
    HTTP_MULTI,
    HTTP_NO_CONTENT,
    HTTP_NOT_FOUND,
    HTTP_NOT_IMPLEMENTED,
    HTTP_NOT_MODIFIED,
    HTTP_OK,
)
from entity_api.validation import filter_value, validate

logger = logging.getLogger(__name__)

_SINGLE_PATH = {"path": [{}]}


class EntityAPI:
    ACCESS_DENY = 0

    ACCESS_PUBLIC = 100
    ACCESS_PROTECTED = 200
    ACCESS_PRIVATE = 300

    # Above every level a request can be granted; columns at this level are
    # only touched by application code.
    ACCESS_SYSTEM = 1000

    LIST_PER_PAGE = 10
    LIST_MAX_PER_PAGE = 100

    entity_options: Dict[str, Any] = {}

    def __init__(self, db=None, user: Optional[Dict[str, Any]] = None):
        self.db = db
        self.user = user
        self._store = None

    @property
    def store(self):
        if self._store is None:
            self._store = self.entity_options["class"](self.db)
        return self._store

    def entity_access(self, entity_id) -> int:
        return EntityAPI.ACCESS_PUBLIC

    def readable(self, data: Dict[str, Any], access: int) -> Dict[str, Any]:
        """Drop columns whose read level is above ``access``."""
        props = self.entity_options.get("props")
        if not props:
            return data
        return {
            column: value
            for column, value in data.items()
            if access >= props.get(column, {}).get("read", EntityAPI.ACCESS_PUBLIC)
        }

    def get_get(self, params: Dict[str, Any]) -> APIResponse:
        validate(params, _SINGLE_PATH)

        meta = self.entity_options
        entity_id = str(params["path"][0])

        # comma-separated ids: fetch each, embedding errors per id
        if "," in entity_id:
            responses = []
            for piece in entity_id.split(","):
                if not piece:
                    continue
                try:
                    response = self.get_get({**params, "path": [piece]}).array()
                except APIException as e:
                    response = e.response().array()
                responses.append(response)
            return APIResponse(HTTP_MULTI, responses)

        expected_hash = None
        if ":" in entity_id:
            entity_id, _, expected_hash = entity_id.partition(":")
            expected_hash = expected_hash or None

        access = self.entity_access(entity_id)
        if access <= EntityAPI.ACCESS_DENY:
            raise APIException(HTTP_FORBIDDEN, "access denied to this object", None, entity_id)

        cache = meta.get("cache", -1)

        try:
            if expected_hash is not None and self.store.hash(entity_id, expected_hash):
                return APIResponse(HTTP_NOT_MODIFIED, None, cache, entity_id)
            record = self.store.load(entity_id)
        except EntityNotFoundError:
            raise APIException(HTTP_NOT_FOUND, "entity not found", None, entity_id)

        data = self.readable(record.get(), access)
        return APIResponse(HTTP_OK, data, cache, entity_id, etag=record.hash())

    def post_set(self, params: Dict[str, Any]) -> APIResponse:
        validate(params, _SINGLE_PATH)

        props = self.entity_options.get("props") or {}
        data = params.get("data")
        entity_id = str(params["path"][0])

        if not data:
            raise APIException(HTTP_BAD_REQUEST, "missing data", "data")

        access = self.entity_access(entity_id)
        if access <= EntityAPI.ACCESS_DENY:
            raise APIException(HTTP_FORBIDDEN, "access denied to this entity")

        try:
            record = self.store.load(entity_id)
        except EntityNotFoundError:
            raise APIException(HTTP_NOT_FOUND, "entity not found")

        for column, value in data.items():
            column_meta = props.get(column, {})
            column_access = column_meta.get("write", EntityAPI.ACCESS_PRIVATE)
            if access < column_access:
                raise APIException(HTTP_FORBIDDEN, f"access denied for writing the field '{column}'")

            filter_value(value, column_meta, f"prop '{column}'", field=column)

        try:
            record.set(data)
        except EntityFieldError as e:
            raise APIException(HTTP_BAD_REQUEST, str(e), e.column)

        logger.info(
            "entity_set: entity=%s id=%s fields=%s",
            type(self).__name__, entity_id, sorted(data),
        )
        return APIResponse(HTTP_NO_CONTENT)

    def list(self, conditions, additional: Optional[Dict[str, Any]] = None, page: int = 0, per_page: Optional[int] = None):
        meta = self.entity_options
        per_page = per_page or meta.get("list_per_page", EntityAPI.LIST_PER_PAGE)
        offset = per_page * page

        result_count = self.store.count(conditions)
        result = self.store.find(conditions, **{**(additional or {}), "limit": per_page, "offset": offset})

        result["page_count"] = math.ceil(result_count / per_page)
        return result

    def list_conditions(self, params: Dict[str, Any]) -> Dict[str, Any]:
        return {}

    def list_options(self, params: Dict[str, Any]) -> Dict[str, Any]:
        return {}

    def get_list(self, params: Dict[str, Any]) -> APIResponse:
        query = params.get("query") or {}
        page = int_param(query, "page", 0, minimum=0)
        per_page = int_param(query, "per_page", None, minimum=1, maximum=EntityAPI.LIST_MAX_PER_PAGE)

        access = self.entity_access(None)
        if access <= EntityAPI.ACCESS_DENY:
            raise APIException(HTTP_FORBIDDEN, "access denied to this list")

        try:
            result = self.list(self.list_conditions(params), self.list_options(params), page, per_page)
        except EntityFieldError as e:
            raise APIException(HTTP_BAD_REQUEST, str(e), e.column)

        result["data"] = [self.readable(row, access) for row in result["data"]]
        result["page"] = page
        return APIResponse(HTTP_OK, result, self.entity_options.get("cache", -1))

    def disabled(self, params: Optional[Dict[str, Any]] = None):
        raise APIException(HTTP_NOT_IMPLEMENTED, "unknown action")


def int_param(query: Dict[str, Any], name: str, default, *, minimum=None, maximum=None):
    raw = query.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise APIException(HTTP_BAD_REQUEST, f"invalid parameter '{name}': must be an integer", name)
    rules = {"type": "int", "min": minimum, "max": maximum}
    return filter_value(value, rules, f"parameter '{name}'", field=name)
