"""
Entity registry and action dispatch.

Entities register under a URL name; `dispatch` instantiates the handler for
one request and invokes ``<method>_<action>`` on it.
"""
import logging
import re
from typing import Any, Dict, Optional, Type

from entity_api.entity import EntityAPI
from entity_api.responses import APIException, APIResponse, HTTP_NOT_FOUND

logger = logging.getLogger(__name__)

_ACTION_RE = re.compile(r"^[a-z][a-z0-9_]*$")
_METHODS = frozenset({"get", "post"})

_ENTITIES: Dict[str, Type[EntityAPI]] = {}


def register_entity(name: str):
    """Class decorator registering an `EntityAPI` subclass under ``name``."""

    def decorator(cls: Type[EntityAPI]) -> Type[EntityAPI]:
        if not issubclass(cls, EntityAPI):
            raise TypeError(f"{cls.__name__} is not an EntityAPI subclass")
        existing = _ENTITIES.get(name)
        if existing is not None and existing is not cls:
            raise ValueError(f"Entity '{name}' is already registered by {existing.__name__}")
        _ENTITIES[name] = cls
        return cls

    return decorator


def get_entity_class(name: str) -> Type[EntityAPI]:
    try:
        return _ENTITIES[name]
    except KeyError:
        raise APIException(HTTP_NOT_FOUND, "unknown entity", "entity")


def registered_entities() -> Dict[str, Type[EntityAPI]]:
    return dict(_ENTITIES)


def dispatch(
    name: str,
    method: str,
    action: str,
    params: Dict[str, Any],
    *,
    db=None,
    user: Optional[Dict[str, Any]] = None,
) -> APIResponse:
    entity_cls = get_entity_class(name)
    handler = entity_cls(db=db, user=user)

    method = (method or "").lower()
    handler_fn = None
    if method in _METHODS and _ACTION_RE.match(action or ""):
        handler_fn = getattr(handler, f"{method}_{action}", None)
    if not callable(handler_fn):
        logger.debug("dispatch_unknown_action: entity=%s method=%s action=%s", name, method, action)
        return handler.disabled(params)

    logger.debug("dispatch: entity=%s method=%s action=%s", name, method, action)
    return handler_fn(params)
