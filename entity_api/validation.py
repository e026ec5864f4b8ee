"""
Request parameter validation and per-column value filtering.

Column rules are plain dicts shared with the access table of an entity, e.g.
``{"type": "string", "max": 255, "read": ACCESS_PUBLIC}``. Only the keys
listed in ``RULE_KEYS`` are interpreted here; access levels are ignored.
"""
import re
from typing import Annotated, Any, Dict, Mapping, Optional

from pydantic import Field, TypeAdapter, ValidationError

from entity_api.responses import APIException, HTTP_BAD_REQUEST

RULE_KEYS = frozenset({"type", "min", "max", "pattern", "enum", "nullable"})

_RULE_TYPES: Dict[str, type] = {
    "string": str,
    "int": int,
    "float": float,
    "bool": bool,
    "list": list,
    "dict": dict,
}


def _type_for(rules: Mapping[str, Any]):
    type_name = rules.get("type")
    if type_name is None:
        return None
    if type_name not in _RULE_TYPES:
        raise ValueError(f"Unknown rule type: {type_name}. Allowed types: {sorted(_RULE_TYPES)}")
    base = _RULE_TYPES[type_name]

    constraints: Dict[str, Any] = {}
    lo, hi = rules.get("min"), rules.get("max")
    if base in (str, list):
        if lo is not None:
            constraints["min_length"] = lo
        if hi is not None:
            constraints["max_length"] = hi
    elif base in (int, float):
        if lo is not None:
            constraints["ge"] = lo
        if hi is not None:
            constraints["le"] = hi
    if base is str and rules.get("pattern"):
        constraints["pattern"] = rules["pattern"]

    if constraints:
        return Annotated[base, Field(**constraints)]
    return base


def filter_value(value: Any, rules: Optional[Mapping[str, Any]], name: str, field: Optional[str] = None) -> Any:
    """Check ``value`` against a column rule dict.

    Raises ``APIException`` (400) naming ``name`` in the message. Values are
    never coerced: a ``"1"`` does not satisfy ``{"type": "int"}``.
    """
    rules = rules or {}
    field = field or name

    if value is None:
        if rules.get("nullable", True):
            return value
        raise APIException(HTTP_BAD_REQUEST, f"invalid {name}: must not be null", field=field)

    target = _type_for(rules)
    if target is not None:
        try:
            value = TypeAdapter(target).validate_python(value, strict=True)
        except ValidationError as e:
            reason = e.errors()[0].get("msg", "invalid value")
            raise APIException(HTTP_BAD_REQUEST, f"invalid {name}: {reason}", field=field)
    elif rules.get("pattern") and isinstance(value, str):
        if not re.search(rules["pattern"], value):
            raise APIException(HTTP_BAD_REQUEST, f"invalid {name}: does not match pattern", field=field)

    allowed = rules.get("enum")
    if allowed is not None and value not in allowed:
        raise APIException(
            HTTP_BAD_REQUEST,
            f"invalid {name}: must be one of {list(allowed)}",
            field=field,
        )
    return value


def validate(params: Mapping[str, Any], schema: Mapping[str, Any]) -> None:
    """Validate request parameters against a schema.

    A list rule requires a list parameter with exactly as many elements as the
    rule has entries; ``{"path": [{}]}`` means one path element of any value.
    """
    for key, rule in schema.items():
        if params.get(key) is None:
            raise APIException(HTTP_BAD_REQUEST, f"missing parameter '{key}'", field=key)
        value = params[key]
        if isinstance(rule, (list, tuple)):
            if not isinstance(value, (list, tuple)) or len(value) != len(rule):
                raise APIException(
                    HTTP_BAD_REQUEST,
                    f"parameter '{key}' expects exactly {len(rule)} element(s)",
                    field=key,
                )
            for index, (item, item_rule) in enumerate(zip(value, rule)):
                filter_value(item, item_rule, f"parameter '{key}[{index}]'", field=key)
        else:
            filter_value(value, rule, f"parameter '{key}'", field=key)
