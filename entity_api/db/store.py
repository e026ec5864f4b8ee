"""
SQLAlchemy-backed entity stores.

A store is the persistence side of an entity handler: it loads single rows
as `EntityRecord` objects, answers hash comparisons for conditional fetches,
and runs the filtered/paginated queries behind listings.
"""
from __future__ import annotations

import hashlib
import json
import logging
from typing import Any, Dict, Iterable, List, Optional

from fastapi.encoders import jsonable_encoder
from sqlalchemy import func, inspect as sa_inspect
from sqlalchemy.exc import DataError, IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

# Raised for integers the column type cannot hold: OverflowError by the sqlite
# driver while binding, DataError by postgres.
_OUT_OF_RANGE = (OverflowError, DataError)


class EntityNotFoundError(LookupError):
    def __init__(self, entity_id):
        super().__init__(f"entity {entity_id!r} not found")
        self.entity_id = entity_id


class EntityFieldError(ValueError):
    """A write or query referenced a column the store cannot handle."""

    def __init__(self, column: Optional[str], message: Optional[str] = None):
        super().__init__(message or f"unknown field '{column}'")
        self.column = column


def content_hash(data: Dict[str, Any]) -> str:
    """Return a stable sha1 over the JSON form of a row."""
    payload = json.dumps(jsonable_encoder(data), sort_keys=True, separators=(",", ":"))
    return hashlib.sha1(payload.encode("utf-8")).hexdigest()


class EntityRecord:
    """One loaded row, with read/write access to its column values."""

    def __init__(self, store: "ModelStore", instance):
        self.store = store
        self.instance = instance

    def get(self) -> Dict[str, Any]:
        return self.store.to_dict(self.instance)

    def set(self, data: Dict[str, Any]) -> None:
        columns = self.store.columns()
        pk_name = self.store.primary_key().key
        for column in data:
            if column not in columns:
                raise EntityFieldError(column)
            if column == pk_name:
                raise EntityFieldError(column, f"field '{column}' is read-only")

        db = self.store.db
        for column, value in data.items():
            setattr(self.instance, column, value)
        try:
            db.commit()
        except IntegrityError as e:
            db.rollback()
            logger.info("entity_write_conflict: model=%s error=%s", self.store.model.__name__, e.orig)
            raise EntityFieldError(None, "write conflicts with existing data")
        except _OUT_OF_RANGE:
            db.rollback()
            raise EntityFieldError(None, "value out of range")
        except SQLAlchemyError:
            db.rollback()
            raise
        db.refresh(self.instance)

    def hash(self) -> str:
        return content_hash(self.get())


class ModelStore:
    """Entity store over one declarative model.

    Subclasses set ``model``; a store instance is bound to a request session.
    """

    model = None

    def __init__(self, db: Session):
        if self.model is None:
            raise TypeError(f"{type(self).__name__} must define a model")
        self.db = db

    @classmethod
    def columns(cls) -> List[str]:
        return [prop.key for prop in sa_inspect(cls.model).column_attrs]

    @classmethod
    def primary_key(cls):
        return sa_inspect(cls.model).primary_key[0]

    def to_dict(self, instance, columns: Optional[Iterable[str]] = None) -> Dict[str, Any]:
        names = list(columns) if columns is not None else self.columns()
        return {name: getattr(instance, name) for name in names}

    def _coerce_id(self, entity_id):
        pk = self.primary_key()
        try:
            python_type = pk.type.python_type
        except NotImplementedError:
            return entity_id
        if isinstance(entity_id, python_type):
            return entity_id
        try:
            return python_type(entity_id)
        except (TypeError, ValueError):
            raise EntityNotFoundError(entity_id)

    def _column(self, name: str):
        if name not in self.columns():
            raise EntityFieldError(name)
        return getattr(self.model, name)

    def _apply_conditions(self, q, conditions: Optional[Dict[str, Any]]):
        for name, value in (conditions or {}).items():
            attr = self._column(name)
            if value is None:
                q = q.filter(attr.is_(None))
            elif isinstance(value, (list, tuple, set, frozenset)):
                q = q.filter(attr.in_(list(value)))
            else:
                q = q.filter(attr == value)
        return q

    def load(self, entity_id) -> EntityRecord:
        key = self._coerce_id(entity_id)
        pk_attr = getattr(self.model, self.primary_key().key)
        try:
            instance = self.db.query(self.model).filter(pk_attr == key).first()
        except _OUT_OF_RANGE:
            self.db.rollback()
            raise EntityNotFoundError(entity_id)
        if instance is None:
            raise EntityNotFoundError(entity_id)
        return EntityRecord(self, instance)

    def hash(self, entity_id, expected: str) -> bool:
        """Return True when the stored row still hashes to ``expected``."""
        return self.load(entity_id).hash() == expected

    def find(
        self,
        conditions: Optional[Dict[str, Any]] = None,
        *,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        order_by=None,
        columns: Optional[Iterable[str]] = None,
    ) -> Dict[str, Any]:
        """Return ``{"data": [row, ...]}`` for rows matching ``conditions``.

        ``order_by`` takes a column name or a list of them; a leading ``-``
        sorts descending. Rows are always tie-broken by primary key so pages
        do not overlap.
        """
        if columns is not None:
            columns = list(columns)
            for name in columns:
                self._column(name)

        q = self._apply_conditions(self.db.query(self.model), conditions)
        if isinstance(order_by, str):
            order_by = [order_by]
        for spec in order_by or []:
            attr = self._column(spec.lstrip("-"))
            q = q.order_by(attr.desc() if spec.startswith("-") else attr.asc())
        q = q.order_by(getattr(self.model, self.primary_key().key).asc())
        if offset:
            q = q.offset(offset)
        if limit is not None:
            q = q.limit(limit)
        try:
            instances = q.all()
        except _OUT_OF_RANGE:
            self.db.rollback()
            raise EntityFieldError(None, "query value out of range")
        return {"data": [self.to_dict(instance, columns) for instance in instances]}

    def count(self, conditions: Optional[Dict[str, Any]] = None) -> int:
        q = self.db.query(func.count()).select_from(self.model)
        q = self._apply_conditions(q, conditions)
        try:
            return int(q.scalar() or 0)
        except _OUT_OF_RANGE:
            self.db.rollback()
            raise EntityFieldError(None, "query value out of range")
