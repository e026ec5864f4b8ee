"""
Articles entity.

Authors own their articles. Drafts are hidden from everyone but the author
and superadmins; listings only ever show published articles.
"""
from entity_api.db import models
from entity_api.db.store import EntityNotFoundError, ModelStore
from entity_api.entity import EntityAPI, int_param
from entity_api.registry import register_entity

STATUS_DRAFT = "draft"
STATUS_PUBLISHED = "published"


class ArticleStore(ModelStore):
    model = models.Article


@register_entity("articles")
class ArticleAPI(EntityAPI):
    entity_options = {
        "class": ArticleStore,
        "cache": 60,
        "list_per_page": 20,
        "props": {
            "title": {"type": "string", "min": 1, "max": 200, "nullable": False},
            "body": {"type": "string", "nullable": False},
            "status": {"type": "string", "enum": [STATUS_DRAFT, STATUS_PUBLISHED], "nullable": False},
            "author_id": {"write": EntityAPI.ACCESS_SYSTEM},
            "created_at": {"write": EntityAPI.ACCESS_SYSTEM},
            "updated_at": {"write": EntityAPI.ACCESS_SYSTEM},
        },
    }

    def entity_access(self, entity_id) -> int:
        user = self.user or {}
        if user.get("is_superadmin"):
            return EntityAPI.ACCESS_PRIVATE
        base = EntityAPI.ACCESS_PROTECTED if self.user else EntityAPI.ACCESS_PUBLIC
        if entity_id is None:
            return base

        try:
            article = self.store.load(entity_id).instance
        except EntityNotFoundError:
            # let the action report the missing entity
            return base
        if self.user and article.author_id == user.get("id"):
            return EntityAPI.ACCESS_PRIVATE
        if article.status != STATUS_PUBLISHED:
            return EntityAPI.ACCESS_DENY
        return base

    def list_conditions(self, params):
        conditions = {"status": STATUS_PUBLISHED}
        author_id = int_param(params.get("query") or {}, "author_id", None, minimum=1)
        if author_id is not None:
            conditions["author_id"] = author_id
        return conditions

    def list_options(self, params):
        return {"order_by": "-created_at"}
