"""
Users entity.

Anonymous callers see public columns only; other signed-in users also see
the email address. A user (or a superadmin) may edit their own profile;
the email comes from the auth proxy and is never written through the API.
"""
from entity_api.db import models
from entity_api.db.store import ModelStore
from entity_api.entity import EntityAPI
from entity_api.registry import register_entity


class UserStore(ModelStore):
    model = models.User


@register_entity("users")
class UserAPI(EntityAPI):
    entity_options = {
        "class": UserStore,
        "cache": 0,
        "props": {
            "email": {
                "type": "string",
                "max": 255,
                "pattern": r"^[^@\s]+@[^@\s]+$",
                "nullable": False,
                "read": EntityAPI.ACCESS_PROTECTED,
                # identity key for proxy sign-in
                "write": EntityAPI.ACCESS_SYSTEM,
            },
            "display_name": {"type": "string", "min": 1, "max": 255, "write": EntityAPI.ACCESS_PRIVATE},
            "is_superadmin": {"read": EntityAPI.ACCESS_PROTECTED, "write": EntityAPI.ACCESS_SYSTEM},
            "created_at": {"write": EntityAPI.ACCESS_SYSTEM},
            "updated_at": {"write": EntityAPI.ACCESS_SYSTEM},
        },
    }

    def entity_access(self, entity_id) -> int:
        if self.user is None:
            return EntityAPI.ACCESS_PUBLIC
        if self.user.get("is_superadmin") or str(self.user.get("id")) == str(entity_id):
            return EntityAPI.ACCESS_PRIVATE
        return EntityAPI.ACCESS_PROTECTED

    # the user directory is not browsable
    get_list = EntityAPI.disabled
