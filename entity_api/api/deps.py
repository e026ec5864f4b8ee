"""
API dependency helpers.

Resolve the requesting user from proxy headers (or DEV_MODE) into the
context dict entity handlers receive.
"""
from typing import Optional, Tuple, Dict, Any

from fastapi import Header, HTTPException, status, Depends
from sqlalchemy.orm import Session

from entity_api.api.auth import build_user_context, get_or_create_user, resolve_identity_from_headers
from entity_api.db.database import get_db
from entity_api.utils.settings import Settings, get_settings

DEV_USER_NAME = "Development User"
DEV_USER_EMAIL = "dev@localhost"

_LOCAL_HOSTS = frozenset({"localhost", "127.0.0.1", "::1"})


def dev_identity(settings: Settings) -> Optional[Tuple[str, str]]:
    """Return the (name, email) DEV_MODE signs every request in as.

    None when DEV_MODE is off. Impersonation is refused (RuntimeError) unless
    APP_BASE_URL names a local or DEV_MODE_ALLOWED_HOSTS host, or, with no
    APP_BASE_URL at all, ALLOW_DEV_MODE=true opts in.
    """
    if not settings.dev_mode:
        return None
    host = settings.app_base_host
    if host is None:
        if not settings.allow_dev_mode:
            raise RuntimeError(
                "DEV_MODE=true requires APP_BASE_URL to point at a local host "
                "or ALLOW_DEV_MODE=true"
            )
    else:
        allowed = _LOCAL_HOSTS.union(settings.dev_mode_hosts)
        if host not in allowed:
            raise RuntimeError(
                f"DEV_MODE=true is not permitted for APP_BASE_URL host '{host}'. "
                f"Allowed hosts: {sorted(allowed)}"
            )
    return DEV_USER_NAME, DEV_USER_EMAIL


def get_optional_user_context(
    db: Session = Depends(get_db),
    x_auth_request_user: Optional[str] = Header(default=None),
    x_auth_request_email: Optional[str] = Header(default=None),
    x_forwarded_user: Optional[str] = Header(default=None),
    x_forwarded_email: Optional[str] = Header(default=None),
) -> Optional[Dict[str, Any]]:
    """Return the user context, or None for anonymous requests."""
    impersonated = dev_identity(get_settings())
    if impersonated:
        name, email = impersonated
    else:
        name, email = resolve_identity_from_headers(
            x_auth_request_user=x_auth_request_user,
            x_auth_request_email=x_auth_request_email,
            x_forwarded_user=x_forwarded_user,
            x_forwarded_email=x_forwarded_email,
        )
    if not email:
        return None
    user = get_or_create_user(db, email=email, display_name=name)
    return build_user_context(user)


# Contract:
# Returns (sqlalchemy User model, current_user_context_dict)
# Raises 401 if identity cannot be resolved.
def get_current_user_context(
    db: Session = Depends(get_db),
    current_user: Optional[Dict[str, Any]] = Depends(get_optional_user_context),
) -> Tuple[Any, Dict[str, Any]]:
    if current_user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    from entity_api.db import models
    user = db.query(models.User).filter(models.User.id == current_user["id"]).first()
    return user, current_user
