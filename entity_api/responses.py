"""
Response framing for entity handlers.

`APIResponse` is the transport-neutral result of an entity action and
`APIException` is the error counterpart. The FastAPI layer turns both into
HTTP responses (see `entity_api.api.router.render_response`).
"""
from typing import Any, Dict, Optional

from fastapi import HTTPException, status

HTTP_OK = status.HTTP_200_OK
HTTP_NO_CONTENT = status.HTTP_204_NO_CONTENT
HTTP_MULTI = status.HTTP_207_MULTI_STATUS
HTTP_NOT_MODIFIED = status.HTTP_304_NOT_MODIFIED
HTTP_BAD_REQUEST = status.HTTP_400_BAD_REQUEST
HTTP_FORBIDDEN = status.HTTP_403_FORBIDDEN
HTTP_NOT_FOUND = status.HTTP_404_NOT_FOUND
HTTP_NOT_IMPLEMENTED = status.HTTP_501_NOT_IMPLEMENTED


class APIResponse:
    """Result of an entity action.

    ``cache`` is a max-age in seconds; a negative value means no caching
    header is emitted. ``entity_id`` labels the response inside a multi fetch.
    """

    def __init__(
        self,
        code: int,
        data: Any = None,
        cache: Optional[int] = None,
        entity_id: Optional[str] = None,
        etag: Optional[str] = None,
    ):
        self.code = code
        self.data = data
        self.cache = cache
        self.entity_id = entity_id
        self.etag = etag

    def array(self) -> Dict[str, Any]:
        out = {"code": self.code, "id": self.entity_id, "data": self.data}
        if self.etag:
            out["hash"] = self.etag
        return out

    def __repr__(self) -> str:
        return f"APIResponse(code={self.code}, id={self.entity_id!r})"


class APIException(HTTPException):
    """HTTP error raised by entity actions.

    ``field`` names the offending input (if any) and ``entity_id`` the entity
    the error refers to, so multi fetches can report per-id failures.
    """

    def __init__(
        self,
        code: int,
        message: str,
        field: Optional[str] = None,
        entity_id: Optional[str] = None,
    ):
        super().__init__(status_code=code, detail=message)
        self.code = code
        self.message = message
        self.field = field
        self.entity_id = entity_id

    def response(self) -> APIResponse:
        return APIResponse(
            self.code,
            {"detail": self.message, "field": self.field},
            entity_id=self.entity_id,
        )
