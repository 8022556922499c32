"""Authentication boundary.

Authentication itself is handled by an upstream gateway. By the time a
request reaches this service the gateway has either attached the
authenticated user's id in the ``X-User-Id`` header or left it out. A
missing header means there is no session: the caller is anonymous and all
roadmap state lives in the local offline cache.
"""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, WebSocket, status

USER_ID_HEADER = "X-User-Id"


def _parse_user_id(raw: str | None) -> int | None:
    if raw is None or not raw.strip():
        return None
    try:
        user_id = int(raw)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {USER_ID_HEADER} header",
        ) from e
    if user_id <= 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {USER_ID_HEADER} header",
        )
    return user_id


def get_optional_user(
    x_user_id: Annotated[str | None, Header(alias=USER_ID_HEADER)] = None,
) -> int | None:
    """Get the authenticated user id for HTTP requests, or None if anonymous.

    Example:
        @router.get("/items")
        async def list_items(user_id: Annotated[int | None, Depends(get_optional_user)]):
            ...
    """
    return _parse_user_id(x_user_id)


def get_optional_user_from_ws(websocket: WebSocket) -> int | None:
    """Get the authenticated user id for WebSocket connections.

    Browsers cannot set headers on WebSocket upgrades, so the query
    parameter ``user_id`` is accepted as well.
    """
    raw = websocket.headers.get(USER_ID_HEADER) or websocket.query_params.get("user_id")
    try:
        return _parse_user_id(raw)
    except HTTPException:
        return None


# Type alias for FastAPI dependency
OptionalUserDep = Annotated[int | None, Depends(get_optional_user)]
