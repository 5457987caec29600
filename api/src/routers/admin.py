"""
Admin router protected by HTTP Basic authentication.

Every route in the group requires credentials from the configured account
table; see api.src.middleware.auth.BasicAuth.
"""

import structlog
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import PlainTextResponse

from api.src.middleware.auth import get_authenticated_user, require_basic_auth
from api.src.models.responses import ErrorResponse

logger = structlog.get_logger(__name__)

admin_router = APIRouter(
    prefix="/admin",
    tags=["Administration"],
    dependencies=[Depends(require_basic_auth)],
    responses={
        401: {"model": ErrorResponse, "description": "Unauthorized"},
    }
)


@admin_router.api_route(
    "/authorized",
    methods=["GET", "POST"],
    response_class=PlainTextResponse,
    status_code=status.HTTP_200_OK,
    summary="Basic auth check",
    description="""
    Confirm the caller authenticated with HTTP Basic credentials.

    **Authentication:** Required (HTTP Basic)

    **Error Responses:**
    - 401: Missing or wrong credentials, with a Basic challenge
    """,
)
async def authorized(request: Request) -> PlainTextResponse:
    user = get_authenticated_user(request)
    logger.info("admin_access", user=user, method=request.method)
    return PlainTextResponse("BasicAuth.")
