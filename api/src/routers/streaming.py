"""
Streaming and background work router.

Provides REST API endpoints that:
- Stream a body read from an upstream HTTP response
- Answer immediately while work continues in the background
- Redirect to an external location
"""

import structlog
from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import PlainTextResponse, RedirectResponse, StreamingResponse

from api.src.config import Settings
from api.src.dependencies import get_app_settings, get_task_runner, get_upstream_client
from api.src.services.background import BackgroundTaskRunner, RequestSnapshot, finish_long_task
from api.src.services.upstream import UpstreamClient, UpstreamUnavailable

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["Streaming"])


@router.get(
    "/someDataFromReader",
    summary="Stream an upstream body",
    description="""
    Fetch the configured upstream URL and stream its body back with the
    upstream content type and length.

    **Error Responses:**
    - 503: Upstream unreachable or did not answer 200
    """,
    responses={
        200: {"description": "Upstream body"},
        503: {"description": "Upstream unavailable"}
    }
)
async def data_from_reader(
    request: Request,
    settings: Settings = Depends(get_app_settings),
    upstream: UpstreamClient = Depends(get_upstream_client)
) -> Response:
    try:
        upstream_response = await upstream.open(settings.upstream_url)
    except UpstreamUnavailable as e:
        request.state.error = str(e)
        return Response(status_code=status.HTTP_503_SERVICE_UNAVAILABLE)

    headers = {}
    if upstream_response.content_length is not None:
        headers["Content-Length"] = str(upstream_response.content_length)

    return StreamingResponse(
        upstream_response.iter_chunks(),
        status_code=status.HTTP_200_OK,
        headers=headers,
        media_type=upstream_response.content_type
    )


@router.get(
    "/long_async",
    response_class=PlainTextResponse,
    summary="Detach work from the request",
    description="Answers at once; a copy of the request context is used by a task that finishes later.",
)
async def long_async(
    request: Request,
    settings: Settings = Depends(get_app_settings),
    runner: BackgroundTaskRunner = Depends(get_task_runner)
) -> PlainTextResponse:
    snapshot = RequestSnapshot.from_request(request)
    runner.spawn(
        finish_long_task(snapshot, settings.long_async_delay),
        name=f"long_async:{snapshot.path}"
    )
    logger.info("long_async_scheduled", path=snapshot.path, delay=settings.long_async_delay)
    return PlainTextResponse("")


@router.get(
    "/redirect",
    summary="External redirect",
    response_class=RedirectResponse,
    status_code=status.HTTP_301_MOVED_PERMANENTLY,
)
async def redirect(settings: Settings = Depends(get_app_settings)) -> RedirectResponse:
    return RedirectResponse(settings.redirect_url, status_code=status.HTTP_301_MOVED_PERMANENTLY)
