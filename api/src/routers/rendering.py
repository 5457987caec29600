"""
Rendering router.

Provides REST API endpoints demonstrating the response renderers:
- JSON with HTML-sensitive characters escaped
- ASCII-only JSON
- Pure JSON (literal characters)
- JSONP with a caller supplied callback
- Secure JSON protecting arrays from hijacking
- HTML rendered from a Jinja2 template
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from api.src.config import Settings
from api.src.dependencies import get_app_settings, get_templates
from api.src.renderers import (
    AsciiJSONResponse,
    JSONPResponse,
    JSONRenderResponse,
    PureJSONResponse,
    SecureJSONResponse,
)

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["Rendering"])


@router.get(
    "/ping",
    status_code=status.HTTP_200_OK,
    summary="Ping",
    response_class=JSONRenderResponse,
)
async def ping() -> JSONRenderResponse:
    """Answer with a fixed pong message."""
    return JSONRenderResponse({"message": "pong"})


@router.get(
    "/asciiJson",
    summary="ASCII-only JSON",
    description="Non-ASCII characters are written as \\uXXXX escapes.",
    response_class=AsciiJSONResponse,
)
async def ascii_json() -> AsciiJSONResponse:
    data = {
        "lang": "GO语言",
        "tag": "<br>",
    }
    return AsciiJSONResponse(data)


@router.get(
    "/index",
    summary="HTML template",
    response_class=HTMLResponse,
)
async def index(
    request: Request,
    templates: Jinja2Templates = Depends(get_templates)
) -> HTMLResponse:
    """Render index.tmpl with the site title."""
    return templates.TemplateResponse(
        request,
        "index.tmpl",
        {"title": "Main website"}
    )


@router.get(
    "/JSONP",
    summary="JSONP",
    description="""
    Wrap the payload in the function named by the callback query parameter.

    `/JSONP?callback=x` answers `x({"foo":"bar"});`. Without a callback the
    payload is returned as plain JSON.
    """,
    response_class=JSONPResponse,
)
async def jsonp(
    callback: Optional[str] = Query(None, description="JavaScript callback name")
) -> JSONPResponse:
    data = {
        "foo": "bar",
    }
    return JSONPResponse(data, callback=callback)


@router.get(
    "/json",
    summary="JSON with escaped HTML",
    response_class=JSONRenderResponse,
)
async def escaped_json() -> JSONRenderResponse:
    """Special HTML characters are replaced by unicode escapes, e.g. < becomes \\u003c."""
    return JSONRenderResponse({"html": "<b>Hello, world!</b>"})


@router.get(
    "/purejson",
    summary="JSON with literal HTML",
    response_class=PureJSONResponse,
)
async def pure_json() -> PureJSONResponse:
    return PureJSONResponse({"html": "<b>Hello, world!</b>"})


@router.get(
    "/someJSON",
    summary="Secure JSON",
    description="Arrays are prefixed so the body cannot be included as a script.",
    response_class=SecureJSONResponse,
)
async def secure_json(
    settings: Settings = Depends(get_app_settings)
) -> SecureJSONResponse:
    names = ["lena", "austin", "foo"]
    return SecureJSONResponse(names, prefix=settings.secure_json_prefix)
