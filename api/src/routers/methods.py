"""
HTTP method router.

Registers one probe route per HTTP method. Each probe logs the method it
was called with and answers 200 with an empty body.
"""

import structlog
from fastapi import APIRouter, Request, Response, status

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["HTTP Methods"])

METHOD_PROBES = {
    "GET": "/someGet",
    "POST": "/somePost",
    "PUT": "/somePut",
    "DELETE": "/someDelete",
    "PATCH": "/somePatch",
    "HEAD": "/someHead",
    "OPTIONS": "/someOptions",
}


async def default_http(request: Request) -> Response:
    logger.info("http_method_probe", method=request.method, path=request.url.path)
    return Response(status_code=status.HTTP_200_OK)


for _method, _path in METHOD_PROBES.items():
    router.add_api_route(
        _path,
        default_http,
        methods=[_method],
        summary=f"{_method} probe",
        response_class=Response,
        name=f"probe_{_method.lower()}",
    )
