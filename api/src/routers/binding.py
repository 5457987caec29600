"""
Binding router.

Provides REST API endpoints reading request input:
- Query string and urlencoded form values
- Query string bound into a model, failures ignored
- URI path parameters bound into a model, failures reported
"""

import structlog
from fastapi import APIRouter, Form, Query, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import ValidationError

from api.src.models.binding import Person
from api.src.models.responses import BindingErrorResponse, FormEcho

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["Binding"])


@router.post(
    "/post",
    response_model=FormEcho,
    status_code=status.HTTP_200_OK,
    summary="Query and post form",
    description="""
    Read `id` and `page` from the query string and `name` and `message` from
    an `application/x-www-form-urlencoded` body.

    `POST /post?id=1234&page=1` with body `name=manu&message=this_is_great`.
    """,
)
async def post_form(
    id: str = Query("", description="Identifier"),
    page: str = Query("0", description="Page, defaults to 0"),
    name: str = Form(""),
    message: str = Form(""),
) -> FormEcho:
    logger.info(
        "form_received",
        id=id,
        page=page,
        name=name,
        message=message
    )
    return FormEcho(id=id, page=page, name=name, message=message)


@router.get(
    "/ShouldBindQuery",
    response_class=PlainTextResponse,
    summary="Bind query string",
    description="Bind `name` and `address` from the query string. Binding errors are ignored.",
)
async def should_bind_query(request: Request) -> PlainTextResponse:
    try:
        person = Person.bind(request.query_params)
    except ValidationError as e:
        logger.debug("query_binding_skipped", errors=e.error_count())
    else:
        logger.info("query_bound", name=person.name, address=person.address)

    return PlainTextResponse("Success")


@router.get(
    "/bindingurl/{name}/{address}",
    response_model=Person,
    summary="Bind URI parameters",
    responses={
        400: {
            "description": "URI parameters failed to bind",
            "model": BindingErrorResponse
        }
    }
)
async def bind_uri(request: Request, name: str, address: str):
    """
    Bind the path parameters into a Person.

    Returns:
        The bound person, or 400 with the binding error text
    """
    try:
        person = Person.bind({"name": name, "address": address})
    except ValidationError as e:
        request.state.error = str(e)
        logger.warning("uri_binding_failed", path=request.url.path, errors=e.error_count())
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"msg": str(e)}
        )

    return person
