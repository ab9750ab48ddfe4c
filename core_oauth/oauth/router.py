from fastapi import APIRouter, Request, Response
from loguru import logger as log
from starlette.concurrency import run_in_threadpool

from ..api.apis import generate_proxy_event, generate_response_from_lambda
from ..constants import OAUTH_PREFIX
from ..response import OAuthErrorResponse, get_proxy_response
from .handler import endpoints, handler


async def oauth_handler(request: Request) -> Response:
    """FastAPI bridge to the Lambda style OAuth handler.

    The handler is synchronous (store and identity provider calls block), so
    it runs in the thread pool.
    """
    try:
        event = await generate_proxy_event(request)
        result = await run_in_threadpool(handler, event)
    except Exception as e:
        log.error(f"Error occurred while processing request: {e}")
        result = get_proxy_response(
            OAuthErrorResponse(code=500, error="internal_server_error", error_description="Internal server error.")
        )
    return generate_response_from_lambda(result)


def get_oauth_router() -> APIRouter:
    router = APIRouter()
    for key in endpoints.keys():
        method, route = key.split(":", 1)
        router.add_api_route(
            route[len(OAUTH_PREFIX) :],
            oauth_handler,
            methods=[method],
            response_class=Response,
        )
    return router
