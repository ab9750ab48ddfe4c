from typing import Any, Dict, Optional

from loguru import logger as log

from ..constants import OAUTH_PREFIX
from ..exceptions import NotFoundException, OAuthException
from ..request import ActionHandlerRoutes, O2BearerToken, O2Client, OAuthRequest, RouteEndpoint
from ..response import OAuthErrorResponse, Response, get_proxy_response
from ..store import get_store
from .authorize import oauth_authorize, oauth_authorize_callback
from .filters import FilterChain, authenticate_request, build_filter_chain
from .grants import oauth_token
from .introspect import oauth_introspect
from .revoke import oauth_revoke

endpoints: ActionHandlerRoutes = {
    f"GET:{OAUTH_PREFIX}/authorize": RouteEndpoint(
        oauth_authorize,
        client=O2Client(permit_private=False, permit_public=True),
    ),
    f"GET:{OAUTH_PREFIX}/authorize/callback": RouteEndpoint(oauth_authorize_callback),
    f"POST:{OAUTH_PREFIX}/token": RouteEndpoint(
        oauth_token,
        client=O2Client(permit_private=True, permit_public=True),
    ),
    f"POST:{OAUTH_PREFIX}/introspect": RouteEndpoint(
        oauth_introspect,
        client=O2Client(permit_public=False),
        bearer_token=O2BearerToken(),
    ),
    f"POST:{OAUTH_PREFIX}/revoke": RouteEndpoint(
        oauth_revoke,
        client=O2Client(permit_public=False),
        bearer_token=O2BearerToken(),
    ),
}

# Filter chains are resolved once, not per request
filter_chains: Dict[str, FilterChain] = {key: build_filter_chain(endpoint) for key, endpoint in endpoints.items()}


def _internal_error() -> Response:
    return OAuthErrorResponse(code=500, error="internal_server_error", error_description="Internal server error.")


def handler(event: Any, context: Optional[Any] = None) -> Dict[str, Any]:
    """API Gateway Lambda proxy integration handler for the OAuth2 endpoints.

    Routes are resolved using the pattern ``"{httpMethod}:{path}"``:

    - **GET:/oauth2/authorize** → start an authorization-code or implicit flow
    - **GET:/oauth2/authorize/callback** → identity provider return
    - **POST:/oauth2/token** → token grants
    - **POST:/oauth2/introspect** → token introspection
    - **POST:/oauth2/revoke** → token revocation

    One store transaction spans authentication and the endpoint itself. Any
    error rolls it back; known errors render as their RFC 6749 body (or a
    redirect back to the client), anything else as a generic 500.

    Args:
        event (Any): API Gateway proxy integration event.
        context (Optional[Any]): Lambda runtime context, unused.

    Returns:
        Dict[str, Any]: API Gateway proxy integration response.
    """
    try:
        request = OAuthRequest.from_event(event)
        key = f"{request.method}:{request.path.rstrip('/') or '/'}"

        endpoint = endpoints.get(key)
        if endpoint is None:
            raise NotFoundException(f"No route for {key}")

        log.debug("OAuth request", details={"route": key})

        with get_store().transaction() as store:
            principal = authenticate_request(filter_chains[key], request, store)
            response = endpoint.handler(request=request, principal=principal, store=store)

    except OAuthException as e:
        log.debug("OAuth request rejected", details={"error": e.error, "status": int(e.status_code)})
        response = e.to_response()

    except Exception as e:
        log.error(f"Error occurred while processing request: {e}")
        response = _internal_error()

    return get_proxy_response(response)
