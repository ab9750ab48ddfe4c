import base64
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import parse_qs

from pydantic import BaseModel, Field

from .constants import FORM_CONTENT_TYPE, HDR_AUTHORIZATION, HDR_CONTENT_TYPE, OAUTH_PREFIX


class OAuthRequest(BaseModel):
    """The parts of an API Gateway proxy event the OAuth endpoints look at.

    Query and form parameters keep every value so that repeated parameters
    can be detected and rejected.
    """

    method: str = Field(..., description="Upper-case HTTP method")
    path: str = Field(..., description="Request path")
    base_url: str = Field(default="http://localhost", description="Scheme and host the request arrived on")
    headers: Dict[str, str] = Field(default_factory=dict, description="Headers with lower-cased names")
    query: Dict[str, List[str]] = Field(default_factory=dict, description="Multi-valued query parameters")
    form: Dict[str, List[str]] = Field(default_factory=dict, description="Multi-valued form body parameters")

    @property
    def authorization(self) -> Optional[str]:
        return self.headers.get(HDR_AUTHORIZATION)

    @property
    def content_type(self) -> str:
        return self.headers.get(HDR_CONTENT_TYPE, "").split(";", 1)[0].strip().lower()

    @property
    def is_form_post(self) -> bool:
        return self.method == "POST" and self.content_type == FORM_CONTENT_TYPE

    @property
    def parameters(self) -> Dict[str, List[str]]:
        """Request parameters of the method's natural carrier (GET query, POST form)."""
        if self.method == "GET":
            return self.query
        if self.is_form_post:
            return self.form
        return {}

    def get_one(self, key: str, source: Optional[Dict[str, List[str]]] = None) -> Optional[str]:
        """Return the single value of ``key``; None when missing or repeated."""
        values = (self.parameters if source is None else source).get(key) or []
        return values[0] if len(values) == 1 else None

    def count(self, key: str, source: Optional[Dict[str, List[str]]] = None) -> int:
        return len((self.parameters if source is None else source).get(key) or [])

    def url_for(self, path: str) -> str:
        return f"{self.base_url.rstrip('/')}{OAUTH_PREFIX}{path}"

    @classmethod
    def from_event(cls, event: Dict[str, Any]) -> "OAuthRequest":
        """Build a request from an API Gateway proxy integration event."""
        headers = {str(k).lower(): str(v) for k, v in (event.get("headers") or {}).items()}

        query: Dict[str, List[str]] = {}
        multi = event.get("multiValueQueryStringParameters")
        if multi:
            query = {k: list(v) for k, v in multi.items()}
        else:
            query = {k: [v] for k, v in (event.get("queryStringParameters") or {}).items()}

        body = event.get("body") or ""
        if body and event.get("isBase64Encoded"):
            body = base64.b64decode(body).decode("utf-8")

        method = (event.get("httpMethod") or "GET").upper()
        form: Dict[str, List[str]] = {}
        content_type = headers.get(HDR_CONTENT_TYPE, "").split(";", 1)[0].strip().lower()
        if method == "POST" and content_type == FORM_CONTENT_TYPE and body:
            form = parse_qs(body, keep_blank_values=True)

        context = event.get("requestContext") or {}
        host = context.get("domainName") or headers.get("host") or "localhost"
        # requestContext.protocol is the HTTP version, not the URL scheme
        scheme = headers.get("x-forwarded-proto", "https").split(",", 1)[0].strip() or "https"

        return cls(
            method=method,
            path=event.get("path") or "/",
            base_url=f"{scheme}://{host}",
            headers=headers,
            query=query,
            form=form,
        )


class O2Client(BaseModel):
    """Endpoint accepts client authentication of the permitted visibilities."""

    permit_private: bool = True
    permit_public: bool = True


class O2BearerToken(BaseModel):
    """Endpoint accepts bearer tokens issued to clients of the permitted visibilities."""

    permit_private: bool = True
    permit_public: bool = True


class RouteEndpoint:
    """
    Represents an endpoint for a specific OAuth route, encapsulating the handler
    function and the authentication it requires.

    Args:
        method (Callable[..., Any]): The handler function for the route.
        client (O2Client): Client authentication accepted by the route (default: none).
        bearer_token (O2BearerToken): Bearer token authentication accepted (default: none).

    Routes with neither requirement are anonymous.
    """

    def __init__(self, method: Callable[..., Any], **kwargs):
        self.handler = method
        self.client: Optional[O2Client] = kwargs.get("client")
        self.bearer_token: Optional[O2BearerToken] = kwargs.get("bearer_token")

    @property
    def allow_anonymous(self) -> bool:
        return self.client is None and self.bearer_token is None


ActionHandlerRoutes = Dict[str, RouteEndpoint]
