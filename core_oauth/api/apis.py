"""Bridge between Starlette requests and the Lambda-style OAuth handler.

The OAuth endpoints are written against API Gateway proxy events so that the
same code runs behind API Gateway and under the local FastAPI server. These
helpers emulate the gateway for the local server.
"""

import base64
import json
from typing import Any, Dict, List

from fastapi import Request, Response
from fastapi.responses import JSONResponse, RedirectResponse
from loguru import logger as log


async def generate_proxy_event(request: Request) -> Dict[str, Any]:
    """Create an API Gateway proxy ``event`` from a request.

    Repeated query parameters are preserved in ``multiValueQueryStringParameters``.
    """
    multi_query: Dict[str, List[str]] = {}
    for key, value in request.query_params.multi_items():
        multi_query.setdefault(key, []).append(value)

    body = await request.body()
    try:
        body_data = body.decode("utf-8") if body else ""
        is_base64_encoded = False
    except UnicodeDecodeError:
        body_data = base64.b64encode(body).decode("utf-8")
        is_base64_encoded = True

    headers = dict(request.headers)
    # The gateway reports the scheme in a header; requestContext.protocol is the HTTP version
    headers.setdefault("x-forwarded-proto", request.url.scheme)
    http_version = request.scope.get("http_version", "1.1")

    return {
        "httpMethod": request.method,
        "path": request.url.path,
        "headers": headers,
        "queryStringParameters": {k: v[-1] for k, v in multi_query.items()},
        "multiValueQueryStringParameters": multi_query,
        "body": body_data,
        "isBase64Encoded": is_base64_encoded,
        "requestContext": {
            "domainName": request.url.netloc,
            "protocol": f"HTTP/{http_version}",
            "stage": "local",
        },
    }


def generate_response_from_lambda(result: Dict[str, Any]) -> Response:
    """Convert a Lambda proxy ``result`` into the matching FastAPI response.

    - 3xx with ``Location`` -> ``RedirectResponse``
    - ``application/json`` -> ``JSONResponse``
    - anything else -> plain ``Response``
    """
    status_code = result.get("statusCode", 200)
    body = result.get("body", "") or ""
    headers = dict(result.get("headers") or {})

    if 300 <= status_code < 400:
        location = next((v for k, v in headers.items() if k.lower() == "location"), None)
        if location:
            response = RedirectResponse(url=location, status_code=status_code)
            for key, value in headers.items():
                if key.lower() != "location":
                    response.headers[key] = value
            return response

    content_type = next((v for k, v in headers.items() if k.lower() == "content-type"), "application/json")
    if content_type.lower().startswith("application/json"):
        try:
            content = json.loads(body) if body else {}
        except json.JSONDecodeError as e:
            log.warning(f"Malformed JSON in response body: {e}")
        else:
            response = JSONResponse(content=content, status_code=status_code)
            for key, value in headers.items():
                if key.lower() not in ("content-type", "content-length"):
                    response.headers[key] = value
            return response

    return Response(content=body, status_code=status_code, headers=headers, media_type=content_type)
