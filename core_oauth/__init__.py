"""Simple Cloud Kit OAuth2 Authorization Server.

The core_oauth package issues, validates, introspects and revokes OAuth2
tokens for registered client applications, and delegates end-user
authentication to pluggable identity providers (password, Facebook, Google,
GitHub).

Modules:
    - **oauth/**: OAuth2 protocol implementation
        - handler.py: API Gateway Lambda entry point and route table
        - filters.py: Request authentication filter chain
        - principal.py: Mergeable caller identity
        - credentials.py: Client credential extraction
        - validation.py: Scope, redirect, response type and authenticator checks
        - authorize.py: Authorization-code and implicit redirect flows
        - grants.py: Token endpoint grant handlers
        - introspect.py / revoke.py: RFC 7662 and RFC 7009 endpoints
        - authenticators/: Identity provider plugins
        - router.py: FastAPI bridge for local development
    - **api/**: FastAPI application and gateway emulation
    - **models.py**: Persisted entities
    - **store.py**: Transactional entity store interface and in-memory store
    - **exceptions.py**: RFC 6749 error kinds
    - **response.py**: Response models and proxy integration rendering

Usage Examples:

    **Development Server**:

    .. code-block:: bash

        uvicorn core_oauth.api.fast_api:get_app --factory --port 8090

    **AWS Lambda Deployment**:

    .. code-block:: python

        from core_oauth.oauth.handler import handler

        def lambda_handler(event, context):
            return handler(event, context)

API Endpoints:
    - GET /oauth2/authorize: Start an authorization-code or implicit flow
    - GET /oauth2/authorize/callback: Identity provider callback
    - POST /oauth2/token: Token grants
    - POST /oauth2/introspect: Token introspection
    - POST /oauth2/revoke: Token revocation
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
