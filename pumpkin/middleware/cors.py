import re
from typing import List

from starlette.datastructures import Headers, MutableHeaders
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import PlainTextResponse
import structlog

from pumpkin.services.cors import TenantCorsPolicyProvider

logger = structlog.get_logger()

CONTENT_METHODS = "GET, POST, PUT, DELETE, OPTIONS"
DEFAULT_ALLOWED_HEADERS = "Authorization, Content-Type"
PREFLIGHT_MAX_AGE = "600"


class TenantCorsMiddleware:
    """Per-tenant CORS for the content-serving routes.

    ``/<prefix>/{pages,themes,sitemap,forms}/<tenant>/...`` is checked against
    that tenant's allowed origins. Every other path goes through Starlette's
    CORSMiddleware with the static admin origins.
    """

    def __init__(
        self,
        app,
        policy_provider: TenantCorsPolicyProvider,
        admin_origins: List[str],
        prefix: str = "/api",
    ):
        self.app = app
        self.policy = policy_provider
        self.admin_cors = CORSMiddleware(
            app,
            allow_origins=admin_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
        self.content_path = re.compile(
            rf"^{re.escape(prefix.rstrip('/'))}/(pages|themes|sitemap|forms)/(?P<tenant>[^/]+)"
        )

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        match = self.content_path.match(scope["path"])
        if match is None:
            await self.admin_cors(scope, receive, send)
            return

        headers = Headers(scope=scope)
        origin = headers.get("origin")
        if not origin:
            await self.app(scope, receive, send)
            return

        tenant_id = match.group("tenant")
        allowed = await self.policy.is_origin_allowed(tenant_id, origin)

        if scope["method"] == "OPTIONS" and "access-control-request-method" in headers:
            response = self.preflight_response(origin, headers, allowed, tenant_id)
            await response(scope, receive, send)
            return

        if not allowed:
            await self.app(scope, receive, send)
            return

        async def send_with_cors(message):
            if message["type"] == "http.response.start":
                response_headers = MutableHeaders(scope=message)
                response_headers["Access-Control-Allow-Origin"] = origin
                response_headers.add_vary_header("Origin")
            await send(message)

        await self.app(scope, receive, send_with_cors)

    def preflight_response(self, origin: str, headers: Headers, allowed: bool, tenant_id: str):
        if not allowed:
            logger.info("CORS preflight rejected", tenant_id=tenant_id, origin=origin)
            return PlainTextResponse("Disallowed CORS origin", status_code=400, headers={"Vary": "Origin"})

        return PlainTextResponse(
            "OK",
            status_code=200,
            headers={
                "Access-Control-Allow-Origin": origin,
                "Access-Control-Allow-Methods": CONTENT_METHODS,
                "Access-Control-Allow-Headers": headers.get(
                    "access-control-request-headers", DEFAULT_ALLOWED_HEADERS
                ),
                "Access-Control-Max-Age": PREFLIGHT_MAX_AGE,
                "Vary": "Origin",
            },
        )
