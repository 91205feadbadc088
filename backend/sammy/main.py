"""Sammy API - Entry point.

Serves the REST API and the MCP tool server from one Starlette app under uvicorn.
"""

import logging
import os

import uvicorn
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Mount, Route

from .shell import api
from .shell.auth import parse_bearer_token
from .shell.mcp_server import mcp
from .shell.service import current_user_id, get_auth_client


logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

DEFAULT_CORS_ORIGINS = "http://localhost:5173,capacitor://localhost,https://localhost"


# ==================== Route Handlers ====================


async def health_check(request: Request) -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse({"status": "healthy", "service": "sammy-api"})


# ==================== Auth Middleware ====================


class AuthMiddleware(BaseHTTPMiddleware):
    """Resolve the bearer API key on /api and /mcp requests to a user id."""

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if not (path.startswith("/api") or path.startswith("/mcp")):
            return await call_next(request)

        api_key = parse_bearer_token(request.headers.get("Authorization"))
        if api_key:
            user_id = get_auth_client().resolve_user_id(api_key)
            if user_id is not None:
                # Set user context for this request
                current_user_id.set(user_id)
                logger.debug("Authenticated user: %s", user_id[:8])

        return await call_next(request)


# ==================== Create ASGI App ====================


def create_app() -> Starlette:
    """Create the Starlette application with the MCP app mounted at root.

    The MCP streamable_http_app() handles /mcp/ internally when mounted at root.
    We use its lifespan context to ensure proper initialization.
    """
    mcp_app = mcp.streamable_http_app()

    # Custom routes first, then MCP app at root
    routes = [
        Route("/health", health_check, methods=["GET"]),
        Route("/api/user/profile", api.get_profile, methods=["GET"]),
        Route("/api/user/profile", api.update_profile, methods=["POST"]),
        Route("/api/user/weekly-plan", api.set_weekly_plan, methods=["POST"]),
        Route("/api/user/weekly-plan", api.get_weekly_plan, methods=["GET"]),
        Route("/api/user/typical-week", api.set_typical_week, methods=["POST"]),
        Route("/api/log", api.log_drink, methods=["POST"]),
        Route("/api/log", api.update_log, methods=["PUT"]),
        Route("/api/log", api.delete_log, methods=["DELETE"]),
        Route("/api/log/goal", api.set_day_goal, methods=["POST"]),
        Route("/api/stats/weekly-summary", api.weekly_summary, methods=["GET"]),
        Route("/api/stats/range", api.range_summary, methods=["GET"]),
        Route("/api/stats/cumulative", api.cumulative_stats, methods=["GET"]),
        Route("/api/stats/milestones", api.milestones, methods=["GET"]),
        Mount("/", app=mcp_app),
    ]

    origins = os.environ.get("CORS_ORIGINS", DEFAULT_CORS_ORIGINS).split(",")

    app = Starlette(
        routes=routes,
        middleware=[
            Middleware(
                CORSMiddleware,
                allow_origins=[o.strip() for o in origins if o.strip()],
                allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
                allow_headers=["*"],
            ),
            Middleware(AuthMiddleware),
        ],
        lifespan=mcp_app.router.lifespan_context,
    )

    return app


# Create app at module level for the ASGI server
app = create_app()


def main() -> None:
    """Run the server."""
    port = int(os.environ.get("PORT", 8080))
    host = os.environ.get("HOST", "0.0.0.0")

    logger.info("Starting Sammy API on %s:%d", host, port)

    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    main()
