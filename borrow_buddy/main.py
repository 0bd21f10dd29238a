import asyncio
import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

from borrow_buddy.config import settings
from borrow_buddy.modules.auth import routes as auth_routes
from borrow_buddy.modules.profiles import routes as profiles_routes
from borrow_buddy.modules.preferences import routes as preferences_routes
from borrow_buddy.modules.groups import routes as groups_routes
from borrow_buddy.modules.invitations import routes as invitations_routes
from borrow_buddy.modules.tools import routes as tools_routes
from borrow_buddy.modules.requests import routes as requests_routes
from borrow_buddy.modules.messages import routes as messages_routes
from borrow_buddy.modules.notifications import routes as notifications_routes
from borrow_buddy.modules.search import routes as search_routes
from borrow_buddy.modules.dashboard import routes as dashboard_routes
from borrow_buddy.modules.analysis import routes as analysis_routes

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit])
app = FastAPI(
    title=settings.app_name,
    debug=settings.debug,
    redirect_slashes=False,
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception: %s", exc)
    if settings.is_production:
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})
    return JSONResponse(status_code=500, content={"detail": str(exc)})


class SecurityHeadersMiddleware:
    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_with_headers(message):
            if message["type"] == "http.response.start":
                message.setdefault("headers", [])
                message["headers"].extend([
                    (b"X-Content-Type-Options", b"nosniff"),
                    (b"X-Frame-Options", b"DENY"),
                    (b"X-XSS-Protection", b"1; mode=block"),
                ])
            await send(message)

        await self.app(scope, receive, send_with_headers)


app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include module routes
app.include_router(auth_routes.router, prefix="/api/v1")
app.include_router(profiles_routes.router, prefix="/api/v1")
app.include_router(preferences_routes.router, prefix="/api/v1")
app.include_router(groups_routes.router, prefix="/api/v1")
app.include_router(invitations_routes.router, prefix="/api/v1")
app.include_router(tools_routes.router, prefix="/api/v1")
app.include_router(tools_routes.categories_router, prefix="/api/v1")
app.include_router(requests_routes.router, prefix="/api/v1")
app.include_router(messages_routes.router, prefix="/api/v1")
app.include_router(notifications_routes.router, prefix="/api/v1")
app.include_router(search_routes.router, prefix="/api/v1")
app.include_router(dashboard_routes.router, prefix="/api/v1")
app.include_router(analysis_routes.router, prefix="/api/v1")


@app.on_event("startup")
async def startup_event():
    logger.info("Application startup")

    if settings.overdue_sweep_enabled:
        from borrow_buddy.modules.requests.overdue_scheduler import overdue_scheduler_loop
        app.state.overdue_task = asyncio.create_task(overdue_scheduler_loop())
        logger.info(f"Overdue sweep started - every {settings.overdue_sweep_interval_sec}s")


@app.on_event("shutdown")
async def shutdown_event():
    task = getattr(app.state, "overdue_task", None)
    if task:
        task.cancel()
    logger.info("Application shutdown")


@app.get("/")
async def root():
    return {"message": f"Welcome to {settings.app_name}", "status": "healthy"}


@app.get("/health")
@limiter.exempt
async def health():
    return {"status": "healthy"}


@app.get("/ready")
@limiter.exempt
async def ready():
    """Readiness probe: the database client can be built from settings"""
    from borrow_buddy.database.supabase_client import get_supabase
    try:
        get_supabase()
    except Exception as e:
        logger.error(f"Readiness check failed: {e}")
        return JSONResponse(status_code=503, content={"status": "not ready"})
    return {"status": "ready"}
