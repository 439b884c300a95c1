"""
Betteh Music CMS - Main Application

FastAPI application that serves:
- Public HTML pages via Jinja2 templates (home, industry, gallery, staff)
- The admin dashboard and its mutation endpoints
- Uploaded images under /uploads
- Health check endpoint
- Session-based admin authentication with a first-run setup page

All state lives in one JSON document (see ``store.py``); uploaded images
live in the uploads directory (see ``uploads.py``).
"""

import asyncio
import sys
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Form, Request
from fastapi.responses import RedirectResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from loguru import logger

from betteh_cms.auth import (
    authenticate,
    clear_session_cookie,
    get_current_user,
    hash_password,
    set_session_cookie,
    validate_new_admin,
)
from betteh_cms.config import (
    ADMIN_PASSWORD,
    ADMIN_USERNAME,
    ALLOWED_IMAGE_EXTENSIONS,
    APP_ENV,
    APP_HOST,
    APP_PORT,
    APP_VERSION,
    DATA_FILE,
    DEBUG,
    LOG_LEVEL,
    MAX_UPLOAD_SIZE_BYTES,
    TEMPLATES_DIR,
    UPLOAD_DIR,
)
from betteh_cms.errors import InvalidCredentials, StorageFailure, Unauthorized
from betteh_cms.models import Admin
from betteh_cms.routes.admin import router as admin_router
from betteh_cms.routes.api import router as api_router
from betteh_cms.routes.pages import render
from betteh_cms.routes.pages import router as pages_router
from betteh_cms.store import JsonStore
from betteh_cms.uploads import UploadManager

# ---------------------------------------------------------------------------
# Logging setup (stdout only)
# ---------------------------------------------------------------------------
logger.remove()

logger.add(
    sys.stdout,
    level="DEBUG" if DEBUG else LOG_LEVEL,
    format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
    colorize=True,
)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    On startup:
        1. Create the uploads directory
        2. Load the store (creating an empty document if needed)
        3. Seed the bootstrap admin if no admins exist
    """
    logger.info("🚀 Starting Betteh Music CMS v{}", APP_VERSION)
    logger.info("📋 Environment: {} | Debug: {}", APP_ENV, DEBUG)

    store: JsonStore = app.state.store
    uploads: UploadManager = app.state.uploads

    uploads.ensure_directory()
    logger.info("📁 Uploads directory: {}", uploads.directory)

    try:
        await store.initialize(ADMIN_USERNAME, ADMIN_PASSWORD)
    except StorageFailure as e:
        logger.critical("❌ Store initialization failed: {}", e)
        raise
    logger.info("🗄️  Store: {}", store.path)

    logger.success("✅ Application ready — listening on {}:{}", APP_HOST, APP_PORT)

    yield

    logger.info("👋 Shutdown complete")


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------
def create_app(
    store: Optional[JsonStore] = None,
    uploads: Optional[UploadManager] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    ``store`` and ``uploads`` default to the configured locations; tests
    pass their own instances pointing at temporary directories.
    """

    app = FastAPI(
        title="Betteh Music CMS",
        description="Public site and admin dashboard for Betteh Music.",
        version=APP_VERSION,
        lifespan=lifespan,
        docs_url="/docs" if DEBUG else None,
        redoc_url="/redoc" if DEBUG else None,
    )

    # ------------------------------------------------------------------
    # Shared services
    # ------------------------------------------------------------------
    app.state.store = store or JsonStore(DATA_FILE)
    app.state.uploads = uploads or UploadManager(
        UPLOAD_DIR, ALLOWED_IMAGE_EXTENSIONS, MAX_UPLOAD_SIZE_BYTES
    )
    app.state.templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

    # ------------------------------------------------------------------
    # Uploaded images
    # ------------------------------------------------------------------
    app.mount(
        "/uploads",
        StaticFiles(directory=str(app.state.uploads.directory), check_dir=False),
        name="uploads",
    )

    # ------------------------------------------------------------------
    # Error handlers
    # ------------------------------------------------------------------
    @app.exception_handler(Unauthorized)
    async def unauthorized_handler(request: Request, exc: Unauthorized):
        """Send anonymous or stale sessions to the login page."""
        logger.warning(
            "🔒 {} {} — {}", request.method, request.url.path, exc.message
        )
        response = RedirectResponse(url="/login", status_code=302)
        clear_session_cookie(response)
        return response

    @app.exception_handler(StorageFailure)
    async def storage_failure_handler(request: Request, exc: StorageFailure):
        """Fail the request without pretending the change went through."""
        logger.error(
            "❌ {} {} — {}", request.method, request.url.path, exc.message
        )
        return render(
            request,
            "error.html",
            "Error",
            status_code=500,
            message="Something went wrong reading or saving site data. Nothing was changed.",
        )

    # ------------------------------------------------------------------
    # Request logging middleware
    # ------------------------------------------------------------------
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log every incoming HTTP request with timing information."""
        start = time.time()
        try:
            response = await call_next(request)
        except Exception as exc:
            duration = round(time.time() - start, 3)
            logger.error(
                "❌ {method} {path} — unhandled error after {duration}s: {exc}",
                method=request.method,
                path=request.url.path,
                duration=duration,
                exc=exc,
            )
            raise

        duration = round(time.time() - start, 3)
        status = response.status_code

        if status >= 500:
            logger.error(
                "📤 {method} {path} — {status} [{duration}s]",
                method=request.method,
                path=request.url.path,
                status=status,
                duration=duration,
            )
        elif status >= 400:
            logger.warning(
                "📤 {method} {path} — {status} [{duration}s]",
                method=request.method,
                path=request.url.path,
                status=status,
                duration=duration,
            )
        elif not request.url.path.startswith("/uploads"):
            logger.info(
                "📤 {method} {path} — {status} [{duration}s]",
                method=request.method,
                path=request.url.path,
                status=status,
                duration=duration,
            )

        return response

    # ------------------------------------------------------------------
    # Login / Logout / first-run setup
    # ------------------------------------------------------------------
    @app.get("/login")
    async def login_page(request: Request):
        """Show the login form."""
        document = await request.app.state.store.read()
        user = get_current_user(request)
        if user and document.find_admin(user):
            return RedirectResponse(url="/admin", status_code=302)
        return render(
            request,
            "login.html",
            "Login",
            social=document.social,
            setup_available=not document.admins,
        )

    @app.post("/login")
    async def login_post(
        request: Request,
        username: str = Form(""),
        password: str = Form(""),
    ):
        """Handle login form submission."""
        document = await request.app.state.store.read()
        try:
            await asyncio.to_thread(authenticate, document, username, password)
        except InvalidCredentials as e:
            logger.warning("🔒 Failed login attempt for '{}'", username)
            return render(
                request,
                "login.html",
                "Login",
                social=document.social,
                setup_available=not document.admins,
                error=e.message,
                prefill_user=username,
            )

        logger.info("🔓 Admin '{}' logged in", username)
        response = RedirectResponse(url="/admin", status_code=302)
        set_session_cookie(response, username)
        return response

    @app.get("/logout")
    async def logout(request: Request):
        """Log out and redirect to login page."""
        user = get_current_user(request)
        if user:
            logger.info("🔒 Admin '{}' logged out", user)
        response = RedirectResponse(url="/login", status_code=302)
        clear_session_cookie(response)
        return response

    @app.get("/setup")
    async def setup_page(request: Request):
        """First-run form for creating the initial admin."""
        document = await request.app.state.store.read()
        if document.admins:
            return RedirectResponse(url="/login", status_code=302)
        return render(request, "setup.html", "Setup", social=document.social)

    @app.post("/setup")
    async def setup_post(
        request: Request,
        username: str = Form(""),
        password: str = Form(""),
    ):
        """Create the first admin.  Only allowed while no admins exist."""
        try:
            validate_new_admin(username, password)
        except ValueError as e:
            return render(
                request,
                "setup.html",
                "Setup",
                error=str(e),
                prefill_user=username,
            )

        password_hash = await asyncio.to_thread(hash_password, password)
        async with request.app.state.store.transaction() as document:
            if document.admins:
                raise Unauthorized("Setup already completed")
            document.admins.append(Admin(username=username, password_hash=password_hash))

        logger.success("✅ First admin '{}' created via setup", username)
        response = RedirectResponse(url="/admin", status_code=302)
        set_session_cookie(response, username)
        return response

    @app.get("/dashboard")
    async def dashboard_alias():
        return RedirectResponse(url="/admin", status_code=302)

    # ------------------------------------------------------------------
    # Register routers
    # ------------------------------------------------------------------
    app.include_router(api_router)  # /api/*    JSON endpoints
    app.include_router(admin_router)  # /admin/*  dashboard and mutations
    app.include_router(pages_router)  # /*        public pages

    return app


# ---------------------------------------------------------------------------
# Create the app instance (used by Uvicorn)
# ---------------------------------------------------------------------------
app = create_app()


def run() -> None:
    """Console entry point."""
    import uvicorn

    uvicorn.run(
        "betteh_cms.main:app",
        host=APP_HOST,
        port=APP_PORT,
        reload=DEBUG,
        log_level="debug" if DEBUG else "info",
    )


if __name__ == "__main__":
    run()
