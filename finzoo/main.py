# finzoo/main.py
from contextlib import asynccontextmanager
from datetime import timedelta
import logging

from fastapi.middleware.cors import CORSMiddleware
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from finzoo.core.auth import get_auth_gateway
from finzoo.core.auth_gateway import AuthGatewayError
from finzoo.core.config import get_settings
from finzoo.database import create_db_and_tables, new_session
from finzoo.repositories.activity_repo import ActivityRepository
from finzoo.repositories.pet_repo import PetRepository
from finzoo.services.inactivity import InactivityMonitor
from finzoo.services.inventory import InventoryError, InventoryStore
from finzoo.services.user_service import AdminActionError

# Import models so SQLModel metadata is populated before create_all()
from finzoo.models import pet as _pet_models  # noqa: F401
from finzoo.models import profile as _profile_models  # noqa: F401
from finzoo.models import session_activity as _activity_models  # noqa: F401

# Routers
from finzoo.routers.auth import router as auth_router
from finzoo.routers.pets import router as pets_router
from finzoo.routers.users import router as users_router
from finzoo.routers.admin import router as admin_router

settings = get_settings()

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("uvicorn")

GENERIC_ERROR = "Something went wrong. Please try again."


def _sign_out_expired(session_id: str, access_token: str | None) -> None:
    """Invalidate the backend session of an idle admin, when the token is known."""
    if access_token is None:
        return
    try:
        get_auth_gateway().sign_out(access_token)
    except AuthGatewayError:
        logger.warning("Backend sign-out failed for expired session %s", session_id)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
      - Verify DB connectivity and create tables.
      - Restore persisted session activity (stale sessions expire here).
      - Load the inventory and start both periodic jobs.

    Shutdown:
      - Dispose the periodic jobs.
    """
    logger.info("Startup: connecting to Supabase Postgres...")
    try:
        create_db_and_tables()
        logger.info("Startup: DB connection OK, tables verified.")
    except Exception as e:
        logger.error(f"Startup: DB connection FAILED: {e}")
        raise

    monitor = InactivityMonitor(
        ActivityRepository(),
        new_session,
        on_expire=_sign_out_expired,
        timeout=timedelta(seconds=settings.INACTIVITY_TIMEOUT_SECONDS),
        persist_every=timedelta(seconds=settings.ACTIVITY_PERSIST_INTERVAL_SECONDS),
        check_every=settings.INACTIVITY_CHECK_INTERVAL_SECONDS,
    )
    monitor.restore()

    inventory = InventoryStore(
        PetRepository(),
        new_session,
        refresh_every=settings.INVENTORY_REFRESH_SECONDS,
    )
    try:
        inventory.refresh()
    except InventoryError:
        logger.warning("Startup: initial inventory load failed; retrying on schedule")

    app.state.inactivity_monitor = monitor
    app.state.inventory = inventory
    monitor.start()
    inventory.start()
    try:
        yield
    finally:
        await inventory.dispose()
        await monitor.dispose()
        logger.info("Shutdown: background jobs stopped.")


app = FastAPI(
    title=settings.PROJECT_NAME or "FinZoo Pet Store API",
    version="0.1.0",
    lifespan=lifespan,
)


# --- CORS configuration ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AdminActionError)
async def admin_action_error_handler(request: Request, exc: AdminActionError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": GENERIC_ERROR},
    )


app.include_router(auth_router, prefix=settings.API_PREFIX)
app.include_router(pets_router, prefix=settings.API_PREFIX)
app.include_router(users_router, prefix=settings.API_PREFIX)
app.include_router(admin_router, prefix=settings.API_PREFIX)


@app.get("/")
def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "finzoo-backend"}
