"""clansync API - FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map ClanSyncError -> structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Session runtime built and started in the lifespan, closed (unsubscribed) on shutdown
    - Without Supabase credentials the API starts, but session routes answer 503
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.error_handlers import register_error_handlers
from app.api.routes import clans, health, programs, session
from app.config import Settings, get_settings
import app.infrastructure.database as db_module
from app.infrastructure.database import init_db
from app.infrastructure.observability import setup_logging
from app.infrastructure.sql_store import (
    SqlClanCatalog,
    SqlProfileStore,
    SqlProgramCatalog,
)
from app.infrastructure.supabase_identity import (
    SupabaseIdentityClient,
    create_supabase_client,
)
from app.infrastructure.supabase_store import (
    SupabaseClanCatalog,
    SupabaseProfileStore,
    SupabaseProgramCatalog,
)
from app.services.profile_fetcher import RetryPolicy
from app.services.session_runtime import SessionRuntime, init_session_runtime

logger = logging.getLogger(__name__)


async def build_session_runtime(settings: Settings) -> SessionRuntime | None:
    """Wire adapters selected by settings into a SessionRuntime."""
    if not settings.identity_configured:
        logger.warning("Supabase credentials not configured - session engine disabled")
        return None

    client = await create_supabase_client(
        settings.supabase_url, settings.supabase_anon_key,
    )
    if settings.profile_backend == "supabase":
        store = SupabaseProfileStore(client)
        clan_catalog = SupabaseClanCatalog(client)
        program_catalog = SupabaseProgramCatalog(client)
    else:
        db = init_db(
            settings.database_url,
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
        )
        store = SqlProfileStore(db)
        clan_catalog, program_catalog = SqlClanCatalog(db), SqlProgramCatalog(db)

    return SessionRuntime(
        SupabaseIdentityClient(client),
        store,
        clans=clan_catalog,
        programs=program_catalog,
        policy=RetryPolicy(
            retries=settings.profile_fetch_retries,
            interval_ms=settings.profile_fetch_interval_ms,
        ),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    runtime = await build_session_runtime(settings)
    if runtime is not None:
        init_session_runtime(runtime)
        await runtime.start()
    logger.info("clansync API started")
    yield
    if runtime is not None:
        await runtime.aclose()
    if db_module.db_manager is not None:
        await db_module.db_manager.dispose()
    logger.info("clansync API shutting down")


app = FastAPI(
    title="clansync API", version="1.0.0", lifespan=lifespan,
)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(session.router)
app.include_router(clans.router)
app.include_router(programs.router)

register_error_handlers(app)
