import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from task_portal.app.errors import install_error_handlers
from task_portal.app.middleware.access_log import AccessLogMiddleware
from task_portal.app.routes import tasks
from task_portal.config import Settings
from task_portal.infra.db.identity_sqlite import SQLIdentityProvider
from task_portal.infra.db.schema import create_schema
from task_portal.infra.db.sqlite import make_sqlite_url, make_engine, make_sessionmaker
from task_portal.infra.db.task_repo_sqlite import SQLiteTaskRepo
from task_portal.infra.search.sqlite_fts import SQLiteSearchIndex
from task_portal.observability.logging import setup_logging
from task_portal.services.search_sync import SearchSync
from task_portal.services.task_service import TaskService

logger = logging.getLogger("portal.system")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    setup_logging(settings)
    logger.info("system.start", extra={"category": "system", "event": "system.start"})

    # --- SQLite wiring ---
    engine = make_engine(make_sqlite_url(settings.db_path))
    sessionmaker = make_sessionmaker(engine)

    repo = SQLiteTaskRepo(sessionmaker)
    search_index = SQLiteSearchIndex(sessionmaker)
    sync = SearchSync(
        search_index,
        repo,
        mode=settings.search_sync_mode,
        retries=settings.search_sync_retries,
        retry_delay_seconds=settings.search_sync_retry_delay,
    )
    svc = TaskService(repo, search_index, sync)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await create_schema(engine)
        sync.start()
        logger.info(
            "db.ready",
            extra={"category": "system", "event": "db.ready", "db_path": settings.db_path},
        )
        try:
            yield
        finally:
            await sync.stop()
            await engine.dispose()
            logger.info("system.stop", extra={"category": "system", "event": "system.stop"})

    app = FastAPI(title="Task Portal", lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = engine
    app.state.identity = SQLIdentityProvider(sessionmaker)
    app.state.search_sync = sync
    app.state.task_service = svc

    app.add_middleware(AccessLogMiddleware)
    install_error_handlers(app)

    # Routers
    app.include_router(tasks.router)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


app = create_app()
