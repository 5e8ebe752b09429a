import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from core.config import Settings, cors_allow_origins_from_env
from core.db import Database
from core.logging_setup import configure_logging
from core.storage import ObjectStorage
from submissions import router as submissions_router
from submissions.service import SubmissionCoordinator

logger = logging.getLogger(__name__)
access_logger = logging.getLogger("access")


def create_app(
    *,
    settings: Settings | None = None,
    database: Database | None = None,
    storage: ObjectStorage | None = None,
) -> FastAPI:
    """
    Build the app. Settings and resources not passed in are created from the
    environment when the app starts, so a missing variable never breaks an
    import. The one exception is `CORS_ALLOW_ORIGINS`: middleware is fixed
    once the app is built, so without `settings` it is read here.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        resolved = settings or Settings.from_env()
        configure_logging(resolved.log_level)

        db = database or Database(resolved.database)
        store = storage or ObjectStorage(resolved.storage)

        # One pool and one S3 client per process, shared by every request.
        await db.connect()
        app.state.settings = resolved
        app.state.coordinator = SubmissionCoordinator(database=db, storage=store, settings=resolved)
        logger.info("startup app_env=%s bucket=%s", resolved.app_env, store.bucket)
        try:
            yield
        finally:
            await db.close()
            store.close()

    app = FastAPI(title="contest-entry-api", lifespan=lifespan)

    # Allow the entry form, served from another origin, to post here.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins if settings else cors_allow_origins_from_env(),
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def access_log(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        access_logger.info(
            "%s %s status=%s duration_ms=%.1f",
            request.method,
            request.url.path,
            response.status_code,
            (time.perf_counter() - started) * 1000,
        )
        return response

    app.include_router(submissions_router.router, prefix="/api", tags=["submissions"])
    return app


app = create_app()


def serve() -> None:
    import uvicorn

    settings = Settings.from_env()
    uvicorn.run("main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    serve()
