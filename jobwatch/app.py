from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from jobwatch.application import get_watch_service
from jobwatch.core.config import Settings, load_settings
from jobwatch.core.features import load_features
from jobwatch.core.logging import configure_logging
from jobwatch.infrastructure import JobApiClient, configure_job_api
from jobwatch.routes import features, watches


def create_app(settings: Settings | None = None, api: JobApiClient | None = None) -> FastAPI:
    settings = settings or load_settings()
    configure_logging(settings.log_level, settings.json_logs)

    owns_api = api is None
    if api is None:
        api = JobApiClient(settings.api_base, timeout=settings.api_timeout)
    configure_job_api(api)

    service = get_watch_service()
    service.configure(
        features=load_features(settings.features_file),
        api=api,
        upgrade_url=settings.upgrade_url,
        max_finished=settings.max_finished_watches,
    )

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        yield
        await service.shutdown()
        if owns_api:
            await api.aclose()

    app = FastAPI(title="Jobwatch API", version="0.1.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(features.router, prefix="/api")
    app.include_router(watches.router, prefix="/api")

    @app.get("/", include_in_schema=False)
    async def root() -> JSONResponse:
        """Provide a lightweight landing page for container checks."""
        return JSONResponse(
            {
                "message": "Jobwatch API",
                "docs": "/docs",
                "health": "/api/features",
            }
        )

    return app


app = create_app()
