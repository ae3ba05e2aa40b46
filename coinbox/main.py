from contextlib import asynccontextmanager

from fastapi import FastAPI

from coinbox import __version__
from coinbox.api import create_api_router
from coinbox.api.error_handlers import register_error_handlers
from coinbox.core.config import get_settings
from coinbox.core.container import get_container
from coinbox.core.logging import configure_logging
from coinbox.infrastructure.database import init_db

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings)
    container = get_container()
    await init_db()
    if settings.scheduler.autostart and container.scheduler is not None:
        container.scheduler.start()
    yield
    await container.shutdown()


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.project_name,
        description="Custodial wallet provisioning and transaction workflows",
        version=__version__,
        lifespan=lifespan,
    )
    register_error_handlers(app)
    app.include_router(create_api_router(settings.api_prefix))

    @app.get("/health", summary="Liveness check")
    async def health():
        return {"status": "ok", "version": __version__}

    return app


app = create_app()


def run() -> None:
    import uvicorn

    uvicorn.run("coinbox.main:app", host=settings.host, port=settings.port, reload=settings.server.reload)


if __name__ == "__main__":
    run()
