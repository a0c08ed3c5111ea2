"""
FastAPI application entry point for the portfolio backend.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from starlette.concurrency import run_in_threadpool

from portfolio_api.config import get_settings
from portfolio_api.dependencies import get_db_client
from portfolio_api.routes import router
from portfolio_api.seeding import MockDataSeeder, SeedError

logger = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    if settings.use_mock:
        logger.info("Initializing mock data...")
        seeder = MockDataSeeder(get_db_client())
        app.state.seeder = seeder
        try:
            await run_in_threadpool(seeder.run)
            logger.info("Mock data initialization complete")
        except SeedError:
            # Example data is optional; keep serving without it.
            logger.exception("Mock data initialization failed")
    yield


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(
        title="Portfolio Backend (FastAPI)", version="0.1.0", lifespan=lifespan
    )
    app.include_router(router, prefix=settings.api_prefix)

    @app.get("/")
    def read_root():
        return {"message": "Portfolio API is running"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=get_settings().port)
