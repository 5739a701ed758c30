"""
Apex Fleet Backend - Entry Point
FastAPI app with the fleet scheduler running in the lifespan.

Run: uvicorn main:app --port 3001
"""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.fleet_router import router as fleet_router
from infrastructure.config import get_config
from infrastructure.errors import register_exception_handlers
from sentry_config import capture_failover_breadcrumb, init_sentry
from services.fleet_service import build_fleet_engine, get_fleet_engine, set_fleet_engine

config = get_config()

logging.basicConfig(
    level=getattr(logging, config.monitoring.log_level.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # ConfigurationError propagates and aborts startup
    engine = build_fleet_engine(config)
    set_fleet_engine(engine)

    if init_sentry(config.monitoring.sentry_dsn, config.environment.value, os.getenv("COMMIT_SHA", "local")):
        engine.failover_monitor.subscribe(lambda signal: capture_failover_breadcrumb(signal.to_dict()))

    if config.features.enable_scheduler:
        engine.scheduler.start()
    else:
        logger.warning("Scheduler disabled - cycles only run on demand")

    logger.info(f"🚀 Apex Fleet API started ({config.environment.value})")
    logger.info(f"📡 Connected to Ethereum via {config.blockchain.rpc_url}")
    try:
        yield
    finally:
        await get_fleet_engine().scheduler.stop()
        set_fleet_engine(None)
        logger.info("Apex Fleet API stopped")


def create_app() -> FastAPI:
    app = FastAPI(title="Apex Strategy Fleet", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)
    app.include_router(fleet_router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "3001")))
