# inventory_service/main.py

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from inventory_service.core.logging_config import configure_logging
from inventory_service.database import async_session, engine
from inventory_service.integrations.setup import setup_messaging
from inventory_service.routes import health, inventory
from inventory_service.services.ledger import SqlAlchemyLedger

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()

    # Startup: wire ledger, publisher, stock service and RPC responders
    app.state.messaging = setup_messaging(SqlAlchemyLedger(async_session))
    await app.state.messaging.start()
    try:
        yield  # This is where the app runs
    finally:
        await app.state.messaging.stop()
        await engine.dispose()
        logger.info("Inventory service stopped")

app = FastAPI(
    title="Inventory Service",
    lifespan=lifespan
)

app.include_router(inventory.router, prefix="/inventory", tags=["inventory"])
app.include_router(health.router)
