import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.config import settings
from core.http_errors import install_error_handlers
from core.logging import setup_logging
from db.database import create_db_and_tables, engine
from db.migrations import add_actor_columns_if_missing, add_stock_quantity_check_if_missing
from routers.putaway_batches import router as putaway_batches_router
from routers.stock import router as stock_router
from routers.transactions import router as transactions_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.log_level)
    await create_db_and_tables()
    await add_stock_quantity_check_if_missing(engine)
    await add_actor_columns_if_missing(engine)
    logger.info("inventory ledger ready")
    yield
    await engine.dispose()


app = FastAPI(
    title="Stock Ledger API",
    description="Warehouse inventory ledger: putaway, remove, move and undo of stock movements",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

install_error_handlers(app)

# Movement routes
app.include_router(stock_router, prefix="/stock", tags=["stock"])
app.include_router(transactions_router, prefix="/transactions", tags=["transactions"])
app.include_router(putaway_batches_router, prefix="/putaway-batches", tags=["putaway-batches"])


@app.get("/health")
async def health():
    return {"status": "ok"}


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
