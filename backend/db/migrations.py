"""Database migration utilities"""
import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger(__name__)

STOCK_QUANTITY_CHECK = "ck_stock_quantity_non_negative"


async def add_stock_quantity_check_if_missing(engine: AsyncEngine) -> bool:
    """
    Add CHECK (quantity >= 0) to a stock table created before the constraint existed.

    create_all() never alters existing tables, so older PostgreSQL databases
    need this once. Rows that already violate it are clamped to zero first.
    Returns True when the constraint was added. Other dialects are left alone.
    """
    if engine.dialect.name != "postgresql":
        return False

    async with engine.begin() as conn:
        result = await conn.execute(
            text("""
                SELECT 1
                FROM information_schema.table_constraints
                WHERE table_name = 'stock'
                  AND constraint_type = 'CHECK'
                  AND constraint_name = :name
            """),
            {"name": STOCK_QUANTITY_CHECK},
        )
        if result.first() is not None:
            return False

        clamped = await conn.execute(text("UPDATE stock SET quantity = 0 WHERE quantity < 0"))
        if clamped.rowcount:
            logger.warning("clamped %s negative stock rows to zero", clamped.rowcount)

        await conn.execute(
            text(f"ALTER TABLE stock ADD CONSTRAINT {STOCK_QUANTITY_CHECK} CHECK (quantity >= 0)")
        )
        logger.info("added %s constraint to stock", STOCK_QUANTITY_CHECK)
        return True


ACTOR_COLUMNS = (
    ("transactions", "edited_by"),
    ("putaway_batches", "edited_by"),
    ("putaway_batches", "undone_by"),
)


async def add_actor_columns_if_missing(engine: AsyncEngine) -> list:
    """Add the edited_by / undone_by actor columns to tables that predate them (PostgreSQL only)."""
    if engine.dialect.name != "postgresql":
        return []

    added = []
    async with engine.begin() as conn:
        for table, column in ACTOR_COLUMNS:
            result = await conn.execute(
                text("""
                    SELECT 1
                    FROM information_schema.columns
                    WHERE table_name = :table AND column_name = :column
                """),
                {"table": table, "column": column},
            )
            if result.first() is not None:
                continue
            await conn.execute(text(f"ALTER TABLE {table} ADD COLUMN {column} TEXT"))
            logger.info("added %s.%s column", table, column)
            added.append(f"{table}.{column}")
    return added
