"""Read-only access to user billing plans.

The plan table is owned by the billing integration; the core only reads it.
``ensure_tables`` exists so a fresh development database has the table.
"""

from typing import Any

from core.storage.models import UserPlan


class PlanRepository:

    def __init__(self, pool: Any) -> None:
        """Initialize with a database connection pool."""
        self.pool = pool

    async def ensure_tables(self) -> None:
        """Ensure required database tables exist."""
        async with self.pool.acquire() as conn:
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS user_plans (
                    user_id VARCHAR(255) PRIMARY KEY,
                    plan VARCHAR(20) NOT NULL DEFAULT 'free',
                    free_quota INTEGER NOT NULL DEFAULT 3,
                    used_quota INTEGER NOT NULL DEFAULT 0,
                    updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
                )
            """)

    async def get_plan(self, user_id: str) -> UserPlan | None:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                """
                SELECT user_id, plan, free_quota, used_quota
                FROM user_plans WHERE user_id = $1
                """,
                user_id,
            )
            if row:
                return UserPlan.model_validate(dict(row))
            return None
