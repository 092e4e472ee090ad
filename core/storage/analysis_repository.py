"""Repository for saved analyses."""

import json
import logging
import uuid
from typing import Any

from core.analysis.schema import AnalysisResult
from core.storage.models import AnalysisRecord

logger = logging.getLogger("pactwise.analysis_repository")

DEFAULT_HISTORY_LIMIT = 20

_COLUMNS = """
    id, user_id, org_id, source_title, doc_fingerprint, model, prompt_version,
    overall_risk, summary, red_flags, recommendations, deal_parties,
    companies_involved, deal_room, playbook, created_at
"""


def _json_field(value: Any) -> Any:
    # asyncpg hands JSONB back as text unless a codec is registered
    if isinstance(value, str):
        return json.loads(value)
    return value


def row_to_record(row: Any) -> AnalysisRecord:
    data = dict(row)
    for key in ("red_flags", "recommendations", "deal_parties", "companies_involved"):
        data[key] = _json_field(data.get(key)) or []
    return AnalysisRecord.model_validate(data)


class AnalysisRepository:
    """Stores analyses explicitly saved by their owner.

    Records are created once and never updated; the only mutation is delete.
    """

    def __init__(self, pool: Any) -> None:
        """Initialize with a database connection pool."""
        self.pool = pool

    async def ensure_tables(self) -> None:
        """Ensure required database tables exist."""
        async with self.pool.acquire() as conn:
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS analyses (
                    id TEXT PRIMARY KEY,
                    user_id VARCHAR(255) NOT NULL,
                    org_id VARCHAR(255),
                    source_title TEXT,
                    doc_fingerprint VARCHAR(64),
                    model VARCHAR(255),
                    prompt_version VARCHAR(50),
                    overall_risk VARCHAR(10) NOT NULL DEFAULT 'low',
                    summary TEXT NOT NULL DEFAULT '',
                    red_flags JSONB NOT NULL DEFAULT '[]',
                    recommendations JSONB NOT NULL DEFAULT '[]',
                    deal_parties JSONB NOT NULL DEFAULT '[]',
                    companies_involved JSONB NOT NULL DEFAULT '[]',
                    deal_room TEXT,
                    playbook TEXT,
                    created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
                )
            """)

            await conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_analyses_user_created
                ON analyses(user_id, created_at DESC)
            """)

    async def create(
        self,
        user_id: str,
        result: AnalysisResult,
        org_id: str | None = None,
        source_title: str | None = None,
        doc_fingerprint: str | None = None,
        model: str | None = None,
        prompt_version: str | None = None,
    ) -> AnalysisRecord:
        """Persist an analysis and return the stored record."""
        analysis_id = str(uuid.uuid4())
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                INSERT INTO analyses (
                    id, user_id, org_id, source_title, doc_fingerprint, model,
                    prompt_version, overall_risk, summary, red_flags,
                    recommendations, deal_parties, companies_involved,
                    deal_room, playbook
                )
                VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13, $14, $15)
                RETURNING {_COLUMNS}
                """,
                analysis_id,
                user_id,
                org_id,
                source_title,
                doc_fingerprint,
                model,
                prompt_version,
                result.overall_risk,
                result.summary,
                json.dumps([flag.model_dump() for flag in result.red_flags]),
                json.dumps(result.recommendations),
                json.dumps(result.deal_parties),
                json.dumps(result.companies_involved),
                result.deal_room,
                result.playbook,
            )
        logger.info(f"Saved analysis {analysis_id} for user {user_id}")
        return row_to_record(row)

    async def get(self, analysis_id: str) -> AnalysisRecord | None:
        """Retrieve an analysis by id, regardless of owner."""
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {_COLUMNS} FROM analyses WHERE id = $1",
                analysis_id,
            )
            if row:
                return row_to_record(row)
            return None

    async def list_for_user(
        self,
        user_id: str,
        limit: int = DEFAULT_HISTORY_LIMIT,
        risk: str | None = None,
        org_id: str | None = None,
    ) -> list[AnalysisRecord]:
        """List a user's analyses, newest first.

        With ``org_id`` the history also includes analyses saved under that
        organization by other members.
        """
        query = f"SELECT {_COLUMNS} FROM analyses"
        params: list[Any] = [user_id]

        if org_id:
            params.append(org_id)
            query += " WHERE (user_id = $1 OR org_id = $2)"
        else:
            query += " WHERE user_id = $1"

        if risk:
            params.append(risk)
            query += f" AND overall_risk = ${len(params)}"

        params.append(limit)
        query += f" ORDER BY created_at DESC LIMIT ${len(params)}"

        async with self.pool.acquire() as conn:
            rows = await conn.fetch(query, *params)
            return [row_to_record(row) for row in rows]

    async def delete(self, analysis_id: str, user_id: str) -> bool:
        """Delete an analysis owned by ``user_id``. Returns whether a row went away."""
        async with self.pool.acquire() as conn:
            status = await conn.execute(
                "DELETE FROM analyses WHERE id = $1 AND user_id = $2",
                analysis_id,
                user_id,
            )
        return status.endswith(" 1")
